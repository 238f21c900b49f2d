"""Convergence and quality diagnostics for chains and ensembles."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

import arviz as az
import numpy as np
import pandas as pd
from scipy import stats

from .chain import Chain
from .ensemble import EnsembleResult


def _names(dim: int, names: Optional[Sequence[str]]) -> List[str]:
    if names is None:
        return [f"theta_{i}" for i in range(dim)]
    if len(names) != dim:
        raise ValueError(f"Expected {dim} parameter names, received {len(names)}.")
    return list(names)


def to_inferencedata(
    chains: Sequence[Chain],
    names: Optional[Sequence[str]] = None,
    burn_in: int = 0,
    thin: int = 1,
) -> az.InferenceData:
    """Stack equally long chains into an :class:`arviz.InferenceData` posterior."""

    if not chains:
        return az.InferenceData()
    draws = [c.samples(burn_in=burn_in, thin=thin) for c in chains]
    lengths = {d.shape[0] for d in draws}
    if len(lengths) != 1:
        raise ValueError(f"Chains have different lengths after post-processing: {sorted(lengths)}.")
    arr = np.stack(draws, axis=0)  # (chain, draw, dim)
    if arr.shape[1] == 0:
        return az.InferenceData()
    var_names = _names(arr.shape[2], names)
    posterior = {name: arr[:, :, i] for i, name in enumerate(var_names)}
    sample_stats = {
        "lp": np.stack([c.log_density_trace(burn_in=burn_in, thin=thin) for c in chains], axis=0)
    }
    return az.from_dict(posterior=posterior, sample_stats=sample_stats)


def summarize(idata: az.InferenceData) -> pd.DataFrame:
    """Posterior summary table (mean, sd, HDI, ESS, R-hat) as a DataFrame."""

    if not hasattr(idata, "posterior"):
        return pd.DataFrame()
    var_names = list(idata.posterior.data_vars)
    if not var_names:
        return pd.DataFrame()
    return az.summary(idata, var_names=var_names, round_to=None)


def acceptance_table(result: EnsembleResult) -> pd.DataFrame:
    """One row per chain with status, acceptance rate and evaluation counts."""

    rows: List[Dict[str, object]] = []
    for r in result.results:
        row: Dict[str, object] = {
            "chain": r.chain_id,
            "status": "ok" if r.ok else ("cancelled" if r.failure.cancelled else "failed"),
            "acceptance_rate": r.chain.acceptance_rate if r.ok else float("nan"),
            "elapsed_sec": r.elapsed_sec,
            "error": "" if r.ok else f"{r.failure.error_type}: {r.failure.message}",
        }
        row.update(r.work)
        rows.append(row)
    return pd.DataFrame(rows)


def ks_distance(samples: np.ndarray, cdf: Callable[[np.ndarray], np.ndarray]) -> float:
    """Kolmogorov-Smirnov statistic between 1-D draws and a reference CDF."""

    values = np.asarray(samples, dtype=np.float64).reshape(-1)
    if values.size == 0:
        raise ValueError("Cannot compute a distance from an empty sample.")
    return float(stats.kstest(values, cdf).statistic)


def ess_per_second(idata: az.InferenceData, elapsed_sec: float) -> Dict[str, float]:
    """Bulk effective sample size per second of wall time, per parameter."""

    if not hasattr(idata, "posterior") or elapsed_sec <= 0.0:
        return {}
    ess = az.ess(idata, method="bulk")
    return {str(v): float(np.asarray(ess[v]).mean()) / elapsed_sec for v in ess.data_vars}


__all__ = [
    "to_inferencedata",
    "summarize",
    "acceptance_table",
    "ks_distance",
    "ess_per_second",
]
