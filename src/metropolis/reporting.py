"""Persist sampler runs: samples, per-chain tables and run metadata."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
import yaml

from .ensemble import EnsembleResult


def build_run_id(prefix: str) -> str:
    return f"{prefix}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S_%fZ')}"


def prepare_run_directory(root: Path, run_id: str) -> Path:
    """Create a fresh directory for ``run_id``; never reuse an existing one.

    A clash gets a numeric suffix (``run_id-1``, ``run_id-2``, ...).
    """

    root = Path(root)
    root.mkdir(parents=True, exist_ok=True)
    candidate, suffix = run_id, 0
    while True:
        path = root / candidate
        try:
            path.mkdir()
        except FileExistsError:
            suffix += 1
            candidate = f"{run_id}-{suffix}"
            continue
        return path


def write_metadata(path: Path, metadata: Dict[str, object]) -> Path:
    target = path / "metadata.yaml"
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(metadata, handle, sort_keys=True)
    return target


def samples_frame(
    result: EnsembleResult,
    names: Optional[Sequence[str]] = None,
    burn_in: int = 0,
    thin: int = 1,
) -> pd.DataFrame:
    """Long-format table with one row per retained draw and a ``chain`` column."""

    frames = []
    for chain in result.chains:
        draws = chain.samples(burn_in=burn_in, thin=thin)
        columns = list(names) if names is not None else [f"theta_{i}" for i in range(chain.dim)]
        frame = pd.DataFrame(draws, columns=columns)
        frame.insert(0, "draw", np.arange(draws.shape[0]))
        frame.insert(0, "chain", chain.chain_id)
        frame["log_density"] = chain.log_density_trace(burn_in=burn_in, thin=thin)
        frames.append(frame)
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def save_samples(path: Path, frame: pd.DataFrame) -> Path:
    target = path / "samples.csv"
    frame.to_csv(target, index=False)
    return target


def write_summary(path: Path, summary: pd.DataFrame, chains: pd.DataFrame) -> None:
    """Write the posterior summary, the per-chain table and a short report."""

    path.mkdir(parents=True, exist_ok=True)
    summary.to_csv(path / "summary.csv")
    chains.to_csv(path / "chains.csv", index=False)
    rates = chains.loc[chains["status"] == "ok", "acceptance_rate"] if not chains.empty else pd.Series(dtype=float)
    report = {
        "chains_ok": int((chains["status"] == "ok").sum()) if not chains.empty else 0,
        "chains_total": int(len(chains)),
        "mean_acceptance": float(rates.mean()) if len(rates) else float("nan"),
    }
    with (path / "report.json").open("w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2)


__all__ = [
    "build_run_id",
    "prepare_run_directory",
    "write_metadata",
    "samples_frame",
    "save_samples",
    "write_summary",
]
