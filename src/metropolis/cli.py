"""Command-line entry point: run an ensemble from a YAML configuration."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from rich.console import Console
from rich.table import Table

from . import config as app_config
from .diagnostics import acceptance_table, ess_per_second, summarize, to_inferencedata
from .ensemble import EnsembleResult, chain_timer_label, run_ensemble
from .proposals import RandomWalkProposal
from .reporting import (
    build_run_id,
    prepare_run_directory,
    samples_frame,
    save_samples,
    write_metadata,
    write_summary,
)
from .targets import build_target
from .utils.logging import setup_logging
from .utils.timers import TimerRegistry

logger = logging.getLogger(__name__)
console = Console()
app = typer.Typer(add_completion=False, help="Metropolis-Hastings ensembles.")


def _print_summary(result: EnsembleResult, summary) -> None:
    chains = Table(title="Chains")
    for col in ("chain", "status", "acceptance", "evaluations", "seconds"):
        chains.add_column(col)
    for r in result.results:
        status = "ok" if r.ok else ("cancelled" if r.failure.cancelled else f"failed ({r.failure.error_type})")
        rate = f"{r.chain.acceptance_rate:.3f}" if r.ok else "-"
        chains.add_row(
            str(r.chain_id), status, rate, str(r.work.get("evaluations", 0)), f"{r.elapsed_sec:.2f}"
        )
    console.print(chains)

    if summary.empty:
        return
    table = Table(title="Posterior diagnostics")
    table.add_column("param")
    for col in summary.columns:
        table.add_column(str(col))
    for idx, row in summary.iterrows():
        table.add_row(str(idx), *[f"{v:.3g}" for v in row.values])
    console.print(table)


def run_from_config(cfg: app_config.AppConfig, save: bool = True) -> EnsembleResult:
    """Build the target and proposal from ``cfg``, run, summarise and persist."""

    target = build_target(cfg.model, seed=cfg.run.seed)
    covariance = None if cfg.proposal.covariance is None else np.asarray(cfg.proposal.covariance)
    proposal = RandomWalkProposal(scale=cfg.proposal.scale, covariance=covariance)

    timers = TimerRegistry()
    with timers.time("ensemble"):
        result = run_ensemble(
            target.log_density,
            proposal,
            target.initial_state,
            cfg.run.iterations,
            n_chains=cfg.run.chains,
            seed=cfg.run.seed,
            executor=cfg.run.executor,
            max_workers=cfg.run.max_workers,
            record=cfg.postprocess.record,
            adapt_until=cfg.proposal.adapt_until,
            target_acceptance=cfg.proposal.target_acceptance,
        )
    for r in result.results:
        timers.add(chain_timer_label(r.chain_id), r.elapsed_sec)

    burn_in, thin = cfg.postprocess.burn_in, cfg.postprocess.thin
    idata = to_inferencedata(result.chains, names=target.names, burn_in=burn_in, thin=thin)
    summary = summarize(idata)
    chains = acceptance_table(result)
    _print_summary(result, summary)

    if save:
        run_id = build_run_id(cfg.run.run_id_prefix)
        out_dir = prepare_run_directory(cfg.run.results_dir, run_id)
        run_id = out_dir.name
        save_samples(out_dir, samples_frame(result, target.names, burn_in=burn_in, thin=thin))
        write_summary(out_dir, summary, chains)
        write_metadata(
            out_dir,
            {
                "run_id": run_id,
                "config": _jsonable(dataclasses.asdict(cfg)),
                "elapsed_sec": timers.total("ensemble"),
                "timers": timers.as_dict(),
                "ess_per_sec": ess_per_second(idata, timers.total("ensemble")),
            },
        )
        logger.info("Results written to %s", out_dir)
    return result


def _jsonable(obj):
    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, Path):
        return str(obj)
    return obj


@app.command()
def run(
    config: Path = typer.Option(Path("config/mcmc.yaml"), help="Path to the run configuration"),
    seed: Optional[int] = typer.Option(None, help="Override run.seed"),
    chains: Optional[int] = typer.Option(None, help="Override run.chains"),
    iterations: Optional[int] = typer.Option(None, help="Override run.iterations"),
    no_save: bool = typer.Option(False, "--no-save", help="Do not write results to disk"),
) -> None:
    cfg = app_config.load_app_config(config)
    if seed is not None:
        cfg.run.seed = seed
    if chains is not None:
        cfg.run.chains = chains
    if iterations is not None:
        cfg.run.iterations = iterations
    setup_logging(cfg.logging.level, cfg.logging.rich_tracebacks)
    result = run_from_config(cfg, save=not no_save)
    if not result.chains:
        raise typer.Exit(code=1)


def main() -> None:
    app()


__all__ = ["app", "main", "run_from_config"]
