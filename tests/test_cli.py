from __future__ import annotations

from pathlib import Path

import pandas as pd
import yaml
from typer.testing import CliRunner

from metropolis.cli import app


def _config(tmp_path: Path) -> Path:
    payload = {
        "run": {"seed": 1, "chains": 2, "iterations": 200, "executor": "serial", "results_dir": str(tmp_path / "results")},
        "proposal": {"scale": 1.0},
        "model": {"name": "gaussian", "options": {"mean": 5.0, "std": 1.0}, "initial_state": [4.0]},
        "postprocess": {"burn_in": 50, "thin": 1},
        "logging": {"level": "WARNING"},
    }
    path = tmp_path / "mcmc.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_cli_run_writes_results(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["--config", str(_config(tmp_path)), "--iterations", "120"])
    assert result.exit_code == 0, result.output

    run_dirs = list((tmp_path / "results").iterdir())
    assert len(run_dirs) == 1
    out = run_dirs[0]
    samples = pd.read_csv(out / "samples.csv")
    assert len(samples) == 2 * 70
    assert set(samples.columns) >= {"chain", "draw", "x_0", "log_density"}
    assert (out / "summary.csv").exists()
    assert (out / "chains.csv").exists()
    metadata = yaml.safe_load((out / "metadata.yaml").read_text(encoding="utf-8"))
    assert metadata["config"]["run"]["iterations"] == 120
    assert set(metadata["timers"]) == {"chain_0", "chain_1", "ensemble"}
    assert metadata["run_id"] == out.name


def test_cli_no_save(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["--config", str(_config(tmp_path)), "--no-save"])
    assert result.exit_code == 0, result.output
    assert not (tmp_path / "results").exists()
