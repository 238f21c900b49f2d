from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from metropolis.config import AppConfig, app_config_from_mapping, load_app_config


def _write(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_load_full_config(tmp_path):
    path = _write(
        tmp_path,
        {
            "run": {"seed": 3, "chains": 2, "iterations": 50, "executor": "thread", "results_dir": "out"},
            "proposal": {"scale": 0.25, "adapt_until": 10},
            "model": {"name": "lotka_volterra", "options": {"noise_std": 0.1}, "initial_state": [1, 1, 3, 1]},
            "postprocess": {"burn_in": 5, "thin": 2, "record": "accepted"},
            "logging": {"level": "DEBUG"},
        },
    )
    cfg = load_app_config(path)
    assert cfg.run.seed == 3 and cfg.run.chains == 2 and cfg.run.iterations == 50
    assert cfg.run.executor == "thread"
    assert cfg.run.results_dir == Path("out")
    assert cfg.proposal.scale == 0.25 and cfg.proposal.adapt_until == 10
    assert cfg.model.name == "lotka_volterra"
    assert cfg.model.initial_state == [1.0, 1.0, 3.0, 1.0]
    assert cfg.postprocess.record == "accepted"
    assert cfg.logging.level == "DEBUG"


def test_defaults_from_empty_document(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    cfg = load_app_config(path)
    assert cfg == AppConfig()


@pytest.mark.parametrize(
    "payload",
    [
        {"run": {"executor": "cluster"}},
        {"model": {"name": "rosenbrock"}},
        {"postprocess": {"record": "sometimes"}},
        {"postprocess": {"thin": 0}},
        {"run": {"chains": 0}},
    ],
)
def test_invalid_values_rejected(payload):
    with pytest.raises(ValueError):
        app_config_from_mapping(payload)
