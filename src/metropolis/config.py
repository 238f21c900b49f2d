"""Configuration utilities for sampler runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .chain import RECORD_MODES
from .ensemble import EXECUTORS

MODELS = ("gaussian", "lotka_volterra")


@dataclass
class RunConfig:
    """Runtime options for an ensemble run."""

    seed: int = 0
    chains: int = 4
    iterations: int = 10_000
    executor: str = "serial"
    max_workers: Optional[int] = None
    results_dir: Path = Path("results")
    run_id_prefix: str = "mh"


@dataclass
class ProposalConfig:
    """Random-walk scale (or covariance) and the optional adaptation window."""

    scale: float = 0.5
    covariance: Optional[List[List[float]]] = None
    adapt_until: int = 0
    target_acceptance: float = 0.234


@dataclass
class ModelConfig:
    """Which target to sample and its model-specific options."""

    name: str = "gaussian"
    options: Dict[str, Any] = field(default_factory=dict)
    initial_state: Optional[List[float]] = None


@dataclass
class PostprocessConfig:
    burn_in: int = 0
    thin: int = 1
    record: str = "all"


@dataclass
class LoggingConfig:
    """Logging verbosity and formatting options."""

    level: str = "INFO"
    rich_tracebacks: bool = True


@dataclass
class AppConfig:
    """Top-level configuration object composed of sub-configurations."""

    run: RunConfig = field(default_factory=RunConfig)
    proposal: ProposalConfig = field(default_factory=ProposalConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    postprocess: PostprocessConfig = field(default_factory=PostprocessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _coerce_path(value: Any) -> Path:
    if isinstance(value, Path):
        return value
    return Path(str(value))


def _choice(value: Any, allowed: tuple, key: str) -> str:
    value = str(value)
    if value not in allowed:
        raise ValueError(f"{key} must be one of {allowed}, received {value!r}.")
    return value


def load_yaml(path: Path) -> Mapping[str, Any]:
    """Load a YAML document and return a mapping."""

    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"{path} must contain a mapping at the top level.")
    return data


def app_config_from_mapping(raw: Mapping[str, Any]) -> AppConfig:
    run = raw.get("run", {}) or {}
    proposal = raw.get("proposal", {}) or {}
    model = raw.get("model", {}) or {}
    post = raw.get("postprocess", {}) or {}
    logging_cfg = raw.get("logging", {}) or {}

    max_workers = run.get("max_workers")
    initial_state = model.get("initial_state")
    app_config = AppConfig(
        run=RunConfig(
            seed=int(run.get("seed", 0)),
            chains=int(run.get("chains", 4)),
            iterations=int(run.get("iterations", 10_000)),
            executor=_choice(run.get("executor", "serial"), EXECUTORS, "run.executor"),
            max_workers=None if max_workers is None else int(max_workers),
            results_dir=_coerce_path(run.get("results_dir", "results")),
            run_id_prefix=str(run.get("run_id_prefix", "mh")),
        ),
        proposal=ProposalConfig(
            scale=float(proposal.get("scale", 0.5)),
            covariance=proposal.get("covariance"),
            adapt_until=int(proposal.get("adapt_until", 0)),
            target_acceptance=float(proposal.get("target_acceptance", 0.234)),
        ),
        model=ModelConfig(
            name=_choice(model.get("name", "gaussian"), MODELS, "model.name"),
            options=dict(model.get("options", {}) or {}),
            initial_state=None if initial_state is None else [float(v) for v in initial_state],
        ),
        postprocess=PostprocessConfig(
            burn_in=int(post.get("burn_in", 0)),
            thin=int(post.get("thin", 1)),
            record=_choice(post.get("record", "all"), RECORD_MODES, "postprocess.record"),
        ),
        logging=LoggingConfig(
            level=str(logging_cfg.get("level", "INFO")),
            rich_tracebacks=bool(logging_cfg.get("rich_tracebacks", True)),
        ),
    )
    if app_config.run.chains < 1:
        raise ValueError("run.chains must be at least 1.")
    if app_config.postprocess.burn_in < 0 or app_config.postprocess.thin < 1:
        raise ValueError("postprocess.burn_in must be >= 0 and postprocess.thin >= 1.")
    return app_config


def load_app_config(path: Path) -> AppConfig:
    """Load :class:`AppConfig` from ``path``."""

    return app_config_from_mapping(load_yaml(path))


__all__ = [
    "RunConfig",
    "ProposalConfig",
    "ModelConfig",
    "PostprocessConfig",
    "LoggingConfig",
    "AppConfig",
    "MODELS",
    "load_yaml",
    "app_config_from_mapping",
    "load_app_config",
]
