"""Logging helpers for consistent instrumentation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", rich_tracebacks: bool = True) -> None:
    """Configure the root logger with optional rich tracebacks."""

    console = Console(stderr=True)
    handler = RichHandler(console=console, rich_tracebacks=rich_tracebacks)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@dataclass
class WorkUnitLogger:
    """Count posterior evaluations and the ways they were turned into rejections."""

    evaluations: int = 0
    outside_support: int = 0
    divergences: int = 0
    extras: Dict[str, int] = field(default_factory=dict)

    def incr(self, **kwargs: int) -> None:
        for key, value in kwargs.items():
            if key != "extras" and hasattr(self, key):
                setattr(self, key, getattr(self, key) + int(value))
            else:
                self.extras[key] = self.extras.get(key, 0) + int(value)

    def as_dict(self) -> Dict[str, int]:
        out = {
            "evaluations": self.evaluations,
            "outside_support": self.outside_support,
            "divergences": self.divergences,
        }
        out.update(self.extras)
        return out


__all__ = ["setup_logging", "WorkUnitLogger"]
