"""Logging and timing helpers for the :mod:`metropolis` package."""

from .logging import WorkUnitLogger, setup_logging
from .timers import TimerRecord, TimerRegistry

__all__ = ["setup_logging", "WorkUnitLogger", "TimerRecord", "TimerRegistry"]
