"""Wall-clock timers for chains and whole runs."""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class TimerRecord:
    """Accumulates elapsed wall-clock time for a named section."""

    total: float = 0.0
    calls: int = 0

    def update(self, dt: float) -> None:
        self.total += dt
        self.calls += 1


@dataclass
class TimerRegistry:
    """Registry of timers keyed by string labels, e.g. ``chain_0`` or ``ensemble``."""

    records: Dict[str, TimerRecord] = field(default_factory=dict)

    @contextlib.contextmanager
    def time(self, label: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(label, time.perf_counter() - start)

    def add(self, label: str, dt: float) -> None:
        """Fold an interval measured elsewhere (e.g. in a worker process) into ``label``."""

        if dt < 0.0:
            raise ValueError("Elapsed time cannot be negative.")
        self.records.setdefault(label, TimerRecord()).update(dt)

    def total(self, label: str) -> float:
        record = self.records.get(label)
        return record.total if record is not None else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {label: record.total for label, record in sorted(self.records.items())}


__all__ = ["TimerRecord", "TimerRegistry"]
