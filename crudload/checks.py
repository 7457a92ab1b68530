"""
Check Recorder — thread-safe aggregation of pass/fail checks.

Every worker reports the outcome of each request here.  The recorder is
the only piece of mutable state shared between workers, so every read
and write goes through one lock; workers never see the underlying
counters.

Besides the pass/fail counters the recorder keeps a running count, sum
and maximum of request durations per check, which is enough to compare
the two backends on latency without retaining individual samples.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .models import CheckResult


@dataclass(frozen=True)
class CheckStats:
    """Aggregated results for one check name (or for all checks)."""

    name: str
    passes: int = 0
    fails: int = 0
    timed: int = 0
    total_duration: float = 0.0
    max_duration: float = 0.0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Fraction of passing checks (``0.0`` when nothing was recorded)."""
        if self.total == 0:
            return 0.0
        return self.passes / self.total

    @property
    def fail_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.fails / self.total

    @property
    def mean_duration(self) -> float:
        if self.timed == 0:
            return 0.0
        return self.total_duration / self.timed


class _Counter:
    __slots__ = ("passes", "fails", "timed", "total_duration", "max_duration")

    def __init__(self) -> None:
        self.passes = 0
        self.fails = 0
        self.timed = 0
        self.total_duration = 0.0
        self.max_duration = 0.0

    def freeze(self, name: str) -> CheckStats:
        return CheckStats(
            name=name,
            passes=self.passes,
            fails=self.fails,
            timed=self.timed,
            total_duration=self.total_duration,
            max_duration=self.max_duration,
        )


class CheckRecorder:
    """
    Accumulates check results keyed by check name across all workers.

    Example::

        recorder = CheckRecorder()
        recorder.record("GET all users - status 200", True, duration=0.012)
        recorder.snapshot()["GET all users - status 200"].passes  # -> 1
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}

    def record(self, name: str, passed: bool, duration: float | None = None) -> None:
        """Count one check; ``duration`` is the request time in seconds."""
        with self._lock:
            counter = self._counters.get(name)
            if counter is None:
                counter = self._counters[name] = _Counter()
            if passed:
                counter.passes += 1
            else:
                counter.fails += 1
            if duration is not None:
                counter.timed += 1
                counter.total_duration += duration
                if duration > counter.max_duration:
                    counter.max_duration = duration

    def record_result(self, result: CheckResult, duration: float | None = None) -> None:
        self.record(result.name, result.passed, duration)

    def snapshot(self) -> dict[str, CheckStats]:
        """Return immutable per-check stats in first-recorded order."""
        with self._lock:
            return {name: counter.freeze(name) for name, counter in self._counters.items()}

    def totals(self) -> CheckStats:
        """Aggregate across every check name."""
        stats = self.snapshot().values()
        return CheckStats(
            name="checks",
            passes=sum(item.passes for item in stats),
            fails=sum(item.fails for item in stats),
            timed=sum(item.timed for item in stats),
            total_duration=sum(item.total_duration for item in stats),
            max_duration=max((item.max_duration for item in stats), default=0.0),
        )

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(counter.passes + counter.fails for counter in self._counters.values())
