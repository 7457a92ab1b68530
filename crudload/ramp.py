"""
Ramp Controller — staged virtual-user population over time.

The controller wakes up every ``tick_interval`` seconds, asks the
:class:`~crudload.models.StageSchedule` how many workers should be active
at that instant, and spawns or retires worker threads until the active
count matches.  Each worker owns one runner (one HTTP session) and loops
over :meth:`ScenarioRunner.run_iteration` until it is retired.

Retirement is cooperative: a retired worker finishes the iteration it is
in, then closes its runner and exits.  Such workers are *draining* and no
longer count as active, so the active count never exceeds the schedule's
target at any tick; each sample records them separately as ``draining``.
A worker whose runner could not be built exits at once and is replaced
on the next tick.

The clock and the wait primitive are injectable, which lets the tests
drive a whole schedule on a fake clock in milliseconds.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from .models import StageSchedule

logger = logging.getLogger(__name__)


class IterationRunner(Protocol):
    def run_iteration(self) -> object: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class RampSample:
    """Population at one tick; ``draining`` workers are retired but still mid-iteration."""

    elapsed: float
    target: int
    active: int
    draining: int = 0

    @property
    def busy(self) -> int:
        return self.active + self.draining


@dataclass
class RampReport:
    """What the controller actually did over the run."""

    samples: list[RampSample] = field(default_factory=list)
    iterations: int = 0
    iteration_errors: int = 0
    peak_workers: int = 0
    duration: float = 0.0
    stopped_early: bool = False

    def worker_seconds(self) -> float:
        """Integrate the sampled active-worker count over elapsed time."""
        total = 0.0
        for current, following in zip(self.samples, self.samples[1:]):
            total += current.active * (following.elapsed - current.elapsed)
        return total

    def busy_worker_seconds(self) -> float:
        """Like :meth:`worker_seconds`, but also counting draining workers."""
        total = 0.0
        for current, following in zip(self.samples, self.samples[1:]):
            total += current.busy * (following.elapsed - current.elapsed)
        return total


class _Worker:
    """One virtual user: a thread looping over scenario iterations."""

    def __init__(self, index: int, runner_factory: Callable[[], IterationRunner], controller: RampController):
        self.index = index
        self._runner_factory = runner_factory
        self._controller = controller
        self.retired = threading.Event()
        self.thread = threading.Thread(target=self._run, name=f"vu-{index}", daemon=True)

    def start(self) -> None:
        self.thread.start()

    def retire(self) -> None:
        self.retired.set()

    def _run(self) -> None:
        try:
            runner = self._runner_factory()
        except Exception:
            logger.exception("Worker %s: could not build its runner", self.index)
            return

        try:
            while not self.retired.is_set():
                try:
                    runner.run_iteration()
                except Exception:
                    logger.exception("Worker %s: iteration raised unexpectedly", self.index)
                    self._controller._count_iteration(error=True)
                else:
                    self._controller._count_iteration(error=False)
        finally:
            runner.close()


class RampController:
    """
    Drive a population of workers according to a stage schedule.

    Args:
        schedule: The validated stage schedule.
        runner_factory: Called once per worker to build its runner.
        tick_interval: Seconds between population adjustments.
        drain_timeout: Upper bound, in seconds, on waiting for draining
            workers at the end of the run.
        clock: Monotonic time source.
        wait: ``wait(seconds)`` used between ticks; returns early when the
            controller is stopped.
    """

    def __init__(
        self,
        schedule: StageSchedule,
        runner_factory: Callable[[], IterationRunner],
        *,
        tick_interval: float = 0.5,
        drain_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float], object] | None = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self._schedule = schedule
        self._runner_factory = runner_factory
        self._tick_interval = tick_interval
        self._drain_timeout = drain_timeout
        self._clock = clock
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait

        self._lock = threading.Lock()
        self._active: list[_Worker] = []
        self._draining: list[_Worker] = []
        self._indices = itertools.count(1)
        self._iterations = 0
        self._iteration_errors = 0

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    @property
    def draining_count(self) -> int:
        with self._lock:
            return sum(1 for worker in self._draining if worker.thread.is_alive())

    def stop(self) -> None:
        """Abort the run: retire every worker and leave the tick loop."""
        self._stop_event.set()

    def run(self) -> RampReport:
        """Block until the schedule has been traversed (or :meth:`stop`)."""
        report = RampReport()
        started = self._clock()
        total = self._schedule.total_duration
        logger.info(
            "Starting ramp: %d stage(s), %.1fs, peak %d workers",
            len(self._schedule.stages),
            total,
            self._schedule.peak(),
        )

        try:
            while True:
                elapsed = self._clock() - started
                if self._stop_event.is_set():
                    report.stopped_early = elapsed < total
                    break
                if elapsed >= total:
                    break

                target = self._schedule.target_at(elapsed)
                active, draining = self._resize(target)
                report.samples.append(
                    RampSample(elapsed=elapsed, target=target, active=active, draining=draining)
                )
                report.peak_workers = max(report.peak_workers, active)

                self._wait(min(self._tick_interval, total - elapsed))
        finally:
            elapsed = self._clock() - started
            _, draining = self._resize(0)
            report.samples.append(
                RampSample(elapsed=min(elapsed, total), target=0, active=0, draining=draining)
            )
            report.duration = elapsed
            self._join_draining()

        with self._lock:
            report.iterations = self._iterations
            report.iteration_errors = self._iteration_errors
        logger.info(
            "Ramp finished after %.1fs: %d iterations, peak %d workers",
            report.duration,
            report.iterations,
            report.peak_workers,
        )
        return report

    def _resize(self, target: int) -> tuple[int, int]:
        with self._lock:
            # A worker whose runner could not be built has already exited.
            self._active = [worker for worker in self._active if worker.thread.is_alive()]
            while len(self._active) < target:
                worker = _Worker(next(self._indices), self._runner_factory, self)
                self._active.append(worker)
                worker.start()
            while len(self._active) > target:
                # Newest first, so long-lived workers keep their sessions warm.
                worker = self._active.pop()
                worker.retire()
                self._draining.append(worker)
            self._draining = [worker for worker in self._draining if worker.thread.is_alive()]
            return len(self._active), len(self._draining)

    def _join_draining(self) -> None:
        deadline = time.monotonic() + self._drain_timeout
        with self._lock:
            draining = list(self._draining)
        for worker in draining:
            remaining = max(deadline - time.monotonic(), 0.0)
            worker.thread.join(timeout=remaining)
            if worker.thread.is_alive():
                logger.warning("Worker %s still busy after drain timeout", worker.index)

    def _count_iteration(self, *, error: bool) -> None:
        with self._lock:
            self._iterations += 1
            if error:
                self._iteration_errors += 1
