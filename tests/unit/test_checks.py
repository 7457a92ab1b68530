"""
Unit tests for the Check Recorder.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from crudload.checks import CheckRecorder, CheckStats
from crudload.models import CheckResult

pytestmark = pytest.mark.unit


def test_record_counts_passes_and_fails(recorder):
    # Act
    recorder.record("GET all users - status 200", True)
    recorder.record("GET all users - status 200", True)
    recorder.record("GET all users - status 200", False)

    # Assert
    stats = recorder.snapshot()["GET all users - status 200"]
    assert (stats.passes, stats.fails, stats.total) == (2, 1, 3)
    assert stats.pass_rate == pytest.approx(2 / 3)
    assert stats.fail_rate == pytest.approx(1 / 3)


def test_record_result_accepts_check_result(recorder):
    recorder.record_result(CheckResult(name="DELETE user - status 204", passed=True))

    assert recorder.snapshot()["DELETE user - status 204"].passes == 1


def test_snapshot_preserves_first_recorded_order(recorder):
    for name in ("b", "a", "c", "a"):
        recorder.record(name, True)

    assert list(recorder.snapshot()) == ["b", "a", "c"]


def test_snapshot_is_detached_from_later_records(recorder):
    recorder.record("x", True)
    snapshot = recorder.snapshot()

    recorder.record("x", True)

    assert snapshot["x"].passes == 1


def test_durations_are_aggregated(recorder):
    recorder.record("x", True, duration=0.1)
    recorder.record("x", False, duration=0.3)
    recorder.record("x", False)

    stats = recorder.snapshot()["x"]
    assert stats.timed == 2
    assert stats.mean_duration == pytest.approx(0.2)
    assert stats.max_duration == pytest.approx(0.3)


def test_totals_aggregate_all_checks(recorder):
    recorder.record("a", True, duration=0.5)
    recorder.record("b", False, duration=1.5)
    recorder.record("b", True)

    totals = recorder.totals()

    assert totals.name == "checks"
    assert (totals.passes, totals.fails) == (2, 1)
    assert totals.max_duration == pytest.approx(1.5)
    assert totals.mean_duration == pytest.approx(1.0)


def test_empty_recorder_rates_are_zero(recorder):
    totals = recorder.totals()

    assert totals == CheckStats(name="checks")
    assert totals.pass_rate == 0.0
    assert totals.mean_duration == 0.0
    assert len(recorder) == 0


def test_reset_clears_everything(recorder):
    recorder.record("a", True)

    recorder.reset()

    assert recorder.snapshot() == {}


def test_concurrent_records_are_not_lost():
    """Many workers hammering the recorder produce exact totals."""
    # Arrange
    recorder = CheckRecorder()
    workers = 32
    per_worker = 2000
    names = ["GET all users - status 200", "POST create user - status 201", "DELETE user - status 204"]
    barrier = threading.Barrier(workers)

    def hammer(worker_index: int) -> None:
        barrier.wait()
        for i in range(per_worker):
            recorder.record(names[i % len(names)], passed=(i + worker_index) % 2 == 0, duration=0.001)

    # Act
    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(hammer, range(workers)))

    # Assert
    totals = recorder.totals()
    assert totals.total == workers * per_worker
    assert totals.timed == workers * per_worker
    assert totals.passes == workers * per_worker // 2
    assert len(recorder) == workers * per_worker
    snapshot = recorder.snapshot()
    assert sum(stats.total for stats in snapshot.values()) == workers * per_worker
