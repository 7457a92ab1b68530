"""
Helper utilities for the Locust scenarios.

Resolves the run settings once per Locust process and owns the check
recorder shared by every virtual user in that process, mirroring what
:class:`crudload.driver.LoadDriver` does for a single driver run.

Settings come from the same places the CLI reads them: the
``LOADTEST_ENV`` configuration class, an optional workload file named by
``LOADTEST_WORKLOAD``, and the ``JSON_BASE_URL`` / ``TOON_BASE_URL``
environment variables.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from crudload.checks import CheckRecorder
from crudload.config import RunSettings, load_settings
from crudload.driver import RunSummary
from crudload.thresholds import format_summary

logger = logging.getLogger(__name__)


def _load_settings() -> RunSettings:
    workload = os.environ.get("LOADTEST_WORKLOAD")
    return load_settings(workload_path=Path(workload) if workload else None)


SETTINGS = _load_settings()

# One recorder per Locust process; every user class reports into it.
RECORDER = CheckRecorder()


def recorder_summary(wire_format: str, base_url: str) -> RunSummary:
    """Package the recorder's current state like a driver run summary."""
    return RunSummary(
        wire_format=wire_format,
        base_url=base_url,
        checks=RECORDER.snapshot(),
        totals=RECORDER.totals(),
        ramp=None,
    )


def log_recorder_summary(wire_format: str, base_url: str) -> RunSummary:
    summary = recorder_summary(wire_format, base_url)
    logger.info("Check summary\n%s", format_summary(summary))
    return summary
