"""
Pass/fail gating and the end-of-run check summary.

After a run, the CLI prints one table per backend and, when a thresholds
file is given, compares the aggregated checks against the limits it
defines::

    max_check_failure_rate_percent: 1.0
    max_mean_duration_ms: 250
    min_pass_rate_percent:
      "POST create user - status 201": 99.5

Exit codes follow a three-state convention so that CI can distinguish
"thresholds breached" from "script crashed":

- ``0`` — all thresholds passed (or none were configured)
- ``1`` — at least one threshold was breached
- ``2`` — the run could not be carried out (bad config, bad file, ...)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .driver import RunSummary
from .exceptions import ConfigError

# Three-state exit codes so CI can tell "test failed" from "script crashed".
EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2


@dataclass(frozen=True)
class Thresholds:
    max_check_failure_rate_percent: float | None = None
    max_mean_duration_ms: float | None = None
    min_pass_rate_percent: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Verdict:
    """One threshold compared against one run."""

    wire_format: str
    metric: str
    actual: float
    limit: float
    passed: bool


def _parse_float(value: Any, field_name: str) -> float:
    """
    Coerce *value* to ``float``, stripping ``%`` suffixes if present.

    Raises:
        ConfigError: If the value is missing, empty, or non-numeric.
    """
    if value is None:
        raise ConfigError(f"Missing field: {field_name}")

    text = str(value).strip().replace("%", "")
    if text == "":
        raise ConfigError(f"Empty value for field: {field_name}")

    try:
        return float(text)
    except ValueError as exc:
        raise ConfigError(f"Non-numeric value for {field_name}: {value}") from exc


def load_thresholds(path: Path) -> Thresholds:
    """
    Read threshold limits from a YAML file.

    Every key is optional; a file that sets none of them gates nothing.

    Raises:
        ConfigError: If the file cannot be read or a value is non-numeric.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read thresholds file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Thresholds file {path} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Thresholds file {path} must contain a mapping")

    max_failure = data.get("max_check_failure_rate_percent")
    max_mean = data.get("max_mean_duration_ms")
    per_check = data.get("min_pass_rate_percent") or {}
    if not isinstance(per_check, dict):
        raise ConfigError("min_pass_rate_percent must map check names to percentages")

    return Thresholds(
        max_check_failure_rate_percent=(
            None if max_failure is None
            else _parse_float(max_failure, "max_check_failure_rate_percent")
        ),
        max_mean_duration_ms=(
            None if max_mean is None else _parse_float(max_mean, "max_mean_duration_ms")
        ),
        min_pass_rate_percent={
            str(name): _parse_float(value, f"min_pass_rate_percent[{name}]")
            for name, value in per_check.items()
        },
    )


def evaluate(summary: RunSummary, thresholds: Thresholds) -> list[Verdict]:
    """Compare one run against every configured limit."""
    verdicts: list[Verdict] = []

    if thresholds.max_check_failure_rate_percent is not None:
        actual = summary.totals.fail_rate * 100.0
        limit = thresholds.max_check_failure_rate_percent
        verdicts.append(
            Verdict(summary.wire_format, "Check failure rate (%)", actual, limit, actual <= limit)
        )

    if thresholds.max_mean_duration_ms is not None:
        actual = summary.totals.mean_duration * 1000.0
        limit = thresholds.max_mean_duration_ms
        verdicts.append(
            Verdict(summary.wire_format, "Mean duration (ms)", actual, limit, actual <= limit)
        )

    for name, limit in thresholds.min_pass_rate_percent.items():
        stats = summary.checks.get(name)
        # A check that never ran has a 0% pass rate, which is what a
        # backend that never returned an id deserves.
        actual = stats.pass_rate * 100.0 if stats else 0.0
        verdicts.append(Verdict(summary.wire_format, f"{name} (%)", actual, limit, actual >= limit))

    return verdicts


def exit_code_for(verdicts: Iterable[Verdict]) -> int:
    return EXIT_PASS if all(verdict.passed for verdict in verdicts) else EXIT_THRESHOLD_BREACH


def format_summary(summary: RunSummary) -> str:
    """Render the per-check table for one run."""
    width = max([len(name) for name in summary.checks] + [len("checks")]) + 2
    lines = [
        f"{summary.wire_format} @ {summary.base_url}",
        "-" * (width + 52),
        f"{'Check':<{width}}{'Passed':>10}{'Failed':>10}{'Pass %':>10}{'Mean ms':>11}{'Max ms':>11}",
        "-" * (width + 52),
    ]
    for stats in [*summary.checks.values(), summary.totals]:
        lines.append(
            f"{stats.name:<{width}}{stats.passes:>10}{stats.fails:>10}"
            f"{stats.pass_rate * 100:>10.2f}{stats.mean_duration * 1000:>11.2f}"
            f"{stats.max_duration * 1000:>11.2f}"
        )
    lines.append("-" * (width + 52))
    if summary.ramp is not None:
        lines.append(
            f"iterations: {summary.ramp.iterations}  peak workers: {summary.ramp.peak_workers}  "
            f"duration: {summary.ramp.duration:.1f}s"
        )
    return "\n".join(lines)


def format_verdicts(verdicts: Iterable[Verdict]) -> str:
    """Human-readable threshold table for CI logs."""
    verdicts = list(verdicts)
    lines = [
        "Threshold Check",
        "-" * 78,
        f"{'Format':<12}{'Metric':<38}{'Actual':>10}{'Limit':>10}{'Status':>8}",
        "-" * 78,
    ]
    for verdict in verdicts:
        lines.append(
            f"{verdict.wire_format:<12}{verdict.metric:<38}{verdict.actual:>10.2f}"
            f"{verdict.limit:>10.2f}{'PASS' if verdict.passed else 'FAIL':>8}"
        )
    lines.append("-" * 78)
    lines.append(f"Overall: {'PASS' if all(v.passed for v in verdicts) else 'FAIL'}")
    return "\n".join(lines)
