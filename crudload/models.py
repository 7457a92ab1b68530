"""
Data model for the load driver.

Defines the small value types that flow between the driver components:

- :class:`UserRecord` — the payload sent to (and echoed by) the users
  service.  Its ``id`` is assigned by the server and treated as an opaque
  string regardless of whether the backend produced a number or text.
- :class:`Stage` / :class:`StageSchedule` — the staged virtual-user ramp,
  expressed the same way k6 and Locust shapes express it: an ordered list
  of ``(duration, target)`` segments.
- :class:`CheckResult` — one named pass/fail assertion.

Key Concepts Demonstrated:
- Frozen dataclasses for values shared across worker threads
- Validation at construction so an invalid schedule fails before any
  worker is started
- Integer-floor interpolation so the instantaneous target never
  overshoots the configured ramp
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigError, ScheduleError

RAMP_POLICIES = ("linear", "step")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """
    Convert a k6-style duration into seconds.

    Accepts plain numbers (already seconds) and strings made of one or
    more ``<number><unit>`` parts, e.g. ``"30s"``, ``"1m"``, ``"1m30s"``,
    ``"1.5m"`` or ``"250ms"``.  A bare numeric string is read as seconds.

    Args:
        value: The raw duration from a config class or workload file.

    Returns:
        The duration in seconds.

    Raises:
        ScheduleError: If the value is negative or cannot be parsed.
    """
    if isinstance(value, bool):
        raise ScheduleError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not parts or "".join(num + unit for num, unit in parts) != text:
                raise ScheduleError(f"Invalid duration: {value!r}") from None
            seconds = sum(float(num) * _UNIT_SECONDS[unit] for num, unit in parts)
    else:
        raise ScheduleError(f"Invalid duration: {value!r}")

    if math.isnan(seconds) or math.isinf(seconds) or seconds < 0:
        raise ScheduleError(f"Duration must be a finite, non-negative value: {value!r}")
    return seconds


@dataclass(frozen=True)
class UserRecord:
    """A user as sent to, or returned by, the service under test."""

    name: str
    email: str
    id: str | None = None

    def fields(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs in wire order; ``id`` only when set."""
        if self.id is not None:
            yield "id", self.id
        yield "name", self.name
        yield "email", self.email

    def as_dict(self) -> dict[str, str]:
        return dict(self.fields())

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> UserRecord:
        """
        Build a record from a template payload.

        Raises:
            ConfigError: If ``name`` or ``email`` is missing.
        """
        try:
            name = payload["name"]
            email = payload["email"]
        except (KeyError, TypeError) as exc:
            raise ConfigError(
                f"User payload must define 'name' and 'email': {payload!r}"
            ) from exc

        raw_id = payload.get("id")
        return cls(
            name=str(name),
            email=str(email),
            id=None if raw_id is None else str(raw_id),
        )


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single named assertion about one HTTP response."""

    name: str
    passed: bool


@dataclass(frozen=True)
class Stage:
    """One schedule segment: reach ``target`` workers over ``duration`` seconds."""

    duration: float
    target: int

    def __post_init__(self) -> None:
        if isinstance(self.target, bool) or not isinstance(self.target, int):
            raise ScheduleError(f"Stage target must be an integer, got {self.target!r}")
        if self.target < 0:
            raise ScheduleError(f"Stage target must be non-negative, got {self.target}")
        if self.duration < 0:
            raise ScheduleError(f"Stage duration must be non-negative, got {self.duration}")

    @classmethod
    def parse(cls, duration: Any, target: Any) -> Stage:
        """Build a stage from raw config values (``"30s"``, ``50``)."""
        if isinstance(target, bool):
            raise ScheduleError(f"Invalid stage target: {target!r}")
        try:
            target_int = int(target)
        except (TypeError, ValueError) as exc:
            raise ScheduleError(f"Invalid stage target: {target!r}") from exc
        if target_int != target and not isinstance(target, str):
            raise ScheduleError(f"Stage target must be a whole number: {target!r}")
        return cls(duration=parse_duration(duration), target=target_int)


@dataclass(frozen=True)
class StageSchedule:
    """
    Ordered ramp schedule traversed once from the start of a run.

    With the ``linear`` policy each stage moves the worker target from the
    previous stage's target (``0`` before the first stage) to its own
    target across its duration, exactly like a k6 ``stages`` block.  With
    ``step`` the target jumps to the stage target as soon as the stage
    begins.

    Attributes:
        stages: The ordered stages; at least one is required.
        policy: ``"linear"`` (default) or ``"step"``.
    """

    stages: tuple[Stage, ...]
    policy: str = "linear"
    _boundaries: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        stages = tuple(self.stages)
        if not stages:
            raise ScheduleError("Stage schedule must contain at least one stage")
        if self.policy not in RAMP_POLICIES:
            raise ScheduleError(
                f"Unknown ramp policy {self.policy!r}; expected one of {', '.join(RAMP_POLICIES)}"
            )

        boundaries = []
        elapsed = 0.0
        for stage in stages:
            elapsed += stage.duration
            boundaries.append(elapsed)

        object.__setattr__(self, "stages", stages)
        object.__setattr__(self, "_boundaries", tuple(boundaries))

    @classmethod
    def from_pairs(cls, pairs: Sequence[Any], policy: str = "linear") -> StageSchedule:
        """
        Build a schedule from ``(duration, target)`` pairs or mappings.

        Mappings may use ``duration`` together with ``target`` or
        ``targetConcurrency``, matching the workload-file format.
        """
        stages = []
        for index, item in enumerate(pairs):
            if isinstance(item, Mapping):
                target = item.get("target", item.get("targetConcurrency"))
                if "duration" not in item or target is None:
                    raise ScheduleError(
                        f"Stage #{index + 1} must define 'duration' and 'target': {dict(item)!r}"
                    )
                stages.append(Stage.parse(item["duration"], target))
            elif isinstance(item, Sequence) and not isinstance(item, str) and len(item) == 2:
                stages.append(Stage.parse(item[0], item[1]))
            else:
                raise ScheduleError(f"Stage #{index + 1} is malformed: {item!r}")
        return cls(stages=tuple(stages), policy=policy)

    @property
    def total_duration(self) -> float:
        return self._boundaries[-1]

    def peak(self) -> int:
        return max(stage.target for stage in self.stages)

    def _exact_target_at(self, elapsed: float) -> float:
        previous_target = 0
        stage_start = 0.0
        for stage, stage_end in zip(self.stages, self._boundaries):
            if elapsed < stage_end:
                if self.policy == "step":
                    return float(stage.target)
                progress = (elapsed - stage_start) / stage.duration
                return previous_target + (stage.target - previous_target) * progress
            previous_target = stage.target
            stage_start = stage_end
        return float(self.stages[-1].target)

    def target_at(self, elapsed: float) -> int:
        """
        Return the number of workers that should be active at ``elapsed``.

        The interpolated value is rounded down, so the controller never
        runs more workers than the ramp allows at that instant.
        """
        if elapsed < 0:
            elapsed = 0.0
        # Small epsilon so 49.99999 from float error still counts as 50.
        return max(int(math.floor(self._exact_target_at(elapsed) + 1e-9)), 0)

    def expected_worker_seconds(self) -> float:
        """Area under the target curve, in worker-seconds."""
        area = 0.0
        previous_target = 0
        for stage in self.stages:
            if self.policy == "step":
                area += stage.target * stage.duration
            else:
                area += (previous_target + stage.target) / 2.0 * stage.duration
            previous_target = stage.target
        return area

    def describe(self) -> list[str]:
        """Human-readable one-line-per-stage description."""
        lines = []
        start = 0.0
        previous_target = 0
        for stage, end in zip(self.stages, self._boundaries):
            if self.policy == "linear" and stage.target != previous_target:
                action = f"ramp {previous_target} -> {stage.target}"
            else:
                action = f"hold {stage.target}"
            lines.append(f"{start:>8.1f}s - {end:>8.1f}s  {action} workers")
            start = end
            previous_target = stage.target
        return lines
