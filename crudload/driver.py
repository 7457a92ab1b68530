"""
Run orchestration.

:class:`LoadDriver` wires the pieces together for one backend: a fresh
:class:`CheckRecorder`, one ``requests.Session``-backed
:class:`ScenarioRunner` per worker, and a :class:`RampController`
driving them through the stage schedule.  :func:`compare_formats` runs
several backends one after another with the identical schedule so their
summaries can be put side by side.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import requests

from .checks import CheckRecorder, CheckStats
from .config import RunSettings
from .ramp import RampController, RampReport
from .scenario import ScenarioRunner
from .wire import WireFormat, get_wire_format

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    """Aggregate outcome of one run against one backend."""

    wire_format: str
    base_url: str
    checks: dict[str, CheckStats]
    totals: CheckStats
    ramp: RampReport | None = None

    @property
    def passed(self) -> bool:
        return self.totals.fails == 0


class LoadDriver:
    """
    Drive one backend through the configured workload.

    Args:
        settings: Resolved run settings.
        wire_format_name: ``json``, ``toon`` or ``toon-exact``.
        session_factory: Builds the HTTP session for each worker.
    """

    def __init__(
        self,
        settings: RunSettings,
        wire_format_name: str,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.settings = settings
        self.wire_format: WireFormat = get_wire_format(wire_format_name)
        self.base_url = settings.base_url_for(wire_format_name)
        self.recorder = CheckRecorder()
        self._session_factory = session_factory

    def build_runner(self) -> ScenarioRunner:
        """One runner per worker; the session is closed when the worker exits."""
        return ScenarioRunner(
            self._session_factory(),
            self.base_url,
            self.wire_format,
            self.recorder,
            create_payload=self.settings.create_payload,
            update_payload=self.settings.update_payload,
            think_time=self.settings.think_time,
            timeout=self.settings.request_timeout,
            owns_session=True,
        )

    def run(self) -> RunSummary:
        logger.info(
            "Running %s workload against %s (%s)",
            self.wire_format.name,
            self.base_url,
            self.wire_format.media_type,
        )
        controller = RampController(
            self.settings.schedule,
            self.build_runner,
            tick_interval=self.settings.tick_interval,
            drain_timeout=self.settings.drain_timeout,
        )
        ramp_report = controller.run()

        totals = self.recorder.totals()
        logger.info(
            "%s run complete: %d/%d checks passed",
            self.wire_format.name,
            totals.passes,
            totals.total,
        )
        return RunSummary(
            wire_format=self.wire_format.name,
            base_url=self.base_url,
            checks=self.recorder.snapshot(),
            totals=totals,
            ramp=ramp_report,
        )


def compare_formats(settings: RunSettings, names: Iterable[str]) -> list[RunSummary]:
    """Run each named format in turn; every run starts from an empty recorder."""
    return [LoadDriver(settings, name).run() for name in names]
