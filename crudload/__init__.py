"""
Load driver comparing a CRUD users service under two wire encodings.

Drives the same staged virtual-user ramp against a JSON backend and a
TOON (``key: value`` lines) backend, running a fixed
list/create/read/update/delete sequence per iteration and counting
pass/fail checks on the status codes.
"""

from .checks import CheckRecorder, CheckStats
from .config import RunSettings, get_config, load_settings
from .driver import LoadDriver, RunSummary, compare_formats
from .exceptions import ConfigError, LoadDriverError, ScheduleError
from .models import CheckResult, Stage, StageSchedule, UserRecord
from .ramp import RampController, RampReport
from .scenario import ScenarioRunner
from .wire import ExactToonWireFormat, JsonWireFormat, ToonWireFormat, get_wire_format

__all__ = [
    "CheckRecorder",
    "CheckResult",
    "CheckStats",
    "ConfigError",
    "ExactToonWireFormat",
    "JsonWireFormat",
    "LoadDriver",
    "LoadDriverError",
    "RampController",
    "RampReport",
    "RunSettings",
    "RunSummary",
    "ScenarioRunner",
    "ScheduleError",
    "Stage",
    "StageSchedule",
    "ToonWireFormat",
    "UserRecord",
    "compare_formats",
    "get_config",
    "get_wire_format",
    "load_settings",
]
