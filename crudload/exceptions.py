"""
Exception hierarchy for the load driver.

Only configuration problems are raised as exceptions.  Everything that
can go wrong *during* a run (transport errors, unexpected status codes,
undecodable bodies) is reported as a failed check instead, so a single
misbehaving backend never takes the whole run down.
"""

from __future__ import annotations


class LoadDriverError(Exception):
    """Base class for all errors raised by :mod:`crudload`."""


class ConfigError(LoadDriverError):
    """A configuration class, workload file, or CLI option is invalid."""


class ScheduleError(ConfigError):
    """The stage schedule cannot be driven (empty, negative, malformed)."""
