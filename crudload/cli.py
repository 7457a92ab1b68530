"""
Command-line entry point.

Usage examples::

    # Compare both backends with the default staged ramp:
    crudload --format both

    # Quick reachability run against a single backend:
    crudload --env smoke --format toon --toon-url http://localhost:8080

    # Custom workload shape and CI gating:
    crudload --workload workload.yml --thresholds thresholds.yml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import get_config, load_settings
from .driver import compare_formats
from .exceptions import ConfigError
from .thresholds import (
    EXIT_PASS,
    EXIT_SCRIPT_ERROR,
    evaluate,
    exit_code_for,
    format_summary,
    format_verdicts,
    load_thresholds,
)
from .wire import WIRE_FORMATS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the load driver."""
    parser = argparse.ArgumentParser(
        description="Drive identical CRUD load against JSON and TOON users services."
    )
    parser.add_argument(
        "--format",
        choices=[*WIRE_FORMATS, "both"],
        default="both",
        help="Backend(s) to drive; 'both' runs json then toon with the same schedule",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Configuration environment (default, smoke, testing); defaults to $LOADTEST_ENV",
    )
    parser.add_argument(
        "--workload",
        type=Path,
        default=None,
        help="YAML file overriding stages, payloads, think time or base URLs",
    )
    parser.add_argument("--json-url", default=None, help="Base URL of the JSON backend")
    parser.add_argument("--toon-url", default=None, help="Base URL of the TOON backend")
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=None,
        help="YAML file with pass/fail limits; without it the run always exits 0",
    )
    parser.add_argument("--log-level", default=None, help="Logging level")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved schedule and targets without sending any request",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        setup_logging(args.log_level or get_config(args.env).LOG_LEVEL)
        settings = load_settings(
            args.env,
            args.workload,
            base_urls={"json": args.json_url, "toon": args.toon_url},
        )
        thresholds = load_thresholds(args.thresholds) if args.thresholds else None
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    names = ["json", "toon"] if args.format == "both" else [args.format]

    if args.dry_run:
        print(f"Schedule ({settings.schedule.policy}, {settings.schedule.total_duration:.1f}s):")
        for line in settings.schedule.describe():
            print(f"  {line}")
        for name in names:
            print(f"Target {name}: {settings.base_url_for(name)}")
        return EXIT_PASS

    try:
        summaries = compare_formats(settings, names)
    except KeyboardInterrupt:
        logger.warning("Interrupted; workers drained")
        return 130

    for summary in summaries:
        print(format_summary(summary))
        print()

    if thresholds is None:
        return EXIT_PASS

    verdicts = [verdict for summary in summaries for verdict in evaluate(summary, thresholds)]
    print(format_verdicts(verdicts))
    return exit_code_for(verdicts)
