"""CLI entry point for the booking API load generator.

Environment variables configure the run; flags override them:

    BACKEND_URL=http://127.0.0.1:8080 SCENARIO=heavy DURATION_MINUTES=10 booking-loadgen
    python -m loadgen --scenario light --duration 1 --log-level debug
    python -m loadgen --scenario stress --seed 7 --output results/stress.json
    python -m loadgen --list-scenarios
"""

import argparse
import asyncio
import sys
from typing import Any

import structlog
from pydantic import ValidationError

from loadgen.config import Settings
from loadgen.driver import LoadDriver
from loadgen.errors import ConfigError, StartupError
from loadgen.scenarios import load_catalog
from loadgen.shared.logging import setup_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_STARTUP_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Synthetic load generator for the booking API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--scenario", type=str, help="Scenario name (env: SCENARIO).")
    parser.add_argument(
        "--duration",
        type=float,
        help="Run duration in minutes, 0 stops right after start (env: DURATION_MINUTES).",
    )
    parser.add_argument("--base-url", type=str, help="Target API base URL (env: BACKEND_URL).")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log verbosity (env: LOG_LEVEL).",
    )
    parser.add_argument("--seed", type=int, help="Seed for reproducible sessions (env: SEED).")
    parser.add_argument(
        "--scenario-file", type=str, help="YAML file overriding scenarios (env: SCENARIO_FILE)."
    )
    parser.add_argument(
        "--output", type=str, help="Write final JSON results to this path (env: RESULTS_FILE)."
    )
    parser.add_argument(
        "--list-scenarios", action="store_true", help="Print the scenario catalog and exit."
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        "scenario": args.scenario,
        "duration_minutes": args.duration,
        "backend_url": args.base_url,
        "log_level": args.log_level,
        "seed": args.seed,
        "scenario_file": args.scenario_file,
        "results_file": args.output,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(settings.log_level, settings.log_format)

    try:
        catalog = load_catalog(settings.scenario_file)
    except ConfigError as exc:
        logger.error("config_error", error=str(exc))
        return EXIT_CONFIG_ERROR

    if args.list_scenarios:
        for name in catalog.names():
            profile = catalog.get(name)
            print(
                f"{name:<10} {profile.concurrency:>5} workers  "
                f"{profile.target_requests_per_minute:>6} req/min  "
                f"booking {profile.booking_probability:.0%}  {profile.description}"
            )
        return EXIT_OK

    driver = LoadDriver(settings, catalog=catalog)
    try:
        asyncio.run(driver.run())
    except StartupError as exc:
        logger.error(
            "startup_failed",
            error=str(exc),
            hint=f"is the API running at {settings.backend_url}?",
        )
        return EXIT_STARTUP_FAILED
    except KeyboardInterrupt:
        # Interrupt before the signal handlers were installed
        logger.info("interrupted_before_start")
    return EXIT_OK


def main() -> None:
    sys.exit(run())
