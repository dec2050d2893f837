"""CLI entry point for a synthetic traffic run.

Usage:
    riskgen --count 50 --concurrency 10 --random
    riskgen --config configs/run.yaml --sequential --sdk --bad-actors
    python -m riskgen --forced-risk-level true --feedback --output output/summary.json
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from riskgen.config import Settings
from riskgen.runner import run
from riskgen.shared.errors import ConfigurationError, RemoteCallError
from riskgen.shared.logging import setup_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send synthetic identity traffic to a risk-evaluation service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", type=str, default=None, help="YAML file of setting overrides")
    parser.add_argument("--count", type=int, default=None, help="Total number of transactions")
    parser.add_argument(
        "--concurrency", type=int, default=None, help="Maximum transactions per batch"
    )
    order = parser.add_mutually_exclusive_group()
    order.add_argument(
        "--sequential",
        dest="sequential",
        action="store_const",
        const=True,
        default=None,
        help="Take identities in file order, wrapping around",
    )
    order.add_argument(
        "--random",
        dest="sequential",
        action="store_const",
        const=False,
        help="Sample identities uniformly with replacement",
    )
    parser.add_argument(
        "--user-source", choices=["internal", "external"], default=None, help="Identity pool"
    )
    parser.add_argument(
        "--sdk",
        action="store_true",
        default=None,
        help="Collect a browser fingerprint per transaction",
    )
    parser.add_argument(
        "--bad-actors", action="store_true", default=None, help="Inject bad-actor source IPs"
    )
    parser.add_argument(
        "--forced-risk-level",
        type=str,
        default=None,
        help="LOW/MEDIUM/HIGH, 'true' for random per transaction, 'false' to disable",
    )
    parser.add_argument(
        "--feedback", action="store_true", default=None, help="Submit feedback per evaluation"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--output", type=str, default=None, help="Write the run report as JSON")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        "number_of_total_runs": args.count,
        "number_of_concurrent_runs": args.concurrency,
        "process_users_sequentially": args.sequential,
        "user_source": args.user_source,
        "include_sdk": args.sdk,
        "include_badactors": args.bad_actors,
        "forced_risk_level": args.forced_risk_level,
        "include_feedback": args.feedback,
        "seed": args.seed,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.config:
        return Settings.from_yaml(args.config, **overrides)
    return Settings(**overrides)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    setup_logging("DEBUG" if settings.debug else settings.log_level, settings.log_format)

    try:
        report = asyncio.run(run(settings))
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        return 1
    except RemoteCallError as exc:
        logger.error("run_aborted", stage=exc.stage, error=str(exc))
        return 1

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report.model_dump_json(indent=2) + "\n", encoding="utf-8")
        logger.info("report_written", path=str(output_path))
    return 0
