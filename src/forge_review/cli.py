"""forge-review command line.

Usage:
    forge-review run [--max-files N] [--no-post-as-review]
    forge-review serve [--host HOST] [--port PORT]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import os
import sys
from pathlib import Path

import structlog

from forge_review.config import ReviewConfig
from forge_review.logging_config import configure_logging
from forge_review.resilience.errors import ConfigError, SetupError
from forge_review.review.models import AggregateReport

logger = structlog.get_logger(__name__)

OUTPUT_KEYS = (
    "total_files",
    "files_reviewed",
    "total_comments",
    "critical_issues",
    "warnings",
    "suggestions",
)

SETUP_FAILED_SUMMARY = "Review could not be started"


def write_action_outputs(report: AggregateReport, output_path: str | None = None) -> None:
    """Append report statistics to $GITHUB_OUTPUT when running as an action."""
    output_path = output_path or os.getenv("GITHUB_OUTPUT")
    if not output_path:
        return

    data = report.to_dict()
    with Path(output_path).open("a", encoding="utf-8") as f:
        for key in OUTPUT_KEYS:
            f.write(f"{key}={data[key]}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forge-review",
        description="AI review of pull request diffs with inline comments",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Review one pull request")
    run_parser.add_argument("--max-files", type=int, default=None, help="Override MAX_FILES")
    run_parser.add_argument(
        "--no-post-as-review",
        action="store_true",
        help="Post individual comments plus a summary comment",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the webhook server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to listen on")

    return parser


def run_command(args: argparse.Namespace) -> int:
    """Run one review and print the report. Returns the exit code."""
    try:
        config = ReviewConfig.from_env()
    except ConfigError as e:
        configure_logging("INFO")
        logger.error("Invalid configuration", error=str(e))
        return 1

    if args.max_files is not None:
        config = dataclasses.replace(config, max_files=args.max_files)
    if args.no_post_as_review:
        config = dataclasses.replace(config, post_as_review=False)

    configure_logging(config.log_level)
    config.log_summary()

    from forge_review.runner import run_review

    try:
        report = asyncio.run(run_review(config))
    except SetupError as e:
        logger.error("Review setup failed", error=str(e))
        if config.fail_on_error:
            return 1
        report = AggregateReport.empty(SETUP_FAILED_SUMMARY)
    except Exception as e:
        logger.error("Review failed", error=str(e), exc_info=True)
        if config.fail_on_error:
            return 1
        report = AggregateReport.empty(f"Review failed: {e}")

    print(json.dumps(report.to_dict(), indent=2))
    write_action_outputs(report)
    return 0


def serve_command(args: argparse.Namespace) -> int:
    from forge_review.api.server import run

    run(host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return serve_command(args)

    if args.command is None:
        args = parser.parse_args(["run", *(argv or [])])
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
