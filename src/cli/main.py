"""ShardScore CLI entry points.

This module exposes driver-side helper commands for scoring jobs.
It maps argparse commands onto scoring module calls.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from cli.architecture_info_command import (
    add_architecture_info_command,
    run_architecture_info_command,
)
from cli.reduce_partials_command import add_reduce_partials_command, run_reduce_partials_command
from core.config import ScoringConfig
from core.constants import SUPPORTED_LOG_LEVELS
from core.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="shardscore",
        description="Distributed model scoring helpers",
    )
    parser.add_argument(
        "--log-level",
        choices=SUPPORTED_LOG_LEVELS,
        help="Override SHARDSCORE_LOG_LEVEL for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_architecture_info_command(subparsers)
    add_reduce_partials_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the ShardScore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config = ScoringConfig.from_env()
    configure_logging(args.log_level or config.log_level)
    if args.command == "architecture-info":
        return run_architecture_info_command(args)
    if args.command == "reduce-partials":
        return run_reduce_partials_command(args)
    parser.error(f"Unsupported command: {args.command}")
    return 2
