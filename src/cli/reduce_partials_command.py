"""CLI command reducing partial results into an average score."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from core.errors import ScoringConfigError
from scoring.aggregation import average_score, reduce_partial_results, reduce_partition_outputs
from scoring.partial_results_io import (
    group_by_partition,
    latest_writes,
    read_partial_results_jsonl,
)


def add_reduce_partials_command(subparsers: Any) -> None:
    """Register reduce-partials subcommand."""
    parser = subparsers.add_parser(
        "reduce-partials",
        help="Combine JSONL partial results into a dataset-wide average score",
    )
    parser.add_argument("partials_file", help="JSONL file with one partial result per row")
    parser.add_argument(
        "--expected-partitions",
        type=int,
        help="Fail unless every partition id in [0, N) reported results",
    )


def run_reduce_partials_command(args: argparse.Namespace) -> int:
    """Print combined totals and average score as key=value rows."""
    rows = read_partial_results_jsonl(Path(args.partials_file).expanduser().resolve())
    if args.expected_partitions is None:
        total = reduce_partial_results(row.result for row in latest_writes(rows))
    else:
        if args.expected_partitions < 1:
            raise ScoringConfigError(
                f"Invalid --expected-partitions {args.expected_partitions}: expected value >= 1."
            )
        total = reduce_partition_outputs(
            group_by_partition(rows, args.expected_partitions),
            expected_partitions=args.expected_partitions,
        )
    print(f"example_count={total.example_count}")
    print(f"weighted_score_sum={total.weighted_score_sum}")
    print(f"average_score={average_score(total)}")
    return 0
