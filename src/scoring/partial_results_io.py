"""JSONL persistence for partition partial results.

Workers or task wrappers may dump their partial results to JSONL so a
separate reduction step can combine them. One row holds one result, an
optional ``partition_id`` and the ``write_id`` of the call that wrote it.
A retried partition appends a new write; readers keep only the latest
write of each partition.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

from core.errors import IncompleteReductionError, ScoringError
from core.logging_config import get_logger
from core.types import PartialResult

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PartialResultRow:
    """One persisted partial result.

    Attributes:
        partition_id: Partition index, or None when the writer did not tag it.
        write_id: Identifier shared by every row of one write call.
        result: Persisted partial result.
    """

    partition_id: int | None
    write_id: str | None
    result: PartialResult


def write_partial_results_jsonl(
    output_path: Path,
    results: Iterable[PartialResult],
    partition_id: int | None = None,
) -> str:
    """Append partial results to a JSONL file.

    Non-finite weighted sums are written as ``NaN``/``Infinity`` tokens,
    which ``read_partial_results_jsonl`` accepts.

    Args:
        output_path: Destination file; created when missing.
        results: Results of one partition.
        partition_id: Optional partition index stored on every row.

    Returns:
        Write id stamped on every appended row.
    """
    write_id = uuid.uuid4().hex
    rows: list[str] = []
    for result in results:
        payload: dict[str, object] = result.to_dict()
        payload["write_id"] = write_id
        if partition_id is not None:
            payload["partition_id"] = partition_id
        rows.append(json.dumps(payload, sort_keys=True))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("a", encoding="utf-8") as output_file:
        for row in rows:
            output_file.write(row + "\n")
    return write_id


def read_partial_results_jsonl(input_path: Path) -> list[PartialResultRow]:
    """Read every persisted row from a JSONL file in file order.

    Raises:
        ScoringError: If the file is missing or a row is invalid.
    """
    if not input_path.exists():
        raise ScoringError(f"Partial results file not found at {input_path}.")
    rows: list[PartialResultRow] = []
    lines = input_path.read_text(encoding="utf-8").splitlines()
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        payload = _parse_payload_line(input_path, line, line_number)
        try:
            result = PartialResult.from_mapping(payload)
        except ScoringError as error:
            raise ScoringError(
                f"Invalid partial result at {input_path}:{line_number}: {error}"
            ) from error
        rows.append(
            PartialResultRow(
                partition_id=_read_partition_id(input_path, payload, line_number),
                write_id=_read_write_id(input_path, payload, line_number),
                result=result,
            )
        )
    return rows


def latest_writes(rows: Sequence[PartialResultRow]) -> list[PartialResultRow]:
    """Drop rows superseded by a later write of the same partition.

    Rows without a partition id are always kept. Rows written without a
    write id count as one write per partition.
    """
    latest_write_ids: dict[int, str | None] = {}
    for row in rows:
        if row.partition_id is not None:
            latest_write_ids[row.partition_id] = row.write_id
    kept: list[PartialResultRow] = []
    superseded_count = 0
    for row in rows:
        if row.partition_id is None or latest_write_ids[row.partition_id] == row.write_id:
            kept.append(row)
        else:
            superseded_count += 1
    if superseded_count:
        _LOGGER.warning("partial_results_superseded", row_count=superseded_count)
    return kept


def group_by_partition(
    rows: Sequence[PartialResultRow],
    expected_partitions: int,
) -> list[list[PartialResult] | None]:
    """Group the latest write of each partition, indexed ``0..expected_partitions-1``.

    Partitions with no rows are ``None``.

    Raises:
        IncompleteReductionError: If a row has no partition id or an
            id outside the expected range.
    """
    grouped: list[list[PartialResult] | None] = [None] * expected_partitions
    for row in rows:
        if row.partition_id is None or not 0 <= row.partition_id < expected_partitions:
            raise IncompleteReductionError(
                f"Partial result has partition_id {row.partition_id!r}, expected an integer in "
                f"[0, {expected_partitions}). Write partition ids when checking completeness."
            )
    for row in latest_writes(rows):
        outputs = grouped[row.partition_id]
        if outputs is None:
            outputs = []
            grouped[row.partition_id] = outputs
        outputs.append(row.result)
    return grouped


def _parse_payload_line(input_path: Path, line: str, line_number: int) -> dict[str, Any]:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ScoringError(
            f"Failed to parse partial result at {input_path}:{line_number}: "
            f"{error.msg}. Fix the JSON syntax and retry."
        ) from error
    if not isinstance(payload, dict):
        raise ScoringError(
            f"Invalid partial result at {input_path}:{line_number}: expected JSON object."
        )
    return payload


def _read_partition_id(input_path: Path, payload: dict[str, Any], line_number: int) -> int | None:
    partition_id = payload.get("partition_id")
    if partition_id is None:
        return None
    if isinstance(partition_id, bool) or not isinstance(partition_id, int):
        raise ScoringError(
            f"Invalid partition_id at {input_path}:{line_number}: expected integer."
        )
    return partition_id


def _read_write_id(input_path: Path, payload: dict[str, Any], line_number: int) -> str | None:
    write_id = payload.get("write_id")
    if write_id is None:
        return None
    if not isinstance(write_id, str) or not write_id:
        raise ScoringError(
            f"Invalid write_id at {input_path}:{line_number}: expected non-empty string."
        )
    return write_id
