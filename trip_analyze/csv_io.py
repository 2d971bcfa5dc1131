"""CSV input utilities for exported location tracks."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from trip_analyze.models import PositionSample

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("geoTime", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _sample_from_row(row: dict[str, str]) -> PositionSample:
    return PositionSample(
        latitude=_parse_float(row["latitude"]),
        longitude=_parse_float(row["longitude"]),
        timestamp_ms=_parse_int(row["geoTime"]),
        accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
    )


def _check_columns(fieldnames: Sequence[str] | None, csv_path: Path) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in (fieldnames or ())]
    if missing:
        raise KeyError(f"{csv_path}: missing required columns {missing}; actual columns: {list(fieldnames or ())}")


def iter_position_samples(csv_path: str | Path) -> Iterator[PositionSample]:
    """Yield PositionSample objects from an exported track CSV.

    Notes:
        Columns used:
          - geoTime: epoch milliseconds
          - latitude/longitude: decimal degrees
          - horizontalAccuracy (optional): meters, -1 when unknown
        Rows that fail to parse are skipped.
    """

    p = Path(csv_path)
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            return
        _check_columns(reader.fieldnames, p)

        for row in reader:
            try:
                yield _sample_from_row(row)
            except (ValueError, TypeError, AttributeError):
                # damaged or blank rows
                continue


def load_position_samples(csv_path: str | Path) -> tuple[list[PositionSample], CsvSummary]:
    """Load all samples into memory, ordered by timestamp.

    Returns:
        (samples, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionSample] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        if fieldnames:
            _check_columns(fieldnames, p)
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_sample_from_row(row))
            except (ValueError, TypeError, AttributeError):
                continue

    parsed.sort(key=lambda s: s.timestamp_ms)
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("%s: skipped %s unparseable rows", p, summary.rows_skipped)
    return parsed, summary
