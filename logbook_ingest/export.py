from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any, Iterable, List, Sequence

import polars as pl

from .report import FRAME_SCHEMA
from .schema import CSV_EXPORT_COLUMNS, CanonicalFlightRecord

LOGGER = logging.getLogger(__name__)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def sanitize_for_excel(value: Any) -> Any:
    """Prevent formula injection in Excel."""
    if not isinstance(value, str):
        return value
    if value.startswith(("=", "+", "-", "@")):
        return "'" + value
    return value


def to_csv(records: Sequence[CanonicalFlightRecord]) -> str:
    """
    Serialize records to the fixed export column order. The header row is
    written bare and every value cell is quoted.

    Returns an empty string for an empty list.
    """

    if not records:
        return ""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_EXPORT_COLUMNS) + "\n")
    for record in records:
        writer.writerow([_format_cell(getattr(record, column)) for column in CSV_EXPORT_COLUMNS])
    return buffer.getvalue()


def write_csv(records: Sequence[CanonicalFlightRecord], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(records), encoding="utf-8")
    LOGGER.info("Wrote %d flights to %s", len(records), path)
    return path


def export_frame(records: Iterable[CanonicalFlightRecord]) -> pl.DataFrame:
    rows: List[dict] = [
        {column: sanitize_for_excel(getattr(record, column)) for column in CSV_EXPORT_COLUMNS}
        for record in records
    ]
    schema = {column: FRAME_SCHEMA[column] for column in CSV_EXPORT_COLUMNS}
    return pl.DataFrame(rows, schema=schema)


def write_excel(records: Sequence[CanonicalFlightRecord], path: Path, worksheet: str = "Flights") -> Path:
    """Write the export columns to an ``.xlsx`` workbook (xlsxwriter engine)."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = export_frame(records)
    frame.write_excel(path, worksheet=worksheet, autofit=True)
    LOGGER.info("Wrote %d flights to %s", frame.height, path)
    return path
