"""
Locate the flight rows inside a logbook CSV export.

ForeFlight files stack an ``Aircraft Table`` and a ``Flights Table`` in one
CSV, each introduced by a single-cell marker row. The scanner walks the parsed
CSV records with a small state machine:

    SEEKING --"Aircraft Table"--> IN_AIRCRAFT --blank / other table--> SEEKING
    SEEKING --"Flights Table"---> IN_FLIGHTS  --blank / other table--> SEEKING

The first non-blank record after a marker is that section's header. Files with
no markers are treated as one flat table whose header is the first record (in
the first ``header_scan_limit``) that has a date column.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ImportSettings
from .mapping import SOURCE_FOREFLIGHT, SOURCE_GENERIC
from .schema import AIRCRAFT_TABLE_ALIASES, AircraftInfo, ColumnResolver, collapse_header

LOGGER = logging.getLogger(__name__)

AIRCRAFT_MARKER = "aircraft table"
FLIGHTS_MARKER = "flights table"

RawRow = Dict[str, str]


class LogbookFormatError(ValueError):
    """Raised when a file holds no recognisable flight data."""


class ScanState(Enum):
    SEEKING = "seeking"
    IN_AIRCRAFT = "in_aircraft"
    IN_FLIGHTS = "in_flights"


@dataclass
class _Block:
    state: ScanState
    header: Optional[List[str]] = None
    header_line: int = 0
    rows: List[Tuple[int, List[str]]] = field(default_factory=list)


@dataclass
class ExtractedSection:
    """Flight rows sliced out of one file, plus what the extractor learned on the way."""

    source: str
    headers: List[str]
    rows: List[RawRow]
    row_numbers: List[int]
    header_line: int
    aircraft: Dict[str, AircraftInfo] = field(default_factory=dict)


def normalize_text(text: str) -> str:
    """Drop a leading BOM and normalize line endings to ``\\n``."""

    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _read_records(text: str) -> List[Tuple[int, List[str]]]:
    reader = csv.reader(io.StringIO(text))
    records: List[Tuple[int, List[str]]] = []
    try:
        for cells in reader:
            records.append((reader.line_num, [cell.strip() for cell in cells]))
    except csv.Error as exc:
        raise LogbookFormatError(f"Could not read CSV near line {reader.line_num}: {exc}") from exc
    return records


def _is_blank(cells: Sequence[str]) -> bool:
    return not any(cell.strip() for cell in cells)


def _section_marker(cells: Sequence[str]) -> Optional[str]:
    """Lower-cased marker text when the record is a lone cell ending in ``table``."""

    filled = [cell for cell in cells if cell.strip()]
    if len(filled) != 1:
        return None
    text = filled[0].replace('"', "").strip().lower()
    return text if text.endswith("table") else None


def _dedupe_headers(header: Sequence[str]) -> List[str]:
    seen: Dict[str, int] = {}
    cleaned: List[str] = []
    for name in header:
        name = name.replace('"', "").strip()
        if not name:
            cleaned.append("")
            continue
        count = seen.get(name, 0)
        cleaned.append(name if count == 0 else f"{name}.{count}")
        seen[name] = count + 1
    return cleaned


def _to_row(headers: Sequence[str], cells: Sequence[str]) -> RawRow:
    return {header: (cells[i] if i < len(cells) else "") for i, header in enumerate(headers) if header}


def _scan_sections(records: Sequence[Tuple[int, List[str]]]) -> List[_Block]:
    state = ScanState.SEEKING
    blocks: List[_Block] = []
    current: Optional[_Block] = None

    for number, cells in records:
        marker = _section_marker(cells)
        if marker in (AIRCRAFT_MARKER, FLIGHTS_MARKER):
            state = ScanState.IN_AIRCRAFT if marker == AIRCRAFT_MARKER else ScanState.IN_FLIGHTS
            current = _Block(state)
            blocks.append(current)
            LOGGER.debug("Found %s marker on line %d", marker, number)
            continue
        if state is ScanState.SEEKING or current is None:
            continue
        if marker is not None:
            state, current = ScanState.SEEKING, None
            continue
        if _is_blank(cells):
            if current.header is None:
                continue
            state, current = ScanState.SEEKING, None
            continue
        if current.header is None:
            current.header = _dedupe_headers(cells)
            current.header_line = number
        else:
            current.rows.append((number, cells))
    return blocks


def build_aircraft_lookup(block: _Block) -> Dict[str, AircraftInfo]:
    """``AircraftID -> AircraftInfo`` from an Aircraft Table block."""

    if not block.header:
        return {}
    resolver = ColumnResolver(block.header, AIRCRAFT_TABLE_ALIASES, keyword_rules={})
    lookup: Dict[str, AircraftInfo] = {}
    for _, cells in block.rows:
        row = _to_row(block.header, cells)
        aircraft_id = (resolver.first_text(row, "aircraft_id") or "").upper()
        if not aircraft_id:
            continue
        lookup[aircraft_id] = AircraftInfo(
            aircraft_id=aircraft_id,
            type_code=resolver.first_text(row, "type_code"),
            make=resolver.first_text(row, "make"),
            model=resolver.first_text(row, "model"),
        )
    return lookup


def _extract_foreflight(blocks: Sequence[_Block]) -> ExtractedSection:
    aircraft: Dict[str, AircraftInfo] = {}
    for block in blocks:
        if block.state is ScanState.IN_AIRCRAFT:
            aircraft.update(build_aircraft_lookup(block))

    flight_blocks = [b for b in blocks if b.state is ScanState.IN_FLIGHTS and b.header]
    if not flight_blocks:
        raise LogbookFormatError("Could not find flight data section: no Flights Table header in ForeFlight export")

    rows: List[RawRow] = []
    numbers: List[int] = []
    for block in flight_blocks:
        for number, cells in block.rows:
            if _is_blank(cells):
                continue
            rows.append(_to_row(block.header, cells))
            numbers.append(number)

    first = flight_blocks[0]
    LOGGER.debug(
        "ForeFlight export: %d flight rows, %d aircraft in lookup", len(rows), len(aircraft)
    )
    return ExtractedSection(
        source=SOURCE_FOREFLIGHT,
        headers=[h for h in first.header if h],
        rows=rows,
        row_numbers=numbers,
        header_line=first.header_line,
        aircraft=aircraft,
    )


def _extract_generic(records: Sequence[Tuple[int, List[str]]], settings: ImportSettings) -> ExtractedSection:
    date_keys = {collapse_header(alias) for alias in (*settings.aliases.get("date", ()), "date")}
    header_index = None
    for index, (_, cells) in enumerate(records[: settings.header_scan_limit]):
        if any(collapse_header(cell) in date_keys for cell in cells if cell):
            header_index = index
            break
    if header_index is None:
        raise LogbookFormatError(
            f"Could not find flight data section: no header row with a date column "
            f"in the first {settings.header_scan_limit} rows"
        )

    header_line, header_cells = records[header_index]
    headers = _dedupe_headers(header_cells)
    rows: List[RawRow] = []
    numbers: List[int] = []
    for number, cells in records[header_index + 1 :]:
        if _is_blank(cells):
            continue
        rows.append(_to_row(headers, cells))
        numbers.append(number)

    LOGGER.debug("Flat logbook export: header on line %d, %d rows", header_line, len(rows))
    return ExtractedSection(
        source=SOURCE_GENERIC,
        headers=[h for h in headers if h],
        rows=rows,
        row_numbers=numbers,
        header_line=header_line,
    )


def extract_sections(file_text: str, settings: ImportSettings | None = None) -> ExtractedSection:
    """
    Slice the flight rows out of a whole CSV file.

    Raises ``LogbookFormatError`` when neither a ForeFlight Flights Table nor a
    flat table with a date header can be found.
    """

    settings = settings or ImportSettings()
    records = _read_records(normalize_text(file_text))
    if not records:
        raise LogbookFormatError("Could not find flight data section: file is empty")

    blocks = _scan_sections(records)
    if blocks:
        return _extract_foreflight(blocks)
    return _extract_generic(records, settings)
