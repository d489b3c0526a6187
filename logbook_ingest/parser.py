"""
Whole-file orchestration: extract rows, map them, and build the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .config import ImportSettings
from .mapping import MappingContext, MissingRequired, Success, map_row
from .report import ParseReport, analyze, summarize_tags
from .schema import CanonicalFlightRecord, ColumnResolver, suggest_header_mapping
from .sections import LogbookFormatError, extract_sections

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseResult:
    records: Tuple[CanonicalFlightRecord, ...]
    report: ParseReport
    source: str
    row_warnings: Dict[int, Tuple[str, ...]] = field(default_factory=dict)
    unmapped_headers: Tuple[str, ...] = ()
    suggestions: Dict[str, str] = field(default_factory=dict)


def _rejection_message(line: int, rejected: MissingRequired) -> str:
    if rejected.missing == ("date",):
        return f'Row {line}: missing date "{rejected.raw_date or ""}"'
    return f"Row {line}: missing {', '.join(rejected.missing)}"


def _capped(messages: List[str], limit: int) -> List[str]:
    if len(messages) <= limit:
        return messages
    hidden = len(messages) - limit
    return [*messages[:limit], f"...and {hidden} more rejected rows not shown"]


def parse_logbook(text: str, settings: Optional[ImportSettings] = None) -> ParseResult:
    """
    Parse a whole CSV export into canonical flight records plus a ``ParseReport``.

    Raises ``LogbookFormatError`` when no row can be mapped to a flight. A
    file whose flights all have zero total time still parses; the report
    says so.
    """

    settings = settings or ImportSettings()
    section = extract_sections(text, settings)
    context = MappingContext(source=section.source, settings=settings, aircraft=section.aircraft)

    records: List[CanonicalFlightRecord] = []
    row_warnings: Dict[int, Tuple[str, ...]] = {}
    rejections: List[str] = []

    for line, row in zip(section.row_numbers, section.rows):
        result = map_row(row, context)
        if isinstance(result, Success):
            records.append(result.record)
            if result.warnings:
                row_warnings[line] = result.warnings
        elif isinstance(result, MissingRequired):
            rejections.append(_rejection_message(line, result))

    if not records:
        raise LogbookFormatError(
            f"Could not find flight data section: none of {len(section.rows)} rows "
            f"below the header on line {section.header_line} looked like a flight"
        )

    shown = _capped(rejections, settings.warning_limit)
    for message in shown:
        LOGGER.warning(message)

    warnings = [*shown, *summarize_tags(row_warnings.values())]
    report = analyze(records, rejected_rows=len(rejections), warnings=warnings)

    resolver = ColumnResolver(section.headers, settings.aliases)
    result = ParseResult(
        records=tuple(records),
        report=report,
        source=section.source,
        row_warnings=row_warnings,
        unmapped_headers=tuple(resolver.unmapped_headers()),
        suggestions=suggest_header_mapping(section.headers, settings.aliases),
    )
    LOGGER.info(
        "Parsed %d flights (%d rejected) from %s export",
        len(records),
        len(rejections),
        section.source,
    )
    return result


def parse_logbook_file(path: Path, settings: Optional[ImportSettings] = None) -> ParseResult:
    path = Path(path)
    LOGGER.info("Reading logbook %s", path)
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    return parse_logbook(text, settings)


def filter_out_zero_rows(records: Iterable[CanonicalFlightRecord]) -> List[CanonicalFlightRecord]:
    """Drop flights whose total time is zero."""

    return [record for record in records if record.total_time > 0]
