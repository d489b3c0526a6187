"""
Pilot logbook CSV ingestion: ForeFlight and generic exports normalized into
canonical flight records with an import summary.
"""

from .coerce import (  # noqa: F401
    clock_difference,
    coerce_number,
    non_negative,
    non_negative_count,
    normalize_airport_code,
    parse_clock,
    parse_date,
    parse_duration,
    parse_number,
)

from .schema import (  # noqa: F401
    COUNT_FIELDS,
    CSV_EXPORT_COLUMNS,
    DURATION_FIELDS,
    FIELD_ALIASES,
    KEYWORD_FALLBACKS,
    STRING_FIELDS,
    AircraftInfo,
    CanonicalFlightRecord,
    ColumnResolver,
    collapse_header,
    find_header_by_keywords,
    merge_field_aliases,
    suggest_header_mapping,
)

from .config import ConfigError, ImportSettings, load_settings  # noqa: F401
from .formats import FORMAT_REGISTRY, FormatStrategy, detect_format, get_strategy  # noqa: F401
from .mapping import (  # noqa: F401
    MappingContext,
    MissingRequired,
    NonFlightRow,
    Success,
    airports_from_route,
    map_row,
    reconcile_total_time,
)
from .sections import ExtractedSection, LogbookFormatError, ScanState, extract_sections, normalize_text  # noqa: F401
from .report import ParseReport, analyze, records_to_frame  # noqa: F401
from .parser import ParseResult, filter_out_zero_rows, parse_logbook, parse_logbook_file  # noqa: F401
from .export import to_csv, write_csv, write_excel  # noqa: F401
from .storage import FlightStore, InsertResult  # noqa: F401

__all__ = [
    "clock_difference",
    "coerce_number",
    "non_negative",
    "non_negative_count",
    "normalize_airport_code",
    "parse_clock",
    "parse_date",
    "parse_duration",
    "parse_number",
    "COUNT_FIELDS",
    "CSV_EXPORT_COLUMNS",
    "DURATION_FIELDS",
    "FIELD_ALIASES",
    "KEYWORD_FALLBACKS",
    "STRING_FIELDS",
    "AircraftInfo",
    "CanonicalFlightRecord",
    "ColumnResolver",
    "collapse_header",
    "find_header_by_keywords",
    "merge_field_aliases",
    "suggest_header_mapping",
    "ConfigError",
    "ImportSettings",
    "load_settings",
    "FORMAT_REGISTRY",
    "FormatStrategy",
    "detect_format",
    "get_strategy",
    "MappingContext",
    "MissingRequired",
    "NonFlightRow",
    "Success",
    "airports_from_route",
    "map_row",
    "reconcile_total_time",
    "ExtractedSection",
    "LogbookFormatError",
    "ScanState",
    "extract_sections",
    "normalize_text",
    "ParseReport",
    "analyze",
    "records_to_frame",
    "ParseResult",
    "filter_out_zero_rows",
    "parse_logbook",
    "parse_logbook_file",
    "to_csv",
    "write_csv",
    "write_excel",
    "FlightStore",
    "InsertResult",
]
