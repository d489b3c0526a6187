"""
Primitive coercions for loosely-typed logbook spreadsheet cells.

Every function here is total: unparseable input yields ``None`` (or ``0``/``""``
for the clamping helpers) instead of raising, so the row mapper can decide the
default for each field.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from dateutil import parser as dateutil_parser

EXCEL_EPOCH = datetime(1899, 12, 30)
# 9999-12-31 in Excel serial days.
EXCEL_SERIAL_MAX = 2958465

ABSENT_TOKENS = {"", "null", "undefined", "none", "nan", "-", "--"}

_HOUR_UNITS = r"(?:h|hr|hrs|hour|hours)"
_MINUTE_UNITS = r"(?:m|min|mins|minute|minutes)"
_NUMBER = r"(\d+(?:\.\d+)?)"

COLON_RE = re.compile(r"^(-?)(\d+):([0-5]?\d)(?::([0-5]?\d))?$")
PLUS_RE = re.compile(r"^(-?)(\d+)\+([0-5]?\d)$")
WORDED_RE = re.compile(
    rf"^{_NUMBER}\s*{_HOUR_UNITS}\.?(?:\s*,?\s*{_NUMBER}\s*(?:{_MINUTE_UNITS}\.?)?)?$",
    re.IGNORECASE,
)
MINUTES_ONLY_RE = re.compile(rf"^{_NUMBER}\s*{_MINUTE_UNITS}\.?$", re.IGNORECASE)

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
MDY_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
SERIAL_RE = re.compile(r"^\d+(?:\.\d+)?$")
CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
COMPACT_CLOCK_RE = re.compile(r"^(\d{1,2})(\d{2})$")


def _is_real_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_text(raw: Any) -> str:
    text = str(raw).strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1].strip()
    return text


def parse_duration(text: str) -> Optional[float]:
    """
    Parse an hours value written as ``H:MM[:SS]``, ``H+MM``, ``1h 30m`` or ``45 min``.

    Returns ``None`` when no duration pattern matches so callers can fall back
    to plain decimal parsing. A leading minus applies to the whole duration.
    """

    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None

    match = COLON_RE.match(text)
    if match:
        sign, hours, minutes, seconds = match.groups()
        value = int(hours) + int(minutes) / 60 + int(seconds or 0) / 3600
        return -value if sign else value

    match = PLUS_RE.match(text)
    if match:
        sign, hours, minutes = match.groups()
        value = int(hours) + int(minutes) / 60
        return -value if sign else value

    match = WORDED_RE.match(text)
    if match:
        hours, minutes = match.groups()
        return float(hours) + float(minutes or 0) / 60

    match = MINUTES_ONLY_RE.match(text)
    if match:
        return float(match.group(1)) / 60

    return None


def coerce_number(raw: Any) -> Optional[float]:
    """Turn a cell into a finite float, or ``None`` when it holds no usable number."""

    if raw is None:
        return None
    if _is_real_number(raw):
        value = float(raw)
        return value if math.isfinite(value) else None
    if isinstance(raw, bool):
        return None

    text = _clean_text(raw)
    if text.lower() in ABSENT_TOKENS:
        return None

    duration = parse_duration(text)
    if duration is not None:
        return duration

    # "1,5" is a locale decimal; "1,234.5" uses thousands separators.
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    else:
        text = text.replace(",", "")
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_number(value: Any, fallbacks: Iterable[Any] = ()) -> float:
    """Coerce ``value``, then each fallback in order; ``0.0`` when all fail."""

    parsed = coerce_number(value)
    if parsed is not None:
        return parsed
    for fallback in fallbacks:
        parsed = coerce_number(fallback)
        if parsed is not None:
            return parsed
    return 0.0


def _safe_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _from_excel_serial(serial: float) -> Optional[str]:
    if serial < 1 or serial > EXCEL_SERIAL_MAX:
        return None
    try:
        return (EXCEL_EPOCH + timedelta(days=int(serial))).date().isoformat()
    except OverflowError:
        return None


def parse_date(raw: Any) -> Optional[str]:
    """
    Normalize a date cell to ``YYYY-MM-DD``.

    Handles ISO strings, ``M/D/Y`` and ``M-D-Y`` (two-digit years below 50 are
    2000s; a first component above 12 is treated as the day), ``YYYYMMDD``,
    Excel serial day numbers and anything else python-dateutil understands
    provided it carries a four-digit year. Never guesses: returns ``None``.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if _is_real_number(raw):
        return _from_excel_serial(float(raw)) if math.isfinite(raw) else None

    text = _clean_text(raw)
    if text.lower() in ABSENT_TOKENS:
        return None

    match = ISO_DATE_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_iso(year, month, day)

    match = MDY_DATE_RE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000 if year < 50 else 1900
        if month > 12:
            month, day = day, month
        return _safe_iso(year, month, day)

    match = COMPACT_DATE_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_iso(year, month, day)

    if SERIAL_RE.match(text):
        return _from_excel_serial(float(text))

    if not re.search(r"\d{4}", text):
        return None
    try:
        parsed = dateutil_parser.parse(text, default=datetime(2000, 1, 1))
    except (ValueError, OverflowError):
        return None
    return parsed.date().isoformat()


def normalize_airport_code(raw: Any) -> str:
    """Trim and uppercase an airport identifier; numbers are stringified first."""

    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip().upper()


def non_negative(value: Optional[float]) -> float:
    """Clamp to ``>= 0`` after rounding to two decimals; non-finite becomes 0."""

    if value is None or not _is_real_number(value) or not math.isfinite(value):
        return 0.0
    return max(0.0, round(float(value), 2))


def non_negative_count(value: Optional[float]) -> int:
    if value is None or not _is_real_number(value) or not math.isfinite(value):
        return 0
    return max(0, int(round(value)))


def parse_clock(raw: Any) -> Optional[float]:
    """Parse a time of day (``HH:MM``, ``HH:MM:SS``, ``HHMM`` or decimal hours) into hours."""

    if raw is None or isinstance(raw, bool):
        return None
    if _is_real_number(raw):
        value = float(raw)
        return value if math.isfinite(value) and 0 <= value <= 24 else None

    text = _clean_text(raw)
    if not text:
        return None

    match = CLOCK_RE.match(text)
    if match:
        hours, minutes, seconds = match.groups()
        if int(hours) > 24 or int(minutes) > 59:
            return None
        return int(hours) + int(minutes) / 60 + int(seconds or 0) / 3600

    match = COMPACT_CLOCK_RE.match(text)
    if match:
        hours, minutes = (int(part) for part in match.groups())
        if hours > 24 or minutes > 59:
            return None
        return hours + minutes / 60

    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) and 0 <= value <= 24 else None


def clock_difference(time_out: Any, time_in: Any) -> float:
    """Elapsed hours between two clock readings, rolling over midnight; 0 when unknown."""

    out_hours = parse_clock(time_out)
    in_hours = parse_clock(time_in)
    if out_hours is None or in_hours is None:
        return 0.0
    if in_hours < out_hours:
        return (24 - out_hours) + in_hours
    return in_hours - out_hours
