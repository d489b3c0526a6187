from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .coerce import (
    non_negative,
    non_negative_count,
    normalize_airport_code,
    parse_date,
    parse_number,
)
from .config import ImportSettings
from .formats import GENERIC, FormatStrategy, detect_format, get_strategy
from .schema import (
    COUNT_FIELDS,
    DURATION_FIELDS,
    IDENTITY_FIELDS,
    METER_FIELDS,
    STRING_FIELDS,
    TOTAL_COMPONENT_FIELDS,
    AircraftInfo,
    CanonicalFlightRecord,
    ColumnResolver,
    collapse_header,
)

SOURCE_FOREFLIGHT = "foreflight"
SOURCE_GENERIC = "generic"

ROUTE_TOKEN_RE = re.compile(r"\b[A-Z0-9]{3,4}\b")
APPROACH_COLUMN_RE = re.compile(r"^approach\d+$")


@dataclass(frozen=True)
class Success:
    record: CanonicalFlightRecord
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MissingRequired:
    missing: Tuple[str, ...]
    raw_date: Optional[str] = None


@dataclass(frozen=True)
class NonFlightRow:
    """Section noise or metadata: skipped without a warning."""


MappedResult = Union[Success, MissingRequired, NonFlightRow]


@dataclass
class MappingContext:
    """Per-file state handed to ``map_row``: where the rows came from and how to treat gaps."""

    source: str = SOURCE_GENERIC
    settings: ImportSettings = field(default_factory=ImportSettings)
    aircraft: Mapping[str, AircraftInfo] = field(default_factory=dict)
    _resolvers: Dict[Tuple[Tuple[str, ...], str], ColumnResolver] = field(default_factory=dict, repr=False)

    def resolver(self, headers: Sequence[str], strategy: FormatStrategy | None = None) -> ColumnResolver:
        key = (tuple(headers), strategy.name if strategy else "")
        if key not in self._resolvers:
            aliases = strategy.aliases(self.settings.aliases) if strategy else self.settings.aliases
            self._resolvers[key] = ColumnResolver(headers, aliases)
        return self._resolvers[key]


def airports_from_route(route: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """First and last 3-4 character identifiers of a free-text route."""

    if not route:
        return None, None
    tokens = ROUTE_TOKEN_RE.findall(str(route).upper())
    if not tokens:
        return None, None
    return tokens[0], tokens[-1]


def _meter_delta(start: float, end: float) -> float:
    return round(end - start, 2) if end > start else 0.0


def reconcile_total_time(
    total: float,
    durations: Mapping[str, float],
    meters: Mapping[str, float] | None = None,
    ceiling: float = 48.0,
) -> Tuple[float, Optional[str]]:
    """
    Settle the final total time for a flight.

    A missing total is recovered from the Hobbs delta, then the Tach delta,
    then the largest component time; values above ``ceiling`` are ignored as
    corrupted. The result is never smaller than any component within the
    ceiling. Returns ``(total, tag)`` where ``tag`` names the adjustment.
    """

    meters = meters or {}
    tag: Optional[str] = None

    if total <= 0:
        hobbs = _meter_delta(meters.get("hobbs_start", 0.0), meters.get("hobbs_end", 0.0))
        tach = _meter_delta(meters.get("tach_start", 0.0), meters.get("tach_end", 0.0))
        components = [
            durations.get(name, 0.0)
            for name in TOTAL_COMPONENT_FIELDS
            if 0 < durations.get(name, 0.0) <= ceiling
        ]
        if 0 < hobbs <= ceiling:
            total, tag = hobbs, "total-from-hobbs"
        elif 0 < tach <= ceiling:
            total, tag = tach, "total-from-tach"
        elif components:
            total, tag = max(components), "total-from-components"

    capped = [value for value in durations.values() if 0 < value <= ceiling]
    if capped and max(capped) > total:
        if tag is None and total > 0:
            tag = "total-raised-to-component"
        total = max(capped)
    return non_negative(total), tag


def _number(resolver: ColumnResolver, row: Mapping[str, Any], field_name: str) -> float:
    values = resolver.values(row, field_name)
    if not values:
        return 0.0
    return parse_number(values[0], values[1:])


def _first_date(resolver: ColumnResolver, row: Mapping[str, Any]) -> Optional[str]:
    for value in resolver.values(row, "date"):
        iso = parse_date(value)
        if iso:
            return iso
    return None


def _count_approach_columns(row: Mapping[str, Any]) -> int:
    count = 0
    for header, value in row.items():
        if header is None or value is None or not str(value).strip():
            continue
        if APPROACH_COLUMN_RE.match(collapse_header(header)):
            count += 1
    return count


def map_row(row: Mapping[str, Any], context: MappingContext | None = None) -> MappedResult:
    """
    Map one raw CSV row to a ``CanonicalFlightRecord``.

    Rows without a parseable date are ``MissingRequired``, or ``NonFlightRow``
    when fewer than two of the date/aircraft/departure/arrival columns exist;
    missing aircraft or airports are inferred (route, the other airport, then
    the unknown sentinel) and tagged, unless inference is switched off.
    """

    context = context or MappingContext()
    settings = context.settings
    headers = [h for h in row.keys() if h is not None]
    base = context.resolver(headers)

    raw_date = base.first_text(row, "date")
    iso_date = _first_date(base, row)

    fmt = detect_format(row, base) if context.source == SOURCE_FOREFLIGHT else GENERIC
    strategy = get_strategy(fmt)
    resolver = context.resolver(headers, strategy)

    # Registrations follow the same trim/uppercase rule as airport codes.
    registration = normalize_airport_code(resolver.first_text(row, "aircraft_registration"))
    departure = normalize_airport_code(resolver.first_text(row, "departure_airport"))
    arrival = normalize_airport_code(resolver.first_text(row, "arrival_airport"))
    route = resolver.first_text(row, "route")
    if (not departure or not arrival) and route:
        first, last = airports_from_route(route)
        departure = departure or first or ""
        arrival = arrival or last or ""

    missing: List[str] = []
    if iso_date is None:
        missing.append("date")
    if not settings.infer_missing:
        for name, value in (
            ("aircraft_registration", registration),
            ("departure_airport", departure),
            ("arrival_airport", arrival),
        ):
            if not value:
                missing.append(name)
    if missing:
        slots = [name for name in IDENTITY_FIELDS if base.has(name)]
        if iso_date is None and len(slots) < 2:
            return NonFlightRow()
        return MissingRequired(tuple(missing), raw_date=raw_date)

    warnings: List[str] = []
    sentinel = settings.unknown_sentinel
    if not registration:
        registration = sentinel
        warnings.append("inferred-aircraft")
    if not departure:
        departure = arrival or sentinel
        warnings.append("inferred-departure")
    if not arrival:
        arrival = departure or sentinel
        warnings.append("inferred-arrival")

    durations: Dict[str, float] = {name: non_negative(_number(resolver, row, name)) for name in DURATION_FIELDS}
    meters: Dict[str, float] = {name: non_negative(_number(resolver, row, name)) for name in METER_FIELDS}
    counts: Dict[str, int] = {name: non_negative_count(_number(resolver, row, name)) for name in COUNT_FIELDS}
    strings: Dict[str, Optional[str]] = {name: resolver.first_text(row, name) for name in STRING_FIELDS}

    total, pic, tags = strategy.settle_times(
        non_negative(_number(resolver, row, "total_time")),
        durations["pic_time"],
        durations["sic_time"],
        strings["time_out"],
        strings["time_in"],
    )
    durations["pic_time"] = non_negative(pic)
    warnings.extend(tags)

    total, tag = reconcile_total_time(non_negative(total), durations, meters, settings.duration_ceiling)
    if tag:
        warnings.append(tag)

    if counts["approaches"] == 0:
        counts["approaches"] = _count_approach_columns(row)
    if counts["landings"] == 0:
        day = counts["day_landings"] or counts["day_landings_full_stop"]
        night = counts["night_landings"] or counts["night_landings_full_stop"]
        counts["landings"] = day + night

    if not strings["aircraft_type"]:
        info = context.aircraft.get(registration)
        if info is not None:
            strings["aircraft_type"] = info.display_type
    strings["start_time"] = strings["start_time"] or strings["time_out"]
    strings["end_time"] = strings["end_time"] or strings["time_in"]
    strings["route"] = route

    record = CanonicalFlightRecord(
        date=iso_date,
        aircraft_registration=registration,
        departure_airport=departure,
        arrival_airport=arrival,
        total_time=total,
        source_format=fmt,
        **durations,
        **meters,
        **counts,
        **strings,
    )
    return Success(record, tuple(warnings))
