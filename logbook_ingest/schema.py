from __future__ import annotations

import re
from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

UNKNOWN = "UNKNOWN"

REQUIRED_FIELDS: Tuple[str, ...] = (
    "date",
    "aircraft_registration",
    "departure_airport",
    "arrival_airport",
    "total_time",
)

# Header slots used to tell real flight rows from section noise.
IDENTITY_FIELDS: Tuple[str, ...] = ("date", "aircraft_registration", "departure_airport", "arrival_airport")

DURATION_FIELDS: Tuple[str, ...] = (
    "pic_time",
    "sic_time",
    "solo_time",
    "night_time",
    "cross_country_time",
    "instrument_time",
    "actual_instrument",
    "simulated_instrument",
    "dual_given",
    "dual_received",
    "simulated_flight",
    "ground_training",
)

# Fields a missing total time may be recovered from.
TOTAL_COMPONENT_FIELDS: Tuple[str, ...] = (
    "pic_time",
    "sic_time",
    "solo_time",
    "dual_given",
    "dual_received",
    "simulated_flight",
    "ground_training",
)

METER_FIELDS: Tuple[str, ...] = ("hobbs_start", "hobbs_end", "tach_start", "tach_end")

COUNT_FIELDS: Tuple[str, ...] = (
    "holds",
    "approaches",
    "landings",
    "day_takeoffs",
    "day_landings",
    "day_landings_full_stop",
    "night_takeoffs",
    "night_landings",
    "night_landings_full_stop",
)

STRING_FIELDS: Tuple[str, ...] = (
    "aircraft_type",
    "route",
    "remarks",
    "time_out",
    "time_off",
    "time_on",
    "time_in",
    "on_duty",
    "off_duty",
    "start_time",
    "end_time",
)

CSV_EXPORT_COLUMNS: Tuple[str, ...] = (
    "date",
    "aircraft_registration",
    "aircraft_type",
    "departure_airport",
    "arrival_airport",
    "total_time",
    "pic_time",
    "sic_time",
    "cross_country_time",
    "night_time",
    "instrument_time",
    "actual_instrument",
    "simulated_instrument",
    "solo_time",
    "dual_given",
    "dual_received",
    "holds",
    "approaches",
    "landings",
    "day_takeoffs",
    "day_landings",
    "night_takeoffs",
    "night_landings",
    "simulated_flight",
    "ground_training",
    "route",
    "remarks",
    "start_time",
    "end_time",
)


@dataclass(frozen=True)
class CanonicalFlightRecord:
    """One normalized, storage-ready logbook entry."""

    date: str
    aircraft_registration: str
    departure_airport: str
    arrival_airport: str
    total_time: float
    pic_time: float = 0.0
    sic_time: float = 0.0
    solo_time: float = 0.0
    night_time: float = 0.0
    cross_country_time: float = 0.0
    instrument_time: float = 0.0
    actual_instrument: float = 0.0
    simulated_instrument: float = 0.0
    dual_given: float = 0.0
    dual_received: float = 0.0
    simulated_flight: float = 0.0
    ground_training: float = 0.0
    hobbs_start: float = 0.0
    hobbs_end: float = 0.0
    tach_start: float = 0.0
    tach_end: float = 0.0
    holds: int = 0
    approaches: int = 0
    landings: int = 0
    day_takeoffs: int = 0
    day_landings: int = 0
    day_landings_full_stop: int = 0
    night_takeoffs: int = 0
    night_landings: int = 0
    night_landings_full_stop: int = 0
    aircraft_type: Optional[str] = None
    route: Optional[str] = None
    remarks: Optional[str] = None
    time_out: Optional[str] = None
    time_off: Optional[str] = None
    time_on: Optional[str] = None
    time_in: Optional[str] = None
    on_duty: Optional[str] = None
    off_duty: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    source_format: str = "generic"

    def to_dict(self) -> Dict[str, Any]:
        """Storage payload; the provenance tag stays behind."""

        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "source_format"}


@dataclass(frozen=True)
class AircraftInfo:
    """Row of a ForeFlight ``Aircraft Table``."""

    aircraft_id: str
    type_code: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None

    @property
    def display_type(self) -> Optional[str]:
        if self.type_code:
            return self.type_code
        combined = " ".join(part for part in (self.make, self.model) if part)
        return combined or None


@dataclass(frozen=True)
class KeywordRule:
    """Match a header whose collapsed name holds every ``include`` and no ``exclude`` keyword."""

    include: Tuple[str, ...]
    exclude: Tuple[str, ...] = ()


# Logical field -> header spellings, most specific first. The field name
# itself is always accepted as a final alias.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "date": ("Date", "Flight Date", "Log Date", "Dep Date", "Departure Date"),
    "aircraft_registration": (
        "AircraftID",
        "Aircraft Registration",
        "Registration",
        "Tail Number",
        "Tail No",
        "Tail",
        "Reg",
        "Aircraft Ident",
        "Ident",
        "Aircraft",
    ),
    "aircraft_type": ("Aircraft Type", "TypeCode", "Type", "AC Type", "Make/Model", "Model"),
    "departure_airport": (
        "From",
        "From Airport",
        "Departure",
        "Departure Airport",
        "Dep Airport",
        "Origin",
        "Origin Airport",
        "Route From",
        "Dep",
    ),
    "arrival_airport": (
        "To",
        "To Airport",
        "Arrival",
        "Arrival Airport",
        "Arr Airport",
        "Destination",
        "Destination Airport",
        "Route To",
        "Dest",
        "Arr",
    ),
    "route": ("Route", "Flight Path", "Via", "Route of Flight"),
    "total_time": (
        "TotalTime",
        "Total Flight Time",
        "Flight Time",
        "Flight Time (Decimal)",
        "Total Hours",
        "Block Time",
        "Block Hours",
        "Flight Duration",
        "Duration",
        "Elapsed Time",
    ),
    "pic_time": ("PIC", "PIC Time", "Pilot In Command"),
    "sic_time": ("SIC", "SIC Time", "Second In Command", "Co Pilot", "Copilot"),
    "solo_time": ("Solo", "Solo Time"),
    "night_time": ("Night", "Night Time"),
    "cross_country_time": ("CrossCountry", "Cross Country Time", "XC"),
    "instrument_time": ("IFR", "Instrument", "Instrument Time"),
    "actual_instrument": ("ActualInstrument", "Actual Instrument Time"),
    "simulated_instrument": ("SimulatedInstrument", "Simulated Instrument Time", "Hood", "Hood Time"),
    "dual_given": ("DualGiven", "Dual Given Time"),
    "dual_received": ("DualReceived", "Dual Received Time"),
    "simulated_flight": ("SimulatedFlight", "Simulator", "Sim"),
    "ground_training": ("GroundTraining", "Ground"),
    "hobbs_start": ("Hobbs Start", "Hobbs Out"),
    "hobbs_end": ("Hobbs End", "Hobbs In"),
    "tach_start": ("Tach Start", "Tach Out"),
    "tach_end": ("Tach End", "Tach In"),
    "holds": ("Holds", "Holding"),
    "approaches": ("Approaches", "Approach Count"),
    "landings": ("AllLandings", "Landings", "Total Landings", "Landings Total"),
    "day_takeoffs": ("DayTakeoffs", "Day T/O"),
    "day_landings": ("DayLandings",),
    "day_landings_full_stop": ("DayLandingsFullStop", "Day Full Stop"),
    "night_takeoffs": ("NightTakeoffs", "Night T/O"),
    "night_landings": ("NightLandings",),
    "night_landings_full_stop": ("NightLandingsFullStop", "Night Full Stop"),
    "remarks": ("PilotComments", "Remarks", "Comments", "Notes"),
    "time_out": ("TimeOut", "Out"),
    "time_off": ("TimeOff", "Off", "Departure Time"),
    "time_on": ("TimeOn", "On", "Arrival Time"),
    "time_in": ("TimeIn", "In"),
    "on_duty": ("OnDuty",),
    "off_duty": ("OffDuty",),
    "start_time": ("StartTime",),
    "end_time": ("EndTime",),
}

KEYWORD_FALLBACKS: Dict[str, Tuple[KeywordRule, ...]] = {
    "total_time": (
        KeywordRule(
            include=("total", "time"),
            exclude=(
                "night", "pic", "sic", "dual", "ground", "solo", "sim", "instrument",
                "crosscountry", "xc", "approach", "hold", "day", "country", "actual",
            ),
        ),
        KeywordRule(
            include=("total",),
            exclude=(
                "night", "pic", "sic", "dual", "ground", "solo", "sim", "instrument",
                "landing", "distance", "approach", "hold", "day", "country", "actual",
            ),
        ),
        KeywordRule(include=("duration",)),
        KeywordRule(include=("block",)),
    ),
    "aircraft_registration": (KeywordRule(include=("tail",)), KeywordRule(include=("registration",))),
    "departure_airport": (KeywordRule(include=("depart",), exclude=("time", "date")),),
    "arrival_airport": (KeywordRule(include=("arriv",), exclude=("time", "date")),),
    "remarks": (KeywordRule(include=("comment",), exclude=("instructor",)),),
}

AIRCRAFT_TABLE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "aircraft_id": ("AircraftID", "Aircraft ID", "Registration", "Tail Number"),
    "type_code": ("TypeCode", "Type Code", "Type"),
    "make": ("Make", "Manufacturer"),
    "model": ("Model",),
}


@lru_cache(maxsize=4096)
def collapse_header(name: str) -> str:
    """Compare headers ignoring case, whitespace, underscores and hyphens."""

    if name is None:
        return ""
    return re.sub(r"[\s_\-]+", "", str(name).replace("\ufeff", "")).lower()


def _uniq(seq: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for val in seq:
        if val in seen:
            continue
        seen.add(val)
        ordered.append(val)
    return ordered


def merge_field_aliases(
    overrides: Mapping[str, Sequence[str]] | None,
    base: Mapping[str, Sequence[str]] | None = None,
) -> Dict[str, Tuple[str, ...]]:
    """
    Merge extra header spellings ahead of the defaults.

    Fields missing from ``overrides`` keep their base aliases so callers only
    need to list the additions.
    """

    merged: Dict[str, Tuple[str, ...]] = {k: tuple(v) for k, v in (base or FIELD_ALIASES).items()}
    if overrides:
        for field_name, aliases in overrides.items():
            extra = [str(a) for a in aliases]
            merged[str(field_name)] = tuple(_uniq([*extra, *merged.get(str(field_name), ())]))
    return merged


def find_header_by_keywords(
    headers: Iterable[str],
    include: Sequence[str],
    exclude: Sequence[str] = (),
) -> Optional[str]:
    """First header whose collapsed name contains every ``include`` keyword and no ``exclude`` keyword."""

    for header in headers:
        collapsed = collapse_header(header)
        if not collapsed:
            continue
        if all(word in collapsed for word in include) and not any(word in collapsed for word in exclude):
            return header
    return None


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


class ColumnResolver:
    """
    Resolve logical fields to the headers of one table.

    Exact aliases (collapsed comparison) are tried first, in alias order; the
    keyword rules only run when no alias matched, and never claim a header
    that is an exact alias of another field.
    """

    def __init__(
        self,
        headers: Iterable[str],
        aliases: Mapping[str, Sequence[str]] | None = None,
        keyword_rules: Mapping[str, Sequence[KeywordRule]] | None = None,
    ) -> None:
        self.headers: List[str] = [h for h in headers if h is not None]
        self.aliases = aliases if aliases is not None else FIELD_ALIASES
        self.keyword_rules = keyword_rules if keyword_rules is not None else KEYWORD_FALLBACKS
        self._by_collapsed: Dict[str, List[str]] = {}
        for header in self.headers:
            self._by_collapsed.setdefault(collapse_header(header), []).append(header)
        self._cache: Dict[str, List[str]] = {}

    def _alias_keys(self, field_name: str) -> List[str]:
        return _uniq(collapse_header(alias) for alias in (*self.aliases.get(field_name, ()), field_name))

    def _claimed_elsewhere(self, field_name: str) -> set[str]:
        claimed: set[str] = set()
        for other in self.aliases:
            if other != field_name:
                claimed.update(self._alias_keys(other))
        return claimed

    def headers_for(self, field_name: str) -> List[str]:
        if field_name in self._cache:
            return self._cache[field_name]

        found: List[str] = []
        for key in self._alias_keys(field_name):
            for header in self._by_collapsed.get(key, ()):
                if header not in found:
                    found.append(header)

        if not found and field_name in self.keyword_rules:
            claimed = self._claimed_elsewhere(field_name)
            candidates = [h for h in self.headers if collapse_header(h) not in claimed]
            for rule in self.keyword_rules[field_name]:
                header = find_header_by_keywords(candidates, rule.include, rule.exclude)
                if header:
                    found.append(header)
                    break

        self._cache[field_name] = found
        return found

    def has(self, field_name: str) -> bool:
        return bool(self.headers_for(field_name))

    def values(self, row: Mapping[str, Any], field_name: str) -> List[Any]:
        return [row.get(header) for header in self.headers_for(field_name)]

    def first_text(self, row: Mapping[str, Any], field_name: str) -> Optional[str]:
        for value in self.values(row, field_name):
            if not _is_blank(value):
                return str(value).strip()
        return None

    def unmapped_headers(self) -> List[str]:
        mapped: set[str] = set()
        for field_name in self.aliases:
            mapped.update(self.headers_for(field_name))
        return [h for h in self.headers if h not in mapped and collapse_header(h)]


def suggest_header_mapping(
    headers: Iterable[str],
    aliases: Mapping[str, Sequence[str]] | None = None,
    score_cutoff: float = 80,
) -> Dict[str, str]:
    """
    Suggest a logical field for each header no alias recognised.

    Returns ``{header: field}`` for fuzzy matches at or above ``score_cutoff``.
    """

    alias_table = aliases if aliases is not None else FIELD_ALIASES
    resolver = ColumnResolver(headers, alias_table)
    choices: List[str] = []
    owners: List[str] = []
    for field_name, spellings in alias_table.items():
        for spelling in (*spellings, field_name):
            choices.append(spelling)
            owners.append(field_name)

    suggestions: Dict[str, str] = {}
    for header in resolver.unmapped_headers():
        match = process.extractOne(header, choices, scorer=fuzz.WRatio, score_cutoff=score_cutoff)
        if match:
            _, _, index = match
            suggestions[header] = owners[index]
    return suggestions
