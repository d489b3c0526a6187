"""
ForeFlight schema generations and the time policy each one implies.

ForeFlight exports changed shape over the years. Rows are classified per row
(``detect_format``) and the matching ``FormatStrategy`` from ``FORMAT_REGISTRY``
decides which extra header spellings apply and how a missing total or PIC/SIC
split is filled in. Non-ForeFlight files use the ``generic`` strategy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .coerce import clock_difference, parse_date
from .schema import FIELD_ALIASES, ColumnResolver, collapse_header, merge_field_aliases

MODERN = "modern"
LEGACY_2019 = "legacy2019"
LEGACY_2018 = "legacy2018"
GENERIC = "generic"

FORMAT_NAMES: Tuple[str, ...] = (MODERN, LEGACY_2019, LEGACY_2018, GENERIC)


@dataclass(frozen=True)
class FormatStrategy:
    name: str
    extra_aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    derive_total_from_clock: bool = False
    assume_pic_when_unsplit: bool = False

    def aliases(self, base: Mapping[str, Sequence[str]] | None = None) -> Dict[str, Tuple[str, ...]]:
        return merge_field_aliases(self.extra_aliases, base=base or FIELD_ALIASES)

    def settle_times(
        self,
        total: float,
        pic: float,
        sic: float,
        time_out: Any = None,
        time_in: Any = None,
    ) -> Tuple[float, float, List[str]]:
        """
        Apply this generation's total-time and PIC policy.

        Returns ``(total, pic, tags)``. SIC is never invented.
        """

        tags: List[str] = []
        if self.derive_total_from_clock and total <= 0:
            clocked = clock_difference(time_out, time_in)
            if clocked > 0:
                total = clocked
                tags.append("total-from-clock")
        # Older solo-training logs often omit the PIC/SIC split.
        if self.assume_pic_when_unsplit and total > 0 and pic <= 0 and sic <= 0:
            pic = total
            tags.append("assumed-pic")
        return total, pic, tags


FORMAT_REGISTRY: Dict[str, FormatStrategy] = {
    MODERN: FormatStrategy(MODERN),
    LEGACY_2019: FormatStrategy(LEGACY_2019),
    LEGACY_2018: FormatStrategy(
        LEGACY_2018,
        extra_aliases={
            "total_time": ("TotalTime", "Total", "FlightTime", "Duration"),
            "pic_time": ("PIC", "PilotInCommand", "PIC Time", "Captain"),
            "sic_time": ("SIC", "SecondInCommand", "SIC Time", "FirstOfficer"),
        },
        derive_total_from_clock=True,
        assume_pic_when_unsplit=True,
    ),
    GENERIC: FormatStrategy(GENERIC, derive_total_from_clock=True),
}


def get_strategy(name: str) -> FormatStrategy:
    strategy = FORMAT_REGISTRY.get(name)
    if strategy is None:
        raise ValueError(f"Unknown logbook format '{name}'. Expected one of: {', '.join(FORMAT_REGISTRY)}")
    return strategy


def _flight_year(row: Mapping[str, Any], resolver: ColumnResolver) -> Optional[int]:
    for value in resolver.values(row, "date"):
        iso = parse_date(value)
        if iso:
            return int(iso[:4])
    return None


def has_total_time_column(headers: Sequence[str]) -> bool:
    return any(collapse_header(h) == "totaltime" for h in headers)


def detect_format(row: Mapping[str, Any], resolver: ColumnResolver | None = None) -> str:
    """
    Classify a ForeFlight row as ``modern``, ``legacy2019`` or ``legacy2018``.

    2020+ rows with a ``TotalTime``-shaped column are modern, 2019 rows are
    legacy2019, and everything else gets the most forgiving legacy2018 policy.
    """

    resolver = resolver or ColumnResolver(row.keys())
    year = _flight_year(row, resolver)
    if year is None:
        return LEGACY_2018
    if year >= 2020 and has_total_time_column(resolver.headers):
        return MODERN
    if year == 2019:
        return LEGACY_2019
    return LEGACY_2018
