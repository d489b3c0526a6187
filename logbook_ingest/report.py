"""Summary statistics for one parsed logbook file."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import polars as pl

from .formats import FORMAT_NAMES, LEGACY_2018
from .schema import COUNT_FIELDS, DURATION_FIELDS, METER_FIELDS, STRING_FIELDS, CanonicalFlightRecord

FRAME_SCHEMA: Dict[str, pl.DataType] = {
    "date": pl.Utf8,
    "aircraft_registration": pl.Utf8,
    "departure_airport": pl.Utf8,
    "arrival_airport": pl.Utf8,
    "total_time": pl.Float64,
    **{name: pl.Float64 for name in DURATION_FIELDS},
    **{name: pl.Float64 for name in METER_FIELDS},
    **{name: pl.Int64 for name in COUNT_FIELDS},
    **{name: pl.Utf8 for name in STRING_FIELDS},
    "source_format": pl.Utf8,
}

INFERENCE_SUMMARIES: Tuple[Tuple[str, str], ...] = (
    ("inferred-aircraft", "{n} flights have an inferred aircraft registration"),
    ("inferred-departure", "{n} flights have inferred departure airports"),
    ("inferred-arrival", "{n} flights have inferred arrival airports"),
    ("assumed-pic", "{n} flights had all of their time assumed to be PIC"),
)


@dataclass(frozen=True)
class ParseReport:
    total_rows: int = 0
    valid_flights: int = 0
    invalid_flights: int = 0
    zero_time_flights: int = 0
    rejected_rows: int = 0
    aircraft_count: int = 0
    earliest_date: Optional[str] = None
    latest_date: Optional[str] = None
    total_hours: float = 0.0
    format_breakdown: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({name: 0 for name in FORMAT_NAMES})
    )
    warnings: Tuple[str, ...] = ()
    sample_flight: Optional[CanonicalFlightRecord] = None

    @property
    def date_range(self) -> Optional[Tuple[str, str]]:
        if self.earliest_date is None or self.latest_date is None:
            return None
        return self.earliest_date, self.latest_date

    def summary_lines(self) -> List[str]:
        """Human-readable lines for logging an import summary."""

        lines = [
            f"Rows: {self.total_rows} (valid {self.valid_flights}, invalid {self.invalid_flights}, "
            f"zero-time {self.zero_time_flights}, rejected {self.rejected_rows})",
            f"Aircraft: {self.aircraft_count}, total hours: {self.total_hours:.2f}",
        ]
        if self.date_range:
            lines.append(f"Dates: {self.earliest_date} to {self.latest_date}")
        breakdown = ", ".join(f"{name}={count}" for name, count in self.format_breakdown.items() if count)
        if breakdown:
            lines.append(f"Formats: {breakdown}")
        return lines


def records_to_frame(records: Iterable[CanonicalFlightRecord]) -> pl.DataFrame:
    """One row per record, every field typed even when ``records`` is empty."""

    rows = [{name: getattr(record, name) for name in FRAME_SCHEMA} for record in records]
    return pl.DataFrame(rows, schema=FRAME_SCHEMA)


def summarize_tags(row_tags: Iterable[Sequence[str]]) -> List[str]:
    """Collapse per-row inference tags into one count line per tag."""

    counts: Dict[str, int] = {}
    for tags in row_tags:
        for tag in set(tags):
            counts[tag] = counts.get(tag, 0) + 1
    return [template.format(n=counts[tag]) for tag, template in INFERENCE_SUMMARIES if counts.get(tag)]


def analyze(
    records: Sequence[CanonicalFlightRecord],
    rejected_rows: int = 0,
    warnings: Iterable[str] = (),
) -> ParseReport:
    """
    Build the ``ParseReport`` for a list of mapped records.

    ``rejected_rows`` counts rows dropped for a missing date; they are part of
    ``total_rows`` and ``invalid_flights``. ``warnings`` are prepended to the
    warnings derived here.
    """

    frame = records_to_frame(records)
    breakdown = {name: 0 for name in FORMAT_NAMES}
    messages: List[str] = list(warnings)

    if frame.height == 0:
        return ParseReport(
            total_rows=rejected_rows,
            invalid_flights=rejected_rows,
            rejected_rows=rejected_rows,
            format_breakdown=MappingProxyType(breakdown),
            warnings=tuple(messages),
        )

    positive = frame.filter(pl.col("total_time") > 0)
    stats = frame.select(
        pl.col("aircraft_registration").n_unique().alias("aircraft"),
        pl.col("date").min().alias("earliest"),
        pl.col("date").max().alias("latest"),
    ).row(0, named=True)
    for row in frame.group_by("source_format").agg(pl.len().alias("count")).iter_rows(named=True):
        breakdown[row["source_format"]] = breakdown.get(row["source_format"], 0) + int(row["count"])

    valid = positive.height
    zero_time = frame.height - valid
    total_hours = round(float(positive.get_column("total_time").sum() or 0.0), 2)

    if zero_time:
        messages.append(f"{zero_time} flights have zero total time (may indicate parsing issues)")
        legacy_zero = frame.filter(
            (pl.col("total_time") <= 0) & (pl.col("source_format") == LEGACY_2018)
        ).height
        if legacy_zero:
            messages.append(
                f"{legacy_zero} legacy 2018 format flights have zero total time; "
                "check the TimeOut/TimeIn columns"
            )

    sample = next((record for record in records if record.total_time > 0), None)
    total_rows = frame.height + rejected_rows
    return ParseReport(
        total_rows=total_rows,
        valid_flights=valid,
        invalid_flights=total_rows - valid,
        zero_time_flights=zero_time,
        rejected_rows=rejected_rows,
        aircraft_count=int(stats["aircraft"]),
        earliest_date=stats["earliest"],
        latest_date=stats["latest"],
        total_hours=total_hours,
        format_breakdown=MappingProxyType(breakdown),
        warnings=tuple(messages),
        sample_flight=sample,
    )
