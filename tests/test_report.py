import pytest

from logbook_ingest.report import ParseReport, analyze, records_to_frame, summarize_tags
from logbook_ingest.schema import CanonicalFlightRecord


def _record(date, tail, total, source_format="modern"):
    return CanonicalFlightRecord(
        date=date,
        aircraft_registration=tail,
        departure_airport="KPAO",
        arrival_airport="KSQL",
        total_time=total,
        source_format=source_format,
    )


def test_analyze_counts_and_ranges():
    records = [
        _record("2021-03-01", "N1", 1.2),
        _record("2020-12-31", "N2", 0.0, "legacy2018"),
        _record("2021-01-15", "N1", 2.3, "legacy2019"),
    ]

    report = analyze(records, rejected_rows=2)

    assert report.total_rows == 5
    assert report.valid_flights == 2
    assert report.invalid_flights == 3
    assert report.zero_time_flights == 1
    assert report.aircraft_count == 2
    assert report.date_range == ("2020-12-31", "2021-03-01")
    assert report.total_hours == 3.5
    assert report.format_breakdown == {"modern": 1, "legacy2019": 1, "legacy2018": 1, "generic": 0}
    assert report.sample_flight == records[0]
    assert report.warnings == (
        "1 flights have zero total time (may indicate parsing issues)",
        "1 legacy 2018 format flights have zero total time; check the TimeOut/TimeIn columns",
    )


def test_analyze_is_order_independent_except_sample():
    records = [_record("2021-03-01", "N1", 1.2), _record("2021-01-15", "N2", 2.3)]

    forward = analyze(records)
    backward = analyze(list(reversed(records)))

    assert forward.total_hours == backward.total_hours
    assert forward.date_range == backward.date_range
    assert forward.sample_flight == records[0]
    assert backward.sample_flight == records[1]


def test_analyze_empty_input():
    report = analyze([], rejected_rows=3, warnings=["Row 2: missing date \"x\""])

    assert report.total_rows == 3
    assert report.invalid_flights == 3
    assert report.valid_flights == 0
    assert report.date_range is None
    assert report.format_breakdown == {"modern": 0, "legacy2019": 0, "legacy2018": 0, "generic": 0}
    assert report.warnings == ('Row 2: missing date "x"',)


def test_format_breakdown_is_read_only():
    report = analyze([_record("2021-03-01", "N1", 1.2)])

    with pytest.raises(TypeError):
        report.format_breakdown["modern"] = 5
    with pytest.raises(TypeError):
        ParseReport().format_breakdown["generic"] = 1
    assert report.format_breakdown["modern"] == 1


def test_records_to_frame_is_typed_when_empty():
    frame = records_to_frame([])

    assert frame.height == 0
    assert "total_time" in frame.columns
    assert "source_format" in frame.columns


def test_summarize_tags_counts_each_row_once():
    lines = summarize_tags([("inferred-arrival", "inferred-arrival"), ("inferred-arrival",), ("assumed-pic",)])

    assert lines == [
        "2 flights have inferred arrival airports",
        "1 flights had all of their time assumed to be PIC",
    ]


def test_summary_lines_mention_formats():
    report = analyze([_record("2021-03-01", "N1", 1.25)])

    lines = report.summary_lines()

    assert lines[0].startswith("Rows: 1 (valid 1")
    assert "Formats: modern=1" in lines
