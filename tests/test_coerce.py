from datetime import datetime

import pytest

from logbook_ingest.coerce import (
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


def test_parse_duration_colon_grid_matches_hours_and_minutes():
    for hours in range(24):
        for minutes in range(60):
            assert parse_duration(f"{hours}:{minutes:02d}") == pytest.approx(hours + minutes / 60)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1:30", 1.5),
        ("1:30:36", 1.51),
        ("1+30", 1.5),
        ("1h 30m", 1.5),
        ("1h 30", 1.5),
        ("2 hr, 15", 2.25),
        ("2 hrs", 2.0),
        ("1.5 hours", 1.5),
        ("45 min", 0.75),
        ("-1:30", -1.5),
    ],
)
def test_parse_duration_patterns(text, expected):
    assert parse_duration(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["3.5", "", "abc", "1:75", None])
def test_parse_duration_returns_none_when_no_pattern_matches(text):
    """Plain decimals are left to the numeric fallback."""

    assert parse_duration(text) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("3.5", 3.5),
        (" 2 ", 2.0),
        ('"1.2"', 1.2),
        ("1,5", 1.5),
        ("1,234.5", 1234.5),
        ("1:45", 1.75),
        (4, 4.0),
        (2.25, 2.25),
    ],
)
def test_coerce_number_accepts_common_spellings(raw, expected):
    assert coerce_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "null", "undefined", "NaN", "-", "n/a", True, float("nan"), float("inf")])
def test_coerce_number_rejects_absent_and_non_finite(raw):
    assert coerce_number(raw) is None


def test_parse_number_walks_fallbacks_then_defaults_to_zero():
    assert parse_number("", ["", "2.5"]) == 2.5
    assert parse_number("1.1", ["9"]) == 1.1
    assert parse_number("garbage") == 0.0


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2020-01-01", "2020-01-01"),
        ("2020-1-5", "2020-01-05"),
        ("2021-03-04T10:00:00Z", "2021-03-04"),
        ("1/2/2020", "2020-01-02"),
        ("01-02-2020", "2020-01-02"),
        ("13/02/2020", "2020-02-13"),
        ("1/2/19", "2019-01-02"),
        ("6/1/85", "1985-06-01"),
        ("20200115", "2020-01-15"),
        (43831, "2020-01-01"),
        ("43831", "2020-01-01"),
        ("March 5, 2021", "2021-03-05"),
        (datetime(2021, 3, 5, 10, 30), "2021-03-05"),
    ],
)
def test_parse_date_normalizes_to_iso(raw, expected):
    assert parse_date(raw) == expected


@pytest.mark.parametrize("raw", ["TBD", "", None, "2/30/2020", "not a date", "March 5", True, -4])
def test_parse_date_never_guesses(raw):
    assert parse_date(raw) is None


@pytest.mark.parametrize("raw", [" kjfk ", "KBOS", "", "ksfo\t", "k0b5", "  ", "Ke23 x"])
def test_normalize_airport_code_is_idempotent(raw):
    once = normalize_airport_code(raw)
    assert normalize_airport_code(once) == once
    assert once == once.strip().upper()


def test_normalize_airport_code_stringifies_numbers():
    assert normalize_airport_code(123.0) == "123"
    assert normalize_airport_code(None) == ""


def test_non_negative_clamps_and_rounds():
    assert non_negative(-3) == 0.0
    assert non_negative(1.234) == 1.23
    assert non_negative(None) == 0.0
    assert non_negative(float("inf")) == 0.0
    assert non_negative_count(2.6) == 3
    assert non_negative_count(-1) == 0


@pytest.mark.parametrize(
    "raw, expected",
    [("23:30", 23.5), ("1330", 13.5), ("07:15:00", 7.25), ("6.5", 6.5), (8, 8.0)],
)
def test_parse_clock(raw, expected):
    assert parse_clock(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["25:00", "12:75", "", None, "noon"])
def test_parse_clock_rejects_invalid_times(raw):
    assert parse_clock(raw) is None


def test_clock_difference_rolls_over_midnight():
    assert clock_difference("23:30", "00:15") == pytest.approx(0.75)
    assert clock_difference("08:00", "10:30") == pytest.approx(2.5)
    assert clock_difference(None, "10:00") == 0.0
