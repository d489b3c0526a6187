import pytest

from logbook_ingest.config import ImportSettings
from logbook_ingest.sections import LogbookFormatError, extract_sections, normalize_text


def test_normalize_text_strips_bom_and_line_endings():
    assert normalize_text("\ufeffa,b\r\nc,d\re,f") == "a,b\nc,d\ne,f"


def test_foreflight_sections_only_return_flight_rows(foreflight_export):
    section = extract_sections(foreflight_export)

    assert section.source == "foreflight"
    assert section.header_line == 9
    assert [row["Date"] for row in section.rows] == ["2023-01-05", "2023-01-06", "2023-01-07", "TBD"]
    assert section.row_numbers == [10, 11, 12, 13]
    assert all("TypeCode" not in row for row in section.rows)
    assert section.rows[1]["PilotComments"] == "Night XC, unstable approach"


def test_aircraft_table_becomes_lookup(foreflight_export):
    aircraft = extract_sections(foreflight_export).aircraft

    assert set(aircraft) == {"N123AB", "N456CD"}
    assert aircraft["N123AB"].display_type == "C172"
    assert aircraft["N456CD"].display_type == "Piper PA-28-181"


def test_flights_table_ends_at_blank_line_or_next_table():
    text = "\n".join(
        [
            "Flights Table,,",
            "Date,AircraftID,From",
            "2023-01-05,N1,KPAO",
            ",,",
            "2023-01-06,N2,KSQL",
            "Notes Table,,",
            "Date,AircraftID,From",
        ]
    )

    section = extract_sections(text)

    assert [row["AircraftID"] for row in section.rows] == ["N1"]


def test_generic_header_found_below_preamble(generic_export):
    section = extract_sections(generic_export)

    assert section.source == "generic"
    assert section.header_line == 3
    assert section.headers == ["Flight Date", "Tail", "Departure", "Arrival", "Total Hours", "Remarks"]
    assert len(section.rows) == 3
    assert section.rows[1]["Total Hours"] == "1,5"
    assert section.aircraft == {}


def test_duplicate_headers_are_suffixed_and_short_rows_padded():
    section = extract_sections("Date,Approach,Approach,Remarks\n2023-01-05,ILS\n")

    assert section.headers == ["Date", "Approach", "Approach.1", "Remarks"]
    assert section.rows == [{"Date": "2023-01-05", "Approach": "ILS", "Approach.1": "", "Remarks": ""}]


def test_quoted_cells_may_span_lines():
    section = extract_sections('Date,Tail,Remarks\r\n2023-01-05,N1,"line one\r\nline two"\r\n')

    assert section.rows[0]["Remarks"] == "line one\nline two"


def test_header_scan_limit_bounds_the_search():
    text = "\n".join(["preamble"] * 5 + ["Date,Tail", "2023-01-05,N1"])

    with pytest.raises(LogbookFormatError, match="Could not find flight data section"):
        extract_sections(text, ImportSettings(header_scan_limit=3))

    assert extract_sections(text, ImportSettings(header_scan_limit=10)).header_line == 6


@pytest.mark.parametrize(
    "text",
    ["", "hello,world\nfoo,bar\n", "Aircraft Table\nAircraftID,TypeCode\nN1,C172\n"],
)
def test_unrecognised_files_raise(text):
    with pytest.raises(LogbookFormatError):
        extract_sections(text)
