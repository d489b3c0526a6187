"""
Import a pilot logbook CSV export (ForeFlight or a generic logbook) and write
normalized outputs.

Example:
    python logbook_import.py logbook.csv --output-csv flights.csv \
        --db-path flights.db --user-id pilot-1
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from logbook_ingest import (
    ConfigError,
    FlightStore,
    LogbookFormatError,
    filter_out_zero_rows,
    load_settings,
    parse_logbook_file,
    write_csv,
    write_excel,
)


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Normalize a pilot logbook CSV export into canonical flight records.",
    )
    parser.add_argument("input", type=Path, help="Logbook CSV export to import.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (defaults to $LOGBOOK_CONFIG, then built-in defaults).",
    )
    parser.add_argument("--output-csv", type=Path, default=None, help="Write normalized flights to this CSV.")
    parser.add_argument("--output-excel", type=Path, default=None, help="Write normalized flights to this .xlsx.")
    parser.add_argument("--db-path", type=Path, default=None, help="SQLite database to store flights in.")
    parser.add_argument("--user-id", default=None, help="Owner stamped on stored flights (required with --db-path).")
    parser.add_argument(
        "--drop-zero",
        action="store_true",
        help="Leave flights with zero total time out of the outputs.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Enable debug logging.")
    args = parser.parse_args(argv)
    if args.db_path is not None and not args.user_id:
        parser.error("--user-id is required when --db-path is given")
    return args


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.verbose)

    if not args.input.exists():
        logging.error(f"Input file not found: {args.input}")
        sys.exit(1)

    try:
        settings = load_settings(args.config)
        result = parse_logbook_file(args.input, settings)
    except (ConfigError, LogbookFormatError) as e:
        logging.error(str(e))
        sys.exit(1)

    report = result.report
    for line in report.summary_lines():
        logging.info(line)
    for warning in report.warnings:
        logging.warning(warning)
    for header, field_name in result.suggestions.items():
        logging.info(f"Unrecognised column '{header}' looks like '{field_name}'; add it to `aliases` in your config")

    records = list(result.records)
    if args.drop_zero:
        records = filter_out_zero_rows(records)
        logging.info(f"Dropped {len(result.records) - len(records)} zero-time flights")

    if args.output_csv:
        write_csv(records, args.output_csv)
    if args.output_excel:
        write_excel(records, args.output_excel)
    if args.db_path:
        with FlightStore(args.db_path) as store:
            outcome = store.insert_flights(records, args.user_id)
        for index, error in outcome.failures:
            logging.error(f"Flight {index + 1} was not stored: {error}")


if __name__ == "__main__":
    main()
