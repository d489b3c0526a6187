"""
SQLite sink for imported flights.

Flights are keyed per owner by (date, registration, departure, arrival);
re-importing the same file is a no-op that reports duplicates. Inserts are
attempted as one bulk ``executemany``; if that fails the transaction is
rolled back and each row is retried alone, collecting per-row failures.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from .schema import (
    COUNT_FIELDS,
    DURATION_FIELDS,
    METER_FIELDS,
    STRING_FIELDS,
    CanonicalFlightRecord,
)

LOGGER = logging.getLogger(__name__)

TABLE_NAME = "flights"

COLUMN_TYPES: Dict[str, str] = {
    "user_id": "TEXT NOT NULL",
    "date": "TEXT NOT NULL",
    "aircraft_registration": "TEXT NOT NULL",
    "departure_airport": "TEXT NOT NULL",
    "arrival_airport": "TEXT NOT NULL",
    "total_time": "REAL NOT NULL CHECK (total_time >= 0)",
    **{name: "REAL NOT NULL DEFAULT 0" for name in DURATION_FIELDS},
    **{name: "REAL NOT NULL DEFAULT 0" for name in METER_FIELDS},
    **{name: "INTEGER NOT NULL DEFAULT 0" for name in COUNT_FIELDS},
    **{name: "TEXT" for name in STRING_FIELDS},
}

UNIQUE_KEY: Tuple[str, ...] = ("user_id", "date", "aircraft_registration", "departure_airport", "arrival_airport")


@dataclass
class InsertResult:
    inserted: int = 0
    duplicates: int = 0
    failures: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


class FlightStore:
    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path)
        self._create_schema()

    def _create_schema(self) -> None:
        columns = ",\n    ".join(f"{name} {kind}" for name, kind in COLUMN_TYPES.items())
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                {columns},
                UNIQUE({', '.join(UNIQUE_KEY)})
            )
            """
        )
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "FlightStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def count(self, user_id: str | None = None) -> int:
        if user_id is None:
            row = self.conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()
        else:
            row = self.conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE user_id = ?", (user_id,)).fetchone()
        return int(row[0])

    def fetch_flights(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.conn.execute(
            f"SELECT * FROM {TABLE_NAME} WHERE user_id = ? ORDER BY date, id", (user_id,)
        )
        names = [description[0] for description in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _insert_sql(self) -> str:
        names = list(COLUMN_TYPES)
        placeholders = ", ".join("?" for _ in names)
        return (
            f"INSERT INTO {TABLE_NAME} ({', '.join(names)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(UNIQUE_KEY)}) DO NOTHING"
        )

    @staticmethod
    def _row_values(record: CanonicalFlightRecord, user_id: str) -> Tuple[Any, ...]:
        payload = {"user_id": user_id, **record.to_dict()}
        return tuple(payload[name] for name in COLUMN_TYPES)

    def insert_flights(self, records: Sequence[CanonicalFlightRecord], user_id: str) -> InsertResult:
        """
        Store ``records`` under ``user_id``.

        Duplicates of already stored flights are skipped and counted. Returns
        an ``InsertResult`` with ``failures`` as ``(index, error)`` pairs.
        """

        if not user_id:
            raise ValueError("user_id is required to store flights")

        result = InsertResult()
        if not records:
            return result

        sql = self._insert_sql()
        rows = [self._row_values(record, user_id) for record in records]
        before = self.conn.total_changes
        try:
            with self.conn:
                self.conn.executemany(sql, rows)
            result.inserted = self.conn.total_changes - before
            result.duplicates = len(rows) - result.inserted
        except sqlite3.Error as exc:
            LOGGER.warning("Bulk insert of %d flights failed (%s); retrying row by row", len(rows), exc)
            for index, values in enumerate(rows):
                before = self.conn.total_changes
                try:
                    with self.conn:
                        self.conn.execute(sql, values)
                except sqlite3.Error as row_exc:
                    result.failures.append((index, str(row_exc)))
                    continue
                if self.conn.total_changes > before:
                    result.inserted += 1
                else:
                    result.duplicates += 1

        LOGGER.info(
            "Stored %d flights for %s (%d duplicates, %d failed)",
            result.inserted,
            user_id,
            result.duplicates,
            result.failed,
        )
        return result
