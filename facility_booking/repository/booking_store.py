"""Per-room booking storage.

The store never checks for conflicts and reports missing rows through return
values. Conflict rules live in ``facility_booking.domain.conflicts`` and are
enforced by the booking service, the only writer of this store.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from facility_booking.domain.models import Localized, Schedule, ScheduleKind
from facility_booking.domain.serialization import recurrence_from_dict, recurrence_to_dict
from facility_booking.repository.sqlite import (
    connect,
    dump_json,
    dump_localized,
    load_json,
    load_localized,
)
from facility_booking.utils.config import Settings, get_settings


_COLUMNS = "id, room_id, title, kind, start_at, end_at, recurrence"


def _row_to_schedule(row: sqlite3.Row) -> Schedule:
    return Schedule(
        id=str(row["id"]),
        room_id=str(row["room_id"]),
        title=load_localized(row["title"]) or Localized(""),
        kind=ScheduleKind(row["kind"]),
        start=datetime.fromisoformat(str(row["start_at"])),
        end=datetime.fromisoformat(str(row["end_at"])),
        recurrence=recurrence_from_dict(load_json(row["recurrence"])),
    )


def _schedule_params(schedule: Schedule) -> tuple:
    return (
        schedule.room_id,
        dump_localized(schedule.title),
        schedule.kind.value,
        schedule.start.isoformat(),
        schedule.end.isoformat(),
        dump_json(recurrence_to_dict(schedule.recurrence)),
        schedule.id,
    )


class BookingStore:
    """SQLite-backed collection of schedules indexed by room."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        return connect(self._db_path)

    def list_by_room(self, room_id: str) -> list[Schedule]:
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM Schedules
                WHERE room_id = ?
                ORDER BY start_at ASC, id ASC;
                """,
                (room_id,),
            )
            return [_row_to_schedule(row) for row in rows.fetchall()]

    def list_all(self) -> list[Schedule]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM Schedules ORDER BY room_id ASC, start_at ASC, id ASC;"
            )
            return [_row_to_schedule(row) for row in rows.fetchall()]

    def get(self, schedule_id: str) -> Optional[Schedule]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM Schedules WHERE id = ?;",
                (schedule_id,),
            ).fetchone()
            if row is None:
                return None
            return _row_to_schedule(row)

    def insert(self, schedule: Schedule) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Schedules (
                    room_id, title, kind, start_at, end_at, recurrence, id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                _schedule_params(schedule),
            )
            conn.commit()

    def replace(self, schedule: Schedule) -> bool:
        """Overwrite the stored schedule with the same id; False if absent."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Schedules
                SET room_id = ?, title = ?, kind = ?, start_at = ?, end_at = ?,
                    recurrence = ?
                WHERE id = ?;
                """,
                _schedule_params(schedule),
            )
            conn.commit()
            return cursor.rowcount > 0

    def remove(self, schedule_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Schedules WHERE id = ?;", (schedule_id,))
            conn.commit()
            return cursor.rowcount > 0

    def remove_by_room(self, room_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Schedules WHERE room_id = ?;", (room_id,))
            conn.commit()
            return cursor.rowcount

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM Schedules;").fetchone()
            return int(row["count"])
