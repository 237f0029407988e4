"""Repository layer for the facility catalog and equipment registry."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from facility_booking.domain.models import (
    Building,
    Equipment,
    EquipmentStatus,
    Localized,
    Room,
    RoomType,
)
from facility_booking.repository.sqlite import (
    connect,
    dump_json,
    dump_localized,
    load_json,
    load_localized,
)
from facility_booking.utils.config import Settings, get_settings
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)


def _row_to_building(row: sqlite3.Row) -> Building:
    return Building(
        id=str(row["id"]),
        name=load_localized(row["name"]) or Localized(""),
        floors=int(row["floors"]),
        capacity=int(row["capacity"]),
        address=load_localized(row["address"]),
        description=load_localized(row["description"]),
        photo_ref=str(row["photo_ref"] or ""),
    )


def _row_to_room(row: sqlite3.Row) -> Room:
    features = load_json(row["accessibility"]) or []
    return Room(
        id=str(row["id"]),
        building_id=str(row["building_id"]),
        name=load_localized(row["name"]) or Localized(""),
        floor=int(row["floor"]),
        type=RoomType(row["room_type"]),
        capacity=int(row["capacity"]),
        accessibility_features=tuple(
            Localized(str(item.get("primary", "")), str(item.get("secondary", "")))
            for item in features
        ),
        assigned=load_localized(row["assigned"]),
        active=bool(row["active"]),
    )


def _row_to_equipment(row: sqlite3.Row) -> Equipment:
    return Equipment(
        id=str(row["id"]),
        room_id=str(row["room_id"]),
        name=load_localized(row["name"]) or Localized(""),
        status=EquipmentStatus(row["status"]),
    )


class DataRepository:
    """Encapsulates SQLite access for buildings, rooms and equipment.

    Room and equipment references are weak: integrity is enforced by the
    services, not by foreign keys, so cascades stay explicit.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        return connect(self._db_path)

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Buildings (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        address TEXT,
                        floors INTEGER NOT NULL CHECK (floors >= 1),
                        capacity INTEGER NOT NULL CHECK (capacity >= 0),
                        description TEXT,
                        photo_ref TEXT NOT NULL DEFAULT '',
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id TEXT PRIMARY KEY,
                        building_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        floor INTEGER NOT NULL,
                        room_type TEXT NOT NULL,
                        capacity INTEGER NOT NULL CHECK (capacity >= 0),
                        accessibility TEXT NOT NULL DEFAULT '[]',
                        assigned TEXT,
                        active INTEGER NOT NULL CHECK (active IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Schedules (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        kind TEXT NOT NULL,
                        start_at TEXT NOT NULL,
                        end_at TEXT NOT NULL,
                        recurrence TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Equipment (
                        id TEXT PRIMARY KEY,
                        room_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        status TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_rooms_building ON Rooms(building_id);"
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_schedules_room_start
                    ON Schedules(room_id, start_at);
                    """
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_equipment_room ON Equipment(room_id);"
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_facility(self) -> bool:
        """Seed the demo building, rooms and equipment when the catalog is empty.

        Returns True when rows were inserted.
        """
        if self.count_buildings() > 0:
            logger.info("Facility catalog already present; skipping seed")
            return False

        building = Building(
            id="b_main",
            name=Localized("Main Building", "المبنى الرئيسي"),
            floors=3,
            capacity=200,
            address=Localized("Street 1", "شارع ١"),
            description=Localized("Primary facility", "المرفق الأساسي"),
        )
        rooms = [
            Room(
                id="r_therapy_101",
                building_id=building.id,
                name=Localized("Therapy Room 101", "غرفة علاج ١٠١"),
                floor=1,
                type=RoomType.THERAPY,
                capacity=4,
                accessibility_features=(Localized("Wheelchair", "كرسي متحرك"),),
            ),
            Room(
                id="r_medical_201",
                building_id=building.id,
                name=Localized("Medical Office 201", "مكتب طبي ٢٠١"),
                floor=2,
                type=RoomType.MEDICAL,
                capacity=2,
            ),
        ]
        equipment = Equipment(
            id="e_treadmill",
            room_id=rooms[0].id,
            name=Localized("Treadmill", "جهاز مشي"),
        )

        try:
            self.insert_building(building)
            for room in rooms:
                self.insert_room(room)
            self.upsert_equipment(equipment)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo facility seeding failed: {exc}") from exc
        logger.info("Demo facility seeded with %s rooms", len(rooms))
        return True

    # --- Buildings ---

    def insert_building(self, building: Building) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Buildings (
                    id, name, address, floors, capacity, description, photo_ref
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    building.id,
                    dump_localized(building.name),
                    dump_localized(building.address),
                    building.floors,
                    building.capacity,
                    dump_localized(building.description),
                    building.photo_ref,
                ),
            )
            conn.commit()

    def update_building(self, building: Building) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Buildings
                SET name = ?, address = ?, floors = ?, capacity = ?,
                    description = ?, photo_ref = ?
                WHERE id = ?;
                """,
                (
                    dump_localized(building.name),
                    dump_localized(building.address),
                    building.floors,
                    building.capacity,
                    dump_localized(building.description),
                    building.photo_ref,
                    building.id,
                ),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_building(self, building_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Buildings WHERE id = ?;", (building_id,))
            conn.commit()
            return cursor.rowcount > 0

    def get_building(self, building_id: str) -> Optional[Building]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM Buildings WHERE id = ?;",
                (building_id,),
            ).fetchone()
            if row is None:
                return None
            return _row_to_building(row)

    def list_buildings(self) -> list[Building]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM Buildings ORDER BY created_at ASC, id ASC;")
            return [_row_to_building(row) for row in rows.fetchall()]

    def count_buildings(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM Buildings;").fetchone()
            return int(row["count"])

    # --- Rooms ---

    def _room_params(self, room: Room) -> tuple:
        return (
            room.building_id,
            dump_localized(room.name),
            room.floor,
            room.type.value,
            room.capacity,
            dump_json(
                [
                    {"primary": item.primary, "secondary": item.secondary}
                    for item in room.accessibility_features
                ]
            ),
            dump_localized(room.assigned),
            1 if room.active else 0,
        )

    def insert_room(self, room: Room) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Rooms (
                    building_id, name, floor, room_type, capacity,
                    accessibility, assigned, active, id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (*self._room_params(room), room.id),
            )
            conn.commit()

    def update_room(self, room: Room) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE Rooms
                SET building_id = ?, name = ?, floor = ?, room_type = ?,
                    capacity = ?, accessibility = ?, assigned = ?, active = ?
                WHERE id = ?;
                """,
                (*self._room_params(room), room.id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_room(self, room_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Rooms WHERE id = ?;", (room_id,))
            conn.commit()
            return cursor.rowcount > 0

    def get_room(self, room_id: str) -> Optional[Room]:
        """Room lookup used for referential integrity checks."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM Rooms WHERE id = ?;", (room_id,)).fetchone()
            if row is None:
                return None
            return _row_to_room(row)

    def list_rooms(self, building_id: Optional[str] = None) -> list[Room]:
        with self._connect() as conn:
            if building_id is None:
                rows = conn.execute("SELECT * FROM Rooms ORDER BY created_at ASC, id ASC;")
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM Rooms
                    WHERE building_id = ?
                    ORDER BY created_at ASC, id ASC;
                    """,
                    (building_id,),
                )
            return [_row_to_room(row) for row in rows.fetchall()]

    # --- Equipment ---

    def upsert_equipment(self, item: Equipment) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO Equipment (id, room_id, name, status)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    room_id = excluded.room_id,
                    name = excluded.name,
                    status = excluded.status;
                """,
                (item.id, item.room_id, dump_localized(item.name), item.status.value),
            )
            conn.commit()

    def delete_equipment(self, equipment_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Equipment WHERE id = ?;", (equipment_id,))
            conn.commit()
            return cursor.rowcount > 0

    def delete_equipment_for_room(self, room_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM Equipment WHERE room_id = ?;", (room_id,))
            conn.commit()
            return cursor.rowcount

    def get_equipment(self, equipment_id: str) -> Optional[Equipment]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM Equipment WHERE id = ?;",
                (equipment_id,),
            ).fetchone()
            if row is None:
                return None
            return _row_to_equipment(row)

    def list_equipment(
        self,
        room_id: Optional[str] = None,
        status: Optional[EquipmentStatus] = None,
    ) -> list[Equipment]:
        clauses: list[str] = []
        params: list[str] = []
        if room_id is not None:
            clauses.append("room_id = ?")
            params.append(room_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM Equipment {where} ORDER BY created_at ASC, id ASC;",
                tuple(params),
            )
            return [_row_to_equipment(row) for row in rows.fetchall()]
