"""Booking service: the only writer of room schedules.

Every write follows the same path: validate the candidate, take the room's
lock, read the room's current bookings, run conflict detection and store the
candidate only when it is clear. A rejected proposal leaves the store exactly
as it was.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Mapping, Optional, Protocol
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from facility_booking.domain.conflicts import find_conflict, occurs_within
from facility_booking.domain.constraints import validate_schedule
from facility_booking.domain.models import Room, Schedule
from facility_booking.domain.serialization import dump_schedules, load_schedules
from facility_booking.repository.booking_store import BookingStore
from facility_booking.services.room_locks import LockTimeoutError, RoomLockRegistry
from facility_booking.utils.config import Settings, get_settings
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when a booking is malformed or targets an unusable room."""


class BookingConflictError(BookingError):
    """Raised when a well-formed booking collides with an accepted one."""

    def __init__(self, conflicting_id: str) -> None:
        super().__init__(f"Booking conflicts with existing booking {conflicting_id}")
        self.conflicting_id = conflicting_id


class RoomBusyError(BookingError):
    """Raised when the room lock is not acquired in time. Safe to retry."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist."""


class BookingPermissionError(BookingError):
    """Raised when a write is attempted without the manage capability."""


class RoomDirectory(Protocol):
    def get_room(self, room_id: str) -> Optional[Room]:
        ...


@dataclass(frozen=True)
class ImportSummary:
    accepted: list[str] = field(default_factory=list)
    rejected: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"accepted": list(self.accepted), "rejected": dict(self.rejected)}


def _resolve_zone(name: str) -> tzinfo:
    if name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown facility timezone: {name!r}") from exc


def new_schedule_id() -> str:
    return f"s_{uuid4().hex[:12]}"


class BookingService:
    """Composes room lookup, conflict detection and the booking store."""

    def __init__(
        self,
        store: Optional[BookingStore] = None,
        room_directory: Optional[RoomDirectory] = None,
        settings: Optional[Settings] = None,
        locks: Optional[RoomLockRegistry] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or BookingStore(self._settings)
        self._room_directory = room_directory
        self._locks = locks or RoomLockRegistry(self._settings.booking_lock_timeout_seconds)
        self._zone = _resolve_zone(self._settings.facility_timezone)

    # --- input normalization ---

    def _to_local(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value
        return value.astimezone(self._zone).replace(tzinfo=None)

    def _prepare(self, schedule: Schedule) -> Schedule:
        if not schedule.id:
            schedule = replace(schedule, id=new_schedule_id())
        if schedule.start.tzinfo is not None and schedule.end.tzinfo is not None:
            schedule = replace(
                schedule,
                start=self._to_local(schedule.start),
                end=self._to_local(schedule.end),
            )
        try:
            validate_schedule(schedule)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc
        return schedule

    @staticmethod
    def _require_capability(can_manage: bool) -> None:
        if can_manage is not True:
            raise BookingPermissionError("Managing bookings requires the manage capability")

    def _ensure_room_bookable(self, room_id: str) -> Room:
        if self._room_directory is None:
            raise BookingValidationError("Room directory is unavailable")
        try:
            room = self._room_directory.get_room(room_id)
        except (sqlite3.Error, RuntimeError) as exc:
            logger.exception("Room lookup failed for %s", room_id)
            raise BookingValidationError("Room directory is unavailable") from exc
        if room is None:
            raise BookingValidationError(f"Room {room_id} does not exist")
        if not room.active:
            raise BookingValidationError(f"Room {room_id} is inactive")
        return room

    # --- writes ---

    def propose_booking(self, schedule: Schedule, *, can_manage: bool = False) -> Schedule:
        """Accept ``schedule`` if it is valid and clear, else raise.

        A schedule whose id already exists replaces it; the old version is
        excluded from its own conflict check.
        """
        self._require_capability(can_manage)
        candidate = self._prepare(schedule)

        previous = self._store.get(candidate.id)
        locked_rooms = {candidate.room_id}
        if previous is not None:
            locked_rooms.add(previous.room_id)

        try:
            with self._locks.hold_many(locked_rooms):
                self._ensure_room_bookable(candidate.room_id)
                current = self._store.get(candidate.id)
                if current is not None and current.room_id not in locked_rooms:
                    raise RoomBusyError(
                        f"Booking {candidate.id} was moved concurrently; retry"
                    )

                conflict = find_conflict(candidate, self._store.list_by_room(candidate.room_id))
                if conflict is not None:
                    logger.warning(
                        "Rejected booking %s in room %s: conflicts with %s",
                        candidate.id,
                        candidate.room_id,
                        conflict.id,
                    )
                    raise BookingConflictError(conflict.id)

                if current is None:
                    self._store.insert(candidate)
                else:
                    self._store.replace(candidate)
        except LockTimeoutError as exc:
            raise RoomBusyError(str(exc)) from exc
        except sqlite3.IntegrityError as exc:
            raise BookingValidationError(f"Booking id {candidate.id} already exists") from exc

        logger.info(
            "Accepted booking %s in room %s (%s)",
            candidate.id,
            candidate.room_id,
            "updated" if current is not None else "created",
        )
        return candidate

    def cancel_booking(self, schedule_id: str, *, can_manage: bool = False) -> Schedule:
        self._require_capability(can_manage)
        current = self._store.get(schedule_id)
        if current is None:
            raise BookingNotFoundError(f"Booking {schedule_id} not found")

        try:
            with self._locks.hold(current.room_id):
                if not self._store.remove(schedule_id):
                    raise BookingNotFoundError(f"Booking {schedule_id} not found")
        except LockTimeoutError as exc:
            raise RoomBusyError(str(exc)) from exc

        logger.info("Cancelled booking %s in room %s", schedule_id, current.room_id)
        return current

    def release_room(
        self,
        room_id: str,
        remove_room: Callable[[str], bool],
    ) -> Optional[int]:
        """Remove a room and every booking of it under one hold of the room lock.

        ``remove_room`` deletes the catalog rows and reports whether the room
        existed. Returns the number of bookings dropped, or None when the room
        was unknown. On ``RoomBusyError`` nothing has been removed.
        """
        try:
            with self._locks.hold(room_id):
                if not remove_room(room_id):
                    return None
                removed = self._store.remove_by_room(room_id)
        except LockTimeoutError as exc:
            raise RoomBusyError(str(exc)) from exc
        if removed:
            logger.info("Released %s bookings of room %s", removed, room_id)
        return removed

    # --- reads ---

    def check_availability(self, schedule: Schedule) -> Optional[Schedule]:
        """Return the booking that would block ``schedule``, without writing."""
        candidate = self._prepare(schedule)
        self._ensure_room_bookable(candidate.room_id)
        return find_conflict(candidate, self._store.list_by_room(candidate.room_id))

    def get_booking(self, schedule_id: str) -> Schedule:
        schedule = self._store.get(schedule_id)
        if schedule is None:
            raise BookingNotFoundError(f"Booking {schedule_id} not found")
        return schedule

    def list_bookings(
        self,
        room_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Schedule]:
        """Bookings of a room with any occurrence inside ``[start, end)``."""
        local_start = self._to_local(start) if start is not None else None
        local_end = self._to_local(end) if end is not None else None
        if local_start is not None and local_end is not None and not local_start < local_end:
            raise BookingValidationError("start must be strictly before end")
        return [
            schedule
            for schedule in self._store.list_by_room(room_id)
            if occurs_within(schedule, local_start, local_end)
        ]

    # --- bulk ---

    def export_bookings(self) -> dict[str, list[dict[str, Any]]]:
        return dump_schedules(self._store.list_all())

    def import_bookings(
        self,
        payload: Mapping[str, Any],
        *,
        can_manage: bool = False,
    ) -> ImportSummary:
        """Propose every record of an exported payload, one at a time."""
        self._require_capability(can_manage)
        try:
            schedules = load_schedules(payload)
        except (TypeError, ValueError, AttributeError) as exc:
            raise BookingValidationError(f"Malformed booking payload: {exc}") from exc

        summary = ImportSummary()
        for index, schedule in enumerate(schedules):
            try:
                accepted = self.propose_booking(schedule, can_manage=can_manage)
            except (BookingConflictError, BookingValidationError, RoomBusyError) as exc:
                summary.rejected[schedule.id or f"<new:{index}>"] = str(exc)
                continue
            summary.accepted.append(accepted.id)
        logger.info(
            "Imported bookings: %s accepted, %s rejected",
            len(summary.accepted),
            len(summary.rejected),
        )
        return summary
