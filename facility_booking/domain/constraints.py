"""Domain-level validation rules for catalog entities and bookings."""

from __future__ import annotations

from facility_booking.domain.models import (
    Building,
    Equipment,
    EquipmentStatus,
    Localized,
    NoRecurrence,
    Room,
    RoomType,
    Schedule,
    ScheduleKind,
    WeeklyRecurrence,
)


WEEKDAYS = frozenset(range(7))


def _require_identity(value: str, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")


def _require_label(value: Localized, label: str) -> None:
    if not value.primary.strip():
        raise ValueError(f"{label} must have a non-empty primary text")


def validate_building(building: Building) -> None:
    _require_identity(building.id, "building id")
    _require_label(building.name, "building name")
    if building.floors < 1:
        raise ValueError("floors must be >= 1")
    if building.capacity < 0:
        raise ValueError("capacity must be >= 0")


def validate_room(room: Room) -> None:
    _require_identity(room.id, "room id")
    _require_identity(room.building_id, "building_id")
    _require_label(room.name, "room name")
    if not isinstance(room.type, RoomType):
        raise ValueError(f"unknown room type: {room.type!r}")
    if room.capacity < 0:
        raise ValueError("capacity must be >= 0")


def validate_equipment(item: Equipment) -> None:
    _require_identity(item.id, "equipment id")
    _require_identity(item.room_id, "room_id")
    _require_label(item.name, "equipment name")
    if not isinstance(item.status, EquipmentStatus):
        raise ValueError(f"unknown equipment status: {item.status!r}")


def validate_schedule(schedule: Schedule) -> None:
    """Reject malformed bookings before they reach conflict detection.

    Weekly windows must start and end on the same calendar date; a window
    that would wrap past midnight has no defined weekday semantics.
    """
    _require_identity(schedule.id, "schedule id")
    _require_identity(schedule.room_id, "room_id")
    _require_label(schedule.title, "schedule title")
    if not isinstance(schedule.kind, ScheduleKind):
        raise ValueError(f"unknown schedule kind: {schedule.kind!r}")
    if (schedule.start.tzinfo is None) != (schedule.end.tzinfo is None):
        raise ValueError("start and end must both be naive or both be timezone-aware")
    if not schedule.start < schedule.end:
        raise ValueError("start must be strictly before end")

    recurrence = schedule.recurrence
    if isinstance(recurrence, NoRecurrence):
        return
    if isinstance(recurrence, WeeklyRecurrence):
        if not recurrence.days:
            raise ValueError("weekly recurrence requires at least one weekday")
        if not recurrence.days <= WEEKDAYS:
            raise ValueError("weekly recurrence days must be within 0..6")
        if schedule.start.date() != schedule.end.date():
            raise ValueError("weekly recurrence window must not cross midnight")
        return
    raise ValueError(f"unsupported recurrence: {recurrence!r}")
