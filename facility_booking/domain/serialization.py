"""JSON record layout for persisted and exported bookings.

Exported state is a JSON object keyed by room id. Each value is an array of
booking records::

    {"r_1": [{"id": "s_1", "title": {"primary": "Physio", "secondary": ""},
              "kind": "therapy", "start": "2024-01-01T10:00:00",
              "end": "2024-01-01T11:00:00",
              "recurrence": {"type": "weekly", "days": [1, 3]}}]}
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from facility_booking.domain.models import (
    Localized,
    NoRecurrence,
    Recurrence,
    Schedule,
    ScheduleKind,
    WeeklyRecurrence,
)


def localized_to_dict(value: Optional[Localized]) -> Optional[dict[str, str]]:
    if value is None:
        return None
    return {"primary": value.primary, "secondary": value.secondary}


def localized_from_dict(payload: Optional[Mapping[str, Any]]) -> Optional[Localized]:
    if payload is None:
        return None
    return Localized(
        primary=str(payload.get("primary", "")),
        secondary=str(payload.get("secondary", "")),
    )


def recurrence_to_dict(recurrence: Recurrence) -> dict[str, Any]:
    if isinstance(recurrence, WeeklyRecurrence):
        return {"type": "weekly", "days": sorted(recurrence.days)}
    return {"type": "none"}


def recurrence_from_dict(payload: Optional[Mapping[str, Any]]) -> Recurrence:
    if not payload:
        return NoRecurrence()
    kind = payload.get("type", "none")
    if kind == "none":
        return NoRecurrence()
    if kind == "weekly":
        days = payload.get("days") or []
        return WeeklyRecurrence(days=frozenset(int(day) for day in days))
    raise ValueError(f"unknown recurrence type: {kind!r}")


def schedule_to_record(schedule: Schedule) -> dict[str, Any]:
    """Serialize one booking without its room id (the export key carries it)."""
    return {
        "id": schedule.id,
        "title": localized_to_dict(schedule.title),
        "kind": schedule.kind.value,
        "start": schedule.start.isoformat(),
        "end": schedule.end.isoformat(),
        "recurrence": recurrence_to_dict(schedule.recurrence),
    }


def schedule_from_record(room_id: str, record: Mapping[str, Any]) -> Schedule:
    try:
        return Schedule(
            id=str(record["id"]),
            room_id=room_id,
            title=localized_from_dict(record["title"]) or Localized(""),
            kind=ScheduleKind(record["kind"]),
            start=datetime.fromisoformat(str(record["start"])),
            end=datetime.fromisoformat(str(record["end"])),
            recurrence=recurrence_from_dict(record.get("recurrence")),
        )
    except KeyError as exc:
        raise ValueError(f"booking record is missing field {exc.args[0]!r}") from exc


def dump_schedules(schedules: Iterable[Schedule]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for schedule in sorted(schedules, key=lambda item: (item.room_id, item.start, item.id)):
        grouped.setdefault(schedule.room_id, []).append(schedule_to_record(schedule))
    return grouped


def load_schedules(payload: Mapping[str, Iterable[Mapping[str, Any]]]) -> list[Schedule]:
    schedules: list[Schedule] = []
    for room_id, records in payload.items():
        for record in records:
            schedules.append(schedule_from_record(str(room_id), record))
    return schedules
