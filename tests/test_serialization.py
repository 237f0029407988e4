from __future__ import annotations

from datetime import datetime

import pytest

from facility_booking.domain.models import (
    Localized,
    NoRecurrence,
    Schedule,
    ScheduleKind,
    WeeklyRecurrence,
)
from facility_booking.domain.serialization import (
    dump_schedules,
    load_schedules,
    recurrence_from_dict,
    recurrence_to_dict,
    schedule_from_record,
    schedule_to_record,
)


def _schedule(schedule_id: str, room_id: str, hour: int, recurrence=None) -> Schedule:
    return Schedule(
        id=schedule_id,
        room_id=room_id,
        title=Localized("Physio", "علاج"),
        kind=ScheduleKind.THERAPY,
        start=datetime(2024, 1, 1, hour),
        end=datetime(2024, 1, 1, hour + 1),
        recurrence=recurrence or NoRecurrence(),
    )


def test_weekly_recurrence_days_are_sorted() -> None:
    payload = recurrence_to_dict(WeeklyRecurrence(days=frozenset({5, 1, 3})))
    assert payload == {"type": "weekly", "days": [1, 3, 5]}


def test_missing_recurrence_means_one_off() -> None:
    assert recurrence_from_dict(None) == NoRecurrence()
    assert recurrence_from_dict({"type": "none"}) == NoRecurrence()


def test_unknown_recurrence_type_raises() -> None:
    with pytest.raises(ValueError, match="unknown recurrence type"):
        recurrence_from_dict({"type": "monthly"})


def test_record_omits_room_id() -> None:
    record = schedule_to_record(_schedule("s_1", "r_1", 10))
    assert "room_id" not in record
    assert record["start"] == "2024-01-01T10:00:00"
    assert record["title"] == {"primary": "Physio", "secondary": "علاج"}
    assert record["recurrence"] == {"type": "none"}


def test_record_missing_field_raises_value_error() -> None:
    with pytest.raises(ValueError, match="start"):
        schedule_from_record(
            "r_1",
            {"id": "s_1", "title": {"primary": "x"}, "kind": "therapy", "end": "2024-01-01T11:00:00"},
        )


def test_unknown_kind_raises_value_error() -> None:
    with pytest.raises(ValueError):
        schedule_from_record(
            "r_1",
            {
                "id": "s_1",
                "title": {"primary": "x"},
                "kind": "party",
                "start": "2024-01-01T10:00:00",
                "end": "2024-01-01T11:00:00",
            },
        )


def test_dump_groups_by_room_and_orders_by_start() -> None:
    schedules = [
        _schedule("s_late", "r_2", 15),
        _schedule("s_b", "r_1", 12),
        _schedule("s_a", "r_1", 9, WeeklyRecurrence(days=frozenset({1}))),
    ]
    exported = dump_schedules(schedules)
    assert list(exported) == ["r_1", "r_2"]
    assert [record["id"] for record in exported["r_1"]] == ["s_a", "s_b"]

    restored = load_schedules(exported)
    assert sorted(restored, key=lambda item: item.id) == sorted(schedules, key=lambda item: item.id)
