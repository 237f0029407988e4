from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from facility_booking.domain.models import (
    Building,
    Localized,
    NoRecurrence,
    Room,
    RoomType,
    Schedule,
    ScheduleKind,
    WeeklyRecurrence,
)
from facility_booking.repository.booking_store import BookingStore
from facility_booking.repository.data_repository import DataRepository
from facility_booking.services.booking_service import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingService,
    BookingValidationError,
    RoomBusyError,
)
from facility_booking.services.room_locks import RoomLockRegistry
from facility_booking.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        admin_token=None,
        seed_demo_data=False,
        facility_timezone="UTC",
        booking_lock_timeout_seconds=5.0,
    )


def _seed_rooms(repository: DataRepository) -> None:
    repository.insert_building(
        Building(id="b_1", name=Localized("Main Building"), floors=2, capacity=50)
    )
    for room_id, active in (("r_1", True), ("r_2", True), ("r_closed", False)):
        repository.insert_room(
            Room(
                id=room_id,
                building_id="b_1",
                name=Localized(f"Room {room_id}"),
                floor=1,
                type=RoomType.THERAPY,
                capacity=4,
                active=active,
            )
        )


def _build_service(tmp_path, filename: str = "bookings.db", locks=None):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    _seed_rooms(repository)
    store = BookingStore(settings)
    service = BookingService(
        store=store,
        room_directory=repository,
        settings=settings,
        locks=locks,
    )
    return service, store


def _once(schedule_id: str, start: datetime, end: datetime, room_id: str = "r_1") -> Schedule:
    return Schedule(
        id=schedule_id,
        room_id=room_id,
        title=Localized(f"Booking {schedule_id}"),
        kind=ScheduleKind.THERAPY,
        start=start,
        end=end,
    )


def _weekly(schedule_id: str, days: set[int], start_hour: int, end_hour: int) -> Schedule:
    return Schedule(
        id=schedule_id,
        room_id="r_1",
        title=Localized(f"Booking {schedule_id}"),
        kind=ScheduleKind.ACTIVITY,
        start=datetime(2024, 1, 1, start_hour),
        end=datetime(2024, 1, 1, end_hour),
        recurrence=WeeklyRecurrence(days=frozenset(days)),
    )


def test_booking_scenario_accepts_and_rejects_in_order(tmp_path):
    service, store = _build_service(tmp_path)

    a = _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11))
    service.propose_booking(a, can_manage=True)

    b = _once("s_b", datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 11, 30))
    with pytest.raises(BookingConflictError) as conflict:
        service.propose_booking(b, can_manage=True)
    assert conflict.value.conflicting_id == "s_a"

    service.propose_booking(_weekly("s_c", {1}, 9, 10), can_manage=True)

    d = _once("s_d", datetime(2024, 1, 8, 9, 30), datetime(2024, 1, 8, 10, 15))
    with pytest.raises(BookingConflictError) as conflict:
        service.propose_booking(d, can_manage=True)
    assert conflict.value.conflicting_id == "s_c"

    service.propose_booking(_weekly("s_e", {1, 2}, 14, 15), can_manage=True)

    service.cancel_booking("s_a", can_manage=True)
    service.propose_booking(b, can_manage=True)

    assert sorted(item.id for item in store.list_by_room("r_1")) == ["s_b", "s_c", "s_e"]


def test_rejected_booking_leaves_store_untouched(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    before = store.list_all()

    with pytest.raises(BookingConflictError):
        service.propose_booking(
            _once("s_b", datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 12)),
            can_manage=True,
        )
    assert store.list_all() == before


def test_update_does_not_conflict_with_its_previous_version(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )

    moved = service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 11, 30)),
        can_manage=True,
    )
    assert store.count() == 1
    assert store.get("s_a") == moved


def test_update_can_move_booking_to_another_room(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), room_id="r_2"),
        can_manage=True,
    )
    assert store.list_by_room("r_1") == []
    assert [item.id for item in store.list_by_room("r_2")] == ["s_a"]


def test_adjacent_bookings_are_both_accepted(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(
        _once("s_b", datetime(2024, 1, 1, 11), datetime(2024, 1, 1, 12)),
        can_manage=True,
    )
    assert store.count() == 2


def test_same_slot_in_different_rooms_is_accepted(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(
        _once("s_b", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), room_id="r_2"),
        can_manage=True,
    )
    assert store.count() == 2


def test_missing_id_is_generated(tmp_path):
    service, store = _build_service(tmp_path)
    accepted = service.propose_booking(
        _once("", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    assert accepted.id.startswith("s_")
    assert store.get(accepted.id) is not None


def test_writes_require_manage_capability(tmp_path):
    service, store = _build_service(tmp_path)
    booking = _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11))

    with pytest.raises(BookingPermissionError):
        service.propose_booking(booking)
    assert store.count() == 0

    service.propose_booking(booking, can_manage=True)
    with pytest.raises(BookingPermissionError):
        service.cancel_booking("s_a")
    with pytest.raises(BookingPermissionError):
        service.import_bookings({})
    assert store.count() == 1


def test_invalid_interval_is_a_validation_error(tmp_path):
    service, _ = _build_service(tmp_path)
    with pytest.raises(BookingValidationError, match="strictly before"):
        service.propose_booking(
            _once("s_a", datetime(2024, 1, 1, 11), datetime(2024, 1, 1, 10)),
            can_manage=True,
        )


def test_unknown_or_inactive_room_is_rejected(tmp_path):
    service, store = _build_service(tmp_path)
    with pytest.raises(BookingValidationError, match="does not exist"):
        service.propose_booking(
            _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), room_id="r_nope"),
            can_manage=True,
        )
    with pytest.raises(BookingValidationError, match="inactive"):
        service.propose_booking(
            _once("s_b", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), room_id="r_closed"),
            can_manage=True,
        )
    assert store.count() == 0


def test_missing_room_directory_rejects_bookings(tmp_path):
    settings = _build_test_settings(tmp_path, "no_directory.db")
    DataRepository(settings).initialize_database()
    service = BookingService(store=BookingStore(settings), settings=settings)

    with pytest.raises(BookingValidationError, match="unavailable"):
        service.propose_booking(
            _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
            can_manage=True,
        )


def test_cancel_unknown_booking_raises_not_found(tmp_path):
    service, _ = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    removed = service.cancel_booking("s_a", can_manage=True)
    assert removed.id == "s_a"

    with pytest.raises(BookingNotFoundError):
        service.cancel_booking("s_a", can_manage=True)
    with pytest.raises(BookingNotFoundError):
        service.get_booking("s_a")


def test_busy_room_raises_retryable_error(tmp_path):
    locks = RoomLockRegistry(timeout_seconds=0.05)
    service, store = _build_service(tmp_path, locks=locks)

    with locks.hold("r_1"):
        with pytest.raises(RoomBusyError):
            service.propose_booking(
                _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
                can_manage=True,
            )
    assert store.count() == 0

    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    assert store.count() == 1


def test_concurrent_overlapping_proposals_accept_exactly_one(tmp_path):
    service, store = _build_service(tmp_path)
    workers = 8
    barrier = threading.Barrier(workers)
    accepted: list[str] = []
    conflicts: list[str] = []
    results_lock = threading.Lock()

    def propose(index: int) -> None:
        booking = _once(
            f"s_{index}",
            datetime(2024, 1, 1, 10, index),
            datetime(2024, 1, 1, 11, index),
        )
        barrier.wait()
        try:
            service.propose_booking(booking, can_manage=True)
        except BookingConflictError as exc:
            with results_lock:
                conflicts.append(exc.conflicting_id)
            return
        with results_lock:
            accepted.append(booking.id)

    threads = [threading.Thread(target=propose, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(accepted) == 1
    assert len(conflicts) == workers - 1
    assert set(conflicts) == set(accepted)
    assert [item.id for item in store.list_by_room("r_1")] == accepted


def test_aware_instants_are_stored_in_facility_time(tmp_path):
    service, store = _build_service(tmp_path)
    plus_two = timezone(timedelta(hours=2))
    service.propose_booking(
        _once(
            "s_a",
            datetime(2024, 1, 1, 12, tzinfo=plus_two),
            datetime(2024, 1, 1, 13, tzinfo=plus_two),
        ),
        can_manage=True,
    )
    stored = store.get("s_a")
    assert stored.start == datetime(2024, 1, 1, 10)
    assert stored.end == datetime(2024, 1, 1, 11)
    assert stored.start.tzinfo is None

    with pytest.raises(BookingConflictError):
        service.propose_booking(
            _once("s_b", datetime(2024, 1, 1, 10, 30), datetime(2024, 1, 1, 11, 30)),
            can_manage=True,
        )


def test_check_availability_does_not_write(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(_weekly("s_c", {1}, 9, 10), can_manage=True)

    blocking = service.check_availability(
        _once("s_check", datetime(2024, 1, 8, 9, 30), datetime(2024, 1, 8, 10, 15))
    )
    assert blocking is not None
    assert blocking.id == "s_c"
    assert service.check_availability(
        _once("s_check", datetime(2024, 1, 9, 9, 30), datetime(2024, 1, 9, 10, 15))
    ) is None
    assert store.count() == 1


def test_list_bookings_filters_by_range(tmp_path):
    service, _ = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(
        _once("s_late", datetime(2024, 2, 1, 10), datetime(2024, 2, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(_weekly("s_tue", {2}, 14, 15), can_manage=True)

    assert [item.id for item in service.list_bookings("r_1")] == ["s_a", "s_tue", "s_late"]

    january_first_week = service.list_bookings(
        "r_1", datetime(2024, 1, 1), datetime(2024, 1, 2)
    )
    assert [item.id for item in january_first_week] == ["s_a"]

    first_week = service.list_bookings("r_1", datetime(2024, 1, 1), datetime(2024, 1, 8))
    assert [item.id for item in first_week] == ["s_a", "s_tue"]

    with pytest.raises(BookingValidationError):
        service.list_bookings("r_1", datetime(2024, 1, 2), datetime(2024, 1, 1))


def test_export_then_import_into_empty_facility(tmp_path):
    source, _ = _build_service(tmp_path, "source.db")
    source.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    source.propose_booking(_weekly("s_c", {1}, 14, 15), can_manage=True)
    exported = source.export_bookings()
    assert list(exported) == ["r_1"]

    target, target_store = _build_service(tmp_path, "target.db")
    summary = target.import_bookings(exported, can_manage=True)
    assert sorted(summary.accepted) == ["s_a", "s_c"]
    assert summary.rejected == {}
    assert target_store.get("s_c").recurrence == WeeklyRecurrence(days=frozenset({1}))


def test_import_rejects_conflicting_records_individually(tmp_path):
    service, store = _build_service(tmp_path)
    payload = {
        "r_1": [
            {
                "id": "s_a",
                "title": {"primary": "First"},
                "kind": "therapy",
                "start": "2024-01-01T10:00:00",
                "end": "2024-01-01T11:00:00",
                "recurrence": {"type": "none"},
            },
            {
                "id": "s_b",
                "title": {"primary": "Overlap"},
                "kind": "medical",
                "start": "2024-01-01T10:30:00",
                "end": "2024-01-01T11:30:00",
            },
        ],
        "r_nope": [
            {
                "id": "s_x",
                "title": {"primary": "Nowhere"},
                "kind": "activity",
                "start": "2024-01-01T10:00:00",
                "end": "2024-01-01T11:00:00",
            },
        ],
    }
    summary = service.import_bookings(payload, can_manage=True)
    assert summary.accepted == ["s_a"]
    assert set(summary.rejected) == {"s_b", "s_x"}
    assert "s_a" in summary.rejected["s_b"]
    assert store.count() == 1
    assert store.get("s_a").recurrence == NoRecurrence()


def test_import_malformed_payload_raises_validation_error(tmp_path):
    service, store = _build_service(tmp_path)
    with pytest.raises(BookingValidationError, match="Malformed"):
        service.import_bookings({"r_1": [{"id": "s_a"}]}, can_manage=True)
    assert store.count() == 0


def test_import_keeps_every_rejected_record_without_id(tmp_path):
    service, store = _build_service(tmp_path)
    record = {
        "id": "",
        "title": {"primary": "Nowhere"},
        "kind": "activity",
        "start": "2024-01-01T10:00:00",
        "end": "2024-01-01T11:00:00",
    }
    summary = service.import_bookings({"r_nope": [record, dict(record)]}, can_manage=True)
    assert summary.accepted == []
    assert set(summary.rejected) == {"<new:0>", "<new:1>"}
    assert store.count() == 0


def test_release_room_drops_only_that_rooms_bookings(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    service.propose_booking(
        _once("s_b", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11), room_id="r_2"),
        can_manage=True,
    )
    removed_rooms: list[str] = []

    def remove_room(room_id: str) -> bool:
        removed_rooms.append(room_id)
        return True

    assert service.release_room("r_1", remove_room) == 1
    assert removed_rooms == ["r_1"]
    assert [item.id for item in store.list_all()] == ["s_b"]


def test_release_unknown_room_keeps_bookings(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(
        _once("s_a", datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11)),
        can_manage=True,
    )
    assert service.release_room("r_1", lambda room_id: False) is None
    assert store.count() == 1


def test_booking_on_last_representable_date_is_accepted(tmp_path):
    service, store = _build_service(tmp_path)
    service.propose_booking(_weekly("s_w", {1}, 9, 10), can_manage=True)
    service.propose_booking(
        _once("s_far", datetime(9999, 12, 31, 10), datetime(9999, 12, 31, 11)),
        can_manage=True,
    )
    far = service.list_bookings("r_1", datetime(9999, 12, 31), datetime(9999, 12, 31, 23))
    assert [item.id for item in far] == ["s_far"]
    assert store.count() == 2
