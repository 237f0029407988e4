#!/usr/bin/env python3
"""Validate local facility booking environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from facility_booking.domain.models import Localized, Schedule, ScheduleKind
from facility_booking.repository.booking_store import BookingStore
from facility_booking.repository.data_repository import DataRepository
from facility_booking.services.booking_service import BookingConflictError, BookingService
from facility_booking.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def _check_booking(schedule_id: str, start_hour: int, end_hour: int) -> Schedule:
    return Schedule(
        id=schedule_id,
        room_id="r_therapy_101",
        title=Localized("Validation check"),
        kind=ScheduleKind.ACTIVITY,
        start=datetime(2024, 1, 1, start_hour),
        end=datetime(2024, 1, 1, end_hour),
    )


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="facility-booking-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import PackageNotFoundError, version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "facility_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo facility seeding
        try:
            if not repository.seed_demo_facility():
                raise RuntimeError("catalog was not empty")
            room_count = len(repository.list_rooms())
            if room_count != 2:
                raise RuntimeError(f"expected 2 rooms, got {room_count}")
            ok, line = _print_result("Demo facility: 2 rooms", True)
        except Exception as exc:
            ok, line = _print_result("Demo facility", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Booking accepted, overlapping booking rejected
        service = BookingService(
            store=BookingStore(validation_settings),
            room_directory=repository,
            settings=validation_settings,
        )
        try:
            service.propose_booking(_check_booking("s_check_a", 10, 11), can_manage=True)
            try:
                service.propose_booking(_check_booking("s_check_b", 10, 12), can_manage=True)
            except BookingConflictError as exc:
                if exc.conflicting_id != "s_check_a":
                    raise RuntimeError(f"wrong conflicting id {exc.conflicting_id}") from exc
            else:
                raise RuntimeError("overlapping booking was accepted")
            ok, line = _print_result("Conflict detection", True)
        except Exception as exc:
            ok, line = _print_result("Conflict detection", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Facility Booking Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
