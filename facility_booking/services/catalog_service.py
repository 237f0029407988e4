"""Facility catalog: buildings and rooms."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from typing import Optional
from uuid import uuid4

from facility_booking.domain.constraints import validate_building, validate_room
from facility_booking.domain.models import Building, Room
from facility_booking.repository.data_repository import DataRepository
from facility_booking.services.booking_service import BookingService
from facility_booking.utils.config import Settings, get_settings
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)


class CatalogError(Exception):
    """Base exception for catalog failures."""


class CatalogValidationError(CatalogError):
    """Raised when a building or room is malformed."""


class BuildingNotFoundError(CatalogError):
    """Raised when a building id does not exist."""


class RoomNotFoundError(CatalogError):
    """Raised when a room id does not exist."""


class FacilityCatalogService:
    """Validates and persists buildings and rooms.

    Deletes cascade: removing a room drops its equipment and, through the
    booking service, its bookings; removing a building removes its rooms.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        booking_service: Optional[BookingService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._booking_service = booking_service or BookingService(
            room_directory=self._repository,
            settings=self._settings,
        )

    # --- buildings ---

    def create_building(self, building: Building) -> Building:
        if not building.id:
            building = replace(building, id=f"b_{uuid4().hex[:12]}")
        try:
            validate_building(building)
        except ValueError as exc:
            raise CatalogValidationError(str(exc)) from exc
        try:
            self._repository.insert_building(building)
        except sqlite3.IntegrityError as exc:
            raise CatalogValidationError(f"Building {building.id} already exists") from exc
        logger.info("Created building %s", building.id)
        return building

    def update_building(self, building: Building) -> Building:
        try:
            validate_building(building)
        except ValueError as exc:
            raise CatalogValidationError(str(exc)) from exc
        if not self._repository.update_building(building):
            raise BuildingNotFoundError(f"Building {building.id} not found")
        logger.info("Updated building %s", building.id)
        return building

    def delete_building(self, building_id: str) -> None:
        if self._repository.get_building(building_id) is None:
            raise BuildingNotFoundError(f"Building {building_id} not found")
        for room in self._repository.list_rooms(building_id=building_id):
            self.delete_room(room.id)
        self._repository.delete_building(building_id)
        logger.info("Deleted building %s", building_id)

    def get_building(self, building_id: str) -> Building:
        building = self._repository.get_building(building_id)
        if building is None:
            raise BuildingNotFoundError(f"Building {building_id} not found")
        return building

    def list_buildings(self) -> list[Building]:
        return self._repository.list_buildings()

    # --- rooms ---

    def _validate_room(self, room: Room) -> None:
        try:
            validate_room(room)
        except ValueError as exc:
            raise CatalogValidationError(str(exc)) from exc
        if self._repository.get_building(room.building_id) is None:
            raise CatalogValidationError(f"Building {room.building_id} does not exist")

    def create_room(self, room: Room) -> Room:
        if not room.id:
            room = replace(room, id=f"r_{uuid4().hex[:12]}")
        self._validate_room(room)
        try:
            self._repository.insert_room(room)
        except sqlite3.IntegrityError as exc:
            raise CatalogValidationError(f"Room {room.id} already exists") from exc
        logger.info("Created room %s in building %s", room.id, room.building_id)
        return room

    def update_room(self, room: Room) -> Room:
        self._validate_room(room)
        if not self._repository.update_room(room):
            raise RoomNotFoundError(f"Room {room.id} not found")
        logger.info("Updated room %s (active=%s)", room.id, room.active)
        return room

    def _delete_room_rows(self, room_id: str) -> bool:
        if not self._repository.delete_room(room_id):
            return False
        removed_equipment = self._repository.delete_equipment_for_room(room_id)
        logger.info("Deleted room %s with %s equipment items", room_id, removed_equipment)
        return True

    def delete_room(self, room_id: str) -> None:
        # Runs under the room lock; RoomBusyError leaves every row in place.
        released = self._booking_service.release_room(room_id, self._delete_room_rows)
        if released is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        logger.info("Released room %s with %s bookings", room_id, released)

    def get_room(self, room_id: str) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        return room

    def list_rooms(self, building_id: Optional[str] = None) -> list[Room]:
        return self._repository.list_rooms(building_id=building_id)
