"""Equipment registry."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional
from uuid import uuid4

from facility_booking.domain.constraints import validate_equipment
from facility_booking.domain.models import Equipment, EquipmentStatus
from facility_booking.repository.data_repository import DataRepository
from facility_booking.utils.config import Settings, get_settings
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)


class EquipmentError(Exception):
    """Base exception for equipment registry failures."""


class EquipmentValidationError(EquipmentError):
    """Raised when an equipment item is malformed or its room is unknown."""


class EquipmentNotFoundError(EquipmentError):
    """Raised when an equipment id does not exist."""


class EquipmentRegistryService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def upsert_equipment(self, item: Equipment) -> Equipment:
        if not item.id:
            item = replace(item, id=f"e_{uuid4().hex[:12]}")
        try:
            validate_equipment(item)
        except ValueError as exc:
            raise EquipmentValidationError(str(exc)) from exc
        if self._repository.get_room(item.room_id) is None:
            raise EquipmentValidationError(f"Room {item.room_id} does not exist")
        self._repository.upsert_equipment(item)
        logger.info("Saved equipment %s in room %s (%s)", item.id, item.room_id, item.status.value)
        return item

    def remove_equipment(self, equipment_id: str) -> None:
        if not self._repository.delete_equipment(equipment_id):
            raise EquipmentNotFoundError(f"Equipment {equipment_id} not found")
        logger.info("Removed equipment %s", equipment_id)

    def get_equipment(self, equipment_id: str) -> Equipment:
        item = self._repository.get_equipment(equipment_id)
        if item is None:
            raise EquipmentNotFoundError(f"Equipment {equipment_id} not found")
        return item

    def list_equipment(
        self,
        room_id: Optional[str] = None,
        status: Optional[EquipmentStatus] = None,
    ) -> list[Equipment]:
        return self._repository.list_equipment(room_id=room_id, status=status)
