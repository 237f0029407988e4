"""Controller layer for buildings, rooms and equipment."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from facility_booking.controllers.dependencies import (
    get_catalog_service,
    get_equipment_service,
    require_admin,
)
from facility_booking.controllers.payloads import (
    LocalizedPayload,
    optional_localized,
    optional_payload,
)
from facility_booking.domain.models import (
    Building,
    Equipment,
    EquipmentStatus,
    Room,
    RoomType,
)
from facility_booking.services.booking_service import RoomBusyError
from facility_booking.services.catalog_service import (
    BuildingNotFoundError,
    CatalogValidationError,
    FacilityCatalogService,
    RoomNotFoundError,
)
from facility_booking.services.equipment_service import (
    EquipmentNotFoundError,
    EquipmentRegistryService,
    EquipmentValidationError,
)


router = APIRouter(tags=["facility"])


class BuildingPayload(BaseModel):
    id: Optional[str] = None
    name: LocalizedPayload
    address: Optional[LocalizedPayload] = None
    floors: int = 1
    capacity: int = 0
    description: Optional[LocalizedPayload] = None
    photo_ref: str = ""

    def to_domain(self, building_id: Optional[str] = None) -> Building:
        return Building(
            id=building_id or self.id or "",
            name=self.name.to_domain(),
            floors=self.floors,
            capacity=self.capacity,
            address=optional_localized(self.address),
            description=optional_localized(self.description),
            photo_ref=self.photo_ref,
        )


class BuildingResponse(BuildingPayload):
    id: str

    @classmethod
    def from_domain(cls, building: Building) -> "BuildingResponse":
        return cls(
            id=building.id,
            name=LocalizedPayload.from_domain(building.name),
            address=optional_payload(building.address),
            floors=building.floors,
            capacity=building.capacity,
            description=optional_payload(building.description),
            photo_ref=building.photo_ref,
        )


class RoomPayload(BaseModel):
    id: Optional[str] = None
    building_id: str = Field(min_length=1)
    name: LocalizedPayload
    floor: int = 0
    type: RoomType
    capacity: int = 0
    accessibility_features: list[LocalizedPayload] = Field(default_factory=list)
    assigned: Optional[LocalizedPayload] = None
    active: bool = True

    def to_domain(self, room_id: Optional[str] = None) -> Room:
        return Room(
            id=room_id or self.id or "",
            building_id=self.building_id,
            name=self.name.to_domain(),
            floor=self.floor,
            type=self.type,
            capacity=self.capacity,
            accessibility_features=tuple(
                item.to_domain() for item in self.accessibility_features
            ),
            assigned=optional_localized(self.assigned),
            active=self.active,
        )


class RoomResponse(RoomPayload):
    id: str

    @classmethod
    def from_domain(cls, room: Room) -> "RoomResponse":
        return cls(
            id=room.id,
            building_id=room.building_id,
            name=LocalizedPayload.from_domain(room.name),
            floor=room.floor,
            type=room.type,
            capacity=room.capacity,
            accessibility_features=[
                LocalizedPayload.from_domain(item) for item in room.accessibility_features
            ],
            assigned=optional_payload(room.assigned),
            active=room.active,
        )


class EquipmentPayload(BaseModel):
    id: Optional[str] = None
    room_id: str = Field(min_length=1)
    name: LocalizedPayload
    status: EquipmentStatus = EquipmentStatus.AVAILABLE

    def to_domain(self) -> Equipment:
        return Equipment(
            id=self.id or "",
            room_id=self.room_id,
            name=self.name.to_domain(),
            status=self.status,
        )


class EquipmentResponse(EquipmentPayload):
    id: str

    @classmethod
    def from_domain(cls, item: Equipment) -> "EquipmentResponse":
        return cls(
            id=item.id,
            room_id=item.room_id,
            name=LocalizedPayload.from_domain(item.name),
            status=item.status,
        )


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _busy(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
        headers={"Retry-After": "1"},
    )


# --- buildings ---


@router.get("/buildings", response_model=list[BuildingResponse])
async def list_buildings(
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> list[BuildingResponse]:
    return [BuildingResponse.from_domain(item) for item in service.list_buildings()]


@router.post(
    "/buildings",
    response_model=BuildingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_building(
    payload: BuildingPayload,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> BuildingResponse:
    try:
        return BuildingResponse.from_domain(service.create_building(payload.to_domain()))
    except CatalogValidationError as exc:
        raise _bad_request(exc) from exc


@router.get("/buildings/{building_id}", response_model=BuildingResponse)
async def get_building(
    building_id: str,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> BuildingResponse:
    try:
        return BuildingResponse.from_domain(service.get_building(building_id))
    except BuildingNotFoundError as exc:
        raise _not_found(exc) from exc


@router.put(
    "/buildings/{building_id}",
    response_model=BuildingResponse,
    dependencies=[Depends(require_admin)],
)
async def update_building(
    building_id: str,
    payload: BuildingPayload,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> BuildingResponse:
    try:
        updated = service.update_building(payload.to_domain(building_id=building_id))
        return BuildingResponse.from_domain(updated)
    except CatalogValidationError as exc:
        raise _bad_request(exc) from exc
    except BuildingNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete(
    "/buildings/{building_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_building(
    building_id: str,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> None:
    try:
        service.delete_building(building_id)
    except (BuildingNotFoundError, RoomNotFoundError) as exc:
        raise _not_found(exc) from exc
    except RoomBusyError as exc:
        raise _busy(exc) from exc


# --- rooms ---


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(
    building_id: Optional[str] = Query(default=None),
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> list[RoomResponse]:
    return [RoomResponse.from_domain(item) for item in service.list_rooms(building_id)]


@router.post(
    "/rooms",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_room(
    payload: RoomPayload,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.create_room(payload.to_domain()))
    except CatalogValidationError as exc:
        raise _bad_request(exc) from exc


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.get_room(room_id))
    except RoomNotFoundError as exc:
        raise _not_found(exc) from exc


@router.put(
    "/rooms/{room_id}",
    response_model=RoomResponse,
    dependencies=[Depends(require_admin)],
)
async def update_room(
    room_id: str,
    payload: RoomPayload,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.update_room(payload.to_domain(room_id=room_id)))
    except CatalogValidationError as exc:
        raise _bad_request(exc) from exc
    except RoomNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete(
    "/rooms/{room_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_room(
    room_id: str,
    service: FacilityCatalogService = Depends(get_catalog_service),
) -> None:
    try:
        service.delete_room(room_id)
    except RoomNotFoundError as exc:
        raise _not_found(exc) from exc
    except RoomBusyError as exc:
        raise _busy(exc) from exc


# --- equipment ---


@router.get("/equipment", response_model=list[EquipmentResponse])
async def list_equipment(
    room_id: Optional[str] = Query(default=None),
    equipment_status: Optional[EquipmentStatus] = Query(default=None, alias="status"),
    service: EquipmentRegistryService = Depends(get_equipment_service),
) -> list[EquipmentResponse]:
    items = service.list_equipment(room_id=room_id, status=equipment_status)
    return [EquipmentResponse.from_domain(item) for item in items]


@router.post(
    "/equipment",
    response_model=EquipmentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def upsert_equipment(
    payload: EquipmentPayload,
    service: EquipmentRegistryService = Depends(get_equipment_service),
) -> EquipmentResponse:
    try:
        return EquipmentResponse.from_domain(service.upsert_equipment(payload.to_domain()))
    except EquipmentValidationError as exc:
        raise _bad_request(exc) from exc


@router.delete(
    "/equipment/{equipment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def remove_equipment(
    equipment_id: str,
    service: EquipmentRegistryService = Depends(get_equipment_service),
) -> None:
    try:
        service.remove_equipment(equipment_id)
    except EquipmentNotFoundError as exc:
        raise _not_found(exc) from exc
