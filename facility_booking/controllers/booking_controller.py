"""HTTP controller layer for room bookings.

Handlers are plain ``def`` functions so FastAPI runs them in its threadpool;
waiting on a room lock then never stalls the event loop.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from facility_booking.controllers.dependencies import get_booking_service, get_manage_capability
from facility_booking.controllers.payloads import LocalizedPayload
from facility_booking.domain.models import (
    NoRecurrence,
    Schedule,
    ScheduleKind,
    WeeklyRecurrence,
)
from facility_booking.services.booking_service import (
    BookingConflictError,
    BookingNotFoundError,
    BookingPermissionError,
    BookingService,
    BookingValidationError,
    RoomBusyError,
)
from facility_booking.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])


class RecurrencePayload(BaseModel):
    type: Literal["none", "weekly"] = "none"
    days: list[int] = Field(default_factory=list)


class BookingRequest(BaseModel):
    """Input DTO; well-formedness rules are enforced by the service."""

    id: Optional[str] = None
    room_id: str = Field(min_length=1)
    title: LocalizedPayload
    kind: ScheduleKind
    start: datetime
    end: datetime
    recurrence: RecurrencePayload = Field(default_factory=RecurrencePayload)

    def to_domain(self, schedule_id: Optional[str] = None) -> Schedule:
        if self.recurrence.type == "weekly":
            recurrence = WeeklyRecurrence(days=frozenset(self.recurrence.days))
        else:
            recurrence = NoRecurrence()
        return Schedule(
            id=schedule_id or self.id or "",
            room_id=self.room_id,
            title=self.title.to_domain(),
            kind=self.kind,
            start=self.start,
            end=self.end,
            recurrence=recurrence,
        )


class BookingResponse(BaseModel):
    id: str
    room_id: str
    title: LocalizedPayload
    kind: ScheduleKind
    start: datetime
    end: datetime
    recurrence: RecurrencePayload

    @classmethod
    def from_domain(cls, schedule: Schedule) -> "BookingResponse":
        if isinstance(schedule.recurrence, WeeklyRecurrence):
            recurrence = RecurrencePayload(type="weekly", days=sorted(schedule.recurrence.days))
        else:
            recurrence = RecurrencePayload()
        return cls(
            id=schedule.id,
            room_id=schedule.room_id,
            title=LocalizedPayload.from_domain(schedule.title),
            kind=schedule.kind,
            start=schedule.start,
            end=schedule.end,
            recurrence=recurrence,
        )


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]


class AvailabilityResponse(BaseModel):
    available: bool
    conflicting_id: Optional[str] = None


class ImportResponse(BaseModel):
    accepted: list[str]
    rejected: dict[str, str]


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, BookingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, BookingPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, BookingConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "conflicting_id": exc.conflicting_id},
        )
    if isinstance(exc, RoomBusyError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
            headers={"Retry-After": "1"},
        )
    logger.error("Unmapped booking error: %r", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Booking operation failed",
    )


_BOOKING_ERRORS = (
    BookingValidationError,
    BookingPermissionError,
    BookingNotFoundError,
    BookingConflictError,
    RoomBusyError,
)


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def propose_booking(
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
    can_manage: bool = Depends(get_manage_capability),
) -> BookingResponse:
    try:
        accepted = service.propose_booking(payload.to_domain(), can_manage=can_manage)
        return BookingResponse.from_domain(accepted)
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc


@router.post(
    "/bookings/check",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
def check_availability(
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    try:
        conflict = service.check_availability(payload.to_domain())
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc
    if conflict is None:
        return AvailabilityResponse(available=True)
    return AvailabilityResponse(available=False, conflicting_id=conflict.id)


@router.get(
    "/bookings/export",
    status_code=status.HTTP_200_OK,
)
def export_bookings(
    service: BookingService = Depends(get_booking_service),
) -> dict[str, list[dict[str, Any]]]:
    return service.export_bookings()


@router.post(
    "/bookings/import",
    response_model=ImportResponse,
    status_code=status.HTTP_200_OK,
)
def import_bookings(
    payload: dict[str, list[dict[str, Any]]],
    service: BookingService = Depends(get_booking_service),
    can_manage: bool = Depends(get_manage_capability),
) -> ImportResponse:
    try:
        summary = service.import_bookings(payload, can_manage=can_manage)
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc
    return ImportResponse(**summary.to_dict())


@router.get(
    "/bookings/{schedule_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def get_booking(
    schedule_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_domain(service.get_booking(schedule_id))
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc


@router.put(
    "/bookings/{schedule_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def update_booking(
    schedule_id: str,
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
    can_manage: bool = Depends(get_manage_capability),
) -> BookingResponse:
    try:
        service.get_booking(schedule_id)
        accepted = service.propose_booking(
            payload.to_domain(schedule_id=schedule_id),
            can_manage=can_manage,
        )
        return BookingResponse.from_domain(accepted)
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking",
        ) from exc


@router.delete(
    "/bookings/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def cancel_booking(
    schedule_id: str,
    service: BookingService = Depends(get_booking_service),
    can_manage: bool = Depends(get_manage_capability),
) -> None:
    try:
        service.cancel_booking(schedule_id, can_manage=can_manage)
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc


@router.get(
    "/rooms/{room_id}/bookings",
    response_model=BookingListResponse,
    status_code=status.HTTP_200_OK,
)
def list_room_bookings(
    room_id: str,
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = service.list_bookings(room_id, start=start, end=end)
    except _BOOKING_ERRORS as exc:
        raise _to_http_error(exc) from exc
    return BookingListResponse(
        bookings=[BookingResponse.from_domain(item) for item in bookings]
    )
