"""Domain models for the facility catalog, equipment and room bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class RoomType(str, Enum):
    THERAPY = "therapy"
    DORMITORY = "dormitory"
    MEDICAL = "medical"
    OFFICE = "office"
    RECREATIONAL = "recreational"


class ScheduleKind(str, Enum):
    THERAPY = "therapy"
    MEDICAL = "medical"
    ACTIVITY = "activity"


class EquipmentStatus(str, Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    IN_USE = "in_use"


@dataclass(frozen=True)
class Localized:
    """The same label in the primary and secondary display language."""

    primary: str
    secondary: str = ""


@dataclass(frozen=True)
class Building:
    id: str
    name: Localized
    floors: int
    capacity: int
    address: Optional[Localized] = None
    description: Optional[Localized] = None
    photo_ref: str = ""


@dataclass(frozen=True)
class Room:
    id: str
    building_id: str
    name: Localized
    floor: int
    type: RoomType
    capacity: int
    accessibility_features: tuple[Localized, ...] = ()
    assigned: Optional[Localized] = None
    active: bool = True


@dataclass(frozen=True)
class NoRecurrence:
    """The booking happens exactly once."""


@dataclass(frozen=True)
class WeeklyRecurrence:
    """The booking repeats every week on ``days`` (0 = Sunday ... 6 = Saturday)."""

    days: frozenset[int] = field(default_factory=frozenset)


Recurrence = Union[NoRecurrence, WeeklyRecurrence]


@dataclass(frozen=True)
class Schedule:
    """A room booking. ``start``/``end`` are facility-local wall-clock instants."""

    id: str
    room_id: str
    title: Localized
    kind: ScheduleKind
    start: datetime
    end: datetime
    recurrence: Recurrence = field(default_factory=NoRecurrence)


@dataclass(frozen=True)
class Occurrence:
    """One concrete time instance of a schedule."""

    schedule_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Equipment:
    id: str
    room_id: str
    name: Localized
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
