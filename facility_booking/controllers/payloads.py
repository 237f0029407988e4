"""Pydantic DTOs shared by the HTTP controllers."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from facility_booking.domain.models import Localized


class LocalizedPayload(BaseModel):
    primary: str
    secondary: str = ""

    def to_domain(self) -> Localized:
        return Localized(primary=self.primary, secondary=self.secondary)

    @classmethod
    def from_domain(cls, value: Localized) -> "LocalizedPayload":
        return cls(primary=value.primary, secondary=value.secondary)


def optional_localized(value: Optional[LocalizedPayload]) -> Optional[Localized]:
    if value is None:
        return None
    return value.to_domain()


def optional_payload(value: Optional[Localized]) -> Optional[LocalizedPayload]:
    if value is None:
        return None
    return LocalizedPayload.from_domain(value)
