"""Pydantic schemas for staff members and their daily load."""
from enum import StrEnum

from pydantic import Field

from schemas.base import CamelModel


class StaffAvailability(StrEnum):
    AVAILABLE = "AVAILABLE"
    ON_LEAVE = "ON_LEAVE"


class Staff(CamelModel):
    id: str
    name: str
    service_type: str
    daily_capacity: int
    availability_status: StaffAvailability = StaffAvailability.AVAILABLE
    created_at: str | None = None
    updated_at: str | None = None


class StaffWithLoad(Staff):
    """
    Staff member with server-computed load for a given day.

    `current_load`, `available_slots` and `is_at_capacity` are derived by the
    backend; the client only displays them.
    """

    current_load: int = 0
    available_slots: int = 0
    is_at_capacity: bool = False


class CreateStaffPayload(CamelModel):
    name: str = Field(..., min_length=1)
    service_type: str = Field(..., min_length=1)
    daily_capacity: int = Field(..., ge=1)


class UpdateStaffPayload(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    service_type: str | None = Field(default=None, min_length=1)
    daily_capacity: int | None = Field(default=None, ge=1)
    availability_status: StaffAvailability | None = None
