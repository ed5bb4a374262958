"""Pydantic schemas for appointments."""
from enum import StrEnum

from pydantic import Field

from schemas.base import CamelModel
from schemas.service import Service
from schemas.staff import Staff


class AppointmentStatus(StrEnum):
    WAITING = "WAITING"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class Appointment(CamelModel):
    id: str
    customer_name: str
    date_time: str
    end_time: str
    status: AppointmentStatus
    queue_position: int | None = None
    staff_id: str | None = None
    service_id: str


class AppointmentWithDetails(Appointment):
    staff: Staff | None = None
    service: Service | None = None


class CreateAppointmentPayload(CamelModel):
    """
    Payload for booking an appointment.

    Omitting `staff_id` lets the backend pick a staff member or place the
    appointment in the waiting queue.
    """

    customer_name: str = Field(..., min_length=1)
    date_time: str
    service_id: str
    staff_id: str | None = None


class UpdateAppointmentPayload(CamelModel):
    customer_name: str | None = Field(default=None, min_length=1)
    date_time: str | None = None
    staff_id: str | None = None
    status: AppointmentStatus | None = None


class AppointmentFilters(CamelModel):
    """Query-string filters for the appointment list (`date`, `staffId`, `status`)."""

    date: str | None = None
    staff_id: str | None = None
    status: AppointmentStatus | None = None
