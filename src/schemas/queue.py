"""Pydantic schemas for the waiting queue."""
from schemas.base import CamelModel


class WaitingService(CamelModel):
    name: str
    duration_minutes: int
    staff_type: str


class WaitingAppointment(CamelModel):
    """An appointment waiting for a staff member, ordered by `queue_position`."""

    id: str
    customer_name: str
    date_time: str
    end_time: str
    queue_position: int | None = None
    service_id: str
    service: WaitingService | None = None


class QueueAssignPayload(CamelModel):
    """Assign the earliest waiting appointment to this staff member."""

    staff_id: str
