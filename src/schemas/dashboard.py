"""Pydantic schemas for dashboard aggregates."""
from schemas.base import CamelModel


class DashboardSummary(CamelModel):
    total_appointments: int = 0
    completed: int = 0
    scheduled: int = 0
    pending: int = 0
    waiting_queue_count: int = 0


class StaffLoadSummary(CamelModel):
    id: str
    name: str
    load: str
    current_load: int
    capacity: int
    status: str
    availability_status: str


class ActivityLogEntry(CamelModel):
    id: str
    time: str
    action: str
    message: str
