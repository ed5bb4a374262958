"""Pydantic schemas for bookable services."""
from pydantic import Field

from schemas.base import CamelModel


class Service(CamelModel):
    """A bookable service (e.g., 'Haircut', 30 minutes, performed by a 'stylist')."""

    id: str
    name: str
    duration_minutes: int
    staff_type: str
    created_at: str | None = None
    updated_at: str | None = None


class CreateServicePayload(CamelModel):
    name: str = Field(..., min_length=1)
    duration_minutes: int = Field(..., gt=0)
    staff_type: str = Field(..., min_length=1)


class UpdateServicePayload(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    duration_minutes: int | None = Field(default=None, gt=0)
    staff_type: str | None = Field(default=None, min_length=1)
