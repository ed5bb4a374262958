"""Service layer for the bookable service catalog (`/services`)."""
from core.tags import TagType
from schemas.service import Service
from services.base_resource_service import BaseResourceService


class CatalogService(BaseResourceService[Service]):
    """
    Service catalog with full CRUD operations.

    Appointments, the waiting queue and dashboard aggregates all reference
    services, so every write stales them too.
    """

    path = "/services"
    tag_type = TagType.SERVICE
    model = Service
    endpoint_prefix = "Service"
    cross_invalidates = (TagType.APPOINTMENT, TagType.QUEUE, TagType.DASHBOARD)
