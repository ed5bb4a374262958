"""Service layer for the waiting queue (`/queue`)."""
import logging

from core.query_cache import (
    MutationEndpoint,
    QueryCache,
    QueryEndpoint,
    QuerySubscription,
    RequestSpec,
)
from core.tags import Tag, TagType, whole
from schemas.queue import QueueAssignPayload, WaitingAppointment
from services.base_resource_service import validate_data

logger = logging.getLogger(__name__)

WAITING_ID = "WAITING"


class QueueService:
    """Waiting appointments and assignment of the earliest one to a staff member."""

    def __init__(self, cache: QueryCache) -> None:
        self._cache = cache
        self.waiting_endpoint: QueryEndpoint[list[WaitingAppointment]] = QueryEndpoint(
            name="getWaitingQueue",
            build_request=lambda _arg: RequestSpec("GET", "/queue/waiting"),
            provides=[Tag(TagType.QUEUE, WAITING_ID)],
            transform=validate_data(list[WaitingAppointment]),
        )
        # Assignment moves an appointment out of the queue onto a staff
        # member's schedule, which touches every derived view.
        self.assign_endpoint: MutationEndpoint[WaitingAppointment] = MutationEndpoint(
            name="assignFromQueue",
            build_request=lambda payload: RequestSpec("POST", "/queue/assign", json=payload.to_wire()),
            invalidates=whole(TagType.QUEUE, TagType.APPOINTMENT, TagType.STAFF, TagType.DASHBOARD),
            transform=validate_data(WaitingAppointment),
        )

    async def get_waiting(self) -> list[WaitingAppointment]:
        return await self._cache.query(self.waiting_endpoint)

    def watch_waiting(self, on_change=None) -> QuerySubscription[list[WaitingAppointment]]:  # noqa: ANN001
        return self._cache.subscribe(self.waiting_endpoint, on_change=on_change)

    async def assign(self, staff_id: str) -> WaitingAppointment:
        assigned = await self._cache.mutate(self.assign_endpoint, QueueAssignPayload(staff_id=staff_id))
        logger.info("queue_assigned appointment_id=%s staff_id=%s", assigned.id, staff_id)
        return assigned
