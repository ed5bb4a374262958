"""
Service layer for appointments (`/appointments`).

Appointments drive the waiting queue, staff load and dashboard figures on
the server, so every write stales those caches entirely.
"""
from typing import Any

from core.query_cache import (
    MutationEndpoint,
    QueryCache,
    QueryEndpoint,
    QuerySubscription,
    RequestSpec,
)
from core.tags import Tag, TagType, provides_entity
from schemas.appointment import Appointment, AppointmentFilters, AppointmentWithDetails
from schemas.staff import StaffWithLoad
from services.base_resource_service import BaseResourceService, to_params, validate_data

LIST_DETAILS_ID = "LIST_DETAILS"
AVAILABLE_FOR_SERVICE_ID = "AVAILABLE_FOR_SERVICE"


class AppointmentService(BaseResourceService[Appointment]):
    """
    Appointments with create/update plus status transitions.

    Extends BaseResourceService with:
    - get_list_with_details(): list with embedded staff and service
    - get_details(): one appointment with embedded staff and service
    - cancel() / complete() / mark_no_show(): status transitions
    - get_available_staff(): staff able to take a service on a date
    """

    path = "/appointments"
    tag_type = TagType.APPOINTMENT
    model = Appointment
    endpoint_prefix = "Appointment"
    cross_invalidates = (TagType.QUEUE, TagType.STAFF, TagType.DASHBOARD)
    extra_list_ids = (LIST_DETAILS_ID,)

    def __init__(self, cache: QueryCache) -> None:
        super().__init__(cache)
        self.list_with_details_endpoint: QueryEndpoint[list[AppointmentWithDetails]] = (
            QueryEndpoint(
                name="getAppointmentsWithDetails",
                build_request=lambda filters: RequestSpec(
                    "GET", f"{self.path}/list/with-details", params=to_params(filters),
                ),
                provides=[Tag(TagType.APPOINTMENT, LIST_DETAILS_ID)],
                transform=validate_data(list[AppointmentWithDetails]),
            )
        )
        self.details_endpoint: QueryEndpoint[AppointmentWithDetails] = QueryEndpoint(
            name="getAppointmentWithDetails",
            build_request=lambda entity_id: RequestSpec("GET", f"{self.path}/{entity_id}/details"),
            provides=provides_entity(TagType.APPOINTMENT),
            transform=validate_data(AppointmentWithDetails),
        )
        self.available_staff_endpoint: QueryEndpoint[list[StaffWithLoad]] = QueryEndpoint(
            name="getAvailableStaffForService",
            build_request=lambda arg: RequestSpec(
                "GET",
                f"{self.path}/available-staff/{arg['serviceId']}",
                params={"date": arg["date"]} if arg.get("date") else None,
            ),
            provides=[Tag(TagType.STAFF, AVAILABLE_FOR_SERVICE_ID)],
            transform=validate_data(list[StaffWithLoad]),
        )
        self.cancel_endpoint = self._transition_endpoint("cancelAppointment", "cancel")
        self.complete_endpoint = self._transition_endpoint("completeAppointment", "complete")
        self.no_show_endpoint = self._transition_endpoint("markNoShow", "no-show")

    def _transition_endpoint(self, name: str, action: str) -> MutationEndpoint[Appointment]:
        return MutationEndpoint(
            name=name,
            build_request=lambda entity_id: RequestSpec("PATCH", f"{self.path}/{entity_id}/{action}"),
            invalidates=lambda _result, _error, entity_id: self.entity_invalidation(entity_id),
            transform=validate_data(Appointment),
        )

    # --- Queries ---

    async def get_list_with_details(
        self, filters: AppointmentFilters | None = None,
    ) -> list[AppointmentWithDetails]:
        return await self._cache.query(self.list_with_details_endpoint, filters)

    def watch_list_with_details(
        self, filters: AppointmentFilters | None = None, on_change=None,  # noqa: ANN001
    ) -> QuerySubscription[list[AppointmentWithDetails]]:
        return self._cache.subscribe(self.list_with_details_endpoint, filters, on_change=on_change)

    async def get_details(self, appointment_id: str) -> AppointmentWithDetails:
        return await self._cache.query(self.details_endpoint, appointment_id)

    async def get_available_staff(
        self, service_id: str, date: str | None = None,
    ) -> list[StaffWithLoad]:
        return await self._cache.query(self.available_staff_endpoint, _available_arg(service_id, date))

    def watch_available_staff(
        self, service_id: str, date: str | None = None, on_change=None,  # noqa: ANN001
    ) -> QuerySubscription[list[StaffWithLoad]]:
        return self._cache.subscribe(
            self.available_staff_endpoint, _available_arg(service_id, date), on_change=on_change,
        )

    # --- Status transitions ---

    async def cancel(self, appointment_id: str) -> Appointment:
        return await self._cache.mutate(self.cancel_endpoint, appointment_id)

    async def complete(self, appointment_id: str) -> Appointment:
        return await self._cache.mutate(self.complete_endpoint, appointment_id)

    async def mark_no_show(self, appointment_id: str) -> Appointment:
        return await self._cache.mutate(self.no_show_endpoint, appointment_id)


def _available_arg(service_id: str, date: str | None) -> dict[str, Any]:
    return {"serviceId": service_id, "date": date}
