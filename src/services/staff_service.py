"""Service layer for staff members (`/staff`)."""
from core.query_cache import QueryCache, QueryEndpoint, QuerySubscription, RequestSpec
from core.tags import Tag, TagType
from schemas.staff import Staff, StaffWithLoad
from services.base_resource_service import BaseResourceService, validate_data

# Collection tag for per-day load figures
LOAD_ID = "LOAD"


class StaffService(BaseResourceService[Staff]):
    """
    Staff with full CRUD operations plus daily load.

    Extends BaseResourceService with:
    - get_with_load(): staff with server-computed load for a date
    """

    path = "/staff"
    tag_type = TagType.STAFF
    model = Staff
    endpoint_prefix = "Staff"
    cross_invalidates = (TagType.APPOINTMENT, TagType.QUEUE, TagType.DASHBOARD)

    def __init__(self, cache: QueryCache) -> None:
        super().__init__(cache)
        self.with_load_endpoint: QueryEndpoint[list[StaffWithLoad]] = QueryEndpoint(
            name="getStaffWithLoad",
            build_request=lambda date: RequestSpec(
                "GET", f"{self.path}/load/with-appointments",
                params={"date": date} if date else None,
            ),
            provides=[Tag(TagType.STAFF, LOAD_ID)],
            transform=validate_data(list[StaffWithLoad]),
        )

    async def get_with_load(self, date: str | None = None) -> list[StaffWithLoad]:
        return await self._cache.query(self.with_load_endpoint, date)

    def watch_with_load(
        self, date: str | None = None, on_change=None,  # noqa: ANN001
    ) -> QuerySubscription[list[StaffWithLoad]]:
        return self._cache.subscribe(self.with_load_endpoint, date, on_change=on_change)
