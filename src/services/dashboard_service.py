"""Service layer for read-only dashboard aggregates (`/dashboard`)."""
from core.query_cache import QueryCache, QueryEndpoint, QuerySubscription, RequestSpec
from core.tags import Tag, TagType
from schemas.dashboard import ActivityLogEntry, DashboardSummary, StaffLoadSummary
from services.base_resource_service import validate_data
from services.staff_service import LOAD_ID


class DashboardService:
    """
    Dashboard summary, staff load and activity log.

    Nothing here is written by the client; these entries go stale whenever
    any appointment, staff, service or queue write invalidates DASHBOARD.
    """

    def __init__(self, cache: QueryCache) -> None:
        self._cache = cache
        self.summary_endpoint: QueryEndpoint[DashboardSummary] = QueryEndpoint(
            name="getDashboardSummary",
            build_request=lambda date: RequestSpec(
                "GET", "/dashboard/summary", params={"date": date} if date else None,
            ),
            provides=[Tag(TagType.DASHBOARD)],
            transform=validate_data(DashboardSummary),
        )
        self.staff_load_endpoint: QueryEndpoint[list[StaffLoadSummary]] = QueryEndpoint(
            name="getStaffLoadSummary",
            build_request=lambda date: RequestSpec(
                "GET", "/dashboard/staff-load", params={"date": date} if date else None,
            ),
            provides=[Tag(TagType.DASHBOARD), Tag(TagType.STAFF, LOAD_ID)],
            transform=validate_data(list[StaffLoadSummary]),
        )
        self.activity_logs_endpoint: QueryEndpoint[list[ActivityLogEntry]] = QueryEndpoint(
            name="getRecentActivityLogs",
            build_request=lambda limit: RequestSpec(
                "GET", "/dashboard/activity-logs", params={"limit": limit} if limit else None,
            ),
            provides=[Tag(TagType.DASHBOARD)],
            transform=validate_data(list[ActivityLogEntry]),
        )

    async def get_summary(self, date: str | None = None) -> DashboardSummary:
        return await self._cache.query(self.summary_endpoint, date)

    def watch_summary(self, date: str | None = None, on_change=None) -> QuerySubscription[DashboardSummary]:  # noqa: ANN001
        return self._cache.subscribe(self.summary_endpoint, date, on_change=on_change)

    async def get_staff_load(self, date: str | None = None) -> list[StaffLoadSummary]:
        return await self._cache.query(self.staff_load_endpoint, date)

    def watch_staff_load(
        self, date: str | None = None, on_change=None,  # noqa: ANN001
    ) -> QuerySubscription[list[StaffLoadSummary]]:
        return self._cache.subscribe(self.staff_load_endpoint, date, on_change=on_change)

    async def get_activity_logs(self, limit: int | None = None) -> list[ActivityLogEntry]:
        return await self._cache.query(self.activity_logs_endpoint, limit)
