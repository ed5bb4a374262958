"""
Cross-resource invalidation for every mutation type.

Each test warms one cached query per resource view, performs a write, then
reads every view again: views the write may have changed must hit the
network, the rest must be served from cache.
"""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import pytest
import respx
from httpx import Response

from core.query_cache import QueryCache
from schemas.appointment import CreateAppointmentPayload, UpdateAppointmentPayload
from schemas.service import CreateServicePayload, UpdateServicePayload
from schemas.staff import CreateStaffPayload, UpdateStaffPayload
from services.appointment_service import AppointmentService
from services.catalog_service import CatalogService
from services.dashboard_service import DashboardService
from services.queue_service import QueueService
from services.staff_service import StaffService
from tests.helpers import appointment_json, envelope, error_envelope, service_json, staff_json

WAITING_ITEM = {
    "id": "a9",
    "customerName": "Bo",
    "dateTime": "2025-01-31T09:00:00Z",
    "endTime": "2025-01-31T09:30:00Z",
    "serviceId": "s1",
}

# Views read in every test, keyed by name
VIEW_ROUTES: dict[str, tuple[str, Any]] = {
    "appointments": ("/appointments", [appointment_json("a1")]),
    "appointment_details": ("/appointments/list/with-details", [appointment_json("a1")]),
    "services": ("/services", [service_json("s1")]),
    "staff": ("/staff", [staff_json("st1")]),
    "staff_load": ("/staff/load/with-appointments", [staff_json("st1")]),
    "queue": ("/queue/waiting", [WAITING_ITEM]),
    "dashboard": ("/dashboard/summary", {"totalAppointments": 1}),
}

APPOINTMENT_DERIVED = {"appointments", "appointment_details", "staff", "staff_load", "queue", "dashboard"}
SERVICE_DERIVED = {"services", "appointments", "appointment_details", "queue", "dashboard"}
STAFF_DERIVED = {"staff", "appointments", "appointment_details", "queue", "dashboard"}


@dataclass
class Client:
    cache: QueryCache
    appointments: AppointmentService
    catalog: CatalogService
    staff: StaffService
    queue: QueueService
    dashboard: DashboardService

    def readers(self) -> dict[str, Callable[[], Awaitable[Any]]]:
        return {
            "appointments": self.appointments.get_list,
            "appointment_details": self.appointments.get_list_with_details,
            "services": self.catalog.get_list,
            "staff": self.staff.get_list,
            "staff_load": lambda: self.staff.get_with_load("2025-01-31"),
            "queue": self.queue.get_waiting,
            "dashboard": self.dashboard.get_summary,
        }


@pytest.fixture
def client(cache: QueryCache) -> Client:
    return Client(
        cache=cache,
        appointments=AppointmentService(cache),
        catalog=CatalogService(cache),
        staff=StaffService(cache),
        queue=QueueService(cache),
        dashboard=DashboardService(cache),
    )


@pytest.fixture
def view_routes(mock_api: respx.MockRouter) -> dict[str, respx.Route]:
    return {
        name: mock_api.get(path).mock(return_value=Response(200, json=envelope(data)))
        for name, (path, data) in VIEW_ROUTES.items()
    }


async def _warm(client: Client) -> None:
    for read in client.readers().values():
        await read()


async def _refetched_views(client: Client, view_routes: dict[str, respx.Route]) -> set[str]:
    before = {name: route.call_count for name, route in view_routes.items()}
    for read in client.readers().values():
        await read()
    return {name for name, route in view_routes.items() if route.call_count > before[name]}


MUTATIONS: list[tuple[str, str, str, Any, Callable[[Client], Awaitable[Any]], set[str]]] = [
    (
        "appointment_create", "POST", "/appointments", appointment_json("a2"),
        lambda c: c.appointments.create(
            CreateAppointmentPayload(customer_name="Al", date_time="2025-01-31T11:00:00Z", service_id="s1"),
        ),
        APPOINTMENT_DERIVED,
    ),
    (
        "appointment_update", "PATCH", "/appointments/a1", appointment_json("a1"),
        lambda c: c.appointments.update("a1", UpdateAppointmentPayload(customer_name="Alan T.")),
        APPOINTMENT_DERIVED,
    ),
    (
        "appointment_cancel", "PATCH", "/appointments/a1/cancel", appointment_json("a1", "CANCELLED"),
        lambda c: c.appointments.cancel("a1"),
        APPOINTMENT_DERIVED,
    ),
    (
        "appointment_complete", "PATCH", "/appointments/a1/complete", appointment_json("a1", "COMPLETED"),
        lambda c: c.appointments.complete("a1"),
        APPOINTMENT_DERIVED,
    ),
    (
        "appointment_no_show", "PATCH", "/appointments/a1/no-show", appointment_json("a1", "NO_SHOW"),
        lambda c: c.appointments.mark_no_show("a1"),
        APPOINTMENT_DERIVED,
    ),
    (
        "queue_assign", "POST", "/queue/assign", WAITING_ITEM,
        lambda c: c.queue.assign("st1"),
        APPOINTMENT_DERIVED,
    ),
    (
        "service_create", "POST", "/services", service_json("s2"),
        lambda c: c.catalog.create(CreateServicePayload(name="Dye", duration_minutes=60, staff_type="stylist")),
        SERVICE_DERIVED,
    ),
    (
        "service_update", "PATCH", "/services/s1", service_json("s1"),
        lambda c: c.catalog.update("s1", UpdateServicePayload(duration_minutes=45)),
        SERVICE_DERIVED,
    ),
    (
        "service_delete", "DELETE", "/services/s1", None,
        lambda c: c.catalog.delete("s1"),
        SERVICE_DERIVED,
    ),
    (
        "staff_create", "POST", "/staff", staff_json("st2"),
        lambda c: c.staff.create(CreateStaffPayload(name="Linus", service_type="stylist", daily_capacity=4)),
        STAFF_DERIVED,
    ),
    (
        "staff_update", "PATCH", "/staff/st1", staff_json("st1"),
        lambda c: c.staff.update("st1", UpdateStaffPayload(daily_capacity=6)),
        STAFF_DERIVED,
    ),
    (
        "staff_delete", "DELETE", "/staff/st1", None,
        lambda c: c.staff.delete("st1"),
        STAFF_DERIVED,
    ),
]


@pytest.mark.parametrize(
    ("method", "path", "response_data", "mutate", "expected"),
    [m[1:] for m in MUTATIONS],
    ids=[m[0] for m in MUTATIONS],
)
async def test__mutation__refetches_exactly_derived_views(
    mock_api: respx.MockRouter,
    client: Client,
    view_routes: dict[str, respx.Route],
    method: str,
    path: str,
    response_data: Any,
    mutate: Callable[[Client], Awaitable[Any]],
    expected: set[str],
) -> None:
    mock_api.route(method=method, path=path).mock(
        return_value=Response(200, json=envelope(response_data)),
    )
    await _warm(client)

    await mutate(client)

    assert await _refetched_views(client, view_routes) == expected


@pytest.mark.parametrize("status_code", [400, 500])
@pytest.mark.parametrize(
    ("method", "path", "mutate"),
    [(m[1], m[2], m[4]) for m in MUTATIONS],
    ids=[m[0] for m in MUTATIONS],
)
async def test__mutation__failure_leaves_cache_identical(
    mock_api: respx.MockRouter,
    client: Client,
    view_routes: dict[str, respx.Route],
    method: str,
    path: str,
    mutate: Callable[[Client], Awaitable[Any]],
    status_code: int,
) -> None:
    mock_api.route(method=method, path=path).mock(
        return_value=Response(status_code, json=error_envelope(status_code, "Rejected")),
    )
    await _warm(client)
    before = client.cache.snapshot()

    with pytest.raises(Exception, match="Rejected"):
        await mutate(client)

    assert client.cache.snapshot() == before
    assert await _refetched_views(client, view_routes) == set()


async def test__create_then_cancel_appointment(
    mock_api: respx.MockRouter, client: Client, view_routes: dict[str, respx.Route],
) -> None:
    mock_api.post("/appointments").mock(return_value=Response(201, json=envelope(appointment_json("a2"))))
    mock_api.patch("/appointments/a2/cancel").mock(
        return_value=Response(200, json=envelope(appointment_json("a2", "CANCELLED"))),
    )
    mock_api.get("/appointments/a2").mock(return_value=Response(200, json=envelope(appointment_json("a2"))))
    await _warm(client)

    created = await client.appointments.create(
        CreateAppointmentPayload(customer_name="Al", date_time="2025-01-31T11:00:00Z", service_id="s1"),
    )
    list_calls = view_routes["appointments"].call_count
    await client.appointments.get_list()
    assert view_routes["appointments"].call_count == list_calls + 1
    assert await client.appointments.get(created.id)

    await client.appointments.cancel(created.id)

    assert client.cache.get_entry(client.appointments.get_endpoint, "a2").is_stale
    assert await _refetched_views(client, view_routes) == APPOINTMENT_DERIVED
