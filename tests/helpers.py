"""Payload builders shared by the test modules."""
import json
from typing import Any

from core.storage import ACCESS_TOKEN_KEY, USER_KEY

BASE_URL = "http://api.test/api/v1"


def envelope(data: Any = None, status_code: int = 200, message: str = "OK") -> dict[str, Any]:
    """Build a success envelope the way the backend sends it."""
    body: dict[str, Any] = {"success": True, "statusCode": status_code, "message": message}
    if data is not None:
        body["data"] = data
    return body


def error_envelope(status_code: int, message: str, errors: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "statusCode": status_code, "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def persisted(user: dict[str, Any] | None, token: str | None) -> dict[str, str]:
    """Initial storage contents for a persisted `{user, token}` pair."""
    data: dict[str, str] = {}
    if user is not None:
        data[USER_KEY] = json.dumps(user)
    if token is not None:
        data[ACCESS_TOKEN_KEY] = token
    return data


def service_json(service_id: str, name: str = "Haircut") -> dict[str, Any]:
    return {"id": service_id, "name": name, "durationMinutes": 30, "staffType": "stylist"}


def staff_json(staff_id: str, name: str = "Grace") -> dict[str, Any]:
    return {
        "id": staff_id,
        "name": name,
        "serviceType": "stylist",
        "dailyCapacity": 5,
        "availabilityStatus": "AVAILABLE",
    }


def appointment_json(appointment_id: str, status: str = "SCHEDULED") -> dict[str, Any]:
    return {
        "id": appointment_id,
        "customerName": "Alan",
        "dateTime": "2025-01-31T10:00:00Z",
        "endTime": "2025-01-31T10:30:00Z",
        "status": status,
        "serviceId": "s1",
        "staffId": "st1",
    }
