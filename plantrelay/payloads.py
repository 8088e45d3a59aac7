"""
Request body parsing for the device and dashboard endpoints.
"""
from typing import Any, Dict


class PayloadError(ValueError):
    """Request body is missing fields or has fields of the wrong type."""
    pass


def _require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise PayloadError("Request body must be a JSON object")
    return data


def _require_int(data: Dict[str, Any], key: str) -> int:
    if key not in data:
        raise PayloadError(f"Missing field '{key}'")
    value = data[key]
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"Field '{key}' must be an integer")
    return value


def _require_bool(data: Dict[str, Any], key: str) -> bool:
    if key not in data:
        raise PayloadError(f"Missing field '{key}'")
    value = data[key]
    if not isinstance(value, bool):
        raise PayloadError(f"Field '{key}' must be a boolean")
    return value


def parse_sensor_payload(data: Any) -> Dict[str, Any]:
    """
    Validate a POST /sensor body.

    Returns:
        Dict with 'soil', 'light' and 'is_watering' keys

    Raises:
        PayloadError: if a field is missing or has the wrong type
    """
    body = _require_object(data)
    return {
        "soil": _require_int(body, "soil"),
        "light": _require_int(body, "light"),
        "is_watering": _require_bool(body, "is_watering"),
    }


def parse_auto_payload(data: Any) -> bool:
    """Validate a POST /api/auto body and return the requested mode."""
    return _require_bool(_require_object(data), "enabled")
