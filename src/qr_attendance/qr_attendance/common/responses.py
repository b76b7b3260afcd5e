from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from flask import jsonify

from .datetime_utils import format_rfc3339


def to_payload(value: Any) -> Any:
    """Convert dataclasses, enums and datetimes into JSON-ready values."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_rfc3339(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    return value


def success_response(message: str, data: Any = None, *, status: int = 200):
    body = {"success": True, "message": message, "data": to_payload(data)}
    return jsonify(body), status


def failure_response(
    error_message: str,
    *,
    status: int,
    error: Optional[str] = None,
    details: Optional[dict] = None,
):
    body: dict[str, Any] = {"success": False, "error_message": error_message}
    if error:
        body["error"] = error
    if details:
        body["details"] = to_payload(details)
    return jsonify(body), status
