from __future__ import annotations

import logging
import uuid
from typing import Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from ..auth.gate import PRINCIPAL_ENVIRON_KEY
from ..core.exceptions import DomainError, ValidationError
from .responses import failure_response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ENVIRON_KEY = "qr_attendance.request_id"


def json_body() -> dict[str, Any]:
    """Request body as a JSON object; anything else is invalid input."""

    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True).strip():
            raise ValidationError("Request body must be valid JSON")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def request_id() -> str:
    return request.environ.get(REQUEST_ID_ENVIRON_KEY, "-")


def _principal_label() -> str:
    principal = request.environ.get(PRINCIPAL_ENVIRON_KEY)
    return principal.describe() if principal is not None else "anonymous"


def _log_server_error(kind: str, error: BaseException) -> None:
    logger.error(
        "request_id=%s route=%s %s principal=%s error=%s",
        request_id(),
        request.method,
        request.path,
        _principal_label(),
        kind,
        exc_info=(type(error), error, error.__traceback__),
    )


def register_error_handlers(app: Flask) -> None:
    @app.before_request
    def assign_request_id():
        incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
        request.environ[REQUEST_ID_ENVIRON_KEY] = incoming[:64] or uuid.uuid4().hex

    @app.after_request
    def echo_request_id(response):
        response.headers[REQUEST_ID_HEADER] = request_id()
        return response

    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        if error.http_status >= 500:
            _log_server_error(error.kind, error)
            return failure_response("Internal server error", status=error.http_status, error=error.kind)
        return failure_response(
            error.message or error.kind,
            status=error.http_status,
            error=error.kind,
            details=error.details,
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        status = error.code or 500
        kinds = {400: "invalid-input", 401: "unauthenticated", 403: "forbidden", 404: "not-found", 405: "invalid-input"}
        if status >= 500:
            _log_server_error("internal-error", error)
            return failure_response("Internal server error", status=status, error="internal-error")
        return failure_response(error.description or error.name, status=status, error=kinds.get(status))

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        _log_server_error("internal-error", error)
        return failure_response("Internal server error", status=500, error="internal-error")
