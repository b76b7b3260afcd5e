from __future__ import annotations

from flask import Flask, request

from ..auth.tokens import Principal
from ..common.http import json_body
from ..common.responses import success_response
from ..common.validators import parse_id
from ..container import Container
from ..core.enums import Role


def _client() -> dict:
    return {
        "ip_address": request.remote_addr or "",
        "user_agent": request.headers.get("User-Agent", ""),
    }


def register(app: Flask, container: Container) -> None:
    gate = container.gate
    service = container.admin_service

    @app.route("/api/admin/events/<event_id>", methods=["DELETE"], endpoint="admin_delete_event")
    @gate.require(Role.ADMIN)
    def delete_event(event_id: str, *, principal: Principal):
        deleted = service.delete_event(principal, parse_id(event_id, "event ID"), **_client())
        return success_response("Event deleted successfully", deleted)

    @app.route("/api/admin/audit-logs", methods=["GET"], endpoint="admin_audit_logs")
    @gate.require(Role.ADMIN)
    def audit_logs(*, principal: Principal):
        entries = service.audit_logs(request.args.get("limit"))
        return success_response("Audit logs retrieved successfully", {"logs": entries, "count": len(entries)})

    @app.route("/api/admin/settings", methods=["GET"], endpoint="admin_settings")
    @gate.require(Role.ADMIN)
    def get_settings(*, principal: Principal):
        return success_response("Settings retrieved successfully", {"settings": service.settings()})

    @app.route("/api/admin/settings", methods=["PUT"], endpoint="admin_update_settings")
    @gate.require(Role.ADMIN)
    def update_settings(*, principal: Principal):
        updated = service.update_settings(principal, json_body(), **_client())
        return success_response("Settings updated successfully", {"settings": updated})
