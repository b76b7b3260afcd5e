from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional, Sequence

from ..auth.tokens import Principal
from ..common.validators import parse_id
from ..core.constants import DEFAULT_AUDIT_LIMIT, MAX_AUDIT_LIMIT
from ..core.enums import SettingType
from ..core.exceptions import NotFoundError, ValidationError
from .model import AuditLogEntry, AuditRecord, DeletedEvent, SystemSetting
from .repository import AdminRepository

logger = logging.getLogger(__name__)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def coerce_setting_value(value: Any, data_type: SettingType, key: str) -> str:
    """Validate ``value`` against the setting's type and return its stored text."""

    if data_type == SettingType.BOOLEAN:
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip().lower() if isinstance(value, str) else ""
        if text in _TRUE:
            return "true"
        if text in _FALSE:
            return "false"
        raise ValidationError(f"Setting {key} must be a boolean")

    if data_type == SettingType.NUMBER:
        if isinstance(value, bool):
            raise ValidationError(f"Setting {key} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Setting {key} must be a number") from None
        if not math.isfinite(number):
            raise ValidationError(f"Setting {key} must be a finite number")
        return str(int(number)) if number.is_integer() else repr(number)

    if not isinstance(value, str):
        raise ValidationError(f"Setting {key} must be a string")
    return value


class AdminService:
    def __init__(self, admin: AdminRepository):
        self._admin = admin

    def _audit(
        self,
        principal: Principal,
        *,
        action: str,
        resource_type: str,
        resource_id: Optional[int],
        details: str,
        ip_address: str,
        user_agent: str,
    ) -> AuditRecord:
        return AuditRecord(
            user_type=principal.role.value,
            user_id=principal.user_id,
            user_email=principal.email,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=ip_address or "",
            user_agent=user_agent or "",
        )

    def delete_event(
        self,
        principal: Principal,
        event_id: int,
        *,
        ip_address: str = "",
        user_agent: str = "",
    ) -> DeletedEvent:
        audit = self._audit(
            principal,
            action="delete",
            resource_type="event",
            resource_id=event_id,
            details=f"Deleted event {event_id} and its attendance records",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        deleted = self._admin.delete_event(event_id, audit=audit)
        if deleted is None:
            raise NotFoundError("Event not found")
        logger.info(
            "Admin %s deleted event %s (%d attendance rows)",
            principal.user_id,
            deleted.event_id,
            deleted.attendance_removed,
        )
        return deleted

    def audit_logs(self, limit: Any = None) -> Sequence[AuditLogEntry]:
        if limit is None or (isinstance(limit, str) and not limit.strip()):
            n = DEFAULT_AUDIT_LIMIT
        else:
            n = parse_id(limit, "limit")
        return self._admin.list_audit_logs(limit=min(n, MAX_AUDIT_LIMIT))

    def settings(self) -> Sequence[SystemSetting]:
        return self._admin.list_settings()

    def update_settings(
        self,
        principal: Principal,
        payload: Any,
        *,
        ip_address: str = "",
        user_agent: str = "",
    ) -> Sequence[SystemSetting]:
        items = payload.get("settings") if isinstance(payload, dict) else None
        if not isinstance(items, list) or not items:
            raise ValidationError("settings must be a non-empty list of {key, value}")

        known = {s.setting_key: s for s in self._admin.list_settings()}
        values: dict[str, str] = {}
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("key"), str):
                raise ValidationError("each setting needs a key and a value")
            key = item["key"].strip()
            if key not in known:
                raise ValidationError(f"Unknown setting: {key}")
            if "value" not in item:
                raise ValidationError(f"Setting {key} needs a value")
            values[key] = coerce_setting_value(item["value"], known[key].data_type, key)

        audit = self._audit(
            principal,
            action="update",
            resource_type="system_settings",
            resource_id=None,
            details=json.dumps(values, sort_keys=True),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._admin.update_settings(values, updated_by=principal.user_id, audit=audit)
        logger.info("Admin %s updated settings: %s", principal.user_id, ", ".join(sorted(values)))
        return self._admin.list_settings()
