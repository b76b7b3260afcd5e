from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SettingType


@dataclass(frozen=True)
class AuditRecord:
    """An audit entry about to be written."""

    user_type: str
    user_id: int
    user_email: str
    action: str
    resource_type: str
    resource_id: Optional[int]
    details: str
    ip_address: str = ""
    user_agent: str = ""


@dataclass(frozen=True)
class AuditLogEntry:
    id: int
    timestamp: datetime
    user_type: str
    user_id: int
    user_email: str
    action: str
    resource_type: str
    resource_id: Optional[int]
    details: str
    ip_address: str
    user_agent: str


@dataclass(frozen=True)
class SystemSetting:
    setting_key: str
    setting_value: str
    data_type: SettingType
    description: str
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class DeletedEvent:
    event_id: int
    course_code: str
    attendance_removed: int
