from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.datetime_utils import from_db
from ..core.enums import SettingType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, db_transaction, fetchall, fetchone
from .model import AuditLogEntry, AuditRecord, DeletedEvent, SystemSetting
from .repository import AdminRepository


def _to_audit_entry(row: Dict[str, Any]) -> AuditLogEntry:
    resource_id = row.get("resource_id")
    return AuditLogEntry(
        id=int(row["id"]),
        timestamp=from_db(row["timestamp"]),
        user_type=row["user_type"],
        user_id=int(row["user_id"]),
        user_email=row.get("user_email") or "",
        action=row["action"],
        resource_type=row.get("resource_type") or "",
        resource_id=int(resource_id) if resource_id is not None else None,
        details=row.get("details") or "",
        ip_address=row.get("ip_address") or "",
        user_agent=row.get("user_agent") or "",
    )


def _to_setting(row: Dict[str, Any]) -> SystemSetting:
    return SystemSetting(
        setting_key=row["setting_key"],
        setting_value=row["setting_value"],
        data_type=SettingType(row["data_type"]),
        description=row.get("description") or "",
        updated_at=from_db(row.get("updated_at")),
    )


def _insert_audit(cur, audit: AuditRecord) -> None:
    cur.execute(
        """
        INSERT INTO audit_logs(
            user_type, user_id, user_email, action, resource_type,
            resource_id, details, ip_address, user_agent
        )
        VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
        """,
        (
            audit.user_type,
            int(audit.user_id),
            audit.user_email,
            audit.action,
            audit.resource_type,
            audit.resource_id,
            audit.details,
            audit.ip_address,
            audit.user_agent,
        ),
    )


class MySQLAdminRepository(AdminRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout_ms: Optional[int] = None):
        self._conn_factory = conn_factory
        self._timeout_ms = timeout_ms

    def delete_event(self, event_id: int, *, audit: AuditRecord) -> Optional[DeletedEvent]:
        with db_transaction(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute("SELECT id, course_code FROM events WHERE id=%s FOR UPDATE", (int(event_id),))
            row = fetchone(cur)
            if not row:
                return None

            cur.execute("DELETE FROM user_attendances WHERE event_id=%s", (int(event_id),))
            removed = cur.rowcount
            cur.execute("DELETE FROM events WHERE id=%s", (int(event_id),))
            _insert_audit(cur, audit)

        return DeletedEvent(
            event_id=int(row["id"]),
            course_code=row.get("course_code") or "",
            attendance_removed=max(removed, 0),
        )

    def list_audit_logs(self, *, limit: int) -> Sequence[AuditLogEntry]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT id, `timestamp`, user_type, user_id, user_email, action,
                       resource_type, resource_id, details, ip_address, user_agent
                FROM audit_logs
                ORDER BY `timestamp` DESC, id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            rows = fetchall(cur)
        return [_to_audit_entry(r) for r in rows]

    def list_settings(self) -> Sequence[SystemSetting]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                SELECT setting_key, setting_value, data_type, description, updated_at
                FROM system_settings
                ORDER BY setting_key
                """
            )
            rows = fetchall(cur)
        return [_to_setting(r) for r in rows]

    def update_settings(self, values: Mapping[str, str], *, updated_by: int, audit: AuditRecord) -> None:
        with db_transaction(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            for key, value in values.items():
                cur.execute(
                    "UPDATE system_settings SET setting_value=%s, updated_by=%s WHERE setting_key=%s",
                    (value, int(updated_by), key),
                )
            _insert_audit(cur, audit)
