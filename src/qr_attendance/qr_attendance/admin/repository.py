from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import AuditLogEntry, AuditRecord, DeletedEvent, SystemSetting


class AdminRepository(Protocol):
    """Administrative writes and the audit trail.

    Every mutating method appends its audit record in the same transaction
    as the change, so either both land or neither does.
    """

    def delete_event(self, event_id: int, *, audit: AuditRecord) -> Optional[DeletedEvent]:
        """Remove the event and all its attendance rows; None if it does not exist."""

        raise NotImplementedError

    def list_audit_logs(self, *, limit: int) -> Sequence[AuditLogEntry]:
        raise NotImplementedError

    def list_settings(self) -> Sequence[SystemSetting]:
        raise NotImplementedError

    def update_settings(self, values: Mapping[str, str], *, updated_by: int, audit: AuditRecord) -> None:
        raise NotImplementedError
