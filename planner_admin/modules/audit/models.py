"""Audit log domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from ..common.clock import as_utc

AUDIT_COLLECTION = "admin_audit_logs"


class AdminAction(str, Enum):
    USER_UPDATED = "USER_UPDATED"
    USER_BANNED = "USER_BANNED"
    USER_UNBANNED = "USER_UNBANNED"
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"
    USER_DELETED = "USER_DELETED"
    USER_RESTORED = "USER_RESTORED"
    BULK_USER_ACTION = "BULK_USER_ACTION"
    SYSTEM_CONFIG_UPDATED = "SYSTEM_CONFIG_UPDATED"
    DATA_EXPORTED = "DATA_EXPORTED"
    DATA_IMPORTED = "DATA_IMPORTED"
    BACKUP_CREATED = "BACKUP_CREATED"
    BACKUP_RESTORED = "BACKUP_RESTORED"


class TargetType(str, Enum):
    USER = "user"
    SYSTEM = "system"
    DATA = "data"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    id: str
    admin_id: str
    action: str
    target_type: str
    timestamp: datetime
    target_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "action": self.action,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "details": dict(self.details),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "AuditEntry":
        return cls(
            id=str(document["id"]),
            admin_id=document["admin_id"],
            action=document["action"],
            target_type=document["target_type"],
            timestamp=as_utc(document["timestamp"]),
            target_id=document.get("target_id"),
            details=dict(document.get("details") or {}),
        )
