"""Administrative audit trail."""

from .models import AUDIT_COLLECTION, AdminAction, AuditEntry, TargetType
from .service import AuditRecorder

__all__ = [
    "AUDIT_COLLECTION",
    "AdminAction",
    "AuditEntry",
    "AuditRecorder",
    "TargetType",
]
