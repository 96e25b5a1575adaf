"""System configuration and backup bookkeeping."""

from .models import (
    BACKUPS_COLLECTION,
    SYSTEM_CONFIG_COLLECTION,
    SYSTEM_CONFIG_DOCUMENT_ID,
    BackupCreate,
    BackupRecord,
    BackupStatus,
    BackupType,
    SystemConfig,
    SystemConfigPatch,
)

__all__ = [
    "BACKUPS_COLLECTION",
    "SYSTEM_CONFIG_COLLECTION",
    "SYSTEM_CONFIG_DOCUMENT_ID",
    "BackupCreate",
    "BackupRecord",
    "BackupStatus",
    "BackupType",
    "SystemConfig",
    "SystemConfigPatch",
]
