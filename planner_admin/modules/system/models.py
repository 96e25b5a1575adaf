"""System configuration and backup bookkeeping models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..common.clock import as_utc
from ..directory.models import UserRole

SYSTEM_CONFIG_COLLECTION = "system_config"
SYSTEM_CONFIG_DOCUMENT_ID = "main"
BACKUPS_COLLECTION = "backups"

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RateLimits(BaseModel):
    model_config = _MODEL_CONFIG

    window_ms: int = Field(default=15 * 60 * 1000, ge=1000, le=3_600_000)
    max_requests: int = Field(default=100, ge=1, le=10_000)


class FileUploadLimits(BaseModel):
    model_config = _MODEL_CONFIG

    max_size: int = Field(default=10 * 1024 * 1024, ge=1024, le=100 * 1024 * 1024)
    allowed_types: list[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "application/pdf"]
    )


class EmailSettings(BaseModel):
    model_config = _MODEL_CONFIG

    smtp_enabled: bool = False
    from_address: str = "noreply@aiplanner.com"


class AISettings(BaseModel):
    model_config = _MODEL_CONFIG

    enabled: bool = True
    daily_limit: int = Field(default=100, ge=1, le=10_000)


class SystemConfig(BaseModel):
    """Runtime switches shared by the whole deployment.

    Defaults apply to every field the stored document does not carry.
    """

    model_config = _MODEL_CONFIG

    maintenance_mode: bool = False
    allow_registration: bool = True
    require_email_verification: bool = True
    default_user_role: UserRole = UserRole.USER
    rate_limits: RateLimits = Field(default_factory=RateLimits)
    file_upload: FileUploadLimits = Field(default_factory=FileUploadLimits)
    email: EmailSettings = Field(default_factory=EmailSettings)
    ai: AISettings = Field(default_factory=AISettings)


class RateLimitsPatch(BaseModel):
    model_config = _MODEL_CONFIG

    window_ms: Optional[int] = Field(default=None, ge=1000, le=3_600_000)
    max_requests: Optional[int] = Field(default=None, ge=1, le=10_000)


class FileUploadPatch(BaseModel):
    model_config = _MODEL_CONFIG

    max_size: Optional[int] = Field(default=None, ge=1024, le=100 * 1024 * 1024)
    allowed_types: Optional[list[str]] = None


class EmailPatch(BaseModel):
    model_config = _MODEL_CONFIG

    smtp_enabled: Optional[bool] = None
    from_address: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AIPatch(BaseModel):
    model_config = _MODEL_CONFIG

    enabled: Optional[bool] = None
    daily_limit: Optional[int] = Field(default=None, ge=1, le=10_000)


class SystemConfigPatch(BaseModel):
    """Partial update; only the fields that were provided are merged."""

    model_config = _MODEL_CONFIG

    maintenance_mode: Optional[bool] = None
    allow_registration: Optional[bool] = None
    require_email_verification: Optional[bool] = None
    default_user_role: Optional[UserRole] = None
    rate_limits: Optional[RateLimitsPatch] = None
    file_upload: Optional[FileUploadPatch] = None
    email: Optional[EmailPatch] = None
    ai: Optional[AIPatch] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class BackupType(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    USERS = "users"
    PLANNERS = "planners"


class BackupStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class BackupCreate(BaseModel):
    model_config = _MODEL_CONFIG

    type: BackupType = BackupType.FULL
    size: int = Field(default=0, ge=0)
    status: BackupStatus = BackupStatus.PROCESSING
    download_url: Optional[str] = None
    checksum: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


@dataclass(slots=True)
class BackupRecord:
    id: str
    type: str
    size: int
    status: str
    created_at: datetime
    created_by: str
    download_url: Optional[str] = None
    checksum: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "BackupRecord":
        return cls(
            id=str(document["id"]),
            type=document["type"],
            size=int(document.get("size") or 0),
            status=document["status"],
            created_at=as_utc(document["created_at"]),
            created_by=document["created_by"],
            download_url=document.get("download_url"),
            checksum=document.get("checksum"),
            metadata=dict(document.get("metadata") or {}),
        )
