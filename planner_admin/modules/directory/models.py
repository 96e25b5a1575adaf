"""Domain models for the admin user directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.clock import as_utc


class UserRole(str, Enum):
    USER = "user"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SubscriptionPlan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"
    TRIAL = "trial"


class UserStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"
    BANNED = "banned"


USERS_COLLECTION = "users"
PLANNERS_COLLECTION = "planners"
ACTIVITIES_COLLECTION = "activities"


@dataclass(slots=True)
class AdminPrincipal:
    """Authenticated administrator supplied by the auth layer."""

    admin_id: str
    role: str = UserRole.ADMIN.value


@dataclass(slots=True)
class UserRecord:
    id: str
    email: str
    role: str = UserRole.USER.value
    subscription_plan: str = SubscriptionPlan.FREE.value
    display_name: Optional[str] = None
    email_verified: bool = False
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None
    failed_login_attempts: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def is_banned(self, now: datetime) -> bool:
        return self.locked_until is not None and as_utc(self.locked_until) > now

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "UserRecord":
        return cls(
            id=str(document["id"]),
            email=document.get("email") or "",
            role=document.get("role") or UserRole.USER.value,
            subscription_plan=document.get("subscription_plan") or SubscriptionPlan.FREE.value,
            display_name=document.get("display_name"),
            email_verified=bool(document.get("email_verified")),
            is_deleted=bool(document.get("is_deleted")),
            deleted_at=as_utc(document.get("deleted_at")),
            locked_until=as_utc(document.get("locked_until")),
            failed_login_attempts=int(document.get("failed_login_attempts") or 0),
            created_at=as_utc(document.get("created_at")),
            updated_at=as_utc(document.get("updated_at")),
            last_login_at=as_utc(document.get("last_login_at")),
        )


@dataclass(slots=True)
class UserPage:
    records: list[UserRecord]
    has_more: bool
    approximate_total: int
    page: int
    limit: int


@dataclass(slots=True)
class UserStats:
    total: int
    active: int
    inactive: int
    banned: int
    deleted: int
    by_plan: dict[str, int] = field(default_factory=dict)
    by_role: dict[str, int] = field(default_factory=dict)
    generated_at: Optional[datetime] = None


@dataclass(slots=True)
class SystemStats:
    total_users: int
    active_users: int
    new_users_today: int
    new_users_this_week: int
    new_users_this_month: int
    total_planners: int
    active_planners: int
    total_activities: int
    completed_activities: int
    subscription_stats: dict[str, int]
    generated_at: datetime


@dataclass(slots=True)
class BulkActionResult:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class UserUpdate(BaseModel):
    """Fields an administrator may change on a user record."""

    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=254)
    role: Optional[UserRole] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    email_verified: Optional[bool] = None

    @field_validator("email", "role", "subscription_plan", "email_verified", mode="before")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class BanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = Field(default=None, max_length=500)
    duration_days: Optional[int] = Field(default=None, ge=1, le=365)


class BulkActionType(str, Enum):
    BAN = "ban"
    UNBAN = "unban"
    DELETE = "delete"
    RESTORE = "restore"
    CHANGE_ROLE = "change-role"
    CHANGE_SUBSCRIPTION = "change-subscription"


class BulkActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_ids: list[str] = Field(min_length=1)
    action: BulkActionType
    new_role: Optional[UserRole] = None
    new_subscription_plan: Optional[SubscriptionPlan] = None
    reason: Optional[str] = Field(default=None, max_length=500)
