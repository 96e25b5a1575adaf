"""Admin user directory: filtering, paging and statistics."""

from .filters import UserFilter, validate_filter
from .models import (
    AdminPrincipal,
    BanRequest,
    BulkActionRequest,
    BulkActionResult,
    BulkActionType,
    SubscriptionPlan,
    SystemStats,
    UserPage,
    UserRecord,
    UserRole,
    UserStats,
    UserStatus,
    UserUpdate,
)

__all__ = [
    "AdminPrincipal",
    "BanRequest",
    "BulkActionRequest",
    "BulkActionResult",
    "BulkActionType",
    "SubscriptionPlan",
    "SystemStats",
    "UserFilter",
    "UserPage",
    "UserRecord",
    "UserRole",
    "UserStats",
    "UserStatus",
    "UserUpdate",
    "validate_filter",
]
