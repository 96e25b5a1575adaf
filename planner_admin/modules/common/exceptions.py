"""Error taxonomy shared by the directory modules.

Every error that leaves the package carries a stable ``kind`` and a
human-readable message. Store failures only expose the operation name and
the collection, never the driver message.
"""

from __future__ import annotations

from typing import Any


class DirectoryError(Exception):
    """Base class for errors surfaced by the admin directory."""

    kind = "directory_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidFilterError(DirectoryError):
    """Raised when a raw filter cannot be turned into a ``UserFilter``."""

    kind = "invalid_filter"


class FilterConflictError(DirectoryError):
    """Raised when two range filters are requested in the same query."""

    kind = "filter_conflict"

    def __init__(self, first: str, second: str) -> None:
        super().__init__(
            f"Filters '{first}' and '{second}' cannot be combined: "
            "only one range filter is allowed per query"
        )
        self.first = first
        self.second = second


class InvalidSortFieldError(DirectoryError):
    """Raised when sorting is requested on a field outside the allow-list."""

    kind = "invalid_sort_field"

    def __init__(self, field: str, allowed: tuple[str, ...]) -> None:
        super().__init__(
            f"Cannot sort by '{field}'; allowed fields: {', '.join(allowed)}"
        )
        self.field = field


class InvalidUpdateError(DirectoryError):
    """Raised when a user update payload is rejected."""

    kind = "invalid_update"


class InvalidConfigError(DirectoryError):
    """Raised when a system configuration update is rejected."""

    kind = "invalid_config"


class ConflictError(DirectoryError):
    """Raised when a write collides with existing data, such as a duplicate email."""

    kind = "conflict"

    def __init__(self, *, operation: str, collection: str) -> None:
        super().__init__(f"Store operation '{operation}' on '{collection}' conflicts with existing data")
        self.operation = operation
        self.collection = collection


class NotFoundError(DirectoryError):
    """Raised when the target of an operation does not exist."""

    kind = "not_found"


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class BackupNotFoundError(NotFoundError):
    def __init__(self, backup_id: str) -> None:
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class StoreError(DirectoryError):
    """Base class for transient backend failures."""

    kind = "store_error"

    def __init__(self, message: str, *, operation: str, collection: str) -> None:
        super().__init__(message)
        self.operation = operation
        self.collection = collection

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(operation=self.operation, collection=self.collection)
        return payload


class StoreTimeoutError(StoreError):
    kind = "store_timeout"

    def __init__(self, *, operation: str, collection: str, timeout: float) -> None:
        super().__init__(
            f"Store operation '{operation}' on '{collection}' timed out after {timeout:g}s",
            operation=operation,
            collection=collection,
        )
        self.timeout = timeout


class StoreUnavailableError(StoreError):
    kind = "store_unavailable"

    def __init__(self, *, operation: str, collection: str) -> None:
        super().__init__(
            f"Store operation '{operation}' on '{collection}' failed",
            operation=operation,
            collection=collection,
        )


class AuditWriteFailure(DirectoryError):
    """Logged when an audit entry could not be persisted. Never raised to callers."""

    kind = "audit_write_failure"

    def __init__(self, entry_id: str, action: str) -> None:
        super().__init__(f"Failed to persist audit entry {entry_id} ({action})")
        self.entry_id = entry_id
        self.action = action
