"""Shared primitives: error taxonomy and store query model."""

from .exceptions import (
    AuditWriteFailure,
    BackupNotFoundError,
    ConflictError,
    DirectoryError,
    FilterConflictError,
    InvalidConfigError,
    InvalidFilterError,
    InvalidSortFieldError,
    InvalidUpdateError,
    NotFoundError,
    StoreError,
    StoreTimeoutError,
    StoreUnavailableError,
    UserNotFoundError,
)
from .store import CompiledQuery, Cursor, Document, DocumentStore, Predicate, SortInstruction

__all__ = [
    "AuditWriteFailure",
    "BackupNotFoundError",
    "CompiledQuery",
    "ConflictError",
    "Cursor",
    "DirectoryError",
    "Document",
    "DocumentStore",
    "FilterConflictError",
    "InvalidConfigError",
    "InvalidFilterError",
    "InvalidSortFieldError",
    "InvalidUpdateError",
    "NotFoundError",
    "Predicate",
    "SortInstruction",
    "StoreError",
    "StoreTimeoutError",
    "StoreUnavailableError",
    "UserNotFoundError",
]
