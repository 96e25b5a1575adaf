"""Append-only audit trail for administrative mutations.

Writes are a best-effort side channel. ``record`` builds the entry, hands the
store write to a detached task and returns immediately; a failed write is
logged and dropped, and never reaches the operation that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from ..common.clock import utcnow
from ..common.exceptions import AuditWriteFailure, InvalidFilterError
from ..common.store import CompiledQuery, DocumentStore, Predicate, SortInstruction
from .models import AUDIT_COLLECTION, AdminAction, AuditEntry, TargetType

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 1000


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return value


class AuditRecorder:
    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self._pending: set[asyncio.Task] = set()

    def record(
        self,
        admin_id: str,
        action: AdminAction | str,
        target_type: TargetType | str,
        target_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> AuditEntry:
        """Append one entry in the background and return it.

        Must be called from a running event loop.
        """

        entry = AuditEntry(
            id=uuid.uuid4().hex,
            admin_id=admin_id,
            action=_jsonable(action),
            target_type=_jsonable(target_type),
            target_id=target_id,
            details=_jsonable(dict(details or {})),
            timestamp=self._clock(),
        )
        task = asyncio.get_running_loop().create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return entry

    async def flush(self) -> None:
        """Wait until every scheduled write has finished (or failed)."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def list_entries(self, admin_id: Optional[str] = None, limit: int = 100) -> list[AuditEntry]:
        """Entries newest first, optionally restricted to one administrator."""

        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIST_LIMIT:
            raise InvalidFilterError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        predicates = (Predicate("admin_id", "==", admin_id),) if admin_id else ()
        query = CompiledQuery(
            collection=AUDIT_COLLECTION,
            predicates=predicates,
            sort=SortInstruction("timestamp", "desc"),
        )
        documents = await self._store.fetch(query, limit=limit)
        return [AuditEntry.from_document(document) for document in documents]

    async def _write(self, entry: AuditEntry) -> None:
        try:
            await self._store.insert(AUDIT_COLLECTION, entry.to_document())
        except Exception as exc:  # noqa: BLE001 - audit writes must never propagate
            failure = AuditWriteFailure(entry.id, entry.action)
            logger.error("%s: %s", failure.message, exc)
