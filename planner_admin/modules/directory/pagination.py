"""Offset-style paging emulated on top of a cursor-only store.

The store can only "fetch N documents starting after document X", so
reaching page ``p`` means walking forward through ``(p - 1) * limit``
documents first. The walk reads projections of the sort field only and
keeps nothing but the last cursor, but it still costs O(offset + limit)
reads per call. Deep traversal should carry a cursor between calls (see
``iterate``) instead of a page number.

Consistency is best effort: the skip phase and the fetch phase are separate
store round trips, so a write landing between them can make a record show
up on two pages or on none. This is a known approximation of paging over a
live collection, not a bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from ..common.store import CompiledQuery, Cursor, Document, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


@dataclass(slots=True)
class PageSlice:
    documents: list[Document]
    has_more: bool


class CursorPaginator:
    """Translates ``page``/``limit`` requests into cursor traversals."""

    def __init__(self, store: DocumentStore, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._batch_size = batch_size

    async def paginate(self, query: CompiledQuery, *, page: int, limit: int) -> PageSlice:
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        offset = (page - 1) * limit
        cursor: Optional[Cursor] = None
        if offset > 0:
            cursor = await self._advance(query, offset)
            if cursor is None:
                logger.debug("Page %s (limit %s) is past the end of %s", page, limit, query.collection)
                return PageSlice(documents=[], has_more=False)

        documents = await self._store.fetch(query, start_after=cursor, limit=limit + 1)
        has_more = len(documents) > limit
        return PageSlice(documents=documents[:limit], has_more=has_more)

    async def iterate(
        self,
        query: CompiledQuery,
        *,
        fields: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
    ) -> AsyncIterator[list[Document]]:
        """Yield successive batches of ``query`` until the store is exhausted."""

        size = batch_size or self._batch_size
        projection = self._projection(query, fields)
        cursor: Optional[Cursor] = None
        while True:
            batch = await self._store.fetch(query, start_after=cursor, limit=size, fields=projection)
            if batch:
                yield batch
            if len(batch) < size:
                return
            cursor = Cursor.after(batch[-1], query.sort)

    async def _advance(self, query: CompiledQuery, offset: int) -> Optional[Cursor]:
        """Walk ``offset`` documents forward and return the cursor after the last one.

        Returns ``None`` when the collection ends before ``offset`` documents.
        """

        projection = self._projection(query, None)
        remaining = offset
        cursor: Optional[Cursor] = None
        while remaining > 0:
            requested = min(remaining, self._batch_size)
            batch = await self._store.fetch(
                query, start_after=cursor, limit=requested, fields=projection
            )
            if len(batch) < requested:
                return None
            cursor = Cursor.after(batch[-1], query.sort)
            remaining -= len(batch)
        return cursor

    @staticmethod
    def _projection(query: CompiledQuery, fields: Optional[Sequence[str]]) -> tuple[str, ...]:
        names = list(fields or ())
        if query.sort is not None and query.sort.field not in names:
            names.append(query.sort.field)
        return tuple(names)
