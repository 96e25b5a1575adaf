"""SQLAlchemy implementation of the document store.

Every collection is a table and every document is a row keyed by column
name. Only the primitives of ``DocumentStore`` are offered: equality and
range predicates, ordering by one column with the id as tie-breaker,
keyset continuation after a cursor and counts. Each call runs in its own
session so independent calls can proceed concurrently.
"""

from __future__ import annotations

import logging
import operator
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

from sqlalchemy import ColumnElement, Select, Table, and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planner_admin.infrastructure.database.base import Base
from planner_admin.modules.common.clock import as_utc
from planner_admin.modules.common.exceptions import ConflictError, StoreUnavailableError
from planner_admin.modules.common.store import (
    CompiledQuery,
    Cursor,
    Document,
    Predicate,
    SortInstruction,
    StoreCallStats,
    deep_merge,
    with_timeout,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


def _bindable(value: Any) -> Any:
    # SQLite stores timestamps without an offset, so comparisons must use UTC wall time.
    if isinstance(value, datetime):
        return as_utc(value)
    return value


class SqlDocumentStore:
    """Document store backed by SQLAlchemy tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout: Optional[float] = None,
        tables: Optional[Mapping[str, Table]] = None,
    ) -> None:
        if tables is None:
            # Imported for its side effect of registering the tables on ``Base``.
            from planner_admin.db import models  # noqa: F401

            tables = Base.metadata.tables
        self._session_factory = session_factory
        self._timeout = timeout
        self._tables = dict(tables)
        self.stats = StoreCallStats()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def fetch(
        self,
        query: CompiledQuery,
        *,
        start_after: Optional[Cursor] = None,
        limit: int,
        fields: Optional[Sequence[str]] = None,
    ) -> list[Document]:
        table = self._table(query.collection)
        if fields is None:
            columns = list(table.c)
        else:
            columns = [table.c.id] + [self._column(table, name) for name in fields if name != "id"]

        stmt = self._filtered(select(*columns), table, query.predicates)
        order_by, keyset = self._ordering(table, query.sort, start_after)
        if keyset is not None:
            stmt = stmt.where(keyset)
        stmt = stmt.order_by(*order_by).limit(limit)

        rows = await self._run("fetch", query.collection, lambda session: self._all(session, stmt))
        documents = [self._to_document(row) for row in rows]
        self.stats.track("fetch", len(documents))
        return documents

    async def count(self, query: CompiledQuery) -> int:
        table = self._table(query.collection)
        stmt = self._filtered(select(func.count()).select_from(table), table, query.predicates)

        async def _count(session: AsyncSession) -> int:
            result = await session.execute(stmt)
            return int(result.scalar_one())

        total = await self._run("count", query.collection, _count)
        self.stats.track("count")
        return total

    async def get(self, collection: str, doc_id: str) -> Document | None:
        table = self._table(collection)
        stmt = select(table).where(table.c.id == doc_id)
        rows = await self._run("get", collection, lambda session: self._all(session, stmt))
        self.stats.track("get", len(rows))
        return self._to_document(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        table = self._table(collection)
        values = {key: _bindable(value) for key, value in document.items()}
        values.setdefault("id", uuid.uuid4().hex)
        self._check_columns(table, values)

        async def _insert(session: AsyncSession) -> Any:
            await session.execute(insert(table).values(**values))
            result = await session.execute(select(table).where(table.c.id == values["id"]))
            row = result.one()
            await session.commit()
            return row

        row = await self._run("insert", collection, _insert)
        self.stats.track("insert")
        return self._to_document(row)

    async def update(self, collection: str, doc_id: str, values: Mapping[str, Any]) -> bool:
        table = self._table(collection)
        self._check_columns(table, values)
        if not values:
            return await self.get(collection, doc_id) is not None
        patch = {key: _bindable(value) for key, value in values.items()}
        stmt = update(table).where(table.c.id == doc_id).values(**patch)
        matched = await self._run("update", collection, lambda session: self._write(session, stmt))
        self.stats.track("update")
        return matched > 0

    async def delete(self, collection: str, doc_id: str) -> bool:
        table = self._table(collection)
        stmt = delete(table).where(table.c.id == doc_id)
        matched = await self._run("delete", collection, lambda session: self._write(session, stmt))
        self.stats.track("delete")
        return matched > 0

    async def merge(self, collection: str, doc_id: str, values: Mapping[str, Any]) -> Document:
        """Deep-merge ``values`` into the document, creating it when absent."""

        table = self._table(collection)
        self._check_columns(table, values)
        values = {key: _bindable(value) for key, value in values.items()}

        async def _merge(session: AsyncSession) -> Any:
            result = await session.execute(
                select(table).where(table.c.id == doc_id).with_for_update()
            )
            row = result.first()
            if row is None:
                await session.execute(insert(table).values(id=doc_id, **values))
            else:
                current = row._mapping
                patch = {
                    key: deep_merge(current[key], value)
                    if isinstance(current[key], Mapping) and isinstance(value, Mapping)
                    else value
                    for key, value in values.items()
                }
                await session.execute(update(table).where(table.c.id == doc_id).values(**patch))
            result = await session.execute(select(table).where(table.c.id == doc_id))
            merged = result.one()
            await session.commit()
            return merged

        row = await self._run("merge", collection, _merge)
        self.stats.track("merge")
        return self._to_document(row)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _run(
        self,
        operation: str,
        collection: str,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        async def _in_session() -> T:
            async with self._session_factory() as session:
                return await work(session)

        try:
            return await with_timeout(
                _in_session(), operation=operation, collection=collection, timeout=self._timeout
            )
        except IntegrityError as exc:
            logger.warning("Store %s on %s rejected: %s", operation, collection, exc.orig)
            raise ConflictError(operation=operation, collection=collection) from exc
        except SQLAlchemyError as exc:
            logger.error("Store %s on %s failed: %s", operation, collection, exc)
            raise StoreUnavailableError(operation=operation, collection=collection) from exc

    @staticmethod
    async def _all(session: AsyncSession, stmt: Select) -> list[Any]:
        result = await session.execute(stmt)
        return list(result.all())

    @staticmethod
    async def _write(session: AsyncSession, stmt: Any) -> int:
        result = await session.execute(stmt)
        await session.commit()
        return result.rowcount

    def _table(self, collection: str) -> Table:
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    @staticmethod
    def _column(table: Table, name: str) -> Any:
        try:
            return table.c[name]
        except KeyError:
            raise ValueError(f"Unknown field '{name}' on collection '{table.name}'") from None

    def _check_columns(self, table: Table, values: Mapping[str, Any]) -> None:
        for name in values:
            self._column(table, name)

    def _filtered(self, stmt: Select, table: Table, predicates: Sequence[Predicate]) -> Select:
        for predicate in predicates:
            column = self._column(table, predicate.field)
            stmt = stmt.where(_OPERATORS[predicate.op](column, _bindable(predicate.value)))
        return stmt

    def _ordering(
        self,
        table: Table,
        sort: Optional[SortInstruction],
        cursor: Optional[Cursor],
    ) -> tuple[list[Any], Optional[ColumnElement[bool]]]:
        """ORDER BY clauses plus the keyset condition that resumes after ``cursor``.

        Nulls sort first ascending and last descending, so a descending
        traversal is the exact reverse of an ascending one.
        """

        id_column = table.c.id
        if sort is None:
            keyset = id_column > cursor.doc_id if cursor is not None else None
            return [id_column.asc()], keyset

        column = self._column(table, sort.field)
        if sort.descending:
            order_by = [column.desc().nulls_last(), id_column.desc()]
        else:
            order_by = [column.asc().nulls_first(), id_column.asc()]
        if cursor is None:
            return order_by, None

        value = _bindable(cursor.value)
        if sort.descending:
            if value is None:
                keyset = and_(column.is_(None), id_column < cursor.doc_id)
            else:
                keyset = or_(
                    column < value,
                    and_(column == value, id_column < cursor.doc_id),
                    column.is_(None),
                )
        else:
            if value is None:
                keyset = or_(
                    and_(column.is_(None), id_column > cursor.doc_id),
                    column.is_not(None),
                )
            else:
                keyset = or_(column > value, and_(column == value, id_column > cursor.doc_id))
        return order_by, keyset

    @staticmethod
    def _to_document(row: Any) -> Document:
        document = dict(row._mapping)
        for key, value in document.items():
            if isinstance(value, datetime):
                document[key] = as_utc(value)
        return document
