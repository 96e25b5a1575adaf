"""Primitive query model and the document store protocol.

The store understands equality predicates, range predicates on a single
field, ordering by one field (ties broken by document id in the same
direction), "start after this cursor" continuation and a fast count.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Literal, Mapping, Optional, Protocol, Sequence, TypeVar

from .exceptions import StoreTimeoutError

T = TypeVar("T")

Document = dict[str, Any]
SortDirection = Literal["asc", "desc"]

EQUALITY_OP = "=="
RANGE_OPS = frozenset({">", ">=", "<", "<="})


@dataclass(frozen=True, slots=True)
class Predicate:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op != EQUALITY_OP and self.op not in RANGE_OPS:
            raise ValueError(f"Unsupported predicate operator: {self.op}")

    @property
    def is_range(self) -> bool:
        return self.op in RANGE_OPS


@dataclass(frozen=True, slots=True)
class SortInstruction:
    field: str
    direction: SortDirection = "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Ordered predicates plus at most one sort instruction for one collection."""

    collection: str
    predicates: tuple[Predicate, ...] = ()
    sort: Optional[SortInstruction] = None

    @property
    def range_fields(self) -> frozenset[str]:
        return frozenset(p.field for p in self.predicates if p.is_range)

    def with_sort(self, sort: Optional[SortInstruction]) -> "CompiledQuery":
        return CompiledQuery(self.collection, self.predicates, sort)


@dataclass(frozen=True, slots=True)
class Cursor:
    """Position after which a traversal continues: sort value plus document id."""

    value: Any
    doc_id: str

    @classmethod
    def after(cls, document: Mapping[str, Any], sort: Optional[SortInstruction]) -> "Cursor":
        value = document.get(sort.field) if sort is not None else None
        return cls(value=value, doc_id=str(document["id"]))


@dataclass(slots=True)
class StoreCallStats:
    """Running tally of documents read, kept by store implementations."""

    documents_read: int = 0
    calls: dict[str, int] = field(default_factory=dict)

    def track(self, operation: str, documents: int = 0) -> None:
        self.calls[operation] = self.calls.get(operation, 0) + 1
        self.documents_read += documents


class DocumentStore(Protocol):
    """Abstract document store used by the directory services."""

    async def fetch(
        self,
        query: CompiledQuery,
        *,
        start_after: Optional[Cursor] = None,
        limit: int,
        fields: Optional[Sequence[str]] = None,
    ) -> list[Document]:
        ...

    async def count(self, query: CompiledQuery) -> int:
        ...

    async def get(self, collection: str, doc_id: str) -> Document | None:
        ...

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        ...

    async def update(self, collection: str, doc_id: str, values: Mapping[str, Any]) -> bool:
        ...

    async def delete(self, collection: str, doc_id: str) -> bool:
        ...

    async def merge(self, collection: str, doc_id: str, values: Mapping[str, Any]) -> Document:
        ...


async def with_timeout(
    awaitable: Awaitable[T],
    *,
    operation: str,
    collection: str,
    timeout: Optional[float],
) -> T:
    """Await a store round trip, converting an expired deadline into ``StoreTimeoutError``."""

    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise StoreTimeoutError(operation=operation, collection=collection, timeout=timeout) from exc


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``patch`` merged in; nested mappings merge recursively."""

    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged
