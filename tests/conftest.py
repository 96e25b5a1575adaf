import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from planner_admin.core.config import DatabaseSettings, Settings, StoreSettings
from planner_admin.infrastructure.database.repositories import SqlDocumentStore
from planner_admin.infrastructure.database.session import build_engine, build_session_factory, init_db
from planner_admin.modules.audit.service import AuditRecorder
from planner_admin.modules.common.store import deep_merge
from planner_admin.modules.directory.models import AdminPrincipal
from planner_admin.modules.directory.service import DirectoryService

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

_OPS = {
    "==": lambda a, b: a == b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
}


class MemoryStore:
    """In-memory store with the same ordering rules as the SQL store.

    Records every fetch so tests can assert how much was read, and can
    simulate latency, count skew and failures.
    """

    def __init__(self, *, delay: float = 0.0, count_skew: int = 0):
        self.collections: dict[str, dict[str, dict]] = {}
        self.fetches: list[dict] = []
        self.documents_read = 0
        self.delay = delay
        self.count_skew = count_skew
        self.fail_inserts = False
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, collection: str, **document) -> dict:
        document.setdefault("id", uuid.uuid4().hex)
        self.collections.setdefault(collection, {})[document["id"]] = dict(document)
        return document

    async def _tick(self):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    def _matching(self, query):
        documents = list(self.collections.get(query.collection, {}).values())
        for predicate in query.predicates:
            check = _OPS[predicate.op]
            documents = [d for d in documents if check(d.get(predicate.field), predicate.value)]
        return documents

    @staticmethod
    def _key(document, sort):
        if sort is None:
            return (document["id"],)
        value = document.get(sort.field)
        return (value is not None, value, document["id"])

    async def fetch(self, query, *, start_after=None, limit, fields=None):
        await self._tick()
        sort = query.sort
        descending = sort is not None and sort.descending
        documents = sorted(self._matching(query), key=lambda d: self._key(d, sort), reverse=descending)
        if start_after is not None:
            if sort is None:
                marker = (start_after.doc_id,)
            else:
                marker = (start_after.value is not None, start_after.value, start_after.doc_id)
            if descending:
                documents = [d for d in documents if self._key(d, sort) < marker]
            else:
                documents = [d for d in documents if self._key(d, sort) > marker]
        documents = documents[:limit]
        if fields is not None:
            documents = [{"id": d["id"], **{f: d.get(f) for f in fields}} for d in documents]
        else:
            documents = [dict(d) for d in documents]
        self.fetches.append({"query": query, "limit": limit, "fields": fields, "returned": len(documents)})
        self.documents_read += len(documents)
        return documents

    async def count(self, query):
        await self._tick()
        assert len(query.range_fields) <= 1
        return len(self._matching(query)) + self.count_skew

    async def get(self, collection, doc_id):
        await self._tick()
        document = self.collections.get(collection, {}).get(doc_id)
        return dict(document) if document is not None else None

    async def insert(self, collection, document):
        await self._tick()
        if self.fail_inserts:
            raise RuntimeError("insert rejected")
        return self.add(collection, **document)

    async def update(self, collection, doc_id, values):
        await self._tick()
        document = self.collections.get(collection, {}).get(doc_id)
        if document is None:
            return False
        document.update(values)
        return True

    async def delete(self, collection, doc_id):
        await self._tick()
        return self.collections.get(collection, {}).pop(doc_id, None) is not None

    async def merge(self, collection, doc_id, values):
        await self._tick()
        current = self.collections.setdefault(collection, {}).get(doc_id, {"id": doc_id})
        merged = deep_merge(current, values)
        self.collections[collection][doc_id] = merged
        return dict(merged)


@pytest.fixture
def admin():
    return AdminPrincipal(admin_id="admin-1")


@pytest_asyncio.fixture
async def engine(tmp_path):
    settings = Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'directory.db'}"),
        store=StoreSettings(timeout_seconds=5.0),
    )
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(engine):
    return SqlDocumentStore(build_session_factory(engine), timeout=5.0)


@pytest_asyncio.fixture
async def recorder(sql_store):
    recorder = AuditRecorder(sql_store, clock=lambda: NOW)
    yield recorder
    await recorder.flush()


@pytest_asyncio.fixture
async def service(sql_store, recorder):
    return DirectoryService(sql_store, recorder, batch_size=3, clock=lambda: NOW)


def make_user(index: int, **overrides) -> dict:
    document = {
        "id": f"user-{index:03d}",
        "email": f"user{index:03d}@example.com",
        "display_name": f"User {index:03d}",
        "role": "user",
        "subscription_plan": "free",
        "email_verified": False,
        "is_deleted": False,
        "failed_login_attempts": 0,
        "created_at": NOW - timedelta(days=index),
        "updated_at": NOW - timedelta(days=index),
    }
    document.update(overrides)
    return document


@pytest.fixture
def seed_users(sql_store):
    async def _seed(count: int, **overrides):
        documents = []
        for index in range(count):
            documents.append(await sql_store.insert("users", make_user(index, **overrides)))
        return documents

    return _seed
