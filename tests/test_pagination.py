from datetime import timedelta

import pytest

from conftest import NOW, MemoryStore
from planner_admin.modules.common.store import CompiledQuery, Predicate, SortInstruction
from planner_admin.modules.directory.pagination import CursorPaginator


def seed(store, count, **overrides):
    for index in range(count):
        document = {
            "id": f"u{index:03d}",
            "email": f"u{index:03d}@example.com",
            "created_at": NOW - timedelta(minutes=index),
        }
        document.update(overrides)
        store.add("users", **document)


def users_query(sort=SortInstruction("created_at", "desc"), predicates=()):
    return CompiledQuery("users", predicates=predicates, sort=sort)


async def collect(paginator, query, limit):
    pages = []
    page = 1
    while True:
        result = await paginator.paginate(query, page=page, limit=limit)
        pages.append(result)
        if not result.has_more:
            return pages
        page += 1


@pytest.mark.asyncio
async def test_pages_are_contiguous_and_disjoint():
    store = MemoryStore()
    seed(store, 23)
    paginator = CursorPaginator(store, batch_size=4)

    pages = await collect(paginator, users_query(), limit=5)

    ids = [doc["id"] for page in pages for doc in page.documents]
    assert len(pages) == 5
    assert ids == [f"u{index:03d}" for index in range(23)]
    assert [page.has_more for page in pages] == [True, True, True, True, False]


@pytest.mark.asyncio
async def test_exact_multiple_has_no_phantom_page():
    store = MemoryStore()
    seed(store, 10)
    paginator = CursorPaginator(store)

    second = await paginator.paginate(users_query(), page=2, limit=5)
    assert len(second.documents) == 5
    assert second.has_more is False


@pytest.mark.asyncio
async def test_page_beyond_end_is_empty():
    store = MemoryStore()
    seed(store, 7)
    paginator = CursorPaginator(store)

    result = await paginator.paginate(users_query(), page=3, limit=5)
    assert result.documents == []
    assert result.has_more is False


@pytest.mark.asyncio
async def test_first_page_skips_nothing():
    store = MemoryStore()
    seed(store, 30)
    paginator = CursorPaginator(store)

    await paginator.paginate(users_query(), page=1, limit=10)

    assert len(store.fetches) == 1
    assert store.fetches[0]["limit"] == 11
    assert store.documents_read == 11


@pytest.mark.asyncio
async def test_reads_grow_with_offset_plus_limit():
    store = MemoryStore()
    seed(store, 200)
    paginator = CursorPaginator(store, batch_size=25)

    result = await paginator.paginate(users_query(), page=5, limit=10)

    assert [doc["id"] for doc in result.documents] == [f"u{index:03d}" for index in range(40, 50)]
    assert store.documents_read == 40 + 11
    skip_fetches = store.fetches[:-1]
    assert [fetch["limit"] for fetch in skip_fetches] == [25, 15]
    assert all(fetch["fields"] == ("created_at",) for fetch in skip_fetches)
    assert store.fetches[-1]["fields"] is None


@pytest.mark.asyncio
async def test_ties_broken_by_id():
    store = MemoryStore()
    seed(store, 9, created_at=NOW)
    paginator = CursorPaginator(store, batch_size=2)

    pages = await collect(paginator, users_query(SortInstruction("created_at", "asc")), limit=4)
    ids = [doc["id"] for page in pages for doc in page.documents]
    assert ids == sorted(ids)
    assert len(ids) == 9


@pytest.mark.asyncio
async def test_missing_sort_values_are_not_lost():
    store = MemoryStore()
    seed(store, 6)
    for index, document in enumerate(store.collections["users"].values()):
        document["last_login_at"] = NOW - timedelta(hours=index % 3)
    for doc_id in ("u001", "u004"):
        store.collections["users"][doc_id]["last_login_at"] = None
    paginator = CursorPaginator(store, batch_size=1)

    for direction in ("asc", "desc"):
        pages = await collect(paginator, users_query(SortInstruction("last_login_at", direction)), limit=2)
        ids = [doc["id"] for page in pages for doc in page.documents]
        assert sorted(ids) == [f"u{index:03d}" for index in range(6)]


@pytest.mark.asyncio
async def test_filters_are_applied_before_paging():
    store = MemoryStore()
    seed(store, 10)
    for index in range(0, 10, 2):
        store.collections["users"][f"u{index:03d}"]["role"] = "admin"
    paginator = CursorPaginator(store)
    query = users_query(predicates=(Predicate("role", "==", "admin"),))

    second = await paginator.paginate(query, page=2, limit=2)
    assert [doc["id"] for doc in second.documents] == ["u004", "u006"]
    assert second.has_more is True


@pytest.mark.asyncio
async def test_iterate_yields_every_document_once():
    store = MemoryStore()
    seed(store, 11)
    paginator = CursorPaginator(store, batch_size=4)

    batches = [batch async for batch in paginator.iterate(CompiledQuery("users"), fields=("email",))]

    assert [len(batch) for batch in batches] == [4, 4, 3]
    assert set(batches[0][0]) == {"id", "email"}
    assert len({doc["id"] for batch in batches for doc in batch}) == 11


@pytest.mark.asyncio
async def test_iterate_empty_collection():
    paginator = CursorPaginator(MemoryStore())
    batches = [batch async for batch in paginator.iterate(CompiledQuery("users"))]
    assert batches == []


@pytest.mark.asyncio
async def test_invalid_arguments():
    paginator = CursorPaginator(MemoryStore())
    with pytest.raises(ValueError):
        await paginator.paginate(users_query(), page=0, limit=10)
    with pytest.raises(ValueError):
        CursorPaginator(MemoryStore(), batch_size=0)
