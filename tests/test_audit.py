import logging
from datetime import timedelta

import pytest

from conftest import NOW, MemoryStore
from planner_admin.modules.audit.models import AdminAction, TargetType
from planner_admin.modules.audit.service import AuditRecorder
from planner_admin.modules.common.exceptions import InvalidFilterError


@pytest.mark.asyncio
async def test_record_returns_before_write_lands():
    store = MemoryStore(delay=0.01)
    recorder = AuditRecorder(store, clock=lambda: NOW)

    entry = recorder.record("admin-1", AdminAction.USER_BANNED, TargetType.USER, "user-1", {"reason": "spam"})

    assert entry.action == "USER_BANNED"
    assert entry.target_type == "user"
    assert recorder.pending == 1
    assert "admin_audit_logs" not in store.collections

    await recorder.flush()

    assert recorder.pending == 0
    stored = store.collections["admin_audit_logs"][entry.id]
    assert stored["details"] == {"reason": "spam"}
    assert stored["timestamp"] == NOW


@pytest.mark.asyncio
async def test_failed_write_is_logged_and_swallowed(caplog):
    store = MemoryStore()
    store.fail_inserts = True
    recorder = AuditRecorder(store, clock=lambda: NOW)

    with caplog.at_level(logging.ERROR, logger="planner_admin.modules.audit.service"):
        entry = recorder.record("admin-1", AdminAction.USER_DELETED, TargetType.USER, "user-9")
        await recorder.flush()

    assert entry.id in caplog.text
    assert "USER_DELETED" in caplog.text
    assert recorder.pending == 0


@pytest.mark.asyncio
async def test_details_are_made_json_safe():
    store = MemoryStore()
    recorder = AuditRecorder(store, clock=lambda: NOW)

    entry = recorder.record(
        "admin-1",
        "CUSTOM_ACTION",
        "system",
        details={"when": NOW, "action": AdminAction.DATA_EXPORTED, "ids": ("a", "b")},
    )
    await recorder.flush()

    assert entry.details == {"when": NOW.isoformat(), "action": "DATA_EXPORTED", "ids": ["a", "b"]}


@pytest.mark.asyncio
async def test_list_entries_newest_first_and_filtered(sql_store):
    times = iter(NOW + timedelta(minutes=minute) for minute in range(10))
    recorder = AuditRecorder(sql_store, clock=lambda: next(times))

    for index in range(6):
        admin = "admin-a" if index % 2 == 0 else "admin-b"
        recorder.record(admin, AdminAction.USER_UPDATED, TargetType.USER, f"user-{index}")
    await recorder.flush()

    everything = await recorder.list_entries()
    only_a = await recorder.list_entries("admin-a", limit=2)

    assert [entry.target_id for entry in everything] == [f"user-{index}" for index in range(5, -1, -1)]
    assert [entry.target_id for entry in only_a] == ["user-4", "user-2"]
    assert all(entry.timestamp.tzinfo is not None for entry in everything)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, 1001, True])
async def test_list_entries_limit_bounds(limit):
    recorder = AuditRecorder(MemoryStore())
    with pytest.raises(InvalidFilterError):
        await recorder.list_entries(limit=limit)
