from datetime import datetime, timezone

import pytest

from planner_admin.modules.common.exceptions import FilterConflictError, InvalidSortFieldError
from planner_admin.modules.common.store import Predicate, SortInstruction
from planner_admin.modules.directory.filters import validate_filter
from planner_admin.modules.directory.query import (
    PREFIX_SENTINEL,
    SORTABLE_FIELDS,
    compile_count_query,
    compile_user_query,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def compile_raw(raw):
    return compile_user_query(validate_filter(raw), now=NOW)


def test_equality_filters_in_fixed_order():
    query = compile_raw({"status": "active", "subscription_plan": "trial", "role": "admin"})
    assert query.collection == "users"
    assert query.predicates == (
        Predicate("role", "==", "admin"),
        Predicate("subscription_plan", "==", "trial"),
        Predicate("is_deleted", "==", False),
    )
    assert query.range_fields == frozenset()
    assert query.sort == SortInstruction("created_at", "desc")


def test_identical_input_compiles_identically():
    raw = {"role": "user", "search": "bob", "sort_by": "display_name", "sort_order": "asc"}
    assert compile_raw(raw) == compile_raw(dict(reversed(list(raw.items()))))


def test_deleted_status_is_equality():
    query = compile_raw({"status": "deleted"})
    assert query.predicates == (Predicate("is_deleted", "==", True),)


def test_search_becomes_prefix_range():
    query = compile_raw({"search": "Ann"})
    assert query.predicates == (
        Predicate("email", ">=", "ann"),
        Predicate("email", "<", "ann" + PREFIX_SENTINEL),
    )
    assert query.range_fields == frozenset({"email"})


def test_banned_combines_with_equality_filters():
    query = compile_raw({"status": "banned", "role": "admin"})
    assert query.predicates == (
        Predicate("role", "==", "admin"),
        Predicate("locked_until", ">", NOW),
    )


def test_date_range_bounds():
    query = compile_raw({"date_from": "2026-01-01", "date_to": "2026-01-31"})
    assert [p.op for p in query.predicates] == [">=", "<="]
    assert query.range_fields == frozenset({"created_at"})


def test_open_ended_date_range():
    query = compile_raw({"date_to": "2026-01-31"})
    assert len(query.predicates) == 1
    assert query.predicates[0].op == "<="


@pytest.mark.parametrize(
    "raw, first, second",
    [
        ({"search": "a", "status": "banned"}, "search", "status=banned"),
        ({"search": "a", "date_from": "2026-01-01"}, "search", "created_at range"),
        ({"status": "banned", "date_to": "2026-01-01"}, "status=banned", "created_at range"),
    ],
)
def test_two_range_filters_conflict(raw, first, second):
    with pytest.raises(FilterConflictError) as exc:
        compile_raw(raw)
    assert (exc.value.first, exc.value.second) == (first, second)
    assert exc.value.kind == "filter_conflict"


def test_all_three_range_filters_conflict():
    with pytest.raises(FilterConflictError):
        compile_raw({"search": "a", "status": "banned", "date_from": "2026-01-01"})


def test_sort_field_outside_allow_list():
    with pytest.raises(InvalidSortFieldError) as exc:
        compile_raw({"sort_by": "password_hash"})
    assert exc.value.field == "password_hash"
    for name in SORTABLE_FIELDS:
        assert name in exc.value.message


def test_sort_alias_resolves_to_allowed_field():
    assert compile_raw({"sort_by": "name", "sort_order": "asc"}).sort == SortInstruction("display_name", "asc")


def test_count_query():
    assert compile_count_query("planners").predicates == ()
    predicate = Predicate("status", "==", "completed")
    query = compile_count_query("activities", predicate)
    assert query.collection == "activities"
    assert query.predicates == (predicate,)
    assert query.sort is None


def test_unsupported_operator_rejected():
    with pytest.raises(ValueError):
        Predicate("email", "!=", "x")
