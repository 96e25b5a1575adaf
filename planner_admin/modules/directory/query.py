"""Compile user filters into primitive store queries.

The store accepts range comparisons on at most one field per query. The
creation-date range, the email prefix search and the ``banned`` status are
all range filters, so any two of them in one request are rejected with
``FilterConflictError``; none is ever dropped silently. Equality filters
combine freely with whichever range filter is present.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.exceptions import FilterConflictError, InvalidSortFieldError
from ..common.store import CompiledQuery, Predicate, SortInstruction
from .filters import UserFilter
from .models import USERS_COLLECTION, UserStatus

SORTABLE_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "display_name", "last_login_at")

# Highest code point, appended to a prefix so that [term, term + sentinel) covers every
# string starting with term.
PREFIX_SENTINEL = "\U0010ffff"


def compile_user_query(user_filter: UserFilter, *, now: datetime) -> CompiledQuery:
    """Build the store query for ``user_filter``.

    Predicates are emitted in a fixed order (equality filters first, then the
    range filter) so identical input always yields an identical query.
    """

    if user_filter.sort_by not in SORTABLE_FIELDS:
        raise InvalidSortFieldError(user_filter.sort_by, SORTABLE_FIELDS)

    equality: list[Predicate] = []
    if user_filter.role is not None:
        equality.append(Predicate("role", "==", user_filter.role.value))
    if user_filter.subscription_plan is not None:
        equality.append(Predicate("subscription_plan", "==", user_filter.subscription_plan.value))
    if user_filter.status is UserStatus.ACTIVE:
        equality.append(Predicate("is_deleted", "==", False))
    elif user_filter.status is UserStatus.DELETED:
        equality.append(Predicate("is_deleted", "==", True))

    ranges: list[tuple[str, tuple[Predicate, ...]]] = []
    if user_filter.search:
        ranges.append(
            (
                "search",
                (
                    Predicate("email", ">=", user_filter.search),
                    Predicate("email", "<", user_filter.search + PREFIX_SENTINEL),
                ),
            )
        )
    if user_filter.status is UserStatus.BANNED:
        ranges.append(("status=banned", (Predicate("locked_until", ">", now),)))
    if user_filter.date_from is not None or user_filter.date_to is not None:
        bounds: list[Predicate] = []
        if user_filter.date_from is not None:
            bounds.append(Predicate("created_at", ">=", user_filter.date_from))
        if user_filter.date_to is not None:
            bounds.append(Predicate("created_at", "<=", user_filter.date_to))
        ranges.append(("created_at range", tuple(bounds)))

    if len(ranges) > 1:
        raise FilterConflictError(ranges[0][0], ranges[1][0])

    predicates = tuple(equality)
    if ranges:
        predicates += ranges[0][1]

    return CompiledQuery(
        collection=USERS_COLLECTION,
        predicates=predicates,
        sort=SortInstruction(user_filter.sort_by, "asc" if user_filter.sort_order == "asc" else "desc"),
    )


def compile_count_query(
    collection: str,
    predicate: Optional[Predicate] = None,
) -> CompiledQuery:
    """Single-predicate (or unfiltered) query used for fast statistic counts."""

    predicates = (predicate,) if predicate is not None else ()
    return CompiledQuery(collection=collection, predicates=predicates)
