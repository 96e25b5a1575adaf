"""Summary statistics over the user directory.

Scalar figures come from the store's fast count, one round trip per figure,
all issued concurrently. Categorical breakdowns walk a projection of only
the fields needed for classification and tally in memory, batch by batch.
Every figure is an approximate snapshot stamped with its generation time.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from ..common.clock import as_utc
from ..common.store import CompiledQuery, DocumentStore, Predicate
from .models import (
    ACTIVITIES_COLLECTION,
    PLANNERS_COLLECTION,
    USERS_COLLECTION,
    SubscriptionPlan,
    SystemStats,
    UserRole,
    UserStats,
)
from .pagination import CursorPaginator
from .query import compile_count_query

logger = logging.getLogger(__name__)

ACTIVE_USER_WINDOW = timedelta(days=30)
ACTIVE_PLANNER_WINDOW = timedelta(days=7)

_CLASSIFICATION_FIELDS = ("is_deleted", "locked_until", "subscription_plan", "role")


class AggregationService:
    def __init__(self, store: DocumentStore, paginator: CursorPaginator) -> None:
        self._store = store
        self._paginator = paginator

    async def count(self, collection: str, predicate: Optional[Predicate] = None) -> int:
        return await self._store.count(compile_count_query(collection, predicate))

    async def system_statistics(self, now: datetime) -> SystemStats:
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)
        month_ago = now - ACTIVE_USER_WINDOW

        (
            total_users,
            active_users,
            new_today,
            new_week,
            new_month,
            total_planners,
            active_planners,
            total_activities,
            completed_activities,
            plan_tally,
        ) = await asyncio.gather(
            self.count(USERS_COLLECTION),
            self.count(USERS_COLLECTION, Predicate("last_login_at", ">=", month_ago)),
            self.count(USERS_COLLECTION, Predicate("created_at", ">=", today)),
            self.count(USERS_COLLECTION, Predicate("created_at", ">=", week_ago)),
            self.count(USERS_COLLECTION, Predicate("created_at", ">=", month_ago)),
            self.count(PLANNERS_COLLECTION),
            self.count(PLANNERS_COLLECTION, Predicate("updated_at", ">=", now - ACTIVE_PLANNER_WINDOW)),
            self.count(ACTIVITIES_COLLECTION),
            self.count(ACTIVITIES_COLLECTION, Predicate("status", "==", "completed")),
            self._tally_plans(),
        )

        subscription_stats = {plan.value: 0 for plan in SubscriptionPlan}
        subscription_stats.update(plan_tally)

        return SystemStats(
            total_users=total_users,
            active_users=active_users,
            new_users_today=new_today,
            new_users_this_week=new_week,
            new_users_this_month=new_month,
            total_planners=total_planners,
            active_planners=active_planners,
            total_activities=total_activities,
            completed_activities=completed_activities,
            subscription_stats=subscription_stats,
            generated_at=now,
        )

    async def user_statistics(self, now: datetime) -> UserStats:
        counted, tally = await asyncio.gather(
            self.count(USERS_COLLECTION),
            self._classify_users(now),
        )
        buckets, by_plan, by_role = tally
        tallied = sum(buckets.values())
        if counted != tallied:
            logger.info(
                "User count skew: fast count %s, projection tallied %s", counted, tallied
            )
        # The fast count may lag the projection walk; never let a bucket go negative.
        total = max(counted, tallied)
        active = buckets["active"]
        banned = buckets["banned"]
        deleted = buckets["deleted"]

        return UserStats(
            total=total,
            active=active,
            inactive=total - active - banned - deleted,
            banned=banned,
            deleted=deleted,
            by_plan=dict(by_plan),
            by_role=dict(by_role),
            generated_at=now,
        )

    async def _tally_plans(self) -> Counter:
        plans: Counter = Counter()
        query = CompiledQuery(collection=USERS_COLLECTION)
        async for batch in self._paginator.iterate(query, fields=("subscription_plan",)):
            for document in batch:
                plans[document.get("subscription_plan") or SubscriptionPlan.FREE.value] += 1
        return plans

    async def _classify_users(self, now: datetime) -> tuple[Counter, Counter, Counter]:
        buckets: Counter = Counter(active=0, banned=0, deleted=0)
        by_plan: Counter = Counter()
        by_role: Counter = Counter()
        query = CompiledQuery(collection=USERS_COLLECTION)
        async for batch in self._paginator.iterate(query, fields=_CLASSIFICATION_FIELDS):
            for document in batch:
                buckets[classify_user(document, now)] += 1
                by_plan[document.get("subscription_plan") or SubscriptionPlan.FREE.value] += 1
                by_role[document.get("role") or UserRole.USER.value] += 1
        return buckets, by_plan, by_role


def classify_user(document: dict, now: datetime) -> str:
    """Deleted takes precedence over banned, which takes precedence over active."""

    if document.get("is_deleted"):
        return "deleted"
    locked_until = as_utc(document.get("locked_until"))
    if locked_until is not None and locked_until > now:
        return "banned"
    return "active"
