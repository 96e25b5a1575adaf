"""Validation of raw listing requests into a typed ``UserFilter``.

Validation only checks shapes and bounds. Whether the filters can be
combined in a single store query is decided by the query compiler.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Optional

from ..common.exceptions import InvalidFilterError
from ..common.clock import as_utc
from .models import SubscriptionPlan, UserRole, UserStatus

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"

SORT_FIELD_ALIASES: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "displayName": "display_name",
    "name": "display_name",
    "title": "display_name",
    "lastActivity": "last_login_at",
    "lastLogin": "last_login_at",
    "last_login": "last_login_at",
}

_KNOWN_KEYS = frozenset(
    {
        "search",
        "role",
        "subscription_plan",
        "status",
        "date_from",
        "date_to",
        "sort_by",
        "sort_order",
        "page",
        "limit",
    }
)
_KEY_ALIASES = {
    "subscriptionPlan": "subscription_plan",
    "dateFrom": "date_from",
    "dateTo": "date_to",
    "sortBy": "sort_by",
    "sortOrder": "sort_order",
}


@dataclass(frozen=True, slots=True)
class UserFilter:
    search: Optional[str] = None
    role: Optional[UserRole] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    status: Optional[UserStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = DEFAULT_SORT_ORDER
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def validate_filter(raw: Mapping[str, Any] | UserFilter | None = None) -> UserFilter:
    """Turn a raw request mapping into a ``UserFilter`` or raise ``InvalidFilterError``."""

    if isinstance(raw, UserFilter):
        raw = {
            "search": raw.search,
            "role": raw.role,
            "subscription_plan": raw.subscription_plan,
            "status": raw.status,
            "date_from": raw.date_from,
            "date_to": raw.date_to,
            "sort_by": raw.sort_by,
            "sort_order": raw.sort_order,
            "page": raw.page,
            "limit": raw.limit,
        }
    params: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        name = _KEY_ALIASES.get(key, key)
        if name not in _KNOWN_KEYS:
            raise InvalidFilterError(f"Unknown filter parameter: {key}")
        params[name] = value

    date_from = _parse_datetime(params.get("date_from"), "date_from", end_of_day=False)
    date_to = _parse_datetime(params.get("date_to"), "date_to", end_of_day=True)
    if date_from is not None and date_to is not None and date_from > date_to:
        raise InvalidFilterError("date_from must not be later than date_to")

    sort_by = params.get("sort_by") or DEFAULT_SORT_FIELD
    if not isinstance(sort_by, str):
        raise InvalidFilterError("sort_by must be a string")

    sort_order = (params.get("sort_order") or DEFAULT_SORT_ORDER)
    if not isinstance(sort_order, str) or sort_order.lower() not in {"asc", "desc"}:
        raise InvalidFilterError("sort_order must be 'asc' or 'desc'")

    return UserFilter(
        search=_parse_search(params.get("search")),
        role=_parse_enum(UserRole, params.get("role"), "role"),
        subscription_plan=_parse_enum(SubscriptionPlan, params.get("subscription_plan"), "subscription_plan"),
        status=_parse_enum(UserStatus, params.get("status"), "status"),
        date_from=date_from,
        date_to=date_to,
        sort_by=SORT_FIELD_ALIASES.get(sort_by, sort_by),
        sort_order=sort_order.lower(),
        page=_parse_int(params.get("page"), "page", default=1, minimum=1),
        limit=_parse_int(
            params.get("limit"), "limit", default=DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_PAGE_SIZE
        ),
    )


def _parse_search(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFilterError("search must be a string")
    term = value.strip().lower()
    return term or None


def _parse_enum(enum_cls: type, value: Any, name: str):
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidFilterError(f"Invalid {name} '{value}'; expected one of: {allowed}") from None


def _parse_int(
    value: Any,
    name: str,
    *,
    default: int,
    minimum: int,
    maximum: Optional[int] = None,
) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidFilterError(f"{name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidFilterError(f"{name} must be an integer") from None
    if isinstance(value, float) and number != value:
        raise InvalidFilterError(f"{name} must be an integer")
    if number < minimum or (maximum is not None and number > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise InvalidFilterError(f"{name} must be {bound}")
    return number


def _parse_datetime(value: Any, name: str, *, end_of_day: bool) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        bound = time.max if end_of_day else time.min
        return datetime.combine(value, bound, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidFilterError(f"{name} must be an ISO-8601 date or datetime") from None
        if len(text) == 10:
            return _parse_datetime(parsed.date(), name, end_of_day=end_of_day)
        return as_utc(parsed)
    raise InvalidFilterError(f"{name} must be an ISO-8601 date or datetime")
