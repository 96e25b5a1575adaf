"""Directory facade: listing, user administration, statistics and system config."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from ..audit.models import AdminAction, AuditEntry, TargetType
from ..audit.service import AuditRecorder
from ..common.clock import utcnow
from ..common.exceptions import (
    BackupNotFoundError,
    DirectoryError,
    InvalidConfigError,
    InvalidFilterError,
    InvalidUpdateError,
    UserNotFoundError,
)
from ..common.store import CompiledQuery, DocumentStore, SortInstruction, deep_merge
from ..system.models import (
    BACKUPS_COLLECTION,
    SYSTEM_CONFIG_COLLECTION,
    SYSTEM_CONFIG_DOCUMENT_ID,
    BackupCreate,
    BackupRecord,
    SystemConfig,
    SystemConfigPatch,
)
from .aggregation import AggregationService
from .filters import UserFilter, validate_filter
from .models import (
    USERS_COLLECTION,
    AdminPrincipal,
    BanRequest,
    BulkActionRequest,
    BulkActionResult,
    BulkActionType,
    SystemStats,
    UserPage,
    UserRecord,
    UserStats,
    UserUpdate,
)
from .pagination import DEFAULT_BATCH_SIZE, CursorPaginator
from .query import compile_user_query

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_BAN_DAYS = 365
MAX_BACKUP_LIST_LIMIT = 1000


def _validate(model: type[ModelT], payload: Any, error: type[DirectoryError]) -> ModelT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in issue['loc']) or 'payload'}: {issue['msg']}"
            for issue in exc.errors()
        )
        raise error(f"Invalid payload: {problems}") from None


class DirectoryService:
    """Public surface of the admin directory.

    Every mutating call fires exactly one audit entry through the recorder
    after the store write has succeeded. The audit write runs in the
    background and cannot fail the mutation.
    """

    def __init__(
        self,
        store: DocumentStore,
        recorder: AuditRecorder,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._clock = clock
        self._paginator = CursorPaginator(store, batch_size=batch_size)
        self._aggregation = AggregationService(store, self._paginator)

    # ------------------------------------------------------------------
    # Listing and lookup
    # ------------------------------------------------------------------
    async def list_users(self, raw_filter: Mapping[str, Any] | UserFilter | None = None) -> UserPage:
        user_filter = validate_filter(raw_filter)
        query = compile_user_query(user_filter, now=self._clock())

        # The total is a fast count and may disagree with what is actually
        # pageable; callers treat it as approximate.
        page_slice, total = await asyncio.gather(
            self._paginator.paginate(query, page=user_filter.page, limit=user_filter.limit),
            self._store.count(query.with_sort(None)),
        )
        return UserPage(
            records=[UserRecord.from_document(document) for document in page_slice.documents],
            has_more=page_slice.has_more,
            approximate_total=total,
            page=user_filter.page,
            limit=user_filter.limit,
        )

    async def get_user(self, user_id: str) -> UserRecord:
        document = await self._store.get(USERS_COLLECTION, user_id)
        if document is None:
            raise UserNotFoundError(user_id)
        return UserRecord.from_document(document)

    # ------------------------------------------------------------------
    # User mutations
    # ------------------------------------------------------------------
    async def update_user(
        self,
        principal: AdminPrincipal,
        user_id: str,
        updates: Mapping[str, Any] | UserUpdate,
    ) -> UserRecord:
        payload = _validate(UserUpdate, updates, InvalidUpdateError)
        changes = payload.model_dump(mode="json", exclude_unset=True)
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()

        current = await self.get_user(user_id)
        now = self._clock()
        await self._apply(user_id, {**changes, "updated_at": now})

        diff = {
            name: {"old": getattr(current, name), "new": value}
            for name, value in changes.items()
            if getattr(current, name) != value
        }
        role_changed = "role" in diff
        self._recorder.record(
            principal.admin_id,
            AdminAction.USER_ROLE_CHANGED if role_changed else AdminAction.USER_UPDATED,
            TargetType.USER,
            user_id,
            {"changes": diff, "updated_at": now},
        )
        return dataclasses.replace(current, **changes, updated_at=now)

    async def delete_user(self, principal: AdminPrincipal, user_id: str, *, soft: bool = True) -> None:
        current = await self.get_user(user_id)
        now = self._clock()
        if soft:
            await self._apply(user_id, {"is_deleted": True, "deleted_at": now, "updated_at": now})
        elif not await self._store.delete(USERS_COLLECTION, user_id):
            raise UserNotFoundError(user_id)

        logger.info("User %s %s-deleted by %s", user_id, "soft" if soft else "hard", principal.admin_id)
        self._recorder.record(
            principal.admin_id,
            AdminAction.USER_DELETED,
            TargetType.USER,
            user_id,
            {"soft_delete": soft, "user_email": current.email},
        )

    async def ban_user(
        self,
        principal: AdminPrincipal,
        user_id: str,
        request: Mapping[str, Any] | BanRequest | None = None,
    ) -> UserRecord:
        ban = _validate(BanRequest, request, InvalidUpdateError)
        current = await self.get_user(user_id)
        now = self._clock()
        locked_until = now + timedelta(days=ban.duration_days or DEFAULT_BAN_DAYS)
        values = {"locked_until": locked_until, "failed_login_attempts": 0, "updated_at": now}
        await self._apply(user_id, values)

        self._recorder.record(
            principal.admin_id,
            AdminAction.USER_BANNED,
            TargetType.USER,
            user_id,
            {"reason": ban.reason, "duration_days": ban.duration_days, "locked_until": locked_until},
        )
        return dataclasses.replace(current, **values)

    async def unban_user(self, principal: AdminPrincipal, user_id: str) -> UserRecord:
        current = await self.get_user(user_id)
        values = {"locked_until": None, "failed_login_attempts": 0, "updated_at": self._clock()}
        await self._apply(user_id, values)

        self._recorder.record(
            principal.admin_id,
            AdminAction.USER_UNBANNED,
            TargetType.USER,
            user_id,
            {"previous_locked_until": current.locked_until},
        )
        return dataclasses.replace(current, **values)

    async def restore_user(self, principal: AdminPrincipal, user_id: str) -> UserRecord:
        current = await self.get_user(user_id)
        if not current.is_deleted:
            raise InvalidUpdateError(f"User is not deleted: {user_id}")
        values = {"is_deleted": False, "deleted_at": None, "updated_at": self._clock()}
        await self._apply(user_id, values)

        self._recorder.record(
            principal.admin_id,
            AdminAction.USER_RESTORED,
            TargetType.USER,
            user_id,
            {"deleted_at": current.deleted_at},
        )
        return dataclasses.replace(current, **values)

    async def bulk_action(
        self,
        principal: AdminPrincipal,
        request: Mapping[str, Any] | BulkActionRequest,
    ) -> BulkActionResult:
        bulk = _validate(BulkActionRequest, request, InvalidUpdateError)
        if bulk.action is BulkActionType.CHANGE_ROLE and bulk.new_role is None:
            raise InvalidUpdateError("new_role is required for change-role")
        if bulk.action is BulkActionType.CHANGE_SUBSCRIPTION and bulk.new_subscription_plan is None:
            raise InvalidUpdateError("new_subscription_plan is required for change-subscription")

        result = BulkActionResult()
        for user_id in bulk.user_ids:
            try:
                await self._apply_bulk(principal, bulk, user_id)
            except DirectoryError as exc:
                result.failed += 1
                result.errors.append(f"User {user_id}: {exc.message}")
                logger.warning("Bulk %s failed for user %s: %s", bulk.action.value, user_id, exc.message)
            else:
                result.success += 1

        self._recorder.record(
            principal.admin_id,
            AdminAction.BULK_USER_ACTION,
            TargetType.USER,
            None,
            {
                "action": bulk.action,
                "user_count": len(bulk.user_ids),
                "success": result.success,
                "failed": result.failed,
            },
        )
        return result

    async def _apply_bulk(self, principal: AdminPrincipal, bulk: BulkActionRequest, user_id: str) -> None:
        if bulk.action is BulkActionType.BAN:
            await self.ban_user(principal, user_id, BanRequest(reason=bulk.reason))
        elif bulk.action is BulkActionType.UNBAN:
            await self.unban_user(principal, user_id)
        elif bulk.action is BulkActionType.DELETE:
            await self.delete_user(principal, user_id, soft=True)
        elif bulk.action is BulkActionType.RESTORE:
            await self.restore_user(principal, user_id)
        elif bulk.action is BulkActionType.CHANGE_ROLE:
            await self.update_user(principal, user_id, UserUpdate(role=bulk.new_role))
        elif bulk.action is BulkActionType.CHANGE_SUBSCRIPTION:
            await self.update_user(
                principal, user_id, UserUpdate(subscription_plan=bulk.new_subscription_plan)
            )

    async def _apply(self, user_id: str, values: Mapping[str, Any]) -> None:
        # The record may be hard-deleted between the lookup and the write.
        if not await self._store.update(USERS_COLLECTION, user_id, values):
            raise UserNotFoundError(user_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    async def get_system_statistics(self) -> SystemStats:
        return await self._aggregation.system_statistics(self._clock())

    async def get_user_statistics(self) -> UserStats:
        return await self._aggregation.user_statistics(self._clock())

    # ------------------------------------------------------------------
    # System configuration
    # ------------------------------------------------------------------
    async def get_system_config(self) -> SystemConfig:
        document = await self._store.get(SYSTEM_CONFIG_COLLECTION, SYSTEM_CONFIG_DOCUMENT_ID)
        stored = (document or {}).get("data") or {}
        defaults = SystemConfig().model_dump(mode="json")
        return SystemConfig.model_validate(deep_merge(defaults, stored))

    async def update_system_config(
        self,
        principal: AdminPrincipal,
        partial: Mapping[str, Any] | SystemConfigPatch,
    ) -> SystemConfig:
        patch = _validate(SystemConfigPatch, partial, InvalidConfigError)
        changes = patch.changes()
        if not changes:
            raise InvalidConfigError("No configuration fields provided")

        current = await self.get_system_config()
        try:
            merged = SystemConfig.model_validate(deep_merge(current.model_dump(mode="json"), changes))
        except ValidationError as exc:
            raise InvalidConfigError(f"Invalid configuration: {exc.error_count()} error(s)") from None

        await self._store.merge(
            SYSTEM_CONFIG_COLLECTION,
            SYSTEM_CONFIG_DOCUMENT_ID,
            {"data": changes, "updated_at": self._clock()},
        )
        logger.info("System configuration updated by %s: %s", principal.admin_id, sorted(changes))
        self._recorder.record(
            principal.admin_id,
            AdminAction.SYSTEM_CONFIG_UPDATED,
            TargetType.SYSTEM,
            SYSTEM_CONFIG_DOCUMENT_ID,
            {"changes": changes},
        )
        return merged

    async def set_maintenance_mode(self, principal: AdminPrincipal, enabled: bool) -> SystemConfig:
        return await self.update_system_config(principal, {"maintenance_mode": enabled})

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------
    def record_audit_entry(
        self,
        principal: AdminPrincipal,
        action: AdminAction | str,
        target_type: TargetType | str,
        target_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> AuditEntry:
        return self._recorder.record(principal.admin_id, action, target_type, target_id, details)

    async def list_audit_entries(self, admin_id: Optional[str] = None, limit: int = 100) -> list[AuditEntry]:
        return await self._recorder.list_entries(admin_id, limit)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------
    async def insert_backup_record(
        self,
        principal: AdminPrincipal,
        backup: Mapping[str, Any] | BackupCreate | None = None,
    ) -> BackupRecord:
        payload = _validate(BackupCreate, backup, InvalidUpdateError)
        document = {
            **payload.model_dump(mode="json"),
            "id": uuid.uuid4().hex,
            "created_at": self._clock(),
            "created_by": principal.admin_id,
        }
        stored = await self._store.insert(BACKUPS_COLLECTION, document)
        record = BackupRecord.from_document(stored)

        self._recorder.record(
            principal.admin_id,
            AdminAction.BACKUP_CREATED,
            TargetType.DATA,
            record.id,
            {"type": record.type, "status": record.status},
        )
        return record

    async def list_backups(self, limit: int = 20) -> list[BackupRecord]:
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_BACKUP_LIST_LIMIT:
            raise InvalidFilterError(f"limit must be between 1 and {MAX_BACKUP_LIST_LIMIT}")
        query = CompiledQuery(
            collection=BACKUPS_COLLECTION,
            sort=SortInstruction("created_at", "desc"),
        )
        documents = await self._store.fetch(query, limit=limit)
        return [BackupRecord.from_document(document) for document in documents]

    async def get_backup_by_id(self, backup_id: str) -> BackupRecord:
        document = await self._store.get(BACKUPS_COLLECTION, backup_id)
        if document is None:
            raise BackupNotFoundError(backup_id)
        return BackupRecord.from_document(document)
