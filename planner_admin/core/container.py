"""Explicit wiring of the directory services.

Nothing here is cached at module level: callers build a container, hand its
services to whoever needs them and dispose of it when done.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from planner_admin.core.config import Settings, get_settings
from planner_admin.infrastructure.database.repositories import SqlDocumentStore
from planner_admin.infrastructure.database.session import build_engine, build_session_factory, init_db
from planner_admin.modules.audit.service import AuditRecorder
from planner_admin.modules.directory.service import DirectoryService


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    store: SqlDocumentStore
    recorder: AuditRecorder

    def build_directory(self) -> DirectoryService:
        return DirectoryService(
            self.store,
            self.recorder,
            batch_size=self.settings.directory.batch_size,
        )

    async def init_infrastructure(self) -> None:
        """Create missing tables; deployments normally run the migrations instead."""
        await init_db(self.engine)

    async def dispose(self) -> None:
        await self.recorder.flush()
        await self.engine.dispose()


def create_container(settings: Optional[Settings] = None) -> ApplicationContainer:
    settings = settings or get_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    store = SqlDocumentStore(session_factory, timeout=settings.store_timeout)
    return ApplicationContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        store=store,
        recorder=AuditRecorder(store),
    )


__all__ = ["ApplicationContainer", "create_container"]
