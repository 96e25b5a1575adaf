"""Database infrastructure helpers (engine, sessions, document store)."""

from .base import Base
from .session import build_engine, build_session_factory, init_db

__all__ = ["Base", "build_engine", "build_session_factory", "init_db"]
