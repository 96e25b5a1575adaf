"""SQLAlchemy ORM models.

Each table backs one document collection. The document store works on the
tables directly, so documents are keyed by column name.
"""
import uuid

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Integer, String

from planner_admin.infrastructure.database.base import Base
from planner_admin.modules.common.clock import utcnow


def generate_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True, default=generate_id)
    email = Column(String(254), unique=True, nullable=False, index=True)
    display_name = Column(String(100))
    email_verified = Column(Boolean, nullable=False, default=False)
    role = Column(String(20), nullable=False, default="user", index=True)
    subscription_plan = Column(String(20), nullable=False, default="free", index=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True))
    locked_until = Column(DateTime(timezone=True), index=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
    last_login_at = Column(DateTime(timezone=True), index=True)


class AdminAuditLog(Base):
    __tablename__ = "admin_audit_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    admin_id = Column(String(128), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(String(128))
    details = Column(JSON, nullable=False, default=dict)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)


class SystemConfigDocument(Base):
    __tablename__ = "system_config"

    id = Column(String(50), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class Backup(Base):
    __tablename__ = "backups"

    id = Column(String(36), primary_key=True, default=generate_id)
    type = Column(String(20), nullable=False, default="full")
    size = Column(BigInteger, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="processing")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_by = Column(String(128), nullable=False)
    download_url = Column(String(1024))
    checksum = Column(String(128))
    # ``metadata`` is reserved on declarative classes.
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)


class Planner(Base):
    __tablename__ = "planners"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(128), nullable=False, index=True)
    title = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, index=True)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=generate_id)
    planner_id = Column(String(36), index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)
