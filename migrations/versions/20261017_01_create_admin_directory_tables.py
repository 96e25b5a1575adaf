"""create admin directory tables

Revision ID: 7c3e91d0b2a4
Revises: 
Create Date: 2026-10-17 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c3e91d0b2a4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("display_name", sa.String(length=100)),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("subscription_plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column("locked_until", sa.DateTime(timezone=True)),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_subscription_plan", "users", ["subscription_plan"])
    op.create_index("ix_users_is_deleted", "users", ["is_deleted"])
    op.create_index("ix_users_locked_until", "users", ["locked_until"])
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index("ix_users_last_login_at", "users", ["last_login_at"])

    op.create_table(
        "admin_audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("admin_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        sa.Column("target_id", sa.String(length=128)),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_admin_audit_logs_admin_id", "admin_audit_logs", ["admin_id"])
    op.create_index("ix_admin_audit_logs_timestamp", "admin_audit_logs", ["timestamp"])

    op.create_table(
        "system_config",
        sa.Column("id", sa.String(length=50), primary_key=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "backups",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="full"),
        sa.Column("size", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="processing"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("download_url", sa.String(length=1024)),
        sa.Column("checksum", sa.String(length=128)),
        sa.Column("metadata", sa.JSON(), nullable=False),
    )
    op.create_index("ix_backups_created_at", "backups", ["created_at"])

    op.create_table(
        "planners",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_planners_owner_id", "planners", ["owner_id"])
    op.create_index("ix_planners_updated_at", "planners", ["updated_at"])

    op.create_table(
        "activities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("planner_id", sa.String(length=36)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_activities_planner_id", "activities", ["planner_id"])
    op.create_index("ix_activities_status", "activities", ["status"])


def downgrade() -> None:
    op.drop_index("ix_activities_status", table_name="activities")
    op.drop_index("ix_activities_planner_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_planners_updated_at", table_name="planners")
    op.drop_index("ix_planners_owner_id", table_name="planners")
    op.drop_table("planners")

    op.drop_index("ix_backups_created_at", table_name="backups")
    op.drop_table("backups")

    op.drop_table("system_config")

    op.drop_index("ix_admin_audit_logs_timestamp", table_name="admin_audit_logs")
    op.drop_index("ix_admin_audit_logs_admin_id", table_name="admin_audit_logs")
    op.drop_table("admin_audit_logs")

    for column in (
        "last_login_at",
        "created_at",
        "locked_until",
        "is_deleted",
        "subscription_plan",
        "role",
        "email",
    ):
        op.drop_index(f"ix_users_{column}", table_name="users")
    op.drop_table("users")
