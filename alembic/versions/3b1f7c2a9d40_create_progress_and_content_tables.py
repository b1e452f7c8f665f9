"""create progress and content tables

Revision ID: 3b1f7c2a9d40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f7c2a9d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "learning_paths",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("course_ids", postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
    )
    op.create_table(
        "course_progress",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column("course_id", sa.String(length=64), primary_key=True),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("percent_complete", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column("last_activity_at", sa.Integer(), nullable=True),
    )
    op.create_table(
        "path_progress",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column(
            "path_id",
            sa.String(length=64),
            sa.ForeignKey("learning_paths.id"),
            primary_key=True,
        ),
        sa.Column("total_courses", sa.Integer(), nullable=False),
        sa.Column("completed_courses", sa.Integer(), nullable=False),
        sa.Column("percent_complete", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("started_at", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column("last_activity_at", sa.Integer(), nullable=True),
        sa.Column("next_course_id", sa.String(length=64), nullable=True),
    )
    op.create_table(
        "assignments",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("assignment_type", sa.String(length=16), nullable=False),
        sa.Column("course_id", sa.String(length=64), nullable=True),
        sa.Column("path_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("assigned_at", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.Column("due_at", sa.Integer(), nullable=True),
        sa.Column("assigned_by", sa.String(length=64), nullable=True),
        sa.Column("started_at", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column("waived_by", sa.String(length=64), nullable=True),
        sa.Column("waived_at", sa.Integer(), nullable=True),
    )
    op.create_index("ix_assignments_user_id", "assignments", ["user_id"])

    op.create_table(
        "assets",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("product_suite", sa.String(length=255), nullable=True),
        sa.Column("product_concept", sa.String(length=255), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column("current_published_version_id", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.Integer(), nullable=True),
    )
    op.create_table(
        "asset_versions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "asset_id", sa.String(length=64), sa.ForeignKey("assets.id"), nullable=False
        ),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("publish_at", sa.Integer(), nullable=True),
        sa.Column("expire_at", sa.Integer(), nullable=True),
        sa.Column("published_at", sa.Integer(), nullable=True),
        sa.Column("published_by", sa.String(length=64), nullable=True),
        sa.Column("change_log", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.Integer(), nullable=True),
    )
    op.create_index("ix_asset_versions_asset_id", "asset_versions", ["asset_id"])
    op.create_index("ix_asset_versions_status", "asset_versions", ["status"])
    op.create_table(
        "content_items",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("expiry_date", sa.Integer(), nullable=True),
        sa.Column("product_suite", sa.String(length=255), nullable=True),
        sa.Column("product_concept", sa.String(length=255), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=True),
    )
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("product_suite", sa.String(length=255), nullable=True),
        sa.Column("product_concept", sa.String(length=255), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column("triggers", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=True),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_table(
        "access_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("occurred_at", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_access_events_item_time", "access_events", ["item_id", "occurred_at"]
    )
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("item_id", sa.String(length=64), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("access_events")
    op.drop_table("subscriptions")
    op.drop_table("content_items")
    op.drop_table("asset_versions")
    op.drop_table("assets")
    op.drop_table("assignments")
    op.drop_table("path_progress")
    op.drop_table("course_progress")
    op.drop_table("learning_paths")
