"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in progress_engine/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from progress_engine.db.engine import Base

# --- Learning paths and progress ---


class LearningPathRow(Base):
    __tablename__ = "learning_paths"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    course_ids: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=[]
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")


class CourseProgressRow(Base):
    __tablename__ = "course_progress"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_activity_at: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PathProgressRow(Base):
    """Cached rollup, one row per (user, path)."""

    __tablename__ = "path_progress"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    path_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("learning_paths.id"), primary_key=True
    )
    total_courses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_courses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="not_started"
    )  # not_started|in_progress|completed
    started_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_activity_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_course_id: Mapped[str | None] = mapped_column(String(64), nullable=True)


class AssignmentRow(Base):
    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    assignment_type: Mapped[str] = mapped_column(
        String(16), nullable=False
    )  # course|path
    course_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    path_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="assigned"
    )  # assigned|started|completed|waived
    assigned_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)
    due_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assigned_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    started_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    waived_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    waived_at: Mapped[int | None] = mapped_column(Integer, nullable=True)


# --- Content hub ---


class AssetRow(Base):
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    product_suite: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_concept: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=[])
    current_published_version_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)


class AssetVersionRow(Base):
    __tablename__ = "asset_versions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    asset_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("assets.id"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    publish_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expire_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    published_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    published_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    change_log: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (Index("ix_asset_versions_status", "status"),)


class ContentItemRow(Base):
    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    expiry_date: Mapped[int | None] = mapped_column(Integer, nullable=True)
    product_suite: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_concept: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=[])
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_suite: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_concept: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=[])
    triggers: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[int | None] = mapped_column(Integer, nullable=True)


class AccessEventRow(Base):
    """Append-only download / citation log."""

    __tablename__ = "access_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(
        String(16), nullable=False, default="download"
    )  # download|cited
    occurred_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_access_events_item_time", "item_id", "occurred_at"),)


class NotificationRow(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="info"
    )  # info|warning
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    item_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
