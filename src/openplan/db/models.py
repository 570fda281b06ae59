"""
openplan.db.models

Core persistence schema.

Responsibilities:
- Principals (users, groups, placeholder users), projects, roles and memberships.
- Work packages plus the per-query manual order used by card boards.
- In-app notifications and the per-user (optionally per-project) notification settings.
- User preferences and the admin-editable settings table.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from openplan.db.base import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class PrincipalType(enum.StrEnum):
    user = "User"
    group = "Group"
    placeholder = "PlaceholderUser"


class UserStatus(enum.StrEnum):
    active = "active"
    registered = "registered"
    invited = "invited"
    locked = "locked"


class NotificationReason(enum.IntEnum):
    # Persisted as small ints; never renumber.
    mentioned = 0
    involved = 1
    watched = 2
    subscribed = 3
    commented = 4
    created = 5
    processed = 6
    prioritized = 7
    scheduled = 8


class User(Base):
    """Any principal: users, groups and placeholder users share this table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default=PrincipalType.user.value)
    login: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True)
    firstname: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    lastname: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    mail: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True)
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=UserStatus.active.value, index=True
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    memberships: Mapped[list[Member]] = relationship(
        back_populates="principal", cascade="all, delete-orphan"
    )

    @property
    def name(self) -> str:
        # Groups and placeholders keep their display name in `lastname`.
        return " ".join(part for part in (self.firstname, self.lastname) if part)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    identifier: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    members: Mapped[list[Member]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)


class Member(Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    project: Mapped[Project] = relationship(back_populates="members")
    principal: Mapped[User] = relationship(back_populates="memberships")
    role: Mapped[Role] = relationship()

    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_members_project_user"),)


class WorkPackage(Base):
    __tablename__ = "work_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject: Mapped[str] = mapped_column(String(256), nullable=False)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_to_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class Query(Base):
    """A saved work package query; card boards render one query per list."""

    __tablename__ = "queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class OrderedWorkPackage(Base):
    __tablename__ = "ordered_work_packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    query_id: Mapped[int] = mapped_column(
        ForeignKey("queries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    work_package_id: Mapped[int] = mapped_column(
        ForeignKey("work_packages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "query_id", "work_package_id", name="uq_ordered_work_packages_query_work_package"
        ),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    read_ian: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    mail_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # None: no mail alert applies, False: alert pending, True: alert sent.
    mail_alert_sent: Mapped[bool | None] = mapped_column(
        Boolean, nullable=True, default=None, index=True
    )

    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    journal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resource_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_notifications_resource", "resource_id", "resource_type"),
    )


NOTIFICATION_SETTING_FLAGS = (
    "watched",
    "involved",
    "mentioned",
    "work_package_commented",
    "work_package_created",
    "work_package_processed",
    "work_package_prioritized",
    "work_package_scheduled",
)


class NotificationSetting(Base):
    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )

    watched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    involved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mentioned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_package_commented: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_package_created: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_package_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_package_prioritized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_package_scheduled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        # One global row per user, one row per (user, project).
        Index(
            "index_notification_settings_unique_project_null",
            "user_id",
            unique=True,
            sqlite_where=text("project_id IS NULL"),
            postgresql_where=text("project_id IS NULL"),
        ),
        Index(
            "index_notification_settings_unique_project",
            "user_id",
            "project_id",
            unique=True,
            sqlite_where=text("project_id IS NOT NULL"),
            postgresql_where=text("project_id IS NOT NULL"),
        ),
    )

    def flags(self) -> dict[str, bool]:
        return {flag: bool(getattr(self, flag)) for flag in NOTIFICATION_SETTING_FLAGS}


DEFAULT_WORKDAYS = [1, 2, 3, 4, 5]
DEFAULT_DAILY_REMINDERS: dict[str, Any] = {"enabled": True, "times": ["08:00"]}


class UserPreference(Base):
    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    @property
    def workdays(self) -> list[int]:
        workdays = (self.settings or {}).get("workdays")
        return list(DEFAULT_WORKDAYS) if workdays is None else list(workdays)

    @property
    def daily_reminders(self) -> dict[str, Any]:
        return {**DEFAULT_DAILY_REMINDERS, **((self.settings or {}).get("daily_reminders") or {})}

    @property
    def time_zone(self) -> str | None:
        return (self.settings or {}).get("time_zone")

    def is_workday(self, day: date) -> bool:
        return day.isoweekday() in self.workdays


class Setting(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


# --- Module Notes -----------------------------------------------------------
# Keep this file aligned with the scripts in alembic/versions; the partial unique
# indexes on notification_settings are created there with the same names.
