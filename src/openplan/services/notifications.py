"""
openplan.services.notifications

Notification and notification-setting rules.

Responsibilities:
- Ensure every user has a global notification setting (with defaults).
- Replace a user's settings; uniqueness per scope comes from the partial unique indexes.
- Decide whether an event produces an in-app notification, and whether it
  owes an immediate mail alert.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Notification, NotificationReason, NotificationSetting
from openplan.db.repositories.notification_settings import NotificationSettingRepo
from openplan.db.repositories.notifications import NotificationRepo
from openplan.db.repositories.projects import ProjectRepo
from openplan.errors import ConflictError, NotFoundError
from openplan.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_GLOBAL_FLAGS: dict[str, bool] = {"involved": True, "mentioned": True, "watched": True}

# Reasons without an entry (subscribed) are always delivered.
REASON_FLAGS: dict[NotificationReason, str] = {
    NotificationReason.mentioned: "mentioned",
    NotificationReason.involved: "involved",
    NotificationReason.watched: "watched",
    NotificationReason.commented: "work_package_commented",
    NotificationReason.created: "work_package_created",
    NotificationReason.processed: "work_package_processed",
    NotificationReason.prioritized: "work_package_prioritized",
    NotificationReason.scheduled: "work_package_scheduled",
}


class NotificationService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._settings = NotificationSettingRepo(session)
        self._notifications = NotificationRepo(session)
        self._projects = ProjectRepo(session)

    async def ensure_global_setting(self, user_id: int) -> NotificationSetting:
        setting = await self._settings.global_for(user_id)
        if setting is None:
            setting = await self._settings.create(
                user_id=user_id, project_id=None, flags=DEFAULT_GLOBAL_FLAGS
            )
        return setting

    async def settings_for(self, user_id: int) -> list[NotificationSetting]:
        await self.ensure_global_setting(user_id)
        await self._session.commit()
        return await self._settings.list_for_user(user_id)

    async def replace_settings(
        self, user_id: int, entries: Sequence[tuple[int | None, Mapping[str, bool]]]
    ) -> list[NotificationSetting]:
        for project_id, _ in entries:
            if project_id is not None and await self._projects.get(project_id) is None:
                raise NotFoundError(f"project {project_id} not found")

        try:
            await self._settings.replace_for_user(user_id, entries)
        except ConflictError:
            await self._session.rollback()
            raise
        if not any(project_id is None for project_id, _ in entries):
            await self.ensure_global_setting(user_id)
        await self._session.commit()
        log.info("notification_settings_replaced", user_id=user_id, count=len(entries))
        return await self._settings.list_for_user(user_id)

    async def applicable_setting(self, user_id: int, project_id: int | None) -> NotificationSetting:
        if project_id is not None:
            setting = await self._settings.for_project(user_id, project_id)
            if setting is not None:
                return setting
        return await self.ensure_global_setting(user_id)

    async def create_for_event(
        self,
        *,
        recipient_id: int,
        reason: NotificationReason,
        subject: str | None = None,
        actor_id: int | None = None,
        project_id: int | None = None,
        resource_id: int | None = None,
        resource_type: str | None = None,
        journal_id: int | None = None,
    ) -> Notification | None:
        """
        Create a notification for `recipient_id` unless the actor is the
        recipient or the applicable setting opts out of `reason`. The caller
        commits.
        """

        if actor_id is not None and actor_id == recipient_id:
            return None

        setting = await self.applicable_setting(recipient_id, project_id)
        flag = REASON_FLAGS.get(reason)
        if flag is not None and not getattr(setting, flag):
            return None

        return await self._notifications.create(
            recipient_id=recipient_id,
            reason=reason,
            subject=subject,
            actor_id=actor_id,
            project_id=project_id,
            journal_id=journal_id,
            resource_id=resource_id,
            resource_type=resource_type,
            mail_alert_sent=False if reason == NotificationReason.mentioned else None,
        )

    async def set_read(self, *, user_id: int, notification_id: int, read: bool) -> Notification:
        notification = await self._notifications.get(notification_id)
        # Other users' notifications are reported as missing, not forbidden.
        if notification is None or notification.recipient_id != user_id:
            raise NotFoundError("notification not found")
        notification.read_ian = read
        await self._session.commit()
        return notification
