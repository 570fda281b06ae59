"""
openplan.db.repositories.notifications

Repository for `Notification` entities.

Responsibilities:
- Create in-app notifications.
- Query a recipient's notifications and toggle the in-app read flag.
- Find notifications still owed a mail alert or a reminder digest.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Notification, NotificationReason


class NotificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        recipient_id: int,
        reason: NotificationReason,
        subject: str | None = None,
        actor_id: int | None = None,
        project_id: int | None = None,
        journal_id: int | None = None,
        resource_id: int | None = None,
        resource_type: str | None = None,
        mail_alert_sent: bool | None = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            reason=int(reason),
            subject=subject,
            actor_id=actor_id,
            project_id=project_id,
            journal_id=journal_id,
            resource_id=resource_id,
            resource_type=resource_type,
            read_ian=False,
            mail_reminder_sent=False,
            mail_alert_sent=mail_alert_sent,
        )
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def get(self, notification_id: int) -> Notification | None:
        return await self._session.get(Notification, notification_id)

    async def list_for_recipient(
        self, recipient_id: int, *, read_ian: bool | None = None, limit: int = 100
    ) -> list[Notification]:
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        if read_ian is not None:
            stmt = stmt.where(Notification.read_ian.is_(read_ian))
        stmt = stmt.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def pending_mail_alerts(self) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.mail_alert_sent.is_(False))
            .order_by(Notification.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def unreminded_for_recipient(self, recipient_id: int) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.read_ian.is_(False),
                Notification.mail_reminder_sent.is_(False),
            )
            .order_by(Notification.created_at, Notification.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def mark(self, ids: Sequence[int], **values: bool) -> None:
        if not ids:
            return
        stmt = (
            update(Notification)
            .where(Notification.id.in_(list(ids)))
            .values(**values, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)
