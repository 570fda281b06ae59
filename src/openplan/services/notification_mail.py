"""
openplan.services.notification_mail

Mail side of notifications.

Responsibilities:
- Send immediate alerts for notifications with `mail_alert_sent = False`.
- Send per-user reminder digests of unread, un-reminded notifications on the
  user's workdays.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from email.message import EmailMessage
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import DEFAULT_WORKDAYS, DEFAULT_DAILY_REMINDERS
from openplan.db.repositories.notifications import NotificationRepo
from openplan.db.repositories.preferences import UserPreferenceRepo
from openplan.db.repositories.users import UserRepo
from openplan.mail.mailer import DELIVERY_ERRORS, Mailer
from openplan.mail.messages import mention_alert_mail, reminder_digest_mail
from openplan.observability.logging import get_logger

log = get_logger(__name__)


class NotificationMailService:
    def __init__(self, *, session: AsyncSession, mailer: Mailer, mail_from: str) -> None:
        self._session = session
        self._mailer = mailer
        self._mail_from = mail_from
        self._notifications = NotificationRepo(session)
        self._users = UserRepo(session)
        self._preferences = UserPreferenceRepo(session)

    async def _deliver(self, build: Callable[[], EmailMessage], *, user_id: int) -> bool:
        # Building the message can fail too; one bad row must not stop the batch.
        try:
            await self._mailer.send(build())
        except DELIVERY_ERRORS as e:
            log.warning("mail_delivery_failed", user_id=user_id, error=str(e))
            return False
        return True

    async def send_mail_alerts(self) -> int:
        sent: list[int] = []
        for notification in await self._notifications.pending_mail_alerts():
            recipient = await self._users.get(notification.recipient_id)
            if recipient is None or not recipient.mail:
                # Nobody to mail; stop retrying.
                sent.append(notification.id)
                continue
            build = partial(
                mention_alert_mail,
                mail_from=self._mail_from,
                user=recipient,
                notification=notification,
            )
            if await self._deliver(build, user_id=recipient.id):
                sent.append(notification.id)

        await self._notifications.mark(sent, mail_alert_sent=True)
        await self._session.commit()
        log.info("mail_alerts_sent", count=len(sent))
        return len(sent)

    async def send_reminders(self, today: date) -> int:
        users = await self._users.list_active()
        preferences = await self._preferences.for_users([u.id for u in users])
        delivered = 0

        for user in users:
            pref = preferences.get(user.id)
            workdays = pref.workdays if pref is not None else DEFAULT_WORKDAYS
            reminders = pref.daily_reminders if pref is not None else DEFAULT_DAILY_REMINDERS
            if today.isoweekday() not in workdays or not reminders.get("enabled", True):
                continue
            if not user.mail:
                continue

            pending = await self._notifications.unreminded_for_recipient(user.id)
            if not pending:
                continue
            build = partial(
                reminder_digest_mail, mail_from=self._mail_from, user=user, notifications=pending
            )
            if await self._deliver(build, user_id=user.id):
                await self._notifications.mark([n.id for n in pending], mail_reminder_sent=True)
                delivered += 1

        await self._session.commit()
        log.info("mail_reminders_sent", day=today.isoformat(), count=delivered)
        return delivered
