"""
openplan.mail.messages

Builders for the plain-text mails the service sends.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from email.message import EmailMessage

from openplan.db.models import Notification, NotificationReason, Project, User


_LINE_BREAKS = re.compile(r"[\r\n]+")


def header_value(value: str) -> str:
    # EmailMessage rejects header values containing CR/LF.
    return _LINE_BREAKS.sub(" ", value).strip()


def _message(*, mail_from: str, to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = header_value(mail_from)
    message["To"] = header_value(to)
    message["Subject"] = header_value(subject)
    message.set_content(body)
    return message


def invitation_mail(
    *, mail_from: str, user: User, project: Project, inviter: User, message: str | None
) -> EmailMessage:
    lines = [
        f"{inviter.name or inviter.mail} invited you to join the project '{project.name}'.",
        "",
    ]
    if message:
        lines += [message, ""]
    lines.append("Activate your account to get started.")
    return _message(
        mail_from=mail_from,
        to=user.mail or "",
        subject=f"You have been invited to {project.name}",
        body="\n".join(lines),
    )


def mention_alert_mail(*, mail_from: str, user: User, notification: Notification) -> EmailMessage:
    return _message(
        mail_from=mail_from,
        to=user.mail or "",
        subject=f"You have been mentioned: {notification.subject or 'work package'}",
        body=f"You were mentioned in: {notification.subject or '(no subject)'}",
    )


def reminder_digest_mail(
    *, mail_from: str, user: User, notifications: Sequence[Notification]
) -> EmailMessage:
    lines = [f"You have {len(notifications)} unread notification(s):", ""]
    for notification in notifications:
        reason = (
            NotificationReason(notification.reason).name
            if notification.reason is not None
            else "unknown"
        )
        lines.append(f"- [{reason}] {notification.subject or '(no subject)'}")
    return _message(
        mail_from=mail_from,
        to=user.mail or "",
        subject=f"Daily reminder: {len(notifications)} unread notification(s)",
        body="\n".join(lines),
    )
