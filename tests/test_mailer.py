from __future__ import annotations

import subprocess

import pytest

from openplan.db.models import Notification, NotificationReason, User
from openplan.mail import mailer as mailer_module
from openplan.mail.mailer import Mailer
from openplan.mail.messages import header_value, mention_alert_mail, reminder_digest_mail


def _message():
    user = User(mail="jane@example.net", firstname="Jane", lastname="Doe")
    notifications = [
        Notification(subject="Fix login", reason=int(NotificationReason.mentioned)),
        Notification(subject=None, reason=None),
    ]
    return reminder_digest_mail(mail_from="openplan@example.net", user=user, notifications=notifications)


def test_digest_lists_every_notification() -> None:
    message = _message()

    assert message["To"] == "jane@example.net"
    assert message["Subject"] == "Daily reminder: 2 unread notification(s)"
    body = message.get_content()
    assert "- [mentioned] Fix login" in body
    assert "- [unknown] (no subject)" in body


async def test_test_delivery_collects_messages() -> None:
    mailer = Mailer(delivery_method="test", perform_deliveries=True)
    await mailer.send(_message())
    assert len(mailer.deliveries) == 1


async def test_deliveries_disabled_skip_sending() -> None:
    mailer = Mailer(delivery_method="test", perform_deliveries=False)
    await mailer.send(_message())
    assert mailer.deliveries == []


def test_unknown_method_raises() -> None:
    mailer = Mailer(delivery_method="pigeon", perform_deliveries=True)
    with pytest.raises(ValueError):
        mailer.deliver(_message())


async def test_sendmail_pipes_message(monkeypatch) -> None:
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, 0)

    monkeypatch.setattr(mailer_module.subprocess, "run", fake_run)
    mailer = Mailer(
        delivery_method="sendmail",
        perform_deliveries=True,
        sendmail_settings={"location": "/opt/sendmail", "arguments": "-i -f bounce@example.net"},
    )

    await mailer.send(_message())

    [(args, kwargs)] = calls
    assert args == ["/opt/sendmail", "-i", "-f", "bounce@example.net", "-t"]
    assert b"Daily reminder" in kwargs["input"]


def test_header_values_are_single_line() -> None:
    assert header_value("Fix\r\nlogin\n") == "Fix login"

    message = mention_alert_mail(
        mail_from="openplan@example.net",
        user=User(mail="jane@example.net"),
        notification=Notification(subject="Fix\nlogin"),
    )
    assert message["Subject"] == "You have been mentioned: Fix login"
    assert "Fix\nlogin" in message.get_content()
