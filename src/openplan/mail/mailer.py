"""
openplan.mail.mailer

Outgoing mail delivery.

Responsibilities:
- Hold the delivery configuration (method, smtp/sendmail settings) that
  `Configuration.reload_mailer_configuration` writes.
- Deliver `EmailMessage`s via SMTP, a sendmail binary, or the in-memory
  `test` method.
"""

from __future__ import annotations

import asyncio
import shlex
import smtplib
import subprocess
from email.message import EmailMessage
from typing import Any

from openplan.observability.logging import get_logger
from openplan.services.settings_store import to_bool

log = get_logger(__name__)

DELIVERY_METHODS = ("smtp", "sendmail", "test")


class Mailer:
    def __init__(
        self,
        *,
        delivery_method: str = "smtp",
        perform_deliveries: bool = False,
        smtp_settings: dict[str, Any] | None = None,
        sendmail_settings: dict[str, Any] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.delivery_method = delivery_method
        self.perform_deliveries = perform_deliveries
        self.smtp_settings: dict[str, Any] = dict(smtp_settings or {})
        self.sendmail_settings: dict[str, Any] = dict(sendmail_settings or {})
        self.timeout = timeout
        self.deliveries: list[EmailMessage] = []

    def deliver(self, message: EmailMessage) -> None:
        if not self.perform_deliveries:
            log.info("mail_delivery_skipped", to=message["To"], subject=message["Subject"])
            return

        if self.delivery_method == "test":
            self.deliveries.append(message)
        elif self.delivery_method == "smtp":
            self._deliver_smtp(message)
        elif self.delivery_method == "sendmail":
            self._deliver_sendmail(message)
        else:
            raise ValueError(f"unsupported delivery method: {self.delivery_method}")
        log.info("mail_delivered", method=self.delivery_method, to=message["To"])

    async def send(self, message: EmailMessage) -> None:
        # smtplib/subprocess block; keep them off the event loop.
        if self.delivery_method == "test":
            self.deliver(message)
        else:
            await asyncio.to_thread(self.deliver, message)

    def _deliver_smtp(self, message: EmailMessage) -> None:
        settings = self.smtp_settings
        use_ssl = to_bool(settings.get("ssl"))
        host = settings.get("address") or "localhost"
        port = int(settings.get("port") or (465 if use_ssl else 25))
        client_cls = smtplib.SMTP_SSL if use_ssl else smtplib.SMTP

        with client_cls(
            host, port, local_hostname=settings.get("domain") or None, timeout=self.timeout
        ) as client:
            if not use_ssl and to_bool(settings.get("enable_starttls_auto")):
                client.ehlo()
                if client.has_extn("starttls"):
                    client.starttls()
                    client.ehlo()
            if settings.get("authentication") and settings.get("user_name"):
                client.login(settings["user_name"], settings.get("password") or "")
            client.send_message(message)

    def _deliver_sendmail(self, message: EmailMessage) -> None:
        location = self.sendmail_settings.get("location") or "/usr/sbin/sendmail"
        arguments = shlex.split(self.sendmail_settings.get("arguments") or "-i")
        subprocess.run(  # noqa: S603 - location is admin configuration
            [location, *arguments, "-t"],
            input=message.as_bytes(),
            check=True,
            timeout=self.timeout,
        )


# Errors a delivery can raise that callers treat as "not sent, try again later".
DELIVERY_ERRORS = (OSError, smtplib.SMTPException, subprocess.SubprocessError, ValueError)
