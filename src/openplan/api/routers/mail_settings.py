"""
openplan.api.routers.mail_settings

Admin view/update of mail delivery settings. Updates take effect immediately:
the app's mailer is reconfigured from the stored values.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import configuration_dep, db_session, mailer_dep
from openplan.auth.deps import require_admin
from openplan.configuration import Configuration
from openplan.db.models import User
from openplan.mail.mailer import Mailer
from openplan.observability.logging import get_logger
from openplan.services.settings_store import SettingsStore

log = get_logger(__name__)

router = APIRouter(
    prefix="/api/v3/settings/mail",
    tags=["settings"],
    dependencies=[Depends(require_admin)],
)


class MailSettingsResponse(BaseModel):
    email_delivery_method: str | None
    mail_from: str
    smtp_address: str
    smtp_port: int
    smtp_domain: str
    smtp_authentication: str
    smtp_user_name: str
    smtp_enable_starttls_auto: bool
    smtp_ssl: bool
    sendmail_location: str
    sendmail_arguments: str
    # Effective state of the running mailer, which legacy configuration may override.
    delivery_method: str
    perform_deliveries: bool


class MailSettingsUpdate(BaseModel):
    email_delivery_method: Literal["smtp", "sendmail"] | None = None
    mail_from: str | None = Field(default=None, max_length=256)
    smtp_address: str | None = None
    smtp_port: int | None = Field(default=None, ge=1, le=65535)
    smtp_domain: str | None = None
    smtp_authentication: Literal["none", "plain", "login", "cram_md5"] | None = None
    smtp_user_name: str | None = None
    smtp_password: str | None = None
    smtp_enable_starttls_auto: bool | None = None
    smtp_ssl: bool | None = None
    sendmail_location: str | None = None
    sendmail_arguments: str | None = None


def _response(values: dict[str, Any], mailer: Mailer) -> MailSettingsResponse:
    # The password is write-only.
    visible = {k: v for k, v in values.items() if k != "smtp_password"}
    return MailSettingsResponse(
        **visible,
        delivery_method=mailer.delivery_method,
        perform_deliveries=mailer.perform_deliveries,
    )


@router.get("", response_model=MailSettingsResponse)
async def get_mail_settings(
    session: AsyncSession = Depends(db_session),
    mailer: Mailer = Depends(mailer_dep),
) -> MailSettingsResponse:
    return _response(await SettingsStore(session).snapshot(), mailer)


@router.patch("", response_model=MailSettingsResponse)
async def update_mail_settings(
    body: MailSettingsUpdate,
    session: AsyncSession = Depends(db_session),
    mailer: Mailer = Depends(mailer_dep),
    configuration: Configuration = Depends(configuration_dep),
    admin: User = Depends(require_admin),
) -> MailSettingsResponse:
    store = SettingsStore(session)
    changes = body.model_dump(exclude_unset=True)
    for name, value in changes.items():
        await store.set(name, value)
    await session.commit()

    values = await store.snapshot()
    configuration.reload_mailer_configuration(mailer, values)
    log.info("mail_settings_updated", admin_id=admin.id, changed=sorted(changes))
    return _response(values, mailer)
