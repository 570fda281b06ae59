"""
openplan.api.routers.jobs

Admin triggers for the periodic mail jobs (alerts for mentions, daily reminder
digests). A scheduler (cron, k8s CronJob) is expected to call these.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import db_session, mailer_dep
from openplan.auth.deps import require_admin
from openplan.mail.mailer import Mailer
from openplan.services.notification_mail import NotificationMailService
from openplan.services.settings_store import SettingsStore

router = APIRouter(
    prefix="/api/v3/jobs",
    tags=["jobs"],
    dependencies=[Depends(require_admin)],
)


async def _service(session: AsyncSession, mailer: Mailer) -> NotificationMailService:
    mail_from = await SettingsStore(session).get("mail_from")
    return NotificationMailService(session=session, mailer=mailer, mail_from=mail_from)


@router.post("/mail_alerts")
async def run_mail_alerts(
    session: AsyncSession = Depends(db_session),
    mailer: Mailer = Depends(mailer_dep),
) -> dict[str, int]:
    svc = await _service(session, mailer)
    return {"sent": await svc.send_mail_alerts()}


@router.post("/mail_reminders")
async def run_mail_reminders(
    day: date | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
    mailer: Mailer = Depends(mailer_dep),
) -> dict[str, int]:
    svc = await _service(session, mailer)
    return {"sent": await svc.send_reminders(day or date.today())}
