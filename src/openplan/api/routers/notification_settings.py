"""
openplan.api.routers.notification_settings

The current user's notification settings: one global entry (project_id null)
plus optional per-project overrides.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import db_session
from openplan.auth.deps import current_user
from openplan.db.models import NotificationSetting, User
from openplan.services.notifications import NotificationService

router = APIRouter(prefix="/api/v3/notification_settings", tags=["notifications"])


class NotificationSettingBody(BaseModel):
    project_id: int | None = None
    watched: bool = False
    involved: bool = False
    mentioned: bool = False
    work_package_commented: bool = False
    work_package_created: bool = False
    work_package_processed: bool = False
    work_package_prioritized: bool = False
    work_package_scheduled: bool = False

    @classmethod
    def from_model(cls, s: NotificationSetting) -> NotificationSettingBody:
        return cls(project_id=s.project_id, **s.flags())


@router.get("", response_model=list[NotificationSettingBody])
async def get_notification_settings(
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> list[NotificationSettingBody]:
    settings = await NotificationService(session=session).settings_for(user.id)
    return [NotificationSettingBody.from_model(s) for s in settings]


@router.put("", response_model=list[NotificationSettingBody])
async def replace_notification_settings(
    body: list[NotificationSettingBody],
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> list[NotificationSettingBody]:
    entries = [(entry.project_id, entry.model_dump(exclude={"project_id"})) for entry in body]
    settings = await NotificationService(session=session).replace_settings(user.id, entries)
    return [NotificationSettingBody.from_model(s) for s in settings]
