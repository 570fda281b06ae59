"""
openplan.api.routers.notifications

In-app notifications of the current user.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import db_session
from openplan.auth.deps import current_user
from openplan.db.models import Notification, NotificationReason, User
from openplan.db.repositories.notifications import NotificationRepo
from openplan.services.notifications import NotificationService

router = APIRouter(prefix="/api/v3/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: int
    subject: str | None
    reason: str | None
    read_ian: bool
    project_id: int | None
    actor_id: int | None
    resource_id: int | None
    resource_type: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, n: Notification) -> NotificationResponse:
        return cls(
            id=n.id,
            subject=n.subject,
            reason=NotificationReason(n.reason).name if n.reason is not None else None,
            read_ian=n.read_ian,
            project_id=n.project_id,
            actor_id=n.actor_id,
            resource_id=n.resource_id,
            resource_type=n.resource_type,
            created_at=n.created_at,
        )


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    read_ian: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> list[NotificationResponse]:
    notifications = await NotificationRepo(session).list_for_recipient(
        user.id, read_ian=read_ian, limit=limit
    )
    return [NotificationResponse.from_model(n) for n in notifications]


@router.post("/{notification_id}/read_ian", response_model=NotificationResponse)
async def read_notification(
    notification_id: int,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> NotificationResponse:
    svc = NotificationService(session=session)
    n = await svc.set_read(user_id=user.id, notification_id=notification_id, read=True)
    return NotificationResponse.from_model(n)


@router.post("/{notification_id}/unread_ian", response_model=NotificationResponse)
async def unread_notification(
    notification_id: int,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> NotificationResponse:
    svc = NotificationService(session=session)
    n = await svc.set_read(user_id=user.id, notification_id=notification_id, read=False)
    return NotificationResponse.from_model(n)
