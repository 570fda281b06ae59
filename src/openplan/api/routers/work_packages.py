"""
openplan.api.routers.work_packages

Minimal work package endpoints: creating one in a project and commenting on
it. Both fan out notifications to the people involved.
"""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND, HTTP_422_UNPROCESSABLE_ENTITY

from openplan.api.deps import db_session
from openplan.auth.deps import current_user
from openplan.db.models import NotificationReason, User, WorkPackage
from openplan.db.repositories.projects import MemberRepo, ProjectRepo
from openplan.db.repositories.queries import WorkPackageRepo
from openplan.services.notifications import NotificationService

router = APIRouter(prefix="/api/v3", tags=["work_packages"])

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class WorkPackageCreate(BaseModel):
    subject: str = Field(min_length=1, max_length=256)
    assigned_to_id: int | None = None

    @field_validator("subject")
    @classmethod
    def _single_line(cls, value: str) -> str:
        # Subjects end up in mail headers.
        if _CONTROL_CHARS.search(value):
            raise ValueError("subject must not contain control characters")
        return value


class WorkPackageResponse(BaseModel):
    id: int
    project_id: int
    subject: str
    author_id: int | None
    assigned_to_id: int | None


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)
    mentioned_user_ids: list[int] = Field(default_factory=list)


class CommentResponse(BaseModel):
    work_package_id: int
    notified_user_ids: list[int]


def _wp_response(wp: WorkPackage) -> WorkPackageResponse:
    return WorkPackageResponse(
        id=wp.id,
        project_id=wp.project_id,
        subject=wp.subject,
        author_id=wp.author_id,
        assigned_to_id=wp.assigned_to_id,
    )


async def _require_member(session: AsyncSession, project_id: int, user: User) -> None:
    if user.admin:
        return
    if await MemberRepo(session).get_for(project_id=project_id, user_id=user.id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Project not found")


@router.post("/projects/{project_id}/work_packages", response_model=WorkPackageResponse)
async def create_work_package(
    project_id: int,
    body: WorkPackageCreate,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> WorkPackageResponse:
    if await ProjectRepo(session).get(project_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Project not found")
    await _require_member(session, project_id, user)
    members = await MemberRepo(session).user_ids_for_project(project_id)
    if body.assigned_to_id is not None and body.assigned_to_id not in members:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Assignee must be a user who is a member of the project",
        )

    wp = await WorkPackageRepo(session).create(
        project_id=project_id, subject=body.subject, author_id=user.id
    )
    wp.assigned_to_id = body.assigned_to_id

    svc = NotificationService(session=session)
    for member_id in members:
        reason = (
            NotificationReason.involved
            if member_id == body.assigned_to_id
            else NotificationReason.created
        )
        await svc.create_for_event(
            recipient_id=member_id,
            reason=reason,
            subject=wp.subject,
            actor_id=user.id,
            project_id=project_id,
            resource_id=wp.id,
            resource_type="WorkPackage",
        )
    await session.commit()
    return _wp_response(wp)


@router.post("/work_packages/{work_package_id}/comments", response_model=CommentResponse)
async def comment_work_package(
    work_package_id: int,
    body: CommentCreate,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> CommentResponse:
    wp = await session.get(WorkPackage, work_package_id)
    if wp is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Work package not found")
    await _require_member(session, wp.project_id, user)

    members = set(await MemberRepo(session).user_ids_for_project(wp.project_id))
    # A mention beats the generic "commented" reason for the same recipient.
    recipients: dict[int, NotificationReason] = {}
    for involved_id in (wp.author_id, wp.assigned_to_id):
        if involved_id in members:
            recipients[involved_id] = NotificationReason.commented
    for mentioned_id in body.mentioned_user_ids:
        if mentioned_id in members:
            recipients[mentioned_id] = NotificationReason.mentioned

    svc = NotificationService(session=session)
    notified = []
    for recipient_id, reason in sorted(recipients.items()):
        notification = await svc.create_for_event(
            recipient_id=recipient_id,
            reason=reason,
            subject=wp.subject,
            actor_id=user.id,
            project_id=wp.project_id,
            resource_id=wp.id,
            resource_type="WorkPackage",
        )
        if notification is not None:
            notified.append(recipient_id)
    await session.commit()
    return CommentResponse(work_package_id=wp.id, notified_user_ids=notified)
