"""
openplan.api.routers.invitations

Invite a user, placeholder user or group into a project (admin only).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import db_session, mailer_dep
from openplan.auth.deps import require_admin
from openplan.db.models import User
from openplan.mail.mailer import Mailer
from openplan.services.invitations import InvitationService, InviteType
from openplan.services.settings_store import SettingsStore

router = APIRouter(prefix="/api/v3/projects", tags=["invitations"])


class PrincipalRef(BaseModel):
    id: int | None = None
    email: str | None = Field(default=None, max_length=256)
    name: str | None = Field(default=None, max_length=256)

    @model_validator(mode="after")
    def _one_of(self) -> PrincipalRef:
        if self.id is None and not self.email and not self.name:
            raise ValueError("principal needs an id, an email or a name")
        return self


class InvitationRequest(BaseModel):
    type: InviteType
    principal: PrincipalRef
    role_id: int
    message: str | None = Field(default=None, max_length=10_000)


class PrincipalResponse(BaseModel):
    id: int
    type: str
    name: str
    mail: str | None
    status: str


class InvitationResponse(BaseModel):
    already_member: bool
    principal: PrincipalResponse
    member_id: int | None = None
    role_id: int | None = None
    mail_sent: bool = False


@router.post("/{project_id}/invitations", response_model=InvitationResponse)
async def invite(
    project_id: int,
    body: InvitationRequest,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(db_session),
    mailer: Mailer = Depends(mailer_dep),
) -> InvitationResponse:
    mail_from = await SettingsStore(session).get("mail_from")
    svc = InvitationService(session=session, mailer=mailer, mail_from=mail_from)
    result = await svc.invite(
        project_id=project_id,
        type=body.type,
        role_id=body.role_id,
        inviter=admin,
        principal_id=body.principal.id,
        email=body.principal.email,
        name=body.principal.name,
        message=body.message,
    )
    p = result.principal
    return InvitationResponse(
        already_member=result.already_member,
        principal=PrincipalResponse(id=p.id, type=p.type, name=p.name, mail=p.mail, status=p.status),
        member_id=result.member.id if result.member else None,
        role_id=result.member.role_id if result.member else None,
        mail_sent=result.mail_sent,
    )
