"""
openplan.services.invitations

Inviting principals into a project.

Responsibilities:
- Resolve or create the principal (user, placeholder user, group).
- Short-circuit when the principal is already a member.
- Create the membership with the chosen role.
- Mail newly invited users, including the inviter's optional message.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Member, PrincipalType, User, UserStatus
from openplan.db.repositories.projects import MemberRepo, ProjectRepo
from openplan.db.repositories.users import UserRepo
from openplan.errors import NotFoundError, ValidationFailed
from openplan.mail.mailer import DELIVERY_ERRORS, Mailer
from openplan.mail.messages import invitation_mail
from openplan.observability.logging import get_logger

log = get_logger(__name__)


class InviteType(enum.StrEnum):
    user = "user"
    placeholder = "placeholder"
    group = "group"


_PRINCIPAL_TYPES = {
    InviteType.user: PrincipalType.user,
    InviteType.placeholder: PrincipalType.placeholder,
    InviteType.group: PrincipalType.group,
}


@dataclass(frozen=True, slots=True)
class InvitationResult:
    principal: User
    already_member: bool
    member: Member | None = None
    mail_sent: bool = False


class InvitationService:
    def __init__(self, *, session: AsyncSession, mailer: Mailer, mail_from: str) -> None:
        self._session = session
        self._mailer = mailer
        self._mail_from = mail_from
        self._users = UserRepo(session)
        self._projects = ProjectRepo(session)
        self._members = MemberRepo(session)

    async def _resolve_principal(
        self,
        type: InviteType,
        *,
        principal_id: int | None,
        email: str | None,
        name: str | None,
    ) -> tuple[User, bool]:
        """Return the principal and whether it was created by this invitation."""

        if principal_id is not None:
            principal = await self._users.get_principal(principal_id, _PRINCIPAL_TYPES[type])
            if principal is None:
                raise NotFoundError(f"{type.value} {principal_id} not found")
            return principal, False

        if type == InviteType.user:
            if not email:
                raise ValidationFailed("an email address is required to invite a new user")
            existing = await self._users.get_by_mail(email)
            if existing is not None:
                return existing, False
            return await self._users.create_user(mail=email, status=UserStatus.invited), True

        if type == InviteType.placeholder:
            if not name:
                raise ValidationFailed("a name is required for a new placeholder user")
            return await self._users.create_placeholder(name=name), True

        raise ValidationFailed("groups must be selected by id")

    async def invite(
        self,
        *,
        project_id: int,
        type: InviteType,
        role_id: int,
        inviter: User,
        principal_id: int | None = None,
        email: str | None = None,
        name: str | None = None,
        message: str | None = None,
    ) -> InvitationResult:
        if type == InviteType.placeholder and message:
            raise ValidationFailed("placeholder users cannot receive an invitation message")

        project = await self._projects.get(project_id)
        if project is None:
            raise NotFoundError("project not found")

        principal, created = await self._resolve_principal(
            type, principal_id=principal_id, email=email, name=name
        )
        if not created and await self._members.get_for(
            project_id=project_id, user_id=principal.id
        ):
            return InvitationResult(principal=principal, already_member=True)

        if await self._projects.get_role(role_id) is None:
            raise NotFoundError("role not found")

        member = await self._members.create(
            project_id=project_id, user_id=principal.id, role_id=role_id
        )
        await self._session.commit()
        log.info(
            "principal_invited",
            project_id=project_id,
            principal_id=principal.id,
            principal_type=principal.type,
            role_id=role_id,
        )

        mail_sent = False
        if principal.type == PrincipalType.user.value and principal.status == UserStatus.invited.value:
            try:
                mail = invitation_mail(
                    mail_from=self._mail_from,
                    user=principal,
                    project=project,
                    inviter=inviter,
                    message=message,
                )
                await self._mailer.send(mail)
                mail_sent = True
            except DELIVERY_ERRORS as e:
                log.warning("invitation_mail_failed", principal_id=principal.id, error=str(e))

        return InvitationResult(
            principal=principal, already_member=False, member=member, mail_sent=mail_sent
        )
