"""
openplan.db.repositories.projects

Repositories for projects, roles and project memberships.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Member, PrincipalType, Project, Role, User
from openplan.errors import ConflictError


class ProjectRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, project_id: int) -> Project | None:
        return await self._session.get(Project, project_id)

    async def create(self, *, name: str, identifier: str) -> Project:
        project = Project(name=name, identifier=identifier)
        self._session.add(project)
        await self._session.flush()
        return project

    async def get_role(self, role_id: int) -> Role | None:
        return await self._session.get(Role, role_id)


class MemberRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for(self, *, project_id: int, user_id: int) -> Member | None:
        stmt = select(Member).where(Member.project_id == project_id, Member.user_id == user_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def user_ids_for_project(self, project_id: int) -> list[int]:
        stmt = (
            select(Member.user_id)
            .join(User, User.id == Member.user_id)
            .where(Member.project_id == project_id, User.type == PrincipalType.user.value)
            .order_by(Member.user_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def create(self, *, project_id: int, user_id: int, role_id: int) -> Member:
        member = Member(project_id=project_id, user_id=user_id, role_id=role_id)
        self._session.add(member)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictError("principal is already a member of this project") from e
        return member
