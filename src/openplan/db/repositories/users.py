from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import PrincipalType, User, UserStatus


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_principal(self, principal_id: int, type: PrincipalType) -> User | None:
        principal = await self._session.get(User, principal_id)
        if principal is None or principal.type != type.value:
            return None
        return principal

    async def get_by_mail(self, mail: str) -> User | None:
        stmt = select(User).where(func.lower(User.mail) == mail.lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create_user(
        self,
        *,
        mail: str,
        firstname: str = "",
        lastname: str = "",
        status: UserStatus = UserStatus.active,
        admin: bool = False,
    ) -> User:
        user = User(
            type=PrincipalType.user.value,
            login=mail,
            mail=mail,
            firstname=firstname,
            lastname=lastname,
            status=status.value,
            admin=admin,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def create_group(self, *, name: str) -> User:
        group = User(type=PrincipalType.group.value, lastname=name)
        self._session.add(group)
        await self._session.flush()
        return group

    async def create_placeholder(self, *, name: str) -> User:
        placeholder = User(type=PrincipalType.placeholder.value, lastname=name)
        self._session.add(placeholder)
        await self._session.flush()
        return placeholder

    async def list_active(self) -> list[User]:
        stmt = select(User).where(
            User.type == PrincipalType.user.value, User.status == UserStatus.active.value
        )
        return list((await self._session.execute(stmt)).scalars().all())
