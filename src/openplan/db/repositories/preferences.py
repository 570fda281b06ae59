from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import UserPreference


class UserPreferenceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_or_create(self, user_id: int) -> UserPreference:
        stmt = select(UserPreference).where(UserPreference.user_id == user_id)
        pref = (await self._session.execute(stmt)).scalar_one_or_none()
        if pref is not None:
            return pref
        pref = UserPreference(user_id=user_id, settings={})
        self._session.add(pref)
        await self._session.flush()
        return pref

    async def for_users(self, user_ids: list[int]) -> dict[int, UserPreference]:
        if not user_ids:
            return {}
        stmt = select(UserPreference).where(UserPreference.user_id.in_(user_ids))
        return {p.user_id: p for p in (await self._session.execute(stmt)).scalars().all()}

    async def update_settings(self, pref: UserPreference, changes: dict[str, Any]) -> None:
        # Reassign the JSON value so SQLAlchemy registers the change.
        pref.settings = {**(pref.settings or {}), **changes}
        await self._session.flush()
