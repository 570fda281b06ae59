from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Setting


class SettingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, name: str) -> Setting | None:
        stmt = select(Setting).where(Setting.name == name)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def all_values(self) -> dict[str, Any]:
        rows = (await self._session.execute(select(Setting))).scalars().all()
        return {row.name: row.value for row in rows}

    async def set(self, name: str, value: Any) -> Setting:
        setting = await self.get(name)
        if setting is None:
            setting = Setting(name=name, value=value)
            self._session.add(setting)
        else:
            setting.value = value
        await self._session.flush()
        return setting
