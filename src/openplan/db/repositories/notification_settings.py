from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import NOTIFICATION_SETTING_FLAGS, NotificationSetting
from openplan.errors import ConflictError


class NotificationSettingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_user(self, user_id: int) -> list[NotificationSetting]:
        # Global row (project_id NULL) first, then per-project rows.
        stmt = (
            select(NotificationSetting)
            .where(NotificationSetting.user_id == user_id)
            .order_by(NotificationSetting.project_id.is_not(None), NotificationSetting.project_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def global_for(self, user_id: int) -> NotificationSetting | None:
        stmt = select(NotificationSetting).where(
            NotificationSetting.user_id == user_id, NotificationSetting.project_id.is_(None)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def for_project(self, user_id: int, project_id: int) -> NotificationSetting | None:
        stmt = select(NotificationSetting).where(
            NotificationSetting.user_id == user_id, NotificationSetting.project_id == project_id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self, *, user_id: int, project_id: int | None, flags: Mapping[str, bool]
    ) -> NotificationSetting:
        setting = NotificationSetting(
            user_id=user_id,
            project_id=project_id,
            **{flag: bool(flags.get(flag, False)) for flag in NOTIFICATION_SETTING_FLAGS},
        )
        self._session.add(setting)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictError("duplicate notification setting for this scope") from e
        return setting

    async def replace_for_user(
        self, user_id: int, entries: Iterable[tuple[int | None, Mapping[str, bool]]]
    ) -> list[NotificationSetting]:
        await self._session.execute(
            delete(NotificationSetting).where(NotificationSetting.user_id == user_id)
        )
        created = []
        for project_id, flags in entries:
            created.append(await self.create(user_id=user_id, project_id=project_id, flags=flags))
        return created
