"""
openplan.services.preferences

User preference rules, chiefly workdays.

Workdays are persisted as ISO weekday numbers (1=Monday ... 7=Sunday). Clients
render them in locale order; `locale_weekdays` maps that display order back to
ISO numbers.
"""

from __future__ import annotations

import calendar
from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import UserPreference
from openplan.db.repositories.preferences import UserPreferenceRepo
from openplan.errors import ValidationFailed

_UNSET: Any = object()


def iso_weekday_names() -> list[str]:
    # calendar.day_name is Monday-first, i.e. already ISO order.
    return list(calendar.day_name)


def locale_weekdays(first_weekday: int = 1) -> list[tuple[int, str]]:
    if not 1 <= first_weekday <= 7:
        raise ValidationFailed("first_weekday must be between 1 and 7")
    names = iso_weekday_names()
    order = [(first_weekday - 1 + offset) % 7 + 1 for offset in range(7)]
    return [(iso, names[iso - 1]) for iso in order]


def normalize_workdays(workdays: Sequence[int]) -> list[int]:
    if any(not 1 <= day <= 7 for day in workdays):
        raise ValidationFailed("workdays must be ISO weekday numbers between 1 and 7")
    if len(set(workdays)) != len(workdays):
        raise ValidationFailed("workdays must not contain duplicates")
    return sorted(workdays)


class PreferenceService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._repo = UserPreferenceRepo(session)

    async def get(self, user_id: int) -> UserPreference:
        pref = await self._repo.get_or_create(user_id)
        await self._session.commit()
        return pref

    async def update(
        self,
        user_id: int,
        *,
        workdays: Sequence[int] | None = None,
        daily_reminders: dict[str, Any] | None = None,
        time_zone: str | None = _UNSET,
    ) -> UserPreference:
        # An explicit None clears the time zone; omitting it keeps the current one.
        pref = await self._repo.get_or_create(user_id)
        changes: dict[str, Any] = {}
        if workdays is not None:
            changes["workdays"] = normalize_workdays(workdays)
        if daily_reminders is not None:
            changes["daily_reminders"] = {**pref.daily_reminders, **daily_reminders}
        if time_zone is not _UNSET:
            changes["time_zone"] = time_zone
        if changes:
            await self._repo.update_settings(pref, changes)
        await self._session.commit()
        return pref
