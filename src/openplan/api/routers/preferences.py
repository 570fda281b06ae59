"""
openplan.api.routers.preferences

The current user's preferences (workdays, daily reminders, time zone).
"""

from __future__ import annotations

import re
from zoneinfo import available_timezones

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.api.deps import db_session
from openplan.auth.deps import current_user
from openplan.db.models import User, UserPreference
from openplan.services.preferences import PreferenceService, locale_weekdays

router = APIRouter(prefix="/api/v3/my_preferences", tags=["preferences"])

# Reminder slots are on the full or half hour.
_REMINDER_TIME = r"^([01]\d|2[0-3]):(00|30)$"


class Weekday(BaseModel):
    iso: int
    name: str
    working: bool


class DailyReminders(BaseModel):
    enabled: bool = True
    times: list[str] = Field(default_factory=lambda: ["08:00"])

    @field_validator("times")
    @classmethod
    def _check_times(cls, value: list[str]) -> list[str]:
        bad = [t for t in value if not re.match(_REMINDER_TIME, t)]
        if bad:
            raise ValueError(f"invalid reminder times: {', '.join(bad)}")
        return sorted(set(value))


class PreferencesResponse(BaseModel):
    workdays: list[int]
    weekdays: list[Weekday]
    daily_reminders: DailyReminders
    time_zone: str | None


class PreferencesUpdate(BaseModel):
    workdays: list[int] | None = None
    daily_reminders: DailyReminders | None = None
    time_zone: str | None = None

    @field_validator("time_zone")
    @classmethod
    def _check_time_zone(cls, value: str | None) -> str | None:
        if value is not None and value not in available_timezones():
            raise ValueError(f"unknown time zone: {value}")
        return value


def _response(pref: UserPreference, first_weekday: int) -> PreferencesResponse:
    workdays = pref.workdays
    return PreferencesResponse(
        workdays=workdays,
        weekdays=[
            Weekday(iso=iso, name=name, working=iso in workdays)
            for iso, name in locale_weekdays(first_weekday)
        ],
        daily_reminders=DailyReminders(**pref.daily_reminders),
        time_zone=pref.time_zone,
    )


@router.get("", response_model=PreferencesResponse)
async def get_preferences(
    first_weekday: int = Query(default=1, ge=1, le=7),
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> PreferencesResponse:
    pref = await PreferenceService(session=session).get(user.id)
    return _response(pref, first_weekday)


@router.patch("", response_model=PreferencesResponse)
async def update_preferences(
    body: PreferencesUpdate,
    first_weekday: int = Query(default=1, ge=1, le=7),
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> PreferencesResponse:
    # `time_zone: null` clears it, so only pass it when the client sent it.
    explicit = {"time_zone": body.time_zone} if "time_zone" in body.model_fields_set else {}
    pref = await PreferenceService(session=session).update(
        user.id,
        workdays=body.workdays,
        daily_reminders=body.daily_reminders.model_dump() if body.daily_reminders else None,
        **explicit,
    )
    return _response(pref, first_weekday)
