from __future__ import annotations

import pytest

from openplan.errors import ValidationFailed
from openplan.services.preferences import locale_weekdays, normalize_workdays

URL = "/api/v3/my_preferences"


@pytest.fixture
async def user_id(seed) -> int:
    return await seed.user("jane@example.net")


def test_locale_weekdays_start_on_given_day() -> None:
    assert [iso for iso, _ in locale_weekdays(1)] == [1, 2, 3, 4, 5, 6, 7]
    assert [iso for iso, _ in locale_weekdays(7)] == [7, 1, 2, 3, 4, 5, 6]
    assert locale_weekdays(7)[0] == (7, "Sunday")


def test_locale_weekdays_reject_invalid_start() -> None:
    with pytest.raises(ValidationFailed):
        locale_weekdays(0)


@pytest.mark.parametrize("workdays", [[0, 1], [8], [1, 1, 2]])
def test_normalize_workdays_rejects(workdays) -> None:
    with pytest.raises(ValidationFailed):
        normalize_workdays(workdays)


def test_normalize_workdays_sorts() -> None:
    assert normalize_workdays([5, 1, 3]) == [1, 3, 5]
    assert normalize_workdays([]) == []


async def test_defaults(client, auth, user_id) -> None:
    r = await client.get(URL, headers=auth(user_id))
    assert r.status_code == 200
    body = r.json()
    assert body["workdays"] == [1, 2, 3, 4, 5]
    assert body["daily_reminders"] == {"enabled": True, "times": ["08:00"]}
    assert body["time_zone"] is None
    assert body["weekdays"][0] == {"iso": 1, "name": "Monday", "working": True}
    assert body["weekdays"][6] == {"iso": 7, "name": "Sunday", "working": False}


async def test_update_workdays(client, auth, user_id) -> None:
    r = await client.patch(URL, headers=auth(user_id), json={"workdays": [7, 2, 4]})
    assert r.status_code == 200, r.text
    assert r.json()["workdays"] == [2, 4, 7]

    r = await client.get(URL, headers=auth(user_id), params={"first_weekday": 7})
    weekdays = r.json()["weekdays"]
    assert [d["iso"] for d in weekdays] == [7, 1, 2, 3, 4, 5, 6]
    assert [d["working"] for d in weekdays] == [True, False, True, False, True, False, False]


@pytest.mark.parametrize("workdays", [[0], [1, 1], [9]])
async def test_invalid_workdays(client, auth, user_id, workdays) -> None:
    r = await client.patch(URL, headers=auth(user_id), json={"workdays": workdays})
    assert r.status_code == 422


async def test_update_reminders_and_time_zone(client, auth, user_id) -> None:
    r = await client.patch(
        URL,
        headers=auth(user_id),
        json={
            "daily_reminders": {"enabled": True, "times": ["17:30", "08:00", "08:00"]},
            "time_zone": "Europe/Berlin",
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["daily_reminders"]["times"] == ["08:00", "17:30"]
    assert body["time_zone"] == "Europe/Berlin"
    # Untouched preferences keep their values.
    assert body["workdays"] == [1, 2, 3, 4, 5]


async def test_time_zone_can_be_cleared(client, auth, user_id) -> None:
    r = await client.patch(URL, headers=auth(user_id), json={"time_zone": "Europe/Berlin"})
    assert r.json()["time_zone"] == "Europe/Berlin"

    r = await client.patch(URL, headers=auth(user_id), json={"workdays": [1, 2]})
    assert r.json()["time_zone"] == "Europe/Berlin"

    r = await client.patch(URL, headers=auth(user_id), json={"time_zone": None})
    assert r.status_code == 200, r.text
    assert r.json()["time_zone"] is None

    r = await client.get(URL, headers=auth(user_id))
    assert r.json()["time_zone"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"daily_reminders": {"times": ["08:15"]}},
        {"daily_reminders": {"times": ["24:00"]}},
        {"time_zone": "Mars/Olympus_Mons"},
    ],
)
async def test_invalid_reminders_or_time_zone(client, auth, user_id, payload) -> None:
    r = await client.patch(URL, headers=auth(user_id), json=payload)
    assert r.status_code == 422


async def test_first_weekday_out_of_range(client, auth, user_id) -> None:
    r = await client.get(URL, headers=auth(user_id), params={"first_weekday": 8})
    assert r.status_code == 422
