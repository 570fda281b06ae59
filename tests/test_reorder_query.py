from __future__ import annotations

import pytest

from openplan.services.reorder_query import add, move, remove


class TestOrderOperations:
    def test_move_to_front(self) -> None:
        assert move([1, 2, 3, 4], 3, 0) == [3, 1, 2, 4]

    def test_move_to_end(self) -> None:
        assert move([1, 2, 3, 4], 1, 3) == [2, 3, 4, 1]

    def test_move_past_end_appends(self) -> None:
        assert move([1, 2, 3], 1, 10) == [2, 3, 1]

    def test_remove(self) -> None:
        assert remove([1, 2, 3], 2) == [1, 3]
        assert remove([1, 2, 3], 9) == [1, 2, 3]

    def test_add_appends_by_default(self) -> None:
        assert add([1, 2], 5) == [1, 2, 5]

    def test_add_at_index(self) -> None:
        assert add([1, 2], 5, 1) == [1, 5, 2]

    def test_add_existing_moves_it(self) -> None:
        assert add([1, 2, 3], 1, -1) == [2, 3, 1]

    def test_inputs_are_not_mutated(self) -> None:
        order = [1, 2, 3]
        move(order, 3, 0)
        add(order, 4)
        remove(order, 1)
        assert order == [1, 2, 3]


@pytest.fixture
async def board(seed):
    owner = await seed.user("owner@example.net")
    project_id = await seed.project("demo")
    wps = [await seed.work_package(project_id, f"Card {i}") for i in range(3)]
    query_id = await seed.query(owner, project_id)
    return {"owner": owner, "project_id": project_id, "wps": wps, "query_id": query_id}


def _url(board, action: str = "") -> str:
    return f"/api/v3/queries/{board['query_id']}/order{'/' + action if action else ''}"


async def test_owner_builds_and_reorders(client, auth, board) -> None:
    headers = auth(board["owner"])
    a, b, c = board["wps"]

    r = await client.get(_url(board), headers=headers)
    assert r.status_code == 200
    assert r.json() == {"query_id": board["query_id"], "order": []}

    for wp_id in (a, b):
        r = await client.post(_url(board, "add"), headers=headers, json={"work_package_id": wp_id})
        assert r.status_code == 200, r.text
    r = await client.post(
        _url(board, "add"), headers=headers, json={"work_package_id": c, "to_index": 0}
    )
    assert r.json()["order"] == [c, a, b]

    r = await client.post(
        _url(board, "move"), headers=headers, json={"work_package_id": c, "to_index": 2}
    )
    assert r.json()["order"] == [a, b, c]

    r = await client.post(_url(board, "remove"), headers=headers, json={"work_package_id": b})
    assert r.json()["order"] == [a, c]

    r = await client.get(_url(board), headers=headers)
    assert r.json()["order"] == [a, c]


async def test_move_unknown_work_package(client, auth, board) -> None:
    r = await client.post(
        _url(board, "move"),
        headers=auth(board["owner"]),
        json={"work_package_id": board["wps"][0], "to_index": 0},
    )
    assert r.status_code == 404


async def test_negative_move_index_is_rejected(client, auth, board) -> None:
    r = await client.post(
        _url(board, "move"),
        headers=auth(board["owner"]),
        json={"work_package_id": board["wps"][0], "to_index": -1},
    )
    assert r.status_code == 422


async def test_work_package_from_other_project(client, auth, board, seed) -> None:
    other_project = await seed.project("other")
    foreign_wp = await seed.work_package(other_project, "Foreign")

    r = await client.post(
        _url(board, "add"), headers=auth(board["owner"]), json={"work_package_id": foreign_wp}
    )
    assert r.status_code == 422


async def test_private_query_is_hidden_from_others(client, auth, board, seed) -> None:
    other = await seed.user("other@example.net")

    r = await client.get(_url(board), headers=auth(other))
    assert r.status_code == 404


async def test_public_query_is_readable_but_not_editable(client, auth, seed) -> None:
    owner = await seed.user("owner@example.net")
    other = await seed.user("other@example.net")
    project_id = await seed.project("demo")
    wp_id = await seed.work_package(project_id, "Card")
    query_id = await seed.query(owner, project_id, public=True)

    r = await client.get(f"/api/v3/queries/{query_id}/order", headers=auth(other))
    assert r.status_code == 200

    r = await client.post(
        f"/api/v3/queries/{query_id}/order/add",
        headers=auth(other),
        json={"work_package_id": wp_id},
    )
    assert r.status_code == 403


async def test_admin_may_edit_any_query(client, auth, board, seed) -> None:
    admin = await seed.user("admin@example.net", admin=True)

    r = await client.post(
        _url(board, "add"), headers=auth(admin), json={"work_package_id": board["wps"][1]}
    )
    assert r.status_code == 200
    assert r.json()["order"] == [board["wps"][1]]


async def test_unknown_query(client, auth, board) -> None:
    r = await client.get("/api/v3/queries/999/order", headers=auth(board["owner"]))
    assert r.status_code == 404
