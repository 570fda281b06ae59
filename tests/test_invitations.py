from __future__ import annotations

import pytest

URL = "/api/v3/projects/{}/invitations"


@pytest.fixture
async def ctx(seed):
    admin = await seed.user("admin@example.net", admin=True)
    project_id = await seed.project("demo")
    role_id = await seed.role_id("Member")
    return {"admin": admin, "project_id": project_id, "role_id": role_id}


async def _invite(client, auth, ctx, **body):
    payload = {"role_id": ctx["role_id"], **body}
    return await client.post(
        URL.format(ctx["project_id"]), headers=auth(ctx["admin"]), json=payload
    )


async def test_invite_new_user_by_email(app, client, auth, ctx) -> None:
    r = await _invite(
        client,
        auth,
        ctx,
        type="user",
        principal={"email": "new@example.net"},
        message="Welcome aboard!",
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["already_member"] is False
    assert body["principal"]["mail"] == "new@example.net"
    assert body["principal"]["status"] == "invited"
    assert body["principal"]["type"] == "User"
    assert body["role_id"] == ctx["role_id"]
    assert body["member_id"] is not None
    assert body["mail_sent"] is True

    [mail] = app.state.mailer.deliveries
    assert mail["To"] == "new@example.net"
    assert "Demo" in mail["Subject"]
    assert "Welcome aboard!" in mail.get_content()


async def test_invite_existing_active_user_sends_no_mail(app, client, auth, ctx, seed) -> None:
    user_id = await seed.user("jane@example.net")

    r = await _invite(client, auth, ctx, type="user", principal={"email": "JANE@example.net"})
    assert r.status_code == 200
    body = r.json()
    assert body["principal"]["id"] == user_id
    assert body["mail_sent"] is False
    assert app.state.mailer.deliveries == []


async def test_already_member(client, auth, ctx, seed) -> None:
    user_id = await seed.user("jane@example.net")
    await seed.member(ctx["project_id"], user_id)

    r = await _invite(client, auth, ctx, type="user", principal={"id": user_id})
    assert r.status_code == 200
    body = r.json()
    assert body["already_member"] is True
    assert body["member_id"] is None
    assert body["principal"]["id"] == user_id


async def test_invite_placeholder(client, auth, ctx) -> None:
    r = await _invite(client, auth, ctx, type="placeholder", principal={"name": "Designer"})
    assert r.status_code == 200
    body = r.json()
    assert body["principal"]["type"] == "PlaceholderUser"
    assert body["principal"]["name"] == "Designer"
    assert body["mail_sent"] is False


async def test_placeholder_with_message_is_rejected(client, auth, ctx) -> None:
    r = await _invite(
        client, auth, ctx, type="placeholder", principal={"name": "Designer"}, message="Hi"
    )
    assert r.status_code == 422


async def test_invite_group_by_id(client, auth, ctx, seed) -> None:
    group_id = await seed.group("Developers")

    r = await _invite(client, auth, ctx, type="group", principal={"id": group_id})
    assert r.status_code == 200
    assert r.json()["principal"]["type"] == "Group"

    r = await _invite(client, auth, ctx, type="group", principal={"name": "New group"})
    assert r.status_code == 422


async def test_principal_of_wrong_type_is_not_found(client, auth, ctx, seed) -> None:
    group_id = await seed.group("Developers")

    r = await _invite(client, auth, ctx, type="user", principal={"id": group_id})
    assert r.status_code == 404


async def test_unknown_role_and_project(client, auth, ctx) -> None:
    r = await _invite(client, auth, ctx, type="user", principal={"email": "x@example.net"}, role_id=999)
    assert r.status_code == 404

    r = await client.post(
        URL.format(999),
        headers=auth(ctx["admin"]),
        json={"type": "user", "principal": {"email": "x@example.net"}, "role_id": ctx["role_id"]},
    )
    assert r.status_code == 404


async def test_principal_reference_required(client, auth, ctx) -> None:
    r = await _invite(client, auth, ctx, type="user", principal={})
    assert r.status_code == 422


async def test_non_admin_is_forbidden(client, auth, ctx, seed) -> None:
    user_id = await seed.user("jane@example.net")

    r = await client.post(
        URL.format(ctx["project_id"]),
        headers=auth(user_id),
        json={"type": "user", "principal": {"email": "x@example.net"}, "role_id": ctx["role_id"]},
    )
    assert r.status_code == 403


async def test_failed_invitation_mail_keeps_membership(
    app, client, auth, ctx, monkeypatch
) -> None:
    async def refuse(message) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr(app.state.mailer, "send", refuse)

    r = await _invite(client, auth, ctx, type="user", principal={"email": "new@example.net"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["mail_sent"] is False
    assert body["member_id"] is not None

    r = await _invite(client, auth, ctx, type="user", principal={"id": body["principal"]["id"]})
    assert r.json()["already_member"] is True
