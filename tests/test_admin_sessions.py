from __future__ import annotations

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from deadnetguard_api.db.models import Admin, AdminSession
from deadnetguard_api.settings import get_settings

USERNAME = "moderator"
PASSWORD = "correct-horse-battery"


async def setup_admin(client: AsyncClient, username: str = USERNAME, password: str = PASSWORD):
    return await client.post("/v1/admin/setup", json={"username": username, "password": password})


async def login(client: AsyncClient, username: str = USERNAME, password: str = PASSWORD):
    return await client.post("/v1/admin/login", json={"username": username, "password": password})


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_setup_creates_first_admin_once(client: AsyncClient, db_sessionmaker) -> None:
    response = await setup_admin(client)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await setup_admin(client, username="another")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "admin_already_exists"

    async with db_sessionmaker() as session:
        admin = await session.scalar(select(Admin))
    assert admin is not None
    assert admin.username == USERNAME
    assert admin.password_hash != PASSWORD


@pytest.mark.asyncio
async def test_concurrent_setup_creates_exactly_one_admin(
    client: AsyncClient, db_sessionmaker
) -> None:
    responses = await asyncio.gather(
        *(setup_admin(client, username=f"admin{index}") for index in range(5))
    )
    assert sorted(response.status_code for response in responses) == [200, 409, 409, 409, 409]

    async with db_sessionmaker() as session:
        count = await session.scalar(select(func.count()).select_from(Admin))
    assert count == 1


@pytest.mark.asyncio
async def test_setup_validates_credentials(client: AsyncClient) -> None:
    response = await setup_admin(client, password="short")
    assert response.status_code == 400
    response = await setup_admin(client, username="no spaces allowed")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_setup_can_be_disabled(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SETUP_ENABLED", "false")
    get_settings.cache_clear()
    response = await setup_admin(client)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "setup_disabled"


@pytest.mark.asyncio
async def test_login_and_verify(client: AsyncClient) -> None:
    await setup_admin(client)
    response = await login(client)
    assert response.status_code == 200
    token = response.json()["token"]
    assert response.json()["expires_at"]

    response = await client.get("/v1/admin/verify", headers=auth(token))
    assert response.status_code == 200
    assert response.json() == {"valid": True}


@pytest.mark.asyncio
async def test_session_stores_only_token_hash(client: AsyncClient, db_sessionmaker) -> None:
    await setup_admin(client)
    token = (await login(client)).json()["token"]

    async with db_sessionmaker() as session:
        stored = await session.scalar(select(AdminSession))
    assert stored is not None
    assert stored.token_hash != token
    assert len(stored.token_hash) == 64


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client: AsyncClient) -> None:
    await setup_admin(client)
    unknown = await login(client, username="nobody")
    wrong = await login(client, password="wrong-password")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.json()["error"]["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_verify_without_token(client: AsyncClient) -> None:
    response = await client.get("/v1/admin/verify")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "auth_required"
    assert error["message"] == "No token provided"

    response = await client.get("/v1/admin/verify", headers=auth("made-up"))
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"


@pytest.mark.asyncio
async def test_expired_session_is_rejected_and_removed(
    clocked_client: AsyncClient, clock, db_sessionmaker
) -> None:
    await setup_admin(clocked_client)
    token = (await login(clocked_client)).json()["token"]

    clock.advance(seconds=get_settings().session_ttl_seconds - 1)
    assert (await clocked_client.get("/v1/admin/verify", headers=auth(token))).status_code == 200

    clock.advance(seconds=1)
    response = await clocked_client.get("/v1/admin/verify", headers=auth(token))
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid or expired token"

    async with db_sessionmaker() as session:
        remaining = await session.scalar(select(func.count()).select_from(AdminSession))
    assert remaining == 0


@pytest.mark.asyncio
async def test_login_sweeps_expired_sessions(
    clocked_client: AsyncClient, clock, db_sessionmaker
) -> None:
    await setup_admin(clocked_client)
    await login(clocked_client)
    await login(clocked_client)

    clock.advance(seconds=get_settings().session_ttl_seconds + 5)
    await login(clocked_client)

    async with db_sessionmaker() as session:
        remaining = await session.scalar(select(func.count()).select_from(AdminSession))
    assert remaining == 1


@pytest.mark.asyncio
async def test_logout_invalidates_token(client: AsyncClient) -> None:
    await setup_admin(client)
    token = (await login(client)).json()["token"]

    response = await client.post("/v1/admin/logout", headers=auth(token))
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await client.get("/v1/admin/verify", headers=auth(token))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_without_token_succeeds(client: AsyncClient) -> None:
    response = await client.post("/v1/admin/logout")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_password_change_invalidates_every_session(client: AsyncClient) -> None:
    await setup_admin(client)
    first = (await login(client)).json()["token"]
    second = (await login(client)).json()["token"]

    response = await client.post(
        "/v1/admin/password",
        headers=auth(first),
        json={"current_password": PASSWORD, "new_password": "a-brand-new-secret"},
    )
    assert response.status_code == 200

    for token in (first, second):
        assert (await client.get("/v1/admin/verify", headers=auth(token))).status_code == 401

    assert (await login(client)).status_code == 401
    assert (await login(client, password="a-brand-new-secret")).status_code == 200


@pytest.mark.asyncio
async def test_password_change_requires_current_password(client: AsyncClient) -> None:
    await setup_admin(client)
    token = (await login(client)).json()["token"]

    response = await client.post(
        "/v1/admin/password",
        headers=auth(token),
        json={"current_password": "not-it", "new_password": "a-brand-new-secret"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid_credentials"

    assert (await client.get("/v1/admin/verify", headers=auth(token))).status_code == 200
