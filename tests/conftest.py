"""
tests.conftest

Shared fixtures.

Responsibilities:
- Build a test-mode app against a throwaway SQLite file per test.
- Drive startup/shutdown explicitly (httpx ASGITransport does not run lifespan).
- Offer a small `Seed` helper for rows the API cannot create itself.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from openplan.api.app import create_app
from openplan.auth.jwt import JwtConfig, issue_token
from openplan.db.models import Member, Role, UserStatus
from openplan.db.repositories.projects import ProjectRepo
from openplan.db.repositories.queries import QueryRepo, WorkPackageRepo
from openplan.db.repositories.users import UserRepo
from openplan.settings import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        configuration_file=str(tmp_path / "configuration.yml"),
    )


@pytest.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    await app.router.startup()
    try:
        yield app
    finally:
        await app.router.shutdown()


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def sessionmaker(app: FastAPI) -> async_sessionmaker[AsyncSession]:
    return app.state.sessionmaker


@pytest.fixture
async def session(sessionmaker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def auth(app: FastAPI):
    def _headers(user_id: int) -> dict[str, str]:
        token = issue_token(
            cfg=JwtConfig.from_settings(app.state.settings), subject=str(user_id)
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


class Seed:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def user(
        self, mail: str, *, admin: bool = False, status: UserStatus = UserStatus.active
    ) -> int:
        async with self._sessionmaker() as s:
            user = await UserRepo(s).create_user(
                mail=mail, firstname=mail.split("@")[0].title(), admin=admin, status=status
            )
            await s.commit()
            return user.id

    async def group(self, name: str) -> int:
        async with self._sessionmaker() as s:
            group = await UserRepo(s).create_group(name=name)
            await s.commit()
            return group.id

    async def project(self, identifier: str) -> int:
        async with self._sessionmaker() as s:
            project = await ProjectRepo(s).create(name=identifier.title(), identifier=identifier)
            await s.commit()
            return project.id

    async def role_id(self, name: str = "Member") -> int:
        async with self._sessionmaker() as s:
            return (await s.execute(select(Role.id).where(Role.name == name))).scalar_one()

    async def member(self, project_id: int, user_id: int, role: str = "Member") -> None:
        role_id = await self.role_id(role)
        async with self._sessionmaker() as s:
            s.add(Member(project_id=project_id, user_id=user_id, role_id=role_id))
            await s.commit()

    async def work_package(self, project_id: int, subject: str, author_id: int | None = None) -> int:
        async with self._sessionmaker() as s:
            wp = await WorkPackageRepo(s).create(
                project_id=project_id, subject=subject, author_id=author_id
            )
            await s.commit()
            return wp.id

    async def query(self, user_id: int, project_id: int | None, *, public: bool = False) -> int:
        async with self._sessionmaker() as s:
            query = await QueryRepo(s).create(
                name="Board list", user_id=user_id, project_id=project_id, public=public
            )
            await s.commit()
            return query.id


@pytest.fixture
def seed(sessionmaker: async_sessionmaker[AsyncSession]) -> Seed:
    return Seed(sessionmaker)
