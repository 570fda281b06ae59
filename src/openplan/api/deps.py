"""
openplan.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, configuration, mailer and DB sessions.
- Encapsulate app.state access patterns (set up in `openplan.api.app.create_app`).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from openplan.configuration import Configuration
from openplan.mail.mailer import Mailer
from openplan.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def configuration_dep(request: Request) -> Configuration:
    return request.app.state.configuration  # type: ignore[attr-defined]


def mailer_dep(request: Request) -> Mailer:
    return request.app.state.mailer  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session
