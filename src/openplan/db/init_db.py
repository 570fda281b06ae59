"""
openplan.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create tables for local development and tests.
- Seed the built-in roles so invitations have something to assign.

Production schemas are managed by the Alembic scripts under `alembic/versions`.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from openplan.db import models  # noqa: F401  # register models on Base.metadata
from openplan.db.base import Base
from openplan.db.models import Role

BUILTIN_ROLES = ("Project admin", "Member", "Reader")


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_roles(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        existing = set((await session.execute(select(Role.name))).scalars().all())
        for name in BUILTIN_ROLES:
            if name not in existing:
                session.add(Role(name=name))
        await session.commit()
