"""
openplan.db.repositories.queries

Repositories for saved queries and their manual work package order.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import OrderedWorkPackage, Query, WorkPackage


class QueryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, query_id: int) -> Query | None:
        return await self._session.get(Query, query_id)

    async def create(
        self, *, name: str, user_id: int, project_id: int | None, public: bool = False
    ) -> Query:
        query = Query(name=name, user_id=user_id, project_id=project_id, public=public)
        self._session.add(query)
        await self._session.flush()
        return query


class WorkPackageRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, project_id: int, subject: str, author_id: int | None = None) -> WorkPackage:
        wp = WorkPackage(project_id=project_id, subject=subject, author_id=author_id)
        self._session.add(wp)
        await self._session.flush()
        return wp

    async def ids_in_project(self, project_id: int, ids: Sequence[int]) -> set[int]:
        if not ids:
            return set()
        stmt = select(WorkPackage.id).where(
            WorkPackage.project_id == project_id, WorkPackage.id.in_(list(ids))
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def existing_ids(self, ids: Sequence[int]) -> set[int]:
        if not ids:
            return set()
        stmt = select(WorkPackage.id).where(WorkPackage.id.in_(list(ids)))
        return set((await self._session.execute(stmt)).scalars().all())


class OrderedWorkPackageRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def order_for(self, query_id: int) -> list[int]:
        stmt = (
            select(OrderedWorkPackage.work_package_id)
            .where(OrderedWorkPackage.query_id == query_id)
            .order_by(OrderedWorkPackage.position, OrderedWorkPackage.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def replace(self, query_id: int, order: Sequence[int]) -> None:
        await self._session.execute(
            delete(OrderedWorkPackage).where(OrderedWorkPackage.query_id == query_id)
        )
        self._session.add_all(
            OrderedWorkPackage(query_id=query_id, work_package_id=wp_id, position=index)
            for index, wp_id in enumerate(order)
        )
        await self._session.flush()
