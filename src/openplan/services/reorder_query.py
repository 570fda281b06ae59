"""
openplan.services.reorder_query

Manual work package order of a query (card board lists).

Responsibilities:
- Pure list operations for drag-and-drop: move, add, remove.
- Persist the resulting order as positions in `ordered_work_packages`.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.models import Query
from openplan.db.repositories.queries import OrderedWorkPackageRepo, QueryRepo, WorkPackageRepo
from openplan.errors import NotFoundError, ValidationFailed
from openplan.observability.logging import get_logger

log = get_logger(__name__)


def move(order: Sequence[int], wp_id: int, to_index: int) -> list[int]:
    new_order = [i for i in order if i != wp_id]
    new_order.insert(to_index, wp_id)
    return new_order


def remove(order: Sequence[int], wp_id: int) -> list[int]:
    return [i for i in order if i != wp_id]


def add(order: Sequence[int], wp_id: int, to_index: int = -1) -> list[int]:
    new_order = remove(order, wp_id)
    if to_index == -1:
        new_order.append(wp_id)
    else:
        new_order.insert(to_index, wp_id)
    return new_order


class ReorderQueryService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._queries = QueryRepo(session)
        self._ordered = OrderedWorkPackageRepo(session)
        self._work_packages = WorkPackageRepo(session)

    async def get_query(self, query_id: int) -> Query:
        query = await self._queries.get(query_id)
        if query is None:
            raise NotFoundError("query not found")
        return query

    async def current_order(self, query_id: int) -> list[int]:
        return await self._ordered.order_for(query_id)

    async def _check_work_package(self, query: Query, wp_id: int) -> None:
        if query.project_id is not None:
            found = await self._work_packages.ids_in_project(query.project_id, [wp_id])
        else:
            found = await self._work_packages.existing_ids([wp_id])
        if wp_id not in found:
            raise ValidationFailed(f"work package {wp_id} is not part of this query's project")

    async def save_order(self, query: Query, order: Sequence[int]) -> list[int]:
        await self._ordered.replace(query.id, order)
        await self._session.commit()
        log.info("query_order_saved", query_id=query.id, size=len(order))
        return list(order)

    async def move(self, query: Query, wp_id: int, to_index: int) -> list[int]:
        current = await self.current_order(query.id)
        if wp_id not in current:
            raise NotFoundError(f"work package {wp_id} is not in this query's order")
        return await self.save_order(query, move(current, wp_id, to_index))

    async def add(self, query: Query, wp_id: int, to_index: int = -1) -> list[int]:
        await self._check_work_package(query, wp_id)
        current = await self.current_order(query.id)
        return await self.save_order(query, add(current, wp_id, to_index))

    async def remove(self, query: Query, wp_id: int) -> list[int]:
        current = await self.current_order(query.id)
        return await self.save_order(query, remove(current, wp_id))
