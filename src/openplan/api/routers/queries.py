"""
openplan.api.routers.queries

Manual work package order of a query, as edited by dragging cards on a board.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND

from openplan.api.deps import db_session
from openplan.auth.deps import current_user
from openplan.db.models import Query, User
from openplan.services.reorder_query import ReorderQueryService

router = APIRouter(prefix="/api/v3/queries", tags=["queries"])


class OrderResponse(BaseModel):
    query_id: int
    order: list[int]


class MoveRequest(BaseModel):
    work_package_id: int
    to_index: int = Field(ge=0)


class AddRequest(BaseModel):
    work_package_id: int
    # -1 appends.
    to_index: int = Field(default=-1, ge=-1)


class RemoveRequest(BaseModel):
    work_package_id: int


def _check_visible(query: Query, user: User) -> None:
    if not (query.public or query.user_id == user.id or user.admin):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Query not found")


def _check_editable(query: Query, user: User) -> None:
    _check_visible(query, user)
    if query.user_id != user.id and not user.admin:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Not allowed to reorder query")


@router.get("/{query_id}/order", response_model=OrderResponse)
async def get_order(
    query_id: int,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> OrderResponse:
    svc = ReorderQueryService(session=session)
    query = await svc.get_query(query_id)
    _check_visible(query, user)
    return OrderResponse(query_id=query.id, order=await svc.current_order(query.id))


@router.post("/{query_id}/order/move", response_model=OrderResponse)
async def move_work_package(
    query_id: int,
    body: MoveRequest,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> OrderResponse:
    svc = ReorderQueryService(session=session)
    query = await svc.get_query(query_id)
    _check_editable(query, user)
    order = await svc.move(query, body.work_package_id, body.to_index)
    return OrderResponse(query_id=query.id, order=order)


@router.post("/{query_id}/order/add", response_model=OrderResponse)
async def add_work_package(
    query_id: int,
    body: AddRequest,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> OrderResponse:
    svc = ReorderQueryService(session=session)
    query = await svc.get_query(query_id)
    _check_editable(query, user)
    order = await svc.add(query, body.work_package_id, body.to_index)
    return OrderResponse(query_id=query.id, order=order)


@router.post("/{query_id}/order/remove", response_model=OrderResponse)
async def remove_work_package(
    query_id: int,
    body: RemoveRequest,
    user: User = Depends(current_user),
    session: AsyncSession = Depends(db_session),
) -> OrderResponse:
    svc = ReorderQueryService(session=session)
    query = await svc.get_query(query_id)
    _check_editable(query, user)
    order = await svc.remove(query, body.work_package_id)
    return OrderResponse(query_id=query.id, order=order)
