"""
openplan.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Load the acting `User` and reject locked/unknown accounts.
- Gate admin-only endpoints on the user's `admin` flag.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from openplan.api.deps import db_session, settings_dep
from openplan.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from openplan.auth.models import Principal
from openplan.db.models import PrincipalType, User, UserStatus
from openplan.db.repositories.users import UserRepo
from openplan.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    if not subject.isdigit():
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    structlog.contextvars.bind_contextvars(user_id=subject)
    return Principal(subject=subject)


async def current_user(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> User:
    user = await UserRepo(session).get(principal.user_id)
    if (
        user is None
        or user.type != PrincipalType.user.value
        or user.status == UserStatus.locked.value
    ):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unknown or locked user")
    return user


async def require_admin(user: User = Depends(current_user)) -> User:
    if not user.admin:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Administrator required")
    return user
