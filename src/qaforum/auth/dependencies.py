"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.jwt import verify_token
from qaforum.auth.service import get_user_by_id
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.errors import Unauthorized

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer token, return the User model.

    Raises Unauthorized when the header is missing, the token does not verify,
    or the user no longer exists.
    """
    if credentials is None:
        msg = "Authentication failed"
        raise Unauthorized(msg)
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise Unauthorized(str(e)) from e

    user = await get_user_by_id(db, int(payload["id"]))
    if user is None:
        msg = "User not found"
        raise Unauthorized(msg)
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Like ``get_current_user`` but anonymous requests resolve to None.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await get_current_user(credentials, db)
