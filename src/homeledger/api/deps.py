"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions
and the authenticated caller.

Authentication is done upstream: the gateway verifies the session and
forwards the caller as X-User-Id / X-User-Role / X-User-Email (and
optionally X-User-Name). A request without them is rejected with 401.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from fastapi import Header, HTTPException

from homeledger.domain.access import Actor
from homeledger.domain.enums import UserRole
from homeledger.infrastructure.database.engine import session_scope

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request.

    The route's exception is re-raised inside session_scope, which commits
    the lazy EXPIRED mark or rolls the request back.
    """
    async with session_scope() as session:
        yield session


def get_current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> Actor:
    """Build the Actor from the identity headers set by the gateway."""
    if not x_user_id or not x_user_role or not x_user_email:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user_id = uuid.UUID(x_user_id)
        role = UserRole(x_user_role.upper())
    except ValueError as err:
        raise HTTPException(status_code=401, detail="Invalid identity headers") from err
    return Actor(user_id=user_id, role=role, email=x_user_email, display_name=x_user_name)
