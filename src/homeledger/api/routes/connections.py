"""Connection REST API routes.

Routes:
    GET    /api/v1/connections        — Connections of the calling contractor
    GET    /api/v1/connections/{id}   — One connection (participants only)
"""

from __future__ import annotations

import uuid  # noqa: TC003 - FastAPI resolves path parameter types at runtime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from homeledger.api.deps import get_current_actor, get_db_session
from homeledger.domain.access import Actor  # noqa: TC001
from homeledger.domain.exceptions import ForbiddenOperationError
from homeledger.schemas.common import ConnectionResponse
from homeledger.services.connection_service import ConnectionManager

router = APIRouter(prefix="/api/v1/connections", tags=["Connections"])


@router.get(
    "",
    response_model=list[ConnectionResponse],
    summary="Connections of the calling contractor",
)
async def list_my_connections(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[ConnectionResponse]:
    if not actor.is_pro:
        raise ForbiddenOperationError("Homeowners list connections per home")
    connections = await ConnectionManager(session).list_for_contractor(actor.user_id)
    return [ConnectionResponse.model_validate(c) for c in connections]


@router.get(
    "/{connection_id}",
    response_model=ConnectionResponse,
    summary="Get a connection",
)
async def get_connection(
    connection_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> ConnectionResponse:
    connection = await ConnectionManager(session).get_connection(connection_id)
    if actor.user_id not in (connection.homeowner_id, connection.contractor_id):
        raise ForbiddenOperationError("You are not part of this connection")
    return ConnectionResponse.model_validate(connection)
