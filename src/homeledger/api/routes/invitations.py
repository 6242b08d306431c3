"""Invitation REST API routes.

Routes:
    POST   /api/v1/invitations               — Invite a homeowner or a pro
    GET    /api/v1/invitations/sent          — Invitations the caller sent
    GET    /api/v1/invitations/received      — Live invitations to the caller's email
    POST   /api/v1/invitations/{id}/accept   — Accept (claims home, creates connection)
    POST   /api/v1/invitations/{id}/decline  — Invitee declines
    POST   /api/v1/invitations/{id}/cancel   — Inviter cancels
"""

from __future__ import annotations

import uuid  # noqa: TC003 - FastAPI resolves path parameter types at runtime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from homeledger.api.deps import get_current_actor, get_db_session
from homeledger.domain.access import Actor  # noqa: TC001
from homeledger.domain.enums import InvitationStatus  # noqa: TC001
from homeledger.logging_config import get_logger
from homeledger.schemas.common import address_from_request
from homeledger.schemas.invitations import (
    AcceptInvitationRequest,
    CreateInvitationRequest,
    InvitationActionResponse,
    InvitationResponse,
)
from homeledger.services.invitation_service import InvitationService

router = APIRouter(prefix="/api/v1/invitations", tags=["Invitations"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=InvitationActionResponse,
    status_code=201,
    summary="Create an invitation",
)
async def create_invitation(
    request: CreateInvitationRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationActionResponse:
    svc = InvitationService(session)
    outcome = await svc.create_invitation(
        actor,
        invited_email=request.invited_email,
        role=request.role,
        address=address_from_request(request.address, request.home_address),
        home_id=request.home_id,
        invited_name=request.invited_name,
        message=request.message,
    )
    return InvitationActionResponse.from_outcome(outcome)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get(
    "/sent",
    response_model=list[InvitationResponse],
    summary="Invitations sent by the caller",
)
async def list_sent_invitations(
    status: InvitationStatus | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[InvitationResponse]:
    invitations = await InvitationService(session).list_sent(actor, status=status)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.get(
    "/received",
    response_model=list[InvitationResponse],
    summary="Live invitations addressed to the caller",
)
async def list_received_invitations(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[InvitationResponse]:
    invitations = await InvitationService(session).list_received(actor)
    return [InvitationResponse.model_validate(i) for i in invitations]


# ---------------------------------------------------------------------------
# Accept / Decline / Cancel
# ---------------------------------------------------------------------------


@router.post(
    "/{invitation_id}/accept",
    response_model=InvitationActionResponse,
    summary="Accept an invitation",
)
async def accept_invitation(
    invitation_id: uuid.UUID,
    request: AcceptInvitationRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationActionResponse:
    """Claim the home for the homeowner side and connect homeowner and contractor."""
    request = request or AcceptInvitationRequest()
    svc = InvitationService(session)
    outcome = await svc.accept_invitation(
        actor,
        invitation_id,
        address=address_from_request(request.address, request.home_address),
    )
    return InvitationActionResponse.from_outcome(outcome)


@router.post(
    "/{invitation_id}/decline",
    response_model=InvitationActionResponse,
    summary="Decline an invitation",
)
async def decline_invitation(
    invitation_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationActionResponse:
    outcome = await InvitationService(session).decline_invitation(actor, invitation_id)
    return InvitationActionResponse.from_outcome(outcome)


@router.post(
    "/{invitation_id}/cancel",
    response_model=InvitationActionResponse,
    summary="Cancel an invitation",
)
async def cancel_invitation(
    invitation_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> InvitationActionResponse:
    outcome = await InvitationService(session).cancel_invitation(actor, invitation_id)
    return InvitationActionResponse.from_outcome(outcome)
