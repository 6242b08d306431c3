"""Pydantic schemas for the invitation API."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from homeledger.domain.enums import InvitedRole
from homeledger.schemas.common import (
    AddressPayload,
    ConnectionResponse,
    HomeResponse,
    NotificationEventResponse,
)

if TYPE_CHECKING:
    from homeledger.services.invitation_service import InvitationOutcome

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateInvitationRequest(BaseModel):
    """Request body for inviting a homeowner (by a contractor) or a pro (by a homeowner)."""

    invited_email: str = Field(..., min_length=3, max_length=320, examples=["owner@example.com"])
    invited_name: str | None = Field(default=None, max_length=200)
    role: InvitedRole | None = Field(
        default=None,
        description="Role being invited into; defaults to the inviter's counterpart",
    )
    address: AddressPayload | None = Field(
        default=None,
        description="Home address, required when a contractor invites a homeowner",
    )
    home_address: str | None = Field(
        default=None,
        max_length=500,
        description='One-line alternative to address, "street, city, STATE zip"',
    )
    home_id: uuid.UUID | None = Field(
        default=None,
        description="Home the pro is invited to, required when a homeowner invites a pro",
    )
    message: str | None = Field(default=None, max_length=2000)


class AcceptInvitationRequest(BaseModel):
    """Request body for accepting an invitation.

    A homeowner may confirm the address; it is matched by normalized key, so a
    differently formatted copy of an existing address resolves to that home.
    """

    address: AddressPayload | None = None
    home_address: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class InvitationResponse(BaseModel):
    """Response schema for an invitation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    invited_email: str
    invited_name: str | None
    invited_by: uuid.UUID
    role: str
    home_id: uuid.UUID | None
    message: str | None
    status: str
    expires_at: datetime
    accepted_by: uuid.UUID | None
    accepted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class InvitationActionResponse(BaseModel):
    """Result of a mutating invitation operation."""

    invitation: InvitationResponse
    event: NotificationEventResponse | None = None
    connection: ConnectionResponse | None = None
    home: HomeResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: InvitationOutcome) -> InvitationActionResponse:
        return cls(
            invitation=InvitationResponse.model_validate(outcome.invitation),
            event=NotificationEventResponse.from_event(outcome.event),
            connection=(
                ConnectionResponse.model_validate(outcome.connection)
                if outcome.connection is not None
                else None
            ),
            home=HomeResponse.model_validate(outcome.home) if outcome.home is not None else None,
        )
