"""Pydantic schemas for the work record API.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep clean boundaries between the API and
database layers.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from homeledger.domain.state_machine import WorkRecordStateMachine
from homeledger.schemas.common import (
    AddressPayload,
    ConnectionResponse,
    NotificationEventResponse,
    RecordResponse,
)

if TYPE_CHECKING:
    from homeledger.infrastructure.database.orm_models import WorkRecord
    from homeledger.services.work_record_service import WorkRecordOutcome

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateWorkRecordRequest(BaseModel):
    """Request body for a contractor documenting completed work.

    Give exactly one of ``home_id``, ``address`` or ``home_address``.
    """

    home_id: uuid.UUID | None = Field(default=None, description="Existing home to document against")
    address: AddressPayload | None = Field(
        default=None,
        description="Structured address; the home is found or created by normalized address",
    )
    home_address: str | None = Field(
        default=None,
        max_length=500,
        description='One-line address, "street, city, STATE zip"',
        examples=["123 Main St, Springfield, IL 62701"],
    )
    work_type: str = Field(..., min_length=1, max_length=120, examples=["HVAC service"])
    work_date: date = Field(..., examples=["2024-05-01"])
    description: str | None = Field(default=None, max_length=10_000)
    cost: Decimal | None = Field(default=None, gt=0, decimal_places=2, examples=[250.0])
    warranty_included: bool = False
    warranty_length: str | None = Field(default=None, max_length=100)
    warranty_details: str | None = Field(default=None, max_length=5000)
    photos: list[str] = Field(default_factory=list, description="Uploaded photo URLs")
    invoice_url: str | None = Field(default=None, max_length=1000)
    invitation_id: uuid.UUID | None = Field(
        default=None,
        description="Invitation this work was documented under, if any",
    )


class UpdateWorkRecordRequest(BaseModel):
    """Partial update of a work record's details and evidence.

    Only fields present in the body are changed.
    """

    work_type: str | None = Field(default=None, min_length=1, max_length=120)
    work_date: date | None = None
    description: str | None = Field(default=None, max_length=10_000)
    cost: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    warranty_included: bool | None = None
    warranty_length: str | None = Field(default=None, max_length=100)
    warranty_details: str | None = Field(default=None, max_length=5000)
    photos: list[str] | None = None
    invoice_url: str | None = Field(default=None, max_length=1000)


class VerifyWorkRequest(BaseModel):
    """Request body for a homeowner verifying work, with optional adjustments."""

    cost: Decimal | None = Field(
        default=None,
        gt=0,
        decimal_places=2,
        description="Corrected cost; replaces the documented cost",
    )
    note: str | None = Field(
        default=None,
        max_length=2000,
        description="Homeowner note appended to the description",
    )


class ReviewFeedbackRequest(BaseModel):
    """Request body for disputing or rejecting work."""

    feedback: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class WorkRecordResponse(BaseModel):
    """Response schema for a work record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    home_id: uuid.UUID
    contractor_id: uuid.UUID
    contractor_name: str
    invitation_id: uuid.UUID | None
    work_type: str
    work_date: date
    description: str | None
    cost: Decimal | None
    warranty_included: bool
    warranty_length: str | None
    warranty_details: str | None
    photos: list[str]
    invoice_url: str | None
    status: str
    is_verified: bool
    home_had_owner_at_creation: bool
    claimed_by: uuid.UUID | None
    claimed_at: datetime | None
    verified_by: uuid.UUID | None
    verified_at: datetime | None
    approved_by: uuid.UUID | None
    approved_at: datetime | None
    rejection_reason: str | None
    final_record_id: uuid.UUID | None
    archived_at: datetime | None
    created_at: datetime
    updated_at: datetime
    allowed_events: list[str] = Field(
        default_factory=list,
        description="State machine events that can fire from the current status",
    )

    @classmethod
    def from_work_record(cls, work_record: WorkRecord) -> WorkRecordResponse:
        response = cls.model_validate(work_record)
        response.allowed_events = WorkRecordStateMachine(
            current_status=work_record.status
        ).get_allowed_events()
        return response


class WorkRecordActionResponse(BaseModel):
    """Result of a mutating work record operation."""

    work_record: WorkRecordResponse
    event: NotificationEventResponse | None = None
    connection: ConnectionResponse | None = None
    record: RecordResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: WorkRecordOutcome) -> WorkRecordActionResponse:
        return cls(
            work_record=WorkRecordResponse.from_work_record(outcome.work_record),
            event=NotificationEventResponse.from_event(outcome.event),
            connection=(
                ConnectionResponse.model_validate(outcome.connection)
                if outcome.connection is not None
                else None
            ),
            record=(
                RecordResponse.model_validate(outcome.record)
                if outcome.record is not None
                else None
            ),
        )
