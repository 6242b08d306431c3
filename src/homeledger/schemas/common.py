"""Pydantic schemas shared by the work record and invitation APIs."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from homeledger.domain.address import AddressParts, parse_address_line
from homeledger.domain.notifications import NotificationEvent

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class AddressPayload(BaseModel):
    """Structured street address."""

    line1: str = Field(..., min_length=1, max_length=255, examples=["123 Main St."])
    line2: str | None = Field(default=None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100, examples=["Springfield"])
    state: str = Field(..., min_length=1, max_length=50, examples=["IL"])
    zip: str = Field(..., min_length=1, max_length=20, examples=["62701"])

    def to_parts(self) -> AddressParts:
        return AddressParts(
            line1=self.line1,
            line2=self.line2,
            city=self.city,
            state=self.state,
            zip=self.zip,
        )


def address_from_request(
    address: AddressPayload | None,
    home_address: str | None,
) -> AddressParts | None:
    """Prefer the structured address; fall back to a one-line "street, city, STATE zip"."""
    if address is not None:
        return address.to_parts()
    if home_address:
        return parse_address_line(home_address)
    return None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class NotificationEventResponse(BaseModel):
    """The structured event an operation handed to the notifier."""

    type: str
    recipient_id: uuid.UUID | None
    payload: dict[str, Any]

    @classmethod
    def from_event(cls, event: NotificationEvent | None) -> NotificationEventResponse | None:
        if event is None:
            return None
        return cls(
            type=event.event_type.value,
            recipient_id=event.recipient_id,
            payload=event.payload,
        )


class HomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    normalized_address: str
    address: str
    address_line2: str | None
    city: str
    state: str
    zip: str
    owner_id: uuid.UUID | None


class ConnectionResponse(BaseModel):
    """Response schema for a homeowner/contractor connection."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    home_id: uuid.UUID
    homeowner_id: uuid.UUID
    contractor_id: uuid.UUID
    status: str
    established_via: str
    verified_work_count: int
    total_spent: Decimal
    last_work_date: date | None
    invited_by: uuid.UUID | None
    source_record_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class RecordResponse(BaseModel):
    """Response schema for a home history record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    home_id: uuid.UUID
    title: str
    note: str | None
    date: dt.date
    kind: str
    vendor: str | None
    cost: Decimal | None
    created_by: uuid.UUID
    verified_by: uuid.UUID | None
    verified_at: datetime | None
    source_work_record_id: uuid.UUID | None
    created_at: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
