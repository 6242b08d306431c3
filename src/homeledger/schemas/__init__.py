"""Pydantic API schemas."""

from homeledger.schemas.common import (
    AddressPayload,
    ConnectionResponse,
    HealthResponse,
    HomeResponse,
    NotificationEventResponse,
    RecordResponse,
)
from homeledger.schemas.invitations import (
    AcceptInvitationRequest,
    CreateInvitationRequest,
    InvitationActionResponse,
    InvitationResponse,
)
from homeledger.schemas.work_records import (
    CreateWorkRecordRequest,
    ReviewFeedbackRequest,
    UpdateWorkRecordRequest,
    VerifyWorkRequest,
    WorkRecordActionResponse,
    WorkRecordResponse,
)

__all__ = [
    "AcceptInvitationRequest",
    "AddressPayload",
    "ConnectionResponse",
    "CreateInvitationRequest",
    "CreateWorkRecordRequest",
    "HealthResponse",
    "HomeResponse",
    "InvitationActionResponse",
    "InvitationResponse",
    "NotificationEventResponse",
    "RecordResponse",
    "ReviewFeedbackRequest",
    "UpdateWorkRecordRequest",
    "VerifyWorkRequest",
    "WorkRecordActionResponse",
    "WorkRecordResponse",
]
