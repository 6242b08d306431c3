"""Application services — use case orchestration."""

from homeledger.services.connection_service import ConnectionManager
from homeledger.services.history_service import HistoryWriter
from homeledger.services.invitation_service import InvitationOutcome, InvitationService
from homeledger.services.property_registry import PropertyRegistry
from homeledger.services.work_record_service import WorkRecordOutcome, WorkRecordService

__all__ = [
    "ConnectionManager",
    "HistoryWriter",
    "InvitationOutcome",
    "InvitationService",
    "PropertyRegistry",
    "WorkRecordOutcome",
    "WorkRecordService",
]
