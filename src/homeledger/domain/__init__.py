"""Domain layer — pure business logic with zero framework dependencies."""

from homeledger.domain.access import AccessGate, Actor, resolve_capabilities
from homeledger.domain.address import AddressParts, normalize_address
from homeledger.domain.enums import (
    Capability,
    ConnectionStatus,
    EstablishedVia,
    InvitationStatus,
    InvitedRole,
    NotificationType,
    UserRole,
    WorkRecordStatus,
)
from homeledger.domain.exceptions import (
    DuplicateInvitationError,
    EmailMismatchError,
    ForbiddenOperationError,
    HomeAlreadyClaimedError,
    HomeLedgerError,
    InvalidStateTransitionError,
    InvitationExpiredError,
    NotFoundError,
    StorageConflictError,
    ValidationError,
)
from homeledger.domain.notifications import NotificationEmitter, NotificationEvent
from homeledger.domain.state_machine import (
    InvitationStateMachine,
    WorkRecordStateMachine,
    fire_transition,
)

__all__ = [
    "AccessGate",
    "Actor",
    "resolve_capabilities",
    "AddressParts",
    "normalize_address",
    "Capability",
    "ConnectionStatus",
    "EstablishedVia",
    "InvitationStatus",
    "InvitedRole",
    "NotificationType",
    "UserRole",
    "WorkRecordStatus",
    "DuplicateInvitationError",
    "EmailMismatchError",
    "ForbiddenOperationError",
    "HomeAlreadyClaimedError",
    "HomeLedgerError",
    "InvalidStateTransitionError",
    "InvitationExpiredError",
    "NotFoundError",
    "StorageConflictError",
    "ValidationError",
    "NotificationEmitter",
    "NotificationEvent",
    "InvitationStateMachine",
    "WorkRecordStateMachine",
    "fire_transition",
]
