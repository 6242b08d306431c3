"""Domain enumerations for the home ledger.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class UserRole(enum.StrEnum):
    """Role of an authenticated caller, as asserted by the identity layer."""

    HOMEOWNER = "HOMEOWNER"
    PRO = "PRO"


class WorkRecordStatus(enum.StrEnum):
    """Lifecycle states of a contractor's work record.

    State transitions are enforced by WorkRecordStateMachine.
    See domain/state_machine.py for the transition table.
    """

    DOCUMENTED_UNVERIFIED = "DOCUMENTED_UNVERIFIED"
    DOCUMENTED = "DOCUMENTED"
    DISPUTED = "DISPUTED"
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"

    @property
    def is_pending(self) -> bool:
        """True for the two initial states, which permit the same transitions."""
        return self in PENDING_WORK_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_WORK_STATUSES

    @property
    def is_verified(self) -> bool:
        return self in VERIFIED_WORK_STATUSES


PENDING_WORK_STATUSES = frozenset(
    {WorkRecordStatus.DOCUMENTED_UNVERIFIED, WorkRecordStatus.DOCUMENTED}
)
# Work still awaiting a homeowner decision (shown in review queues).
REVIEWABLE_WORK_STATUSES = PENDING_WORK_STATUSES | {WorkRecordStatus.DISPUTED}
VERIFIED_WORK_STATUSES = frozenset({WorkRecordStatus.APPROVED})
TERMINAL_WORK_STATUSES = frozenset({WorkRecordStatus.APPROVED, WorkRecordStatus.REJECTED})


class ConnectionStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class EstablishedVia(enum.StrEnum):
    """How a homeowner/contractor connection first came into being."""

    VERIFIED_WORK = "VERIFIED_WORK"
    INVITATION = "INVITATION"
    MANUAL = "MANUAL"


class InvitationStatus(enum.StrEnum):
    """Lifecycle states of an invitation.

    EXPIRED is only ever written lazily, when a PENDING invitation past its
    expires_at is touched by accept or decline.
    """

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class InvitedRole(enum.StrEnum):
    """Role the invitee is being invited into."""

    HOMEOWNER = "HOMEOWNER"
    PRO = "PRO"


class NotificationType(enum.StrEnum):
    """Event kinds handed to the notification emitter."""

    WORK_DOCUMENTED = "WORK_DOCUMENTED"
    WORK_RESUBMITTED = "WORK_RESUBMITTED"
    WORK_VERIFIED = "WORK_VERIFIED"
    WORK_DISPUTED = "WORK_DISPUTED"
    WORK_REJECTED = "WORK_REJECTED"
    INVITATION_CREATED = "INVITATION_CREATED"
    INVITATION_ACCEPTED = "INVITATION_ACCEPTED"
    INVITATION_DECLINED = "INVITATION_DECLINED"
    INVITATION_CANCELLED = "INVITATION_CANCELLED"


class Capability(enum.StrEnum):
    """Things an actor may do to a work record."""

    VIEW = "VIEW"
    EDIT_EVIDENCE = "EDIT_EVIDENCE"
    ARCHIVE = "ARCHIVE"
    VERIFY = "VERIFY"
    DISPUTE = "DISPUTE"
    REJECT = "REJECT"
