"""Domain exceptions for the home ledger.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.
"""


class HomeLedgerError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "HOMELEDGER_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Input Errors ---


class ValidationError(HomeLedgerError):
    """Raised when request input is malformed. Not retryable."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR")
        self.field = field


# --- Lookup / Access Errors ---


class NotFoundError(HomeLedgerError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            code="NOT_FOUND",
        )
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenOperationError(HomeLedgerError):
    """Raised when the caller lacks the required relationship to an entity."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="FORBIDDEN")


# --- State Machine Errors ---


class InvalidStateTransitionError(HomeLedgerError):
    """Raised when an attempted state transition is not allowed.

    Example: APPROVED -> DISPUTED (APPROVED is terminal).
    """

    def __init__(self, current_state: str, attempted: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {current_state} -> {attempted}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_state = attempted


class InvitationExpiredError(InvalidStateTransitionError):
    """Raised when a PENDING invitation is used after its expiry."""

    def __init__(self, invitation_id: str) -> None:
        super().__init__(current_state="EXPIRED", attempted="use")
        self.message = f"Invitation has expired: {invitation_id}"
        self.code = "INVITATION_EXPIRED"
        self.args = (self.message,)
        self.invitation_id = invitation_id


# --- Conflict Errors ---


class HomeAlreadyClaimedError(HomeLedgerError):
    """Raised when a home already has a different owner."""

    def __init__(self, home_id: str) -> None:
        super().__init__(
            message=f"Home is already claimed by another user: {home_id}",
            code="HOME_ALREADY_CLAIMED",
        )
        self.home_id = home_id


class DuplicateInvitationError(HomeLedgerError):
    """Raised when the inviter already has a live invitation to the same email."""

    def __init__(self, invited_email: str) -> None:
        super().__init__(
            message=f"A pending invitation to {invited_email} already exists",
            code="DUPLICATE_INVITATION",
        )
        self.invited_email = invited_email


class EmailMismatchError(HomeLedgerError):
    """Raised when the caller's email is not the invitation's email."""

    def __init__(self, invitation_id: str) -> None:
        super().__init__(
            message=f"Invitation {invitation_id} was not sent to your email",
            code="EMAIL_MISMATCH",
        )
        self.invitation_id = invitation_id


class StorageConflictError(HomeLedgerError):
    """Raised when a transactional race is lost. Safe to retry the operation once."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="STORAGE_CONFLICT")
