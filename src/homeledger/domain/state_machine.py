"""Work record and invitation state machine guards.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API layer does, an illegal transition (e.g. APPROVED ->
DISPUTED) raises before any column is written.

Machines are instantiated per entity from its stored status, used to validate
one event, then discarded.

Work record transition table:
    DOCUMENTED_UNVERIFIED -> APPROVED   (verify)
    DOCUMENTED_UNVERIFIED -> DISPUTED   (dispute)
    DOCUMENTED_UNVERIFIED -> REJECTED   (reject)
    DOCUMENTED            -> APPROVED   (verify)
    DOCUMENTED            -> DISPUTED   (dispute)
    DOCUMENTED            -> REJECTED   (reject)
    DISPUTED              -> APPROVED   (verify)
    DISPUTED              -> REJECTED   (reject)
    DISPUTED              -> DOCUMENTED (resubmit)

Invitation transition table:
    PENDING -> ACCEPTED   (accept)
    PENDING -> CANCELLED  (decline, cancel)
    PENDING -> EXPIRED    (expire)
"""

from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from homeledger.domain.exceptions import InvalidStateTransitionError


def _check_known_status(machine: StateMachine, current_status: str) -> None:
    valid_values = {s.value for s in machine.states}
    if current_status not in valid_values:
        valid = ", ".join(sorted(valid_values))
        raise ValueError(f"Unknown status '{current_status}'. Valid states: {valid}")


class WorkRecordStateMachine(StateMachine):
    """Guards the work record review lifecycle.

    Usage:
        sm = WorkRecordStateMachine(current_status="DOCUMENTED")
        sm.verify()  # transitions to APPROVED
        sm.status    # "APPROVED"
    """

    # --- States ---
    DOCUMENTED_UNVERIFIED = State("DOCUMENTED_UNVERIFIED", initial=True)
    DOCUMENTED = State("DOCUMENTED")
    DISPUTED = State("DISPUTED")
    REJECTED = State("REJECTED", final=True)
    APPROVED = State("APPROVED", final=True)

    # --- Events / Transitions ---

    # Homeowner review
    verify = (
        DOCUMENTED_UNVERIFIED.to(APPROVED)
        | DOCUMENTED.to(APPROVED)
        | DISPUTED.to(APPROVED)
    )
    dispute = DOCUMENTED_UNVERIFIED.to(DISPUTED) | DOCUMENTED.to(DISPUTED)
    reject = (
        DOCUMENTED_UNVERIFIED.to(REJECTED)
        | DOCUMENTED.to(REJECTED)
        | DISPUTED.to(REJECTED)
    )

    # Contractor answers a dispute with corrected evidence
    resubmit = DISPUTED.to(DOCUMENTED)

    def __init__(self, current_status: str = "DOCUMENTED_UNVERIFIED") -> None:
        """Initialize the machine at a stored WorkRecordStatus value."""
        _check_known_status(self, current_status)
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches WorkRecordStatus)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.name for event in self.allowed_events]


class InvitationStateMachine(StateMachine):
    """Guards the one-way invitation lifecycle."""

    PENDING = State("PENDING", initial=True)
    ACCEPTED = State("ACCEPTED", final=True)
    CANCELLED = State("CANCELLED", final=True)
    EXPIRED = State("EXPIRED", final=True)

    accept = PENDING.to(ACCEPTED)
    decline = PENDING.to(CANCELLED)
    cancel = PENDING.to(CANCELLED)
    expire = PENDING.to(EXPIRED)

    def __init__(self, current_status: str = "PENDING") -> None:
        _check_known_status(self, current_status)
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        return [event.name for event in self.allowed_events]


def fire_transition(
    machine_cls: type[WorkRecordStateMachine] | type[InvitationStateMachine],
    current_status: str,
    event_name: str,
) -> str:
    """Validate a transition and return the resulting status.

    Creates a temporary state machine at ``current_status``, fires the named
    event, and returns the new status string.

    Raises:
        InvalidStateTransitionError: If the event cannot fire from this status.
        ValueError: If the status or event name is unknown.
    """
    sm = machine_cls(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    try:
        event_method()
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current_status, event_name) from err
    return sm.status
