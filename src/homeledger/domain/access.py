"""Caller identity and the work record authorization policy.

Authentication happens upstream; by the time an Actor exists its user id,
role and email have been verified. The AccessGate protocol is the seam for the
external "may this user act on this home" decision, and
resolve_capabilities() turns (actor, work record, home access) into the set of
things the actor may do, independently of the record's current state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from homeledger.domain.enums import Capability, UserRole
from homeledger.domain.validation import normalize_email

if TYPE_CHECKING:
    import uuid


@dataclass(frozen=True)
class Actor:
    """An authenticated caller.

    Attributes:
        user_id: Verified user id.
        role: HOMEOWNER or PRO.
        email: Login email, compared case-insensitively against invitations.
        display_name: Optional human label, used as the vendor on history records.
    """

    user_id: uuid.UUID
    role: UserRole
    email: str
    display_name: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.email

    @property
    def is_pro(self) -> bool:
        return self.role == UserRole.PRO

    def email_matches(self, email: str) -> bool:
        return normalize_email(self.email) == normalize_email(email)


class WorkRecordLike(Protocol):
    contractor_id: uuid.UUID
    home_id: uuid.UUID


@runtime_checkable
class AccessGate(Protocol):
    """Decides whether a user may act on a home.

    Concrete implementations:
        - services/access_gate.py OwnershipAccessGate (home owner only)
    """

    async def can_access_home(self, actor: Actor, home_id: uuid.UUID) -> bool:
        ...


_CONTRACTOR_CAPABILITIES = frozenset(
    {Capability.VIEW, Capability.EDIT_EVIDENCE, Capability.ARCHIVE}
)
_REVIEWER_CAPABILITIES = frozenset(
    {Capability.VIEW, Capability.VERIFY, Capability.DISPUTE, Capability.REJECT}
)


def resolve_capabilities(
    actor: Actor,
    work_record: WorkRecordLike,
    has_home_access: bool,
) -> frozenset[Capability]:
    """Return what ``actor`` may do to ``work_record``.

    The authoring contractor may edit evidence and archive. A homeowner with
    access to the record's home may review it. Nobody reviews their own work.
    """
    if actor.user_id == work_record.contractor_id:
        return _CONTRACTOR_CAPABILITIES
    if has_home_access and actor.role == UserRole.HOMEOWNER:
        return _REVIEWER_CAPABILITIES
    return frozenset()
