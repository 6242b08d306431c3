"""Invitation Service — bootstrapping a home + connection pair by email.

Contractors invite homeowners to an address; homeowners invite pros to a home
they can access. Accepting an invitation claims the home for the homeowner
side and upserts the connection through the same ConnectionManager that
verifications use, so a triple that already has a connection is refreshed,
never duplicated.

Expiry is lazy: nothing sweeps old invitations. A PENDING invitation whose
expires_at has passed is marked EXPIRED the first time somebody tries to
accept or decline it, and the attempt fails with InvitationExpiredError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from homeledger.config import get_settings
from homeledger.domain.address import normalize_address
from homeledger.domain.enums import (
    EstablishedVia,
    InvitationStatus,
    InvitedRole,
    NotificationType,
)
from homeledger.domain.exceptions import (
    DuplicateInvitationError,
    EmailMismatchError,
    ForbiddenOperationError,
    InvalidStateTransitionError,
    InvitationExpiredError,
    NotFoundError,
    ValidationError,
)
from homeledger.domain.notifications import NotificationEvent
from homeledger.domain.state_machine import InvitationStateMachine, fire_transition
from homeledger.domain.validation import normalize_email, validate_email
from homeledger.infrastructure.database.orm_models import Invitation
from homeledger.infrastructure.database.repositories import InvitationRepository
from homeledger.logging_config import get_logger
from homeledger.services.access_gate import OwnershipAccessGate
from homeledger.services.connection_service import ConnectionManager
from homeledger.services.notification_outbox import OutboxNotificationEmitter
from homeledger.services.property_registry import PropertyRegistry

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.config import Settings
    from homeledger.domain.access import AccessGate, Actor
    from homeledger.domain.address import AddressNormalizer, AddressParts
    from homeledger.domain.notifications import NotificationEmitter
    from homeledger.infrastructure.database.orm_models import Connection, Home

logger = get_logger(__name__)


@dataclass
class InvitationOutcome:
    """Result of a mutating invitation operation."""

    invitation: Invitation
    event: NotificationEvent | None = None
    connection: Connection | None = None
    home: Home | None = None


class InvitationService:
    """Manages the invitation lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        access_gate: AccessGate | None = None,
        emitter: NotificationEmitter | None = None,
        normalizer: AddressNormalizer = normalize_address,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._access_gate = access_gate or OwnershipAccessGate(session)
        self._emitter = emitter or OutboxNotificationEmitter(session)
        self._registry = PropertyRegistry(session, normalizer)
        self._connections = ConnectionManager(session)
        self._invitation_repo = InvitationRepository(session)

    # ------------------------------------------------------------------
    # Creation (inviter)
    # ------------------------------------------------------------------

    async def create_invitation(
        self,
        actor: Actor,
        *,
        invited_email: str,
        role: InvitedRole | None = None,
        address: AddressParts | None = None,
        home_id: uuid.UUID | None = None,
        invited_name: str | None = None,
        message: str | None = None,
    ) -> InvitationOutcome:
        """Invite the other side of a connection by email.

        A contractor invites a HOMEOWNER and names the address; the home is
        found or created unowned. A homeowner invites a PRO to a home they
        have access to.

        Raises:
            ValidationError: Bad email, wrong role for the inviter, or missing home.
            DuplicateInvitationError: A live invitation to this email already exists.
        """
        email = validate_email(invited_email)
        expected_role = InvitedRole.HOMEOWNER if actor.is_pro else InvitedRole.PRO
        if role is not None and role != expected_role:
            raise ValidationError(
                f"A {actor.role.value.lower()} can only invite a {expected_role.value.lower()}",
                field="role",
            )
        if actor.email_matches(email):
            raise ValidationError("You cannot invite yourself", field="invited_email")

        now = datetime.now(UTC)
        if await self._invitation_repo.find_live_pending(actor.user_id, email, now) is not None:
            raise DuplicateInvitationError(email)

        if expected_role == InvitedRole.HOMEOWNER:
            if address is None:
                raise ValidationError("An address is required to invite a homeowner", field="address")
            home = await self._registry.find_or_create_by_address(address)
            ttl_days = self._settings.homeowner_invitation_ttl_days
        else:
            if home_id is None:
                raise ValidationError("A home_id is required to invite a pro", field="home_id")
            home = await self._registry.get_home(home_id)
            if not await self._access_gate.can_access_home(actor, home.id):
                raise ForbiddenOperationError("You do not have access to this home")
            ttl_days = self._settings.pro_invitation_ttl_days

        invitation = await self._invitation_repo.create(
            Invitation(
                invited_email=email,
                invited_name=invited_name,
                invited_by=actor.user_id,
                role=expected_role.value,
                home_id=home.id,
                message=message,
                status=InvitationStatus.PENDING.value,
                expires_at=now + timedelta(days=ttl_days),
            )
        )

        # The invitee may not have an account yet, so the event has no recipient id.
        event = await self._emit(
            NotificationType.INVITATION_CREATED,
            None,
            invitation,
            invited_email=email,
            invited_by=str(actor.user_id),
        )

        logger.info(
            "invitation.created",
            invitation_id=str(invitation.id),
            role=expected_role.value,
            home_id=str(home.id),
            expires_at=invitation.expires_at.isoformat(),
        )
        return InvitationOutcome(invitation=invitation, event=event, home=home)

    # ------------------------------------------------------------------
    # Invitee actions
    # ------------------------------------------------------------------

    async def accept_invitation(
        self,
        actor: Actor,
        invitation_id: uuid.UUID,
        address: AddressParts | None = None,
    ) -> InvitationOutcome:
        """Accept an invitation: claim the home and connect both parties.

        For a HOMEOWNER invitation the home is resolved from ``address`` when
        given (matched by normalized key, so an existing home is reused) and
        otherwise from the invitation. A PRO invitation always uses the
        invitation's home, which stays with the inviting homeowner.

        The home claim, connection upsert and status write share one savepoint.

        Raises:
            NotFoundError: No such invitation.
            InvalidStateTransitionError: The invitation is no longer PENDING.
            InvitationExpiredError: The invitation is past its expiry, or was
                already marked EXPIRED by an earlier attempt.
            EmailMismatchError: The caller's email is not the invited email.
            HomeAlreadyClaimedError: The home belongs to someone else.
        """
        invitation = await self._get_or_raise(invitation_id, for_update=True)
        if not actor.email_matches(invitation.invited_email):
            raise EmailMismatchError(str(invitation_id))
        await self._ensure_pending(invitation, "accept")

        if actor.role.value != invitation.role:
            raise ForbiddenOperationError(
                f"This invitation is for a {invitation.role.lower()} account"
            )

        home = await self._resolve_home(invitation, address)
        if invitation.role == InvitedRole.HOMEOWNER.value:
            homeowner_id, contractor_id = actor.user_id, invitation.invited_by
        else:
            homeowner_id, contractor_id = invitation.invited_by, actor.user_id

        async with self._session.begin_nested():
            home = await self._registry.claim(home.id, homeowner_id)
            connection = await self._connections.upsert_connection(
                home_id=home.id,
                homeowner_id=homeowner_id,
                contractor_id=contractor_id,
                established_via=EstablishedVia.INVITATION,
                source_record_id=invitation.id,
                invited_by=invitation.invited_by,
            )
            await self._apply_transition(
                invitation,
                "accept",
                accepted_by=actor.user_id,
                accepted_at=datetime.now(UTC),
                home_id=home.id,
            )

        event = await self._emit(
            NotificationType.INVITATION_ACCEPTED,
            invitation.invited_by,
            invitation,
            accepted_by=str(actor.user_id),
            connection_id=str(connection.id),
        )

        logger.info(
            "invitation.accepted",
            invitation_id=str(invitation_id),
            home_id=str(home.id),
            connection_id=str(connection.id),
        )
        return InvitationOutcome(
            invitation=invitation,
            event=event,
            connection=connection,
            home=home,
        )

    async def decline_invitation(self, actor: Actor, invitation_id: uuid.UUID) -> InvitationOutcome:
        """Invitee turns the invitation down. Nothing but the status changes."""
        invitation = await self._get_or_raise(invitation_id, for_update=True)
        if not actor.email_matches(invitation.invited_email):
            raise ForbiddenOperationError("Only the invitee can decline this invitation")

        await self._ensure_pending(invitation, "decline")
        await self._apply_transition(invitation, "decline")

        event = await self._emit(
            NotificationType.INVITATION_DECLINED,
            invitation.invited_by,
            invitation,
            declined_by=str(actor.user_id),
        )
        logger.info("invitation.declined", invitation_id=str(invitation_id))
        return InvitationOutcome(invitation=invitation, event=event)

    # ------------------------------------------------------------------
    # Inviter actions
    # ------------------------------------------------------------------

    async def cancel_invitation(self, actor: Actor, invitation_id: uuid.UUID) -> InvitationOutcome:
        """Inviter withdraws a PENDING invitation, expired or not."""
        invitation = await self._get_or_raise(invitation_id, for_update=True)
        if invitation.invited_by != actor.user_id:
            raise ForbiddenOperationError("Only the inviter can cancel this invitation")

        await self._apply_transition(invitation, "cancel")

        event = await self._emit(
            NotificationType.INVITATION_CANCELLED,
            None,
            invitation,
            invited_email=invitation.invited_email,
        )
        logger.info("invitation.cancelled", invitation_id=str(invitation_id))
        return InvitationOutcome(invitation=invitation, event=event)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def list_sent(
        self,
        actor: Actor,
        status: InvitationStatus | None = None,
    ) -> list[Invitation]:
        return await self._invitation_repo.list_sent(actor.user_id, status)

    async def list_received(self, actor: Actor) -> list[Invitation]:
        """Live invitations addressed to the caller's email."""
        return await self._invitation_repo.list_received(
            normalize_email(actor.email), datetime.now(UTC)
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_or_raise(self, invitation_id: uuid.UUID, for_update: bool = False) -> Invitation:
        invitation = await self._invitation_repo.get_by_id(invitation_id, for_update=for_update)
        if invitation is None:
            raise NotFoundError("Invitation", str(invitation_id))
        return invitation

    async def _ensure_pending(self, invitation: Invitation, event_name: str) -> None:
        """Reject non-PENDING invitations and lazily expire stale ones."""
        if invitation.status == InvitationStatus.EXPIRED:
            raise InvitationExpiredError(str(invitation.id))
        # Raises InvalidStateTransitionError unless the invitation is PENDING.
        fire_transition(InvitationStateMachine, invitation.status, event_name)

        if datetime.now(UTC) > invitation.expires_at:
            await self._invitation_repo.compare_and_set_status(
                invitation, InvitationStatus.PENDING, InvitationStatus.EXPIRED
            )
            logger.info(
                "invitation.expired",
                invitation_id=str(invitation.id),
                expires_at=invitation.expires_at.isoformat(),
            )
            raise InvitationExpiredError(str(invitation.id))

    async def _apply_transition(
        self,
        invitation: Invitation,
        event_name: str,
        **values: Any,
    ) -> InvitationStatus:
        current = InvitationStatus(invitation.status)
        new_status = InvitationStatus(
            fire_transition(InvitationStateMachine, current.value, event_name)
        )
        if not await self._invitation_repo.compare_and_set_status(
            invitation, current, new_status, **values
        ):
            await self._session.refresh(invitation)
            raise InvalidStateTransitionError(invitation.status, event_name)
        return new_status

    async def _resolve_home(self, invitation: Invitation, address: AddressParts | None) -> Home:
        if invitation.role == InvitedRole.HOMEOWNER.value and address is not None:
            return await self._registry.find_or_create_by_address(address)
        if invitation.home_id is not None:
            return await self._registry.get_home(invitation.home_id)
        raise ValidationError("An address is required to accept this invitation", field="address")

    async def _emit(
        self,
        event_type: NotificationType,
        recipient_id: uuid.UUID | None,
        invitation: Invitation,
        **extra: Any,
    ) -> NotificationEvent:
        event = NotificationEvent(
            event_type=event_type,
            recipient_id=recipient_id,
            payload={
                "invitation_id": str(invitation.id),
                "home_id": str(invitation.home_id) if invitation.home_id else None,
                "role": invitation.role,
                **extra,
            },
        )
        await self._emitter.emit(event)
        return event
