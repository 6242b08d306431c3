"""Work Record Service — the contractor/homeowner review lifecycle.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Capability policy (who may do what to a work record)
    - Repositories (data access)
    - Connection Manager and History Writer (effects of a verification)
    - Notification emitter (one structured event per successful transition)

Status writes are compare-and-set (UPDATE ... WHERE status = <observed>), so
two reviewers racing on one record cannot both win: the loser gets
InvalidStateTransitionError. A verification's status write, connection upsert
and history record share one savepoint and are rolled back together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from homeledger.domain.access import resolve_capabilities
from homeledger.domain.address import normalize_address
from homeledger.domain.enums import (
    Capability,
    EstablishedVia,
    NotificationType,
    WorkRecordStatus,
)
from homeledger.domain.exceptions import (
    ForbiddenOperationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from homeledger.domain.notifications import NotificationEvent
from homeledger.domain.state_machine import WorkRecordStateMachine, fire_transition
from homeledger.domain.validation import parse_work_date, require_text, validate_cost
from homeledger.infrastructure.database.orm_models import WorkRecord
from homeledger.infrastructure.database.repositories import (
    InvitationRepository,
    WorkRecordRepository,
)
from homeledger.logging_config import get_logger
from homeledger.services.access_gate import OwnershipAccessGate
from homeledger.services.connection_service import ConnectionManager
from homeledger.services.history_service import HistoryWriter
from homeledger.services.notification_outbox import OutboxNotificationEmitter
from homeledger.services.property_registry import PropertyRegistry

if TYPE_CHECKING:
    import uuid
    from datetime import date
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.domain.access import AccessGate, Actor
    from homeledger.domain.address import AddressNormalizer, AddressParts
    from homeledger.domain.notifications import NotificationEmitter
    from homeledger.infrastructure.database.orm_models import Connection, Record

logger = get_logger(__name__)

# Fields a contractor may change while the record is still under review.
EDITABLE_FIELDS = frozenset(
    {
        "work_type",
        "work_date",
        "description",
        "cost",
        "warranty_included",
        "warranty_length",
        "warranty_details",
        "photos",
        "invoice_url",
    }
)


@dataclass
class WorkRecordOutcome:
    """Result of a mutating work record operation."""

    work_record: WorkRecord
    event: NotificationEvent | None = None
    connection: Connection | None = None
    record: Record | None = None


class WorkRecordService:
    """Manages the work record lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        access_gate: AccessGate | None = None,
        emitter: NotificationEmitter | None = None,
        normalizer: AddressNormalizer = normalize_address,
    ) -> None:
        self._session = session
        self._access_gate = access_gate or OwnershipAccessGate(session)
        self._emitter = emitter or OutboxNotificationEmitter(session)
        self._registry = PropertyRegistry(session, normalizer)
        self._connections = ConnectionManager(session)
        self._history = HistoryWriter(session)
        self._work_record_repo = WorkRecordRepository(session)
        self._invitation_repo = InvitationRepository(session)

    # ------------------------------------------------------------------
    # Documenting work (contractor)
    # ------------------------------------------------------------------

    async def create_work_record(
        self,
        actor: Actor,
        *,
        work_type: str,
        work_date: date | datetime | str,
        home_id: uuid.UUID | None = None,
        address: AddressParts | None = None,
        description: str | None = None,
        cost: Decimal | float | str | None = None,
        warranty_included: bool = False,
        warranty_length: str | None = None,
        warranty_details: str | None = None,
        photos: list[str] | None = None,
        invoice_url: str | None = None,
        invitation_id: uuid.UUID | None = None,
    ) -> WorkRecordOutcome:
        """Document completed work at a home, found by id or by address.

        The initial status depends on whether the home has an owner right now:
        DOCUMENTED if it does, DOCUMENTED_UNVERIFIED if it does not. Only an
        existing owner is notified.
        """
        if not actor.is_pro:
            raise ForbiddenOperationError("Only contractors can document work")

        work_type = require_text(work_type, "work_type")
        parsed_date = parse_work_date(work_date)
        parsed_cost = validate_cost(cost)

        if home_id is not None:
            home = await self._registry.get_home(home_id)
        elif address is not None:
            home = await self._registry.find_or_create_by_address(address)
        else:
            raise ValidationError("A home_id or an address is required", field="home_id")

        if invitation_id is not None:
            await self._check_invitation_link(actor, invitation_id, home.id)

        has_owner = home.owner_id is not None
        status = WorkRecordStatus.DOCUMENTED if has_owner else WorkRecordStatus.DOCUMENTED_UNVERIFIED

        work_record = await self._work_record_repo.create(
            WorkRecord(
                home_id=home.id,
                contractor_id=actor.user_id,
                contractor_name=actor.label,
                invitation_id=invitation_id,
                work_type=work_type,
                work_date=parsed_date,
                description=description,
                cost=parsed_cost,
                warranty_included=warranty_included,
                warranty_length=warranty_length,
                warranty_details=warranty_details,
                photos=list(photos or []),
                invoice_url=invoice_url,
                status=status.value,
                is_verified=False,
                home_had_owner_at_creation=has_owner,
            )
        )

        event = None
        if has_owner:
            event = await self._emit(
                NotificationType.WORK_DOCUMENTED,
                home.owner_id,
                work_record,
                contractor_id=str(actor.user_id),
                work_type=work_type,
            )

        logger.info(
            "work_record.created",
            work_record_id=str(work_record.id),
            home_id=str(home.id),
            status=status.value,
        )
        return WorkRecordOutcome(work_record=work_record, event=event)

    async def update_work_record(
        self,
        actor: Actor,
        work_record_id: uuid.UUID,
        **changes: Any,
    ) -> WorkRecordOutcome:
        """Edit details and evidence while the record is not terminal.

        Editing a DISPUTED record resubmits it: it goes back to DOCUMENTED,
        the dispute feedback is cleared and the home owner is notified.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        values = self._clean_changes(changes)

        work_record = await self._get_or_raise(work_record_id, for_update=True)
        self._require_capability(
            resolve_capabilities(actor, work_record, False),
            Capability.EDIT_EVIDENCE,
            "Only the authoring contractor can edit this work record",
        )
        if work_record.archived_at is not None:
            raise InvalidStateTransitionError("ARCHIVED", "update")

        current = WorkRecordStatus(work_record.status)
        if current.is_terminal:
            raise InvalidStateTransitionError(current.value, "update")

        event = None
        if current == WorkRecordStatus.DISPUTED:
            await self._apply_transition(work_record, "resubmit", rejection_reason=None, **values)
            home = await self._registry.get_home(work_record.home_id)
            if home.owner_id is not None:
                event = await self._emit(
                    NotificationType.WORK_RESUBMITTED,
                    home.owner_id,
                    work_record,
                    contractor_id=str(work_record.contractor_id),
                )
            logger.info("work_record.resubmitted", work_record_id=str(work_record_id))
        else:
            # Same-status compare-and-set so an edit cannot land after a verification.
            if not await self._work_record_repo.compare_and_set_status(
                work_record, current, current, **values
            ):
                await self._session.refresh(work_record)
                raise InvalidStateTransitionError(work_record.status, "update")
            logger.info(
                "work_record.updated",
                work_record_id=str(work_record_id),
                fields=sorted(values),
            )

        return WorkRecordOutcome(work_record=work_record, event=event)

    async def archive_work_record(
        self,
        actor: Actor,
        work_record_id: uuid.UUID,
    ) -> WorkRecordOutcome:
        """Hide a work record from listings. Archiving twice is a no-op."""
        work_record = await self._get_or_raise(work_record_id, for_update=True)
        self._require_capability(
            resolve_capabilities(actor, work_record, False),
            Capability.ARCHIVE,
            "Only the authoring contractor can archive this work record",
        )

        if work_record.archived_at is None:
            work_record.archived_at = datetime.now(UTC)
            await self._session.flush()
            logger.info("work_record.archived", work_record_id=str(work_record_id))

        return WorkRecordOutcome(work_record=work_record)

    # ------------------------------------------------------------------
    # Review (homeowner)
    # ------------------------------------------------------------------

    async def verify_work(
        self,
        actor: Actor,
        home_id: uuid.UUID,
        work_record_id: uuid.UUID,
        cost: Decimal | float | str | None = None,
        note: str | None = None,
    ) -> WorkRecordOutcome:
        """Approve work, connect homeowner and contractor, write the history record.

        ``cost`` replaces the documented cost; ``note`` is appended to the
        description. Status, connection and record are written in one
        savepoint: if any step fails none of them persist.
        """
        work_record = await self._load_for_review(actor, home_id, work_record_id, Capability.VERIFY)
        adjusted_cost = validate_cost(cost) if cost is not None else work_record.cost
        description = _append_homeowner_note(work_record.description, note)
        now = datetime.now(UTC)

        async with self._session.begin_nested():
            await self._apply_transition(
                work_record,
                "verify",
                claimed_by=actor.user_id,
                claimed_at=now,
                verified_by=actor.user_id,
                verified_at=now,
                approved_by=actor.user_id,
                approved_at=now,
                cost=adjusted_cost,
                description=description,
            )
            connection = await self._connections.upsert_connection(
                home_id=work_record.home_id,
                homeowner_id=actor.user_id,
                contractor_id=work_record.contractor_id,
                established_via=EstablishedVia.VERIFIED_WORK,
                source_record_id=work_record.id,
                invited_by=actor.user_id,
            )
            record = await self._history.materialize_record(work_record, actor.user_id)

        event = await self._emit(
            NotificationType.WORK_VERIFIED,
            work_record.contractor_id,
            work_record,
            homeowner_id=str(actor.user_id),
            record_id=str(record.id),
            connection_id=str(connection.id),
        )

        logger.info(
            "work_record.verified",
            work_record_id=str(work_record_id),
            record_id=str(record.id),
            connection_id=str(connection.id),
        )
        return WorkRecordOutcome(
            work_record=work_record,
            event=event,
            connection=connection,
            record=record,
        )

    async def dispute_work(
        self,
        actor: Actor,
        home_id: uuid.UUID,
        work_record_id: uuid.UUID,
        feedback: str | None = None,
    ) -> WorkRecordOutcome:
        """Send work back to the contractor. No connection, no history record."""
        work_record = await self._load_for_review(actor, home_id, work_record_id, Capability.DISPUTE)
        feedback = _clean_feedback(feedback)

        await self._apply_transition(
            work_record,
            "dispute",
            claimed_by=actor.user_id,
            claimed_at=datetime.now(UTC),
            rejection_reason=feedback,
        )
        event = await self._emit(
            NotificationType.WORK_DISPUTED,
            work_record.contractor_id,
            work_record,
            feedback=feedback,
        )

        logger.info("work_record.disputed", work_record_id=str(work_record_id))
        return WorkRecordOutcome(work_record=work_record, event=event)

    async def reject_work(
        self,
        actor: Actor,
        home_id: uuid.UUID,
        work_record_id: uuid.UUID,
        feedback: str | None = None,
    ) -> WorkRecordOutcome:
        """Reject work for good. No connection, no history record."""
        work_record = await self._load_for_review(actor, home_id, work_record_id, Capability.REJECT)
        feedback = _clean_feedback(feedback)

        await self._apply_transition(work_record, "reject", rejection_reason=feedback)
        event = await self._emit(
            NotificationType.WORK_REJECTED,
            work_record.contractor_id,
            work_record,
            feedback=feedback,
        )

        logger.info("work_record.rejected", work_record_id=str(work_record_id))
        return WorkRecordOutcome(work_record=work_record, event=event)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_work_record(self, actor: Actor, work_record_id: uuid.UUID) -> WorkRecord:
        work_record = await self._get_or_raise(work_record_id)
        has_access = await self._access_gate.can_access_home(actor, work_record.home_id)
        self._require_capability(
            resolve_capabilities(actor, work_record, has_access),
            Capability.VIEW,
            "You do not have access to this work record",
        )
        return work_record

    async def list_pending_for_home(self, actor: Actor, home_id: uuid.UUID) -> list[WorkRecord]:
        """Unarchived work awaiting the homeowner's decision."""
        await self._registry.get_home(home_id)
        if not await self._access_gate.can_access_home(actor, home_id):
            raise ForbiddenOperationError("You do not have access to this home")
        return await self._work_record_repo.list_reviewable_for_home(home_id)

    async def list_for_contractor(
        self,
        actor: Actor,
        home_id: uuid.UUID | None = None,
    ) -> list[WorkRecord]:
        if not actor.is_pro:
            raise ForbiddenOperationError("Only contractors have work records")
        return await self._work_record_repo.list_for_contractor(actor.user_id, home_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _check_invitation_link(
        self, actor: Actor, invitation_id: uuid.UUID, home_id: uuid.UUID
    ) -> None:
        """Work may only cite an invitation the contractor is party to, for this home."""
        invitation = await self._invitation_repo.get_by_id(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation", str(invitation_id))
        if invitation.invited_by != actor.user_id and not actor.email_matches(
            invitation.invited_email
        ):
            raise ForbiddenOperationError("You are not a party to this invitation")
        if invitation.home_id is not None and invitation.home_id != home_id:
            raise ForbiddenOperationError("This invitation is for a different home")

    async def _get_or_raise(self, work_record_id: uuid.UUID, for_update: bool = False) -> WorkRecord:
        work_record = await self._work_record_repo.get_by_id(work_record_id, for_update=for_update)
        if work_record is None:
            raise NotFoundError("WorkRecord", str(work_record_id))
        return work_record

    async def _load_for_review(
        self,
        actor: Actor,
        home_id: uuid.UUID,
        work_record_id: uuid.UUID,
        capability: Capability,
    ) -> WorkRecord:
        """Lock the record and check it belongs to ``home_id`` and the actor may review it."""
        work_record = await self._get_or_raise(work_record_id, for_update=True)
        if work_record.home_id != home_id:
            raise ForbiddenOperationError(
                f"Work record {work_record_id} does not belong to home {home_id}"
            )

        has_access = await self._access_gate.can_access_home(actor, home_id)
        self._require_capability(
            resolve_capabilities(actor, work_record, has_access),
            capability,
            f"You are not allowed to {capability.value.lower()} this work record",
        )
        return work_record

    @staticmethod
    def _require_capability(
        capabilities: frozenset[Capability],
        capability: Capability,
        message: str,
    ) -> None:
        if capability not in capabilities:
            raise ForbiddenOperationError(message)

    async def _apply_transition(
        self,
        work_record: WorkRecord,
        event_name: str,
        **values: Any,
    ) -> WorkRecordStatus:
        """Guard ``event_name`` with the state machine, then write it with compare-and-set.

        Returns the new status. Raises InvalidStateTransitionError if the event
        is illegal from the stored status or another writer changed it first.
        """
        current = WorkRecordStatus(work_record.status)
        new_status = WorkRecordStatus(
            fire_transition(WorkRecordStateMachine, current.value, event_name)
        )

        if not await self._work_record_repo.compare_and_set_status(
            work_record, current, new_status, **values
        ):
            await self._session.refresh(work_record)
            logger.warning(
                "work_record.transition_lost",
                work_record_id=str(work_record.id),
                expected=current.value,
                found=work_record.status,
            )
            raise InvalidStateTransitionError(work_record.status, event_name)

        logger.debug(
            "work_record.transition",
            work_record_id=str(work_record.id),
            old_status=current.value,
            new_status=new_status.value,
        )
        return new_status

    async def _emit(
        self,
        event_type: NotificationType,
        recipient_id: uuid.UUID | None,
        work_record: WorkRecord,
        **extra: Any,
    ) -> NotificationEvent:
        event = NotificationEvent(
            event_type=event_type,
            recipient_id=recipient_id,
            payload={
                "work_record_id": str(work_record.id),
                "home_id": str(work_record.home_id),
                "work_type": work_record.work_type,
                **extra,
            },
        )
        await self._emitter.emit(event)
        return event

    @staticmethod
    def _clean_changes(changes: dict[str, Any]) -> dict[str, Any]:
        values = dict(changes)
        if "work_type" in values:
            values["work_type"] = require_text(values["work_type"], "work_type")
        if "work_date" in values:
            values["work_date"] = parse_work_date(values["work_date"])
        if "cost" in values:
            values["cost"] = validate_cost(values["cost"])
        if "photos" in values:
            values["photos"] = list(values["photos"] or [])
        if "warranty_included" in values:
            values["warranty_included"] = bool(values["warranty_included"])
        return values


def _append_homeowner_note(description: str | None, note: str | None) -> str | None:
    if not note or not note.strip():
        return description
    if description:
        return f"{description}\n\nHomeowner note: {note.strip()}"
    return note.strip()


def _clean_feedback(feedback: str | None) -> str | None:
    if feedback is None or not feedback.strip():
        return None
    return feedback.strip()
