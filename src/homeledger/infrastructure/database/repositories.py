"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

Reads taken with ``for_update=True`` lock the row (SELECT ... FOR UPDATE on
PostgreSQL; a no-op on SQLite, which serializes writers anyway) and refresh
any copy already in the identity map.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from homeledger.domain.enums import (
    REVIEWABLE_WORK_STATUSES,
    InvitationStatus,
    WorkRecordStatus,
)
from homeledger.infrastructure.database.orm_models import (
    Connection,
    Home,
    Invitation,
    Notification,
    Record,
    WorkRecord,
)

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.domain.notifications import NotificationEvent


def _locked(stmt: Select, for_update: bool) -> Select:
    if for_update:
        return stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


class HomeRepository:
    """Data access for homes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, home: Home) -> Home:
        """Insert a new home."""
        self._session.add(home)
        await self._session.flush()
        return home

    async def get_by_id(self, home_id: uuid.UUID, for_update: bool = False) -> Home | None:
        """Fetch a home by its UUID."""
        stmt = _locked(select(Home).where(Home.id == home_id), for_update)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_normalized_address(self, normalized_address: str) -> Home | None:
        result = await self._session.execute(
            select(Home).where(Home.normalized_address == normalized_address)
        )
        return result.scalar_one_or_none()

    async def claim_if_unowned(self, home: Home, owner_id: uuid.UUID) -> bool:
        """Set the owner only while the row still has none. Refreshes ``home``."""
        result = await self._session.execute(
            update(Home)
            .where(Home.id == home.id, Home.owner_id.is_(None))
            .values(owner_id=owner_id, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(home)
        return result.rowcount == 1


class WorkRecordRepository:
    """Data access for work records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, work_record: WorkRecord) -> WorkRecord:
        """Insert a new work record."""
        self._session.add(work_record)
        await self._session.flush()
        return work_record

    async def get_by_id(
        self, work_record_id: uuid.UUID, for_update: bool = False
    ) -> WorkRecord | None:
        """Fetch a work record by its UUID."""
        stmt = _locked(select(WorkRecord).where(WorkRecord.id == work_record_id), for_update)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def compare_and_set_status(
        self,
        work_record: WorkRecord,
        expected_status: WorkRecordStatus,
        new_status: WorkRecordStatus,
        **values: Any,
    ) -> bool:
        """Move ``work_record`` to ``new_status`` only if it is still ``expected_status``.

        Returns False (and writes nothing) when another transaction got there
        first. On success the instance is refreshed from the row.
        """
        result = await self._session.execute(
            update(WorkRecord)
            .where(
                WorkRecord.id == work_record.id,
                WorkRecord.status == expected_status.value,
            )
            .values(
                status=new_status.value,
                is_verified=new_status.is_verified,
                updated_at=datetime.now(UTC),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self._session.refresh(work_record)
        return True

    async def list_reviewable_for_home(self, home_id: uuid.UUID) -> list[WorkRecord]:
        """Unarchived work still awaiting a homeowner decision, newest work first."""
        result = await self._session.execute(
            select(WorkRecord)
            .where(
                WorkRecord.home_id == home_id,
                WorkRecord.is_verified.is_(False),
                WorkRecord.status.in_([s.value for s in REVIEWABLE_WORK_STATUSES]),
                WorkRecord.archived_at.is_(None),
            )
            .order_by(WorkRecord.work_date.desc(), WorkRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_contractor(
        self,
        contractor_id: uuid.UUID,
        home_id: uuid.UUID | None = None,
    ) -> list[WorkRecord]:
        stmt = select(WorkRecord).where(
            WorkRecord.contractor_id == contractor_id,
            WorkRecord.archived_at.is_(None),
        )
        if home_id is not None:
            stmt = stmt.where(WorkRecord.home_id == home_id)
        result = await self._session.execute(stmt.order_by(WorkRecord.work_date.desc()))
        return list(result.scalars().all())

    async def verified_aggregates(
        self,
        home_id: uuid.UUID,
        contractor_id: uuid.UUID,
    ) -> tuple[int, Decimal, date | None]:
        """Count, total cost and latest date of approved work for a (home, contractor)."""
        result = await self._session.execute(
            select(
                func.count(WorkRecord.id),
                func.coalesce(func.sum(WorkRecord.cost), 0),
                func.max(WorkRecord.work_date),
            ).where(
                WorkRecord.home_id == home_id,
                WorkRecord.contractor_id == contractor_id,
                WorkRecord.status == WorkRecordStatus.APPROVED.value,
                WorkRecord.is_verified.is_(True),
            )
        )
        count, total, last_date = result.one()
        return int(count), Decimal(str(total)).quantize(Decimal("0.01")), last_date


class ConnectionRepository:
    """Data access for homeowner/contractor connections."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, connection: Connection) -> Connection:
        """Insert a connection. Raises IntegrityError if the triple already exists."""
        self._session.add(connection)
        await self._session.flush()
        return connection

    async def get_by_id(self, connection_id: uuid.UUID) -> Connection | None:
        result = await self._session.execute(
            select(Connection).where(Connection.id == connection_id)
        )
        return result.scalar_one_or_none()

    async def get_by_triple(
        self,
        home_id: uuid.UUID,
        homeowner_id: uuid.UUID,
        contractor_id: uuid.UUID,
        for_update: bool = False,
    ) -> Connection | None:
        stmt = select(Connection).where(
            Connection.home_id == home_id,
            Connection.homeowner_id == homeowner_id,
            Connection.contractor_id == contractor_id,
        )
        result = await self._session.execute(_locked(stmt, for_update))
        return result.scalar_one_or_none()

    async def list_for_home(self, home_id: uuid.UUID) -> list[Connection]:
        result = await self._session.execute(
            select(Connection)
            .where(Connection.home_id == home_id)
            .order_by(Connection.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_contractor(self, contractor_id: uuid.UUID) -> list[Connection]:
        result = await self._session.execute(
            select(Connection)
            .where(Connection.contractor_id == contractor_id)
            .order_by(Connection.created_at.asc())
        )
        return list(result.scalars().all())


class RecordRepository:
    """Data access for the insert-only home history."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, record: Record) -> Record:
        """Append a history record. This is the ONLY write operation allowed."""
        self._session.add(record)
        await self._session.flush()
        return record

    async def list_for_home(self, home_id: uuid.UUID) -> list[Record]:
        """Fetch a home's timeline, most recent first."""
        result = await self._session.execute(
            select(Record)
            .where(Record.home_id == home_id)
            .order_by(Record.date.desc(), Record.created_at.desc())
        )
        return list(result.scalars().all())


class InvitationRepository:
    """Data access for invitations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, invitation: Invitation) -> Invitation:
        self._session.add(invitation)
        await self._session.flush()
        return invitation

    async def get_by_id(
        self, invitation_id: uuid.UUID, for_update: bool = False
    ) -> Invitation | None:
        stmt = _locked(select(Invitation).where(Invitation.id == invitation_id), for_update)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_live_pending(
        self,
        invited_by: uuid.UUID,
        invited_email: str,
        now: datetime,
    ) -> Invitation | None:
        """A PENDING, unexpired invitation from ``invited_by`` to ``invited_email``."""
        result = await self._session.execute(
            select(Invitation)
            .where(
                Invitation.invited_by == invited_by,
                Invitation.invited_email == invited_email,
                Invitation.status == InvitationStatus.PENDING.value,
                Invitation.expires_at > now,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def compare_and_set_status(
        self,
        invitation: Invitation,
        expected_status: InvitationStatus,
        new_status: InvitationStatus,
        **values: Any,
    ) -> bool:
        """Conditional status write; see WorkRecordRepository.compare_and_set_status."""
        result = await self._session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation.id,
                Invitation.status == expected_status.value,
            )
            .values(status=new_status.value, updated_at=datetime.now(UTC), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self._session.refresh(invitation)
        return True

    async def list_sent(
        self,
        invited_by: uuid.UUID,
        status: InvitationStatus | None = None,
    ) -> list[Invitation]:
        stmt = select(Invitation).where(Invitation.invited_by == invited_by)
        if status is not None:
            stmt = stmt.where(Invitation.status == status.value)
        result = await self._session.execute(stmt.order_by(Invitation.created_at.desc()))
        return list(result.scalars().all())

    async def list_received(self, invited_email: str, now: datetime) -> list[Invitation]:
        """Pending, unexpired invitations addressed to ``invited_email``."""
        result = await self._session.execute(
            select(Invitation)
            .where(
                Invitation.invited_email == invited_email,
                Invitation.status == InvitationStatus.PENDING.value,
                Invitation.expires_at > now,
            )
            .order_by(Invitation.created_at.desc())
        )
        return list(result.scalars().all())


class NotificationRepository:
    """Data access for the notification outbox."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, event: NotificationEvent) -> Notification:
        notification = Notification(
            user_id=event.recipient_id,
            event_type=event.event_type.value,
            payload=event.to_dict(),
        )
        self._session.add(notification)
        await self._session.flush()
        return notification

    async def list_for_user(self, user_id: uuid.UUID) -> list[Notification]:
        result = await self._session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.asc())
        )
        return list(result.scalars().all())
