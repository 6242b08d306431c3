"""Connection Manager — idempotent homeowner/contractor connections.

A connection is unique per (home, homeowner, contractor). Its aggregates are
recomputed from the approved work records on every upsert instead of being
incremented, so retried or concurrent verifications converge on the same
numbers:

    verified_work_count = count(approved work for home + contractor)
    total_spent         = sum(cost of that work)
    last_work_date      = max(work_date of that work)

Concurrency: the existing row is locked before recomputing, and an insert
that loses the race to a concurrent insert (unique violation) falls back to
the update path inside the same transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from homeledger.domain.enums import ConnectionStatus, EstablishedVia
from homeledger.domain.exceptions import NotFoundError, StorageConflictError
from homeledger.infrastructure.database.orm_models import Connection
from homeledger.infrastructure.database.repositories import (
    ConnectionRepository,
    WorkRecordRepository,
)
from homeledger.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class ConnectionManager:
    """Creates and maintains connections."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._connection_repo = ConnectionRepository(session)
        self._work_record_repo = WorkRecordRepository(session)

    async def upsert_connection(
        self,
        home_id: uuid.UUID,
        homeowner_id: uuid.UUID,
        contractor_id: uuid.UUID,
        established_via: EstablishedVia,
        source_record_id: uuid.UUID | None,
        invited_by: uuid.UUID | None = None,
    ) -> Connection:
        """Create the connection for the triple, or refresh the existing one.

        ``established_via``, ``source_record_id`` and ``invited_by`` only apply
        when the connection is created; an existing connection keeps its
        provenance.

        Raises:
            StorageConflictError: The insert hit the unique index but the
                winning row is still not visible.
        """
        existing = await self._connection_repo.get_by_triple(
            home_id, homeowner_id, contractor_id, for_update=True
        )
        if existing is None:
            created = await self._try_create(
                home_id,
                homeowner_id,
                contractor_id,
                established_via,
                source_record_id,
                invited_by or homeowner_id,
            )
            if created is not None:
                return created

            existing = await self._connection_repo.get_by_triple(
                home_id, homeowner_id, contractor_id, for_update=True
            )
            if existing is None:
                raise StorageConflictError(
                    f"Connection for home {home_id} and contractor {contractor_id} "
                    "was created concurrently but is not visible"
                )

        return await self._refresh_aggregates(existing)

    async def get_connection(self, connection_id: uuid.UUID) -> Connection:
        connection = await self._connection_repo.get_by_id(connection_id)
        if connection is None:
            raise NotFoundError("Connection", str(connection_id))
        return connection

    async def list_for_home(self, home_id: uuid.UUID) -> list[Connection]:
        return await self._connection_repo.list_for_home(home_id)

    async def list_for_contractor(self, contractor_id: uuid.UUID) -> list[Connection]:
        return await self._connection_repo.list_for_contractor(contractor_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _try_create(
        self,
        home_id: uuid.UUID,
        homeowner_id: uuid.UUID,
        contractor_id: uuid.UUID,
        established_via: EstablishedVia,
        source_record_id: uuid.UUID | None,
        invited_by: uuid.UUID,
    ) -> Connection | None:
        """Insert inside a savepoint; None if the triple already exists."""
        count, total, last_date = await self._work_record_repo.verified_aggregates(
            home_id, contractor_id
        )
        try:
            async with self._session.begin_nested():
                connection = await self._connection_repo.create(
                    Connection(
                        home_id=home_id,
                        homeowner_id=homeowner_id,
                        contractor_id=contractor_id,
                        status=ConnectionStatus.ACTIVE.value,
                        established_via=established_via.value,
                        verified_work_count=count,
                        total_spent=total,
                        last_work_date=last_date,
                        invited_by=invited_by,
                        source_record_id=source_record_id,
                    )
                )
        except IntegrityError:
            logger.info(
                "connection.create_race_lost",
                home_id=str(home_id),
                contractor_id=str(contractor_id),
            )
            return None

        logger.info(
            "connection.created",
            connection_id=str(connection.id),
            home_id=str(home_id),
            established_via=established_via.value,
            verified_work_count=count,
        )
        return connection

    async def _refresh_aggregates(self, connection: Connection) -> Connection:
        count, total, last_date = await self._work_record_repo.verified_aggregates(
            connection.home_id, connection.contractor_id
        )
        connection.verified_work_count = count
        connection.total_spent = total
        connection.last_work_date = last_date
        connection.status = ConnectionStatus.ACTIVE.value
        await self._session.flush()

        logger.info(
            "connection.updated",
            connection_id=str(connection.id),
            verified_work_count=count,
            total_spent=str(total),
        )
        return connection
