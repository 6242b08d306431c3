"""Permanent History Writer — turns approved work into home timeline records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from homeledger.config import get_settings
from homeledger.infrastructure.database.orm_models import Record
from homeledger.infrastructure.database.repositories import RecordRepository
from homeledger.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.infrastructure.database.orm_models import WorkRecord

logger = get_logger(__name__)


class HistoryWriter:
    """Writes immutable Record rows. Never updates or deletes them."""

    def __init__(self, session: AsyncSession, record_kind: str | None = None) -> None:
        self._session = session
        self._record_repo = RecordRepository(session)
        self._record_kind = record_kind or get_settings().record_kind

    async def materialize_record(self, work_record: WorkRecord, verifier_id: uuid.UUID) -> Record:
        """Create the history record for an approved work record and link it back.

        The caller guarantees the work record just became APPROVED, so this
        runs at most once per work record. The unique source_work_record_id
        column rejects a second attempt at the storage level.
        """
        record = await self._record_repo.create(
            Record(
                home_id=work_record.home_id,
                title=work_record.work_type,
                note=work_record.description,
                date=work_record.work_date,
                kind=self._record_kind,
                vendor=work_record.contractor_name,
                cost=work_record.cost,
                created_by=verifier_id,
                verified_by=verifier_id,
                verified_at=datetime.now(UTC),
                source_work_record_id=work_record.id,
            )
        )

        work_record.final_record_id = record.id
        await self._session.flush()

        logger.info(
            "record.materialized",
            record_id=str(record.id),
            work_record_id=str(work_record.id),
            home_id=str(work_record.home_id),
        )
        return record

    async def list_for_home(self, home_id: uuid.UUID) -> list[Record]:
        return await self._record_repo.list_for_home(home_id)
