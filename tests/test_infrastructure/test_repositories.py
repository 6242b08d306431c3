"""Tests for repository compare-and-set writes and query filters."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from homeledger.domain.enums import InvitationStatus, WorkRecordStatus
from homeledger.infrastructure.database.orm_models import Home, Invitation, WorkRecord
from homeledger.infrastructure.database.repositories import (
    HomeRepository,
    InvitationRepository,
    WorkRecordRepository,
)


async def _home(session, owner_id=None) -> Home:  # noqa: ANN001
    return await HomeRepository(session).create(
        Home(
            normalized_address=f"{uuid.uuid4().hex}springfieldil62701",
            address="1 Test Way",
            city="Springfield",
            state="IL",
            zip="62701",
            owner_id=owner_id,
        )
    )


async def _work_record(session, home, contractor_id, status, cost=None, work_date=None):  # noqa: ANN001, ANN202
    return await WorkRecordRepository(session).create(
        WorkRecord(
            home_id=home.id,
            contractor_id=contractor_id,
            contractor_name="Acme Plumbing",
            work_type="Leak repair",
            work_date=work_date or date(2024, 1, 1),
            cost=cost,
            status=status.value,
            is_verified=status.is_verified,
        )
    )


class TestWorkRecordCompareAndSet:
    @pytest.mark.asyncio
    async def test_writes_when_status_matches(self, session) -> None:
        repo = WorkRecordRepository(session)
        work_record = await _work_record(
            session, await _home(session), uuid.uuid4(), WorkRecordStatus.DOCUMENTED
        )

        assert await repo.compare_and_set_status(
            work_record,
            WorkRecordStatus.DOCUMENTED,
            WorkRecordStatus.APPROVED,
            rejection_reason=None,
        )
        assert work_record.status == WorkRecordStatus.APPROVED
        assert work_record.is_verified is True

    @pytest.mark.asyncio
    async def test_stale_expectation_writes_nothing(self, session) -> None:
        repo = WorkRecordRepository(session)
        work_record = await _work_record(
            session, await _home(session), uuid.uuid4(), WorkRecordStatus.DOCUMENTED
        )
        # Another writer moves the row behind the instance's back.
        await session.execute(
            update(WorkRecord)
            .where(WorkRecord.id == work_record.id)
            .values(status=WorkRecordStatus.REJECTED.value)
            .execution_options(synchronize_session=False)
        )

        assert work_record.status == WorkRecordStatus.DOCUMENTED
        assert not await repo.compare_and_set_status(
            work_record, WorkRecordStatus.DOCUMENTED, WorkRecordStatus.APPROVED
        )

        reloaded = await repo.get_by_id(work_record.id, for_update=True)
        assert reloaded.status == WorkRecordStatus.REJECTED
        assert reloaded.is_verified is False


class TestVerifiedAggregates:
    @pytest.mark.asyncio
    async def test_only_approved_work_counts(self, session) -> None:
        home = await _home(session)
        contractor_id = uuid.uuid4()
        await _work_record(
            session, home, contractor_id, WorkRecordStatus.APPROVED, Decimal("100.25"), date(2024, 2, 1)
        )
        await _work_record(
            session, home, contractor_id, WorkRecordStatus.APPROVED, Decimal("49.75"), date(2024, 5, 1)
        )
        await _work_record(
            session, home, contractor_id, WorkRecordStatus.REJECTED, Decimal("999"), date(2024, 9, 1)
        )
        await _work_record(
            session, home, uuid.uuid4(), WorkRecordStatus.APPROVED, Decimal("10"), date(2024, 9, 2)
        )

        count, total, last_date = await WorkRecordRepository(session).verified_aggregates(
            home.id, contractor_id
        )
        assert count == 2
        assert total == Decimal("150.00")
        assert last_date == date(2024, 5, 1)

    @pytest.mark.asyncio
    async def test_no_work(self, session) -> None:
        count, total, last_date = await WorkRecordRepository(session).verified_aggregates(
            (await _home(session)).id, uuid.uuid4()
        )
        assert (count, total, last_date) == (0, Decimal("0.00"), None)


class TestHomeClaim:
    @pytest.mark.asyncio
    async def test_claim_if_unowned_refuses_owned_row(self, session) -> None:
        owner_id = uuid.uuid4()
        home = await _home(session, owner_id=owner_id)

        assert not await HomeRepository(session).claim_if_unowned(home, uuid.uuid4())
        assert home.owner_id == owner_id


class TestInvitationQueries:
    @pytest.mark.asyncio
    async def test_live_pending_ignores_expired_and_closed(self, session) -> None:
        repo = InvitationRepository(session)
        inviter = uuid.uuid4()
        now = datetime.now(UTC)

        for status, expires_at in (
            (InvitationStatus.PENDING, now - timedelta(hours=1)),
            (InvitationStatus.CANCELLED, now + timedelta(days=1)),
        ):
            await repo.create(
                Invitation(
                    invited_email="olivia@example.com",
                    invited_by=inviter,
                    role="HOMEOWNER",
                    status=status.value,
                    expires_at=expires_at,
                )
            )
        assert await repo.find_live_pending(inviter, "olivia@example.com", now) is None
        assert await repo.list_received("olivia@example.com", now) == []

        live = await repo.create(
            Invitation(
                invited_email="olivia@example.com",
                invited_by=inviter,
                role="HOMEOWNER",
                status=InvitationStatus.PENDING.value,
                expires_at=now + timedelta(days=7),
            )
        )
        assert (await repo.find_live_pending(inviter, "olivia@example.com", now)).id == live.id
        assert [inv.id for inv in await repo.list_received("olivia@example.com", now)] == [live.id]

    @pytest.mark.asyncio
    async def test_compare_and_set_loses_to_earlier_writer(self, session) -> None:
        repo = InvitationRepository(session)
        invitation = await repo.create(
            Invitation(
                invited_email="olivia@example.com",
                invited_by=uuid.uuid4(),
                role="HOMEOWNER",
                status=InvitationStatus.PENDING.value,
                expires_at=datetime.now(UTC) + timedelta(days=7),
            )
        )
        assert await repo.compare_and_set_status(
            invitation, InvitationStatus.PENDING, InvitationStatus.CANCELLED
        )
        assert not await repo.compare_and_set_status(
            invitation, InvitationStatus.PENDING, InvitationStatus.ACCEPTED
        )
        assert invitation.status == InvitationStatus.CANCELLED
