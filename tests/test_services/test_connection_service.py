"""Tests for the Connection Manager (idempotent upsert and aggregates)."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from homeledger.domain.address import AddressParts
from homeledger.domain.enums import EstablishedVia
from homeledger.domain.exceptions import NotFoundError, StorageConflictError
from homeledger.infrastructure.database.orm_models import Connection
from homeledger.infrastructure.database.repositories import ConnectionRepository
from homeledger.services.connection_service import ConnectionManager
from homeledger.services.property_registry import PropertyRegistry
from homeledger.services.work_record_service import WorkRecordService


async def _connection_count(session) -> int:  # noqa: ANN001
    result = await session.execute(select(func.count()).select_from(Connection))
    return result.scalar_one()


@pytest_asyncio.fixture
async def owned_home(session, main_street, homeowner):  # noqa: ANN001, ANN201
    registry = PropertyRegistry(session)
    home = await registry.find_or_create_by_address(main_street)
    return await registry.claim(home.id, homeowner.user_id)


async def _verified(svc, contractor, homeowner, home, cost, work_date, **extra):  # noqa: ANN001, ANN202
    created = await svc.create_work_record(
        contractor,
        home_id=home.id,
        work_type=extra.pop("work_type", "Service call"),
        work_date=work_date,
        cost=cost,
        **extra,
    )
    return await svc.verify_work(homeowner, home.id, created.work_record.id)


class TestAggregates:
    @pytest.mark.asyncio
    async def test_aggregates_follow_verified_work(
        self, session, owned_home, contractor, homeowner
    ) -> None:
        svc = WorkRecordService(session)
        first = await _verified(
            svc, contractor, homeowner, owned_home, Decimal("100.25"), date(2024, 6, 15)
        )
        second = await _verified(
            svc, contractor, homeowner, owned_home, Decimal("49.75"), date(2024, 3, 1)
        )

        assert second.connection.id == first.connection.id
        assert await _connection_count(session) == 1
        assert second.connection.verified_work_count == 2
        assert second.connection.total_spent == Decimal("150.00")
        # Latest work date, not the most recently verified one.
        assert second.connection.last_work_date == date(2024, 6, 15)

    @pytest.mark.asyncio
    async def test_unverified_work_is_not_counted(
        self, session, owned_home, contractor, homeowner
    ) -> None:
        svc = WorkRecordService(session)
        outcome = await _verified(
            svc, contractor, homeowner, owned_home, Decimal("80.00"), date(2024, 1, 10)
        )
        rejected = await svc.create_work_record(
            contractor,
            home_id=owned_home.id,
            work_type="Duct cleaning",
            work_date=date(2024, 2, 1),
            cost=Decimal("500"),
        )
        await svc.reject_work(homeowner, owned_home.id, rejected.work_record.id)
        await svc.create_work_record(
            contractor,
            home_id=owned_home.id,
            work_type="Filter swap",
            work_date=date(2024, 4, 1),
            cost=Decimal("25"),
        )

        refreshed = await ConnectionManager(session).upsert_connection(
            home_id=owned_home.id,
            homeowner_id=homeowner.user_id,
            contractor_id=contractor.user_id,
            established_via=EstablishedVia.MANUAL,
            source_record_id=None,
        )
        assert refreshed.id == outcome.connection.id
        assert refreshed.verified_work_count == 1
        assert refreshed.total_spent == Decimal("80.00")
        assert refreshed.last_work_date == date(2024, 1, 10)
        # Provenance is set once, at creation.
        assert refreshed.established_via == EstablishedVia.VERIFIED_WORK

    @pytest.mark.asyncio
    async def test_work_without_cost_counts_but_adds_nothing(
        self, session, owned_home, contractor, homeowner
    ) -> None:
        svc = WorkRecordService(session)
        await _verified(svc, contractor, homeowner, owned_home, Decimal("60.00"), date(2024, 1, 1))
        outcome = await _verified(svc, contractor, homeowner, owned_home, None, date(2024, 2, 1))

        assert outcome.connection.verified_work_count == 2
        assert outcome.connection.total_spent == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_each_contractor_gets_own_connection(
        self, session, owned_home, contractor, other_contractor, homeowner
    ) -> None:
        svc = WorkRecordService(session)
        a = await _verified(svc, contractor, homeowner, owned_home, Decimal("10"), date(2024, 1, 1))
        b = await _verified(
            svc, other_contractor, homeowner, owned_home, Decimal("20"), date(2024, 1, 2)
        )

        assert a.connection.id != b.connection.id
        connections = await ConnectionManager(session).list_for_home(owned_home.id)
        assert {c.contractor_id for c in connections} == {
            contractor.user_id,
            other_contractor.user_id,
        }


class TestUpsert:
    @pytest.mark.asyncio
    async def test_invitation_then_verification_converges(
        self, session, owned_home, contractor, homeowner
    ) -> None:
        manager = ConnectionManager(session)
        invitation_id = uuid.uuid4()
        invited = await manager.upsert_connection(
            home_id=owned_home.id,
            homeowner_id=homeowner.user_id,
            contractor_id=contractor.user_id,
            established_via=EstablishedVia.INVITATION,
            source_record_id=invitation_id,
            invited_by=contractor.user_id,
        )
        assert invited.verified_work_count == 0
        assert invited.total_spent == Decimal("0.00")
        assert invited.last_work_date is None

        outcome = await _verified(
            WorkRecordService(session),
            contractor,
            homeowner,
            owned_home,
            Decimal("300.00"),
            date(2024, 7, 4),
        )

        assert outcome.connection.id == invited.id
        assert outcome.connection.established_via == EstablishedVia.INVITATION
        assert outcome.connection.source_record_id == invitation_id
        assert outcome.connection.invited_by == contractor.user_id
        assert outcome.connection.verified_work_count == 1
        assert await _connection_count(session) == 1

    @pytest.mark.asyncio
    async def test_invited_by_defaults_to_homeowner(
        self, session, owned_home, contractor, homeowner
    ) -> None:
        connection = await ConnectionManager(session).upsert_connection(
            home_id=owned_home.id,
            homeowner_id=homeowner.user_id,
            contractor_id=contractor.user_id,
            established_via=EstablishedVia.MANUAL,
            source_record_id=None,
        )
        assert connection.invited_by == homeowner.user_id

    @pytest.mark.asyncio
    async def test_lost_insert_race_falls_back_to_update(
        self, session, owned_home, contractor, homeowner, monkeypatch
    ) -> None:
        manager = ConnectionManager(session)
        kwargs = {
            "home_id": owned_home.id,
            "homeowner_id": homeowner.user_id,
            "contractor_id": contractor.user_id,
            "established_via": EstablishedVia.INVITATION,
            "source_record_id": None,
        }
        winner = await manager.upsert_connection(**kwargs)

        # The first lookup misses the row, as if the other insert had not committed yet.
        original = ConnectionRepository.get_by_triple
        calls = []

        async def _miss_once(self, *args, **kw):  # noqa: ANN001, ANN002, ANN003, ANN202
            calls.append(args)
            if len(calls) == 1:
                return None
            return await original(self, *args, **kw)

        monkeypatch.setattr(ConnectionRepository, "get_by_triple", _miss_once)

        loser = await manager.upsert_connection(**kwargs)

        assert loser.id == winner.id
        assert len(calls) == 2
        assert await _connection_count(session) == 1

    @pytest.mark.asyncio
    async def test_invisible_winner_is_a_storage_conflict(
        self, session, owned_home, contractor, homeowner, monkeypatch
    ) -> None:
        manager = ConnectionManager(session)
        kwargs = {
            "home_id": owned_home.id,
            "homeowner_id": homeowner.user_id,
            "contractor_id": contractor.user_id,
            "established_via": EstablishedVia.INVITATION,
            "source_record_id": None,
        }
        await manager.upsert_connection(**kwargs)

        async def _always_miss(self, *args, **kw):  # noqa: ANN001, ANN002, ANN003, ANN202
            return None

        monkeypatch.setattr(ConnectionRepository, "get_by_triple", _always_miss)

        with pytest.raises(StorageConflictError):
            await manager.upsert_connection(**kwargs)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_missing_connection(self, session) -> None:
        with pytest.raises(NotFoundError):
            await ConnectionManager(session).get_connection(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_for_contractor_spans_homes(
        self, session, contractor, homeowner, other_homeowner, main_street
    ) -> None:
        registry = PropertyRegistry(session)
        home_a = await registry.claim(
            (await registry.find_or_create_by_address(main_street)).id, homeowner.user_id
        )
        home_b = await registry.claim(
            (
                await registry.find_or_create_by_address(
                    AddressParts("9 Elm Ave", "Springfield", "IL", "62702")
                )
            ).id,
            other_homeowner.user_id,
        )

        manager = ConnectionManager(session)
        for home, owner in ((home_a, homeowner), (home_b, other_homeowner)):
            await manager.upsert_connection(
                home_id=home.id,
                homeowner_id=owner.user_id,
                contractor_id=contractor.user_id,
                established_via=EstablishedVia.INVITATION,
                source_record_id=None,
            )

        listed = await manager.list_for_contractor(contractor.user_id)
        assert {c.home_id for c in listed} == {home_a.id, home_b.id}
