"""Tests for the Property Registry (find-or-create and claim)."""

from __future__ import annotations

import uuid

import pytest

from homeledger.domain.address import AddressParts
from homeledger.domain.exceptions import (
    HomeAlreadyClaimedError,
    NotFoundError,
    ValidationError,
)
from homeledger.services.property_registry import PropertyRegistry


class TestFindOrCreate:
    @pytest.mark.asyncio
    async def test_creates_unowned_home(self, session, main_street) -> None:
        registry = PropertyRegistry(session)
        home = await registry.find_or_create_by_address(main_street)

        assert home.owner_id is None
        assert home.normalized_address == "123mainstspringfieldil62701"
        assert home.address == "123 Main St."

    @pytest.mark.asyncio
    async def test_same_canonical_key_returns_existing(self, session, main_street) -> None:
        registry = PropertyRegistry(session)
        first = await registry.find_or_create_by_address(main_street)
        second = await registry.find_or_create_by_address(
            AddressParts("123 MAIN ST", "springfield", "il", "62701-9999")
        )
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_injected_normalizer_is_used(self, session, main_street) -> None:
        registry = PropertyRegistry(session, normalizer=lambda parts: "fixed-key")
        home = await registry.find_or_create_by_address(main_street)
        assert home.normalized_address == "fixed-key"

    @pytest.mark.asyncio
    async def test_incomplete_address_is_rejected(self, session) -> None:
        registry = PropertyRegistry(session)
        with pytest.raises(ValidationError):
            await registry.find_or_create_by_address(AddressParts("", "Springfield", "IL", "62701"))


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_unowned(self, session, main_street, homeowner) -> None:
        registry = PropertyRegistry(session)
        home = await registry.find_or_create_by_address(main_street)

        claimed = await registry.claim(home.id, homeowner.user_id)
        assert claimed.owner_id == homeowner.user_id

    @pytest.mark.asyncio
    async def test_claim_by_same_owner_is_noop(self, session, main_street, homeowner) -> None:
        registry = PropertyRegistry(session)
        home = await registry.find_or_create_by_address(main_street)
        await registry.claim(home.id, homeowner.user_id)

        again = await registry.claim(home.id, homeowner.user_id)
        assert again.owner_id == homeowner.user_id

    @pytest.mark.asyncio
    async def test_claim_by_other_user_fails(
        self, session, main_street, homeowner, other_homeowner
    ) -> None:
        registry = PropertyRegistry(session)
        home = await registry.find_or_create_by_address(main_street)
        await registry.claim(home.id, homeowner.user_id)

        with pytest.raises(HomeAlreadyClaimedError):
            await registry.claim(home.id, other_homeowner.user_id)

        refreshed = await registry.get_home(home.id)
        assert refreshed.owner_id == homeowner.user_id

    @pytest.mark.asyncio
    async def test_claim_missing_home(self, session, homeowner) -> None:
        with pytest.raises(NotFoundError):
            await PropertyRegistry(session).claim(uuid.uuid4(), homeowner.user_id)
