"""Property Registry — homes, their owners and address matching."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from homeledger.domain.address import AddressParts, normalize_address
from homeledger.domain.exceptions import (
    HomeAlreadyClaimedError,
    NotFoundError,
    StorageConflictError,
    ValidationError,
)
from homeledger.infrastructure.database.orm_models import Home
from homeledger.infrastructure.database.repositories import HomeRepository
from homeledger.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.domain.address import AddressNormalizer

logger = get_logger(__name__)


class PropertyRegistry:
    """Find-or-create homes by normalized address and record ownership."""

    def __init__(
        self,
        session: AsyncSession,
        normalizer: AddressNormalizer = normalize_address,
    ) -> None:
        self._session = session
        self._normalizer = normalizer
        self._home_repo = HomeRepository(session)

    async def get_home(self, home_id: uuid.UUID) -> Home:
        home = await self._home_repo.get_by_id(home_id)
        if home is None:
            raise NotFoundError("Home", str(home_id))
        return home

    async def find_or_create_by_address(self, parts: AddressParts) -> Home:
        """Return the home matching ``parts``, creating an unowned one if needed."""
        parts.validate()
        key = self._normalizer(parts)
        if not key:
            raise ValidationError("Address could not be normalized", field="address")

        home = await self._home_repo.get_by_normalized_address(key)
        if home is not None:
            return home

        try:
            async with self._session.begin_nested():
                home = await self._home_repo.create(
                    Home(
                        normalized_address=key,
                        address=parts.line1.strip(),
                        address_line2=parts.line2,
                        city=parts.city.strip(),
                        state=parts.state.strip(),
                        zip=parts.zip.strip(),
                        owner_id=None,
                    )
                )
        except IntegrityError:
            # Another request created the same address first.
            home = await self._home_repo.get_by_normalized_address(key)
            if home is None:
                raise StorageConflictError(f"Could not resolve home for {key}") from None
            return home

        logger.info("home.created", home_id=str(home.id), normalized_address=key)
        return home

    async def claim(self, home_id: uuid.UUID, user_id: uuid.UUID) -> Home:
        """Make ``user_id`` the owner of an unowned home.

        No-op if ``user_id`` already owns it.

        Raises:
            NotFoundError: No such home.
            HomeAlreadyClaimedError: The home belongs to somebody else.
        """
        home = await self._home_repo.get_by_id(home_id, for_update=True)
        if home is None:
            raise NotFoundError("Home", str(home_id))

        if home.owner_id is None and await self._home_repo.claim_if_unowned(home, user_id):
            logger.info("home.claimed", home_id=str(home_id), owner_id=str(user_id))
            return home

        if home.owner_id != user_id:
            raise HomeAlreadyClaimedError(str(home_id))
        return home
