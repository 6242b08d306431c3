"""Default home access gate: only the recorded owner may act on a home."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeledger.infrastructure.database.repositories import HomeRepository

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.domain.access import Actor


class OwnershipAccessGate:
    """AccessGate backed by Home.owner_id."""

    def __init__(self, session: AsyncSession) -> None:
        self._home_repo = HomeRepository(session)

    async def can_access_home(self, actor: Actor, home_id: uuid.UUID) -> bool:
        home = await self._home_repo.get_by_id(home_id)
        return home is not None and home.owner_id == actor.user_id
