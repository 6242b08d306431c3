"""Outbox-backed notification emitter.

Writes each event as a row in the notifications table using the caller's
session, so a notification exists if and only if the transition that produced
it commits. A separate delivery worker (not part of this service) drains the
table.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeledger.infrastructure.database.repositories import NotificationRepository
from homeledger.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from homeledger.domain.notifications import NotificationEvent

logger = get_logger(__name__)


class OutboxNotificationEmitter:
    """NotificationEmitter that enqueues into the notifications table."""

    def __init__(self, session: AsyncSession) -> None:
        self._repo = NotificationRepository(session)

    async def emit(self, event: NotificationEvent) -> None:
        notification = await self._repo.record(event)
        logger.info(
            "notification.enqueued",
            notification_id=str(notification.id),
            event_type=event.event_type.value,
            recipient_id=str(event.recipient_id) if event.recipient_id else None,
        )
