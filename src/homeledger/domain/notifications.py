"""Notification event payloads and the emitter protocol.

The core never formats human-readable text. Each successful operation builds
one NotificationEvent (kind, recipient and the ids involved) and hands it to a
NotificationEmitter; delivery is somebody else's problem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import uuid

    from homeledger.domain.enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    """A structured, user-facing event.

    Attributes:
        event_type: What happened.
        recipient_id: User to notify, or None when the recipient has no account yet
            (e.g. an invitation to an unregistered email).
        payload: Relevant ids and small scalar facts, all JSON-serializable.
    """

    event_type: NotificationType
    recipient_id: uuid.UUID | None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type.value,
            "recipient_id": str(self.recipient_id) if self.recipient_id else None,
            **self.payload,
        }


@runtime_checkable
class NotificationEmitter(Protocol):
    """Receives events produced by the services.

    Concrete implementations:
        - services/notification_outbox.py OutboxNotificationEmitter
    """

    async def emit(self, event: NotificationEvent) -> None:
        ...
