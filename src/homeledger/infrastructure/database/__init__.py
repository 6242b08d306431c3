"""Database infrastructure — engine, ORM models, and repositories."""

from homeledger.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    session_scope,
)
from homeledger.infrastructure.database.orm_models import (
    Base,
    Connection,
    Home,
    Invitation,
    Notification,
    Record,
    WorkRecord,
)
from homeledger.infrastructure.database.repositories import (
    ConnectionRepository,
    HomeRepository,
    InvitationRepository,
    NotificationRepository,
    RecordRepository,
    WorkRecordRepository,
)

__all__ = [
    "Base",
    "Connection",
    "Home",
    "Invitation",
    "Notification",
    "Record",
    "WorkRecord",
    "ConnectionRepository",
    "HomeRepository",
    "InvitationRepository",
    "NotificationRepository",
    "RecordRepository",
    "WorkRecordRepository",
    "get_async_session",
    "session_scope",
    "init_db",
    "close_db",
]
