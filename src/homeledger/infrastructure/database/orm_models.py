"""SQLAlchemy 2.0 ORM models for the home ledger.

Six tables:
    1. homes          — Physical properties, keyed by normalized address.
    2. work_records   — A contractor's claim of work performed at a home.
    3. connections    — Durable homeowner/contractor trust edge per home.
    4. records        — Immutable history entries on a home's timeline.
    5. invitations    — Time-boxed offers to form a home + connection pair.
    6. notifications  — Outbox of structured events for the notifier.

Design decisions:
    - UUIDs as primary keys; user ids are opaque UUIDs owned by the identity layer.
    - Decimal for money (no floating point rounding errors).
    - CHECK constraints on status columns and on is_verified <-> APPROVED.
    - UNIQUE (home_id, homeowner_id, contractor_id) makes connection creation
      idempotent at the storage level.
    - UNIQUE records.source_work_record_id backs the one-record-per-work-record rule.
    - records is never updated at the application level.
"""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import UTC, date, datetime  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSON type compatible with SQLite/Postgres
JSONType = JSON().with_variant(JSONB, "postgresql")


class UtcDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back in UTC.

    SQLite drops tzinfo on the way in; values are written in UTC so it is
    reattached on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ANN001, ANN201
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value, dialect):  # noqa: ANN001, ANN201
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        UtcDateTime,
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


# ---------------------------------------------------------------------------
# 1. homes
# ---------------------------------------------------------------------------
class Home(TimestampMixin, Base):
    """A physical property. May exist without an owner."""

    __tablename__ = "homes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    normalized_address: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Canonical matching key produced by the address normalizer",
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(50), nullable=False)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)

    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        default=None,
        comment="Owning homeowner; null until the home is claimed",
    )

    __table_args__ = (Index("idx_home_owner", "owner_id"),)

    def __repr__(self) -> str:
        return f"<Home id={self.id} key={self.normalized_address} owner={self.owner_id}>"


# ---------------------------------------------------------------------------
# 2. work_records
# ---------------------------------------------------------------------------
class WorkRecord(TimestampMixin, Base):
    """A contractor's in-flight or finalized claim of work at a home."""

    __tablename__ = "work_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # --- Ownership ---
    home_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("homes.id"), nullable=False
    )
    contractor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    contractor_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Contractor display label at creation time, used as the record vendor",
    )
    invitation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("invitations.id"), nullable=True, default=None
    )

    # --- Work Details ---
    work_type: Mapped[str] = mapped_column(String(120), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    warranty_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warranty_length: Mapped[str | None] = mapped_column(String(100), nullable=True)
    warranty_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Evidence ---
    photos: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    invoice_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # --- Status (guarded by WorkRecordStateMachine) ---
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    home_had_owner_at_creation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # --- Review Stamps ---
    claimed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    verified_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Outcome ---
    final_record_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("records.id"),
        nullable=True,
        unique=True,
        default=None,
        comment="History record materialized on approval; written once",
    )
    archived_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('DOCUMENTED_UNVERIFIED', 'DOCUMENTED', 'DISPUTED', "
            "'REJECTED', 'APPROVED')",
            name="ck_work_record_valid_status",
        ),
        CheckConstraint(
            "is_verified = (status = 'APPROVED')",
            name="ck_work_record_verified_matches_status",
        ),
        CheckConstraint(
            "cost IS NULL OR cost > 0",
            name="ck_work_record_positive_cost",
        ),
        Index("idx_work_record_home_status", "home_id", "status"),
        Index("idx_work_record_contractor", "contractor_id"),
        Index("idx_work_record_home_contractor", "home_id", "contractor_id"),
    )

    def __repr__(self) -> str:
        return f"<WorkRecord id={self.id} home={self.home_id} status={self.status}>"


# ---------------------------------------------------------------------------
# 3. connections
# ---------------------------------------------------------------------------
class Connection(TimestampMixin, Base):
    """Trust edge between a homeowner and a contractor for one home."""

    __tablename__ = "connections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    home_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("homes.id"), nullable=False)
    homeowner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    contractor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    established_via: Mapped[str] = mapped_column(String(20), nullable=False)

    # --- Aggregates (always recomputed from verified work records) ---
    verified_work_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    last_work_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # --- Provenance ---
    invited_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    source_record_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        comment="Work record or invitation that established the connection",
    )

    __table_args__ = (
        UniqueConstraint(
            "home_id", "homeowner_id", "contractor_id", name="uq_connection_triple"
        ),
        CheckConstraint("status IN ('ACTIVE', 'ARCHIVED')", name="ck_connection_status"),
        CheckConstraint(
            "established_via IN ('VERIFIED_WORK', 'INVITATION', 'MANUAL')",
            name="ck_connection_established_via",
        ),
        Index("idx_connection_contractor", "contractor_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Connection id={self.id} home={self.home_id} "
            f"count={self.verified_work_count} spent={self.total_spent}>"
        )


# ---------------------------------------------------------------------------
# 4. records (immutable history)
# ---------------------------------------------------------------------------
class Record(Base):
    """Permanent entry on a home's maintenance timeline.

    Rows are INSERT-only at the application level.
    """

    __tablename__ = "records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    home_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("homes.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    verified_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    source_work_record_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        unique=True,
        comment="Work record this entry was materialized from",
    )

    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_record_home_date", "home_id", "date"),)

    def __repr__(self) -> str:
        return f"<Record id={self.id} home={self.home_id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# 5. invitations
# ---------------------------------------------------------------------------
class Invitation(TimestampMixin, Base):
    """An offer from one actor to another to connect around a home."""

    __tablename__ = "invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    invited_email: Mapped[str] = mapped_column(
        String(320), nullable=False, comment="Stored normalized (trimmed, lower-cased)"
    )
    invited_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    invited_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    home_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("homes.id"), nullable=True
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    expires_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    accepted_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'CANCELLED', 'EXPIRED')",
            name="ck_invitation_status",
        ),
        CheckConstraint("role IN ('HOMEOWNER', 'PRO')", name="ck_invitation_role"),
        Index("idx_invitation_inviter_email", "invited_by", "invited_email", "status"),
        Index("idx_invitation_email_status", "invited_email", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invitation id={self.id} to={self.invited_email} status={self.status}>"


# ---------------------------------------------------------------------------
# 6. notifications (outbox)
# ---------------------------------------------------------------------------
class Notification(Base):
    """Structured event waiting for delivery. Written in the producing transaction."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_notification_user", "user_id"),
        Index("idx_notification_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} type={self.event_type} user={self.user_id}>"
