import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Base(DeclarativeBase):
    pass


SESSION_STATUS_OPEN = "OPEN"
SESSION_STATUS_CLOSING = "CLOSING"
SESSION_STATUS_FINALIZED = "FINALIZED"

SESSION_MODE_INDIVIDUAL = "INDIVIDUAL"
SESSION_MODE_MULTIPLAYER = "MULTIPLAYER"

PARTICIPANT_STATUS_ACTIVE = "ACTIVE"
PARTICIPANT_STATUS_FINISHED = "FINISHED"

LOCATION_STORE = "STORE"
LOCATION_WAREHOUSE = "WAREHOUSE"


class CountSession(Base):
    __tablename__ = "count_sessions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    access_code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    host_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    mode: Mapped[str] = mapped_column(String(20), nullable=False, default=SESSION_MODE_MULTIPLAYER)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SESSION_STATUS_OPEN)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    closing_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    participants = relationship("Participant", back_populates="session")

    __table_args__ = (
        Index("ix_count_sessions_host_status", "host_id", "status"),
        Index("ix_count_sessions_host_created", "host_id", "created_at"),
    )


class Participant(Base):
    __tablename__ = "session_participants"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("count_sessions.id"), index=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(30), nullable=False)
    owning_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PARTICIPANT_STATUS_ACTIVE)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    left_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    session = relationship("CountSession", back_populates="participants")

    __table_args__ = (UniqueConstraint("session_id", "display_name", name="uq_participant_session_name"),)


class CatalogEntry(Base):
    __tablename__ = "session_catalog_entries"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("count_sessions.id"), index=True, nullable=False)
    product_code: Mapped[str] = mapped_column(String(100), nullable=False)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    system_balance: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "product_code", name="uq_catalog_session_product"),
        Index("ix_catalog_session_barcode", "session_id", "barcode"),
    )


class Movement(Base):
    __tablename__ = "movements"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("count_sessions.id"), nullable=False)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("session_participants.id"), index=True, nullable=False
    )
    client_movement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    barcode: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False)
    location_tag: Mapped[str] = mapped_column(String(20), nullable=False)
    counted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "client_movement_id", name="uq_movement_session_client_id"),
        Index("ix_movements_session_barcode", "session_id", "barcode"),
        Index("ix_movements_session_participant_received", "session_id", "participant_id", "received_at"),
    )


class SavedReport(Base):
    __tablename__ = "saved_reports"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("count_sessions.id"), nullable=False, unique=True
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    trace_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    result: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_events_entity", "entity_type", "entity_id"),)
