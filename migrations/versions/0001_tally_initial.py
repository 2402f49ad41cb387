"""counting sessions, participants, catalog, movements, reports

Revision ID: 0001_tally_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_tally_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "count_sessions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("access_code", sa.String(length=10), nullable=False),
        sa.Column("host_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("mode", sa.String(length=20), nullable=False, server_default="MULTIPLAYER"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closing_started_at", sa.DateTime(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_count_sessions_access_code", "count_sessions", ["access_code"], unique=True)
    op.create_index("ix_count_sessions_host_id", "count_sessions", ["host_id"], unique=False)
    op.create_index("ix_count_sessions_company_id", "count_sessions", ["company_id"], unique=False)
    op.create_index("ix_count_sessions_host_status", "count_sessions", ["host_id", "status"], unique=False)
    op.create_index("ix_count_sessions_host_created", "count_sessions", ["host_id", "created_at"], unique=False)

    op.create_table(
        "session_participants",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("count_sessions.id"), nullable=False),
        sa.Column("display_name", sa.String(length=30), nullable=False),
        sa.Column("owning_user_id", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="ACTIVE"),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("left_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("session_id", "display_name", name="uq_participant_session_name"),
    )
    op.create_index("ix_session_participants_session_id", "session_participants", ["session_id"], unique=False)
    op.create_index(
        "ix_session_participants_owning_user_id", "session_participants", ["owning_user_id"], unique=False
    )

    op.create_table(
        "session_catalog_entries",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("count_sessions.id"), nullable=False),
        sa.Column("product_code", sa.String(length=100), nullable=False),
        sa.Column("barcode", sa.String(length=100), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("system_balance", sa.Numeric(18, 3), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("session_id", "product_code", name="uq_catalog_session_product"),
    )
    op.create_index(
        "ix_session_catalog_entries_session_id", "session_catalog_entries", ["session_id"], unique=False
    )
    op.create_index("ix_catalog_session_barcode", "session_catalog_entries", ["session_id", "barcode"], unique=False)

    op.create_table(
        "movements",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("count_sessions.id"), nullable=False),
        sa.Column("participant_id", GUID(), sa.ForeignKey("session_participants.id"), nullable=False),
        sa.Column("client_movement_id", sa.String(length=64), nullable=False),
        sa.Column("barcode", sa.String(length=100), nullable=False),
        sa.Column("quantity", sa.Numeric(18, 3), nullable=False),
        sa.Column("location_tag", sa.String(length=20), nullable=False),
        sa.Column("counted_at", sa.DateTime(), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("session_id", "client_movement_id", name="uq_movement_session_client_id"),
    )
    op.create_index("ix_movements_participant_id", "movements", ["participant_id"], unique=False)
    op.create_index("ix_movements_session_barcode", "movements", ["session_id", "barcode"], unique=False)
    op.create_index(
        "ix_movements_session_participant_received",
        "movements",
        ["session_id", "participant_id", "received_at"],
        unique=False,
    )

    op.create_table(
        "saved_reports",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("count_sessions.id"), nullable=False, unique=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_saved_reports_owner_id", "saved_reports", ["owner_id"], unique=False)

    op.create_table(
        "audit_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("trace_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("result", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_events_entity", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_saved_reports_owner_id", table_name="saved_reports")
    op.drop_table("saved_reports")
    op.drop_index("ix_movements_session_participant_received", table_name="movements")
    op.drop_index("ix_movements_session_barcode", table_name="movements")
    op.drop_index("ix_movements_participant_id", table_name="movements")
    op.drop_table("movements")
    op.drop_index("ix_catalog_session_barcode", table_name="session_catalog_entries")
    op.drop_index("ix_session_catalog_entries_session_id", table_name="session_catalog_entries")
    op.drop_table("session_catalog_entries")
    op.drop_index("ix_session_participants_owning_user_id", table_name="session_participants")
    op.drop_index("ix_session_participants_session_id", table_name="session_participants")
    op.drop_table("session_participants")
    op.drop_index("ix_count_sessions_host_created", table_name="count_sessions")
    op.drop_index("ix_count_sessions_host_status", table_name="count_sessions")
    op.drop_index("ix_count_sessions_company_id", table_name="count_sessions")
    op.drop_index("ix_count_sessions_host_id", table_name="count_sessions")
    op.drop_index("ix_count_sessions_access_code", table_name="count_sessions")
    op.drop_table("count_sessions")
