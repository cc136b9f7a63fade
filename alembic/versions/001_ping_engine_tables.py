"""Ping engine tables.

Creates users, sender/receiver profiles, connections, breaks, pings,
notifications, and audit_logs. One ping per connection per date is
enforced by uq_pings_connection_date.

Revision ID: 001_ping_engine_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_ping_engine_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create ping engine tables."""
    # --- Users and profiles ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("display_name", sa.String(64), nullable=True),
        sa.Column("timezone", sa.String(64), server_default="UTC", nullable=False),
        sa.Column("notification_preferences", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
    )

    op.create_table(
        "sender_profiles",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("ping_time", sa.Time(), server_default="09:00:00", nullable=False),
        sa.Column("ping_enabled", sa.Boolean(), server_default="true", nullable=False),
    )

    op.create_table(
        "receiver_profiles",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("subscription_status", sa.String(16), server_default="trial", nullable=False),
        sa.Column("trial_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.execute(
        "ALTER TABLE receiver_profiles ADD CONSTRAINT ck_receiver_profiles_status "
        "CHECK (subscription_status IN ('trial', 'active', 'past_due', 'canceled', 'expired'))"
    )

    # --- Connections and breaks ---
    op.create_table(
        "connections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sender_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_connections_status", "connections", ["status"])
    op.create_index("idx_connections_sender", "connections", ["sender_id"])
    op.execute(
        "ALTER TABLE connections ADD CONSTRAINT ck_connections_status "
        "CHECK (status IN ('pending', 'active', 'paused', 'deleted'))"
    )

    op.create_table(
        "breaks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sender_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), server_default="scheduled", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
    )
    op.create_index("idx_breaks_sender_dates", "breaks", ["sender_id", "start_date", "end_date"])
    op.execute("ALTER TABLE breaks ADD CONSTRAINT ck_breaks_range CHECK (end_date >= start_date)")

    # --- Pings ---
    op.create_table(
        "pings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "connection_id", sa.String(36), sa.ForeignKey("connections.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("receiver_id", sa.String(36), nullable=False),
        sa.Column("ping_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deadline_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_method", sa.String(16), nullable=True),
        sa.Column("verification_location", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=True),
        sa.UniqueConstraint("connection_id", "ping_date", name="uq_pings_connection_date"),
    )
    op.create_index("idx_pings_sender_status_scheduled", "pings", ["sender_id", "status", "scheduled_time"])
    op.create_index("idx_pings_status_deadline", "pings", ["status", "deadline_time"])
    op.execute(
        "ALTER TABLE pings ADD CONSTRAINT ck_pings_status "
        "CHECK (status IN ('pending', 'completed', 'missed', 'on_break'))"
    )
    op.execute("ALTER TABLE pings ADD CONSTRAINT ck_pings_deadline CHECK (deadline_time > scheduled_time)")

    # --- Notifications and audit ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("read", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index(
        "idx_notifications_user_type_created", "notifications", ["user_id", "type", "created_at"]
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("resource_type", sa.String(32), nullable=False),
        sa.Column("details", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("idx_audit_logs_created", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop ping engine tables."""
    op.drop_table("audit_logs")
    op.drop_table("notifications")
    op.drop_table("pings")
    op.drop_table("breaks")
    op.drop_table("connections")
    op.drop_table("receiver_profiles")
    op.drop_table("sender_profiles")
    op.drop_table("users")
