"""ORM models for the ping engine tables.

Profile, connection, and break rows are owned by other parts of the product
(the mobile app, payment webhooks); the engine reads them and writes pings,
notifications, and audit entries.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pruuf.db.base import Base, JSONType, UTCDateTime


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users and role profiles
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # IANA zone, re-synced by the app on launch/foreground
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC", server_default="UTC")
    notification_preferences: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    sender_profile: Mapped[SenderProfile | None] = relationship(
        "SenderProfile", back_populates="user", uselist=False
    )
    receiver_profile: Mapped[ReceiverProfile | None] = relationship(
        "ReceiverProfile", back_populates="user", uselist=False
    )


class SenderProfile(Base):
    """Per-sender check-in schedule: local time of day plus an enabled flag."""

    __tablename__ = "sender_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    ping_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(9, 0))
    ping_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    user: Mapped[User] = relationship("User", back_populates="sender_profile")


class ReceiverProfile(Base):
    """Receiver subscription state, written by the payment webhook handlers."""

    __tablename__ = "receiver_profiles"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    subscription_status: Mapped[str] = mapped_column(String(16), nullable=False, default="trial")
    trial_start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    trial_end_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    subscription_start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    subscription_end_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # When status last changed; the start of the past_due grace window
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="receiver_profile")


# ---------------------------------------------------------------------------
# Connections and breaks
# ---------------------------------------------------------------------------


class Connection(Base):
    """Ordered sender -> receiver pair."""

    __tablename__ = "connections"
    __table_args__ = (
        Index("idx_connections_status", "status"),
        Index("idx_connections_sender", "sender_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class Break(Base):
    """Sender-declared inclusive date range with no check-in requirement."""

    __tablename__ = "breaks"
    __table_args__ = (
        Index("idx_breaks_sender_dates", "sender_id", "start_date", "end_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


# ---------------------------------------------------------------------------
# Pings
# ---------------------------------------------------------------------------


class Ping(Base):
    """One expected daily check-in for a connection."""

    __tablename__ = "pings"
    __table_args__ = (
        UniqueConstraint("connection_id", "ping_date", name="uq_pings_connection_date"),
        Index("idx_pings_sender_status_scheduled", "sender_id", "status", "scheduled_time"),
        Index("idx_pings_status_deadline", "status", "deadline_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    connection_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("connections.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(36), nullable=False)
    ping_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    deadline_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completion_method: Mapped[str | None] = mapped_column(String(16), nullable=True)
    verification_location: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


# ---------------------------------------------------------------------------
# Notifications and audit
# ---------------------------------------------------------------------------


class Notification(Base):
    """In-app notification row."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_type_created", "user_id", "type", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    notification_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class AuditLog(Base):
    """Append-only record of engine runs and user actions."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("idx_audit_logs_created", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(32), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
