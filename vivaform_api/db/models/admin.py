from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vivaform_api.db.base import Base, TimestampMixin, UUIDPkMixin

TICKET_STATUSES = ("open", "pending", "resolved", "closed")
TICKET_PRIORITIES = ("low", "normal", "high", "urgent")


class AuditLog(UUIDPkMixin, TimestampMixin, Base):
    """Append-only record of security and admin actions."""
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_action", "action"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    action: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    entity: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class FeatureToggle(UUIDPkMixin, TimestampMixin, Base):
    """Boolean or percentage-rollout feature flag addressed by key."""
    __tablename__ = "feature_toggles"
    __table_args__ = (
        CheckConstraint("rollout_percent >= 0 AND rollout_percent <= 100", name="rollout_percent_range"),
    )

    key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    rollout_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=100, server_default="100")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)


class Ticket(UUIDPkMixin, TimestampMixin, Base):
    """Support ticket opened by a user."""
    __tablename__ = "tickets"
    __table_args__ = (
        CheckConstraint("status IN ('open', 'pending', 'resolved', 'closed')", name="status_valid"),
        CheckConstraint("priority IN ('low', 'normal', 'high', 'urgent')", name="priority_valid"),
    )

    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")
    assigned_to: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    replies: Mapped[List["TicketReply"]] = relationship(
        "TicketReply",
        back_populates="ticket",
        lazy="selectin",
        order_by="TicketReply.created_at",
        cascade="all, delete-orphan",
    )


class TicketReply(UUIDPkMixin, TimestampMixin, Base):
    """Message in a ticket thread."""
    __tablename__ = "ticket_replies"

    ticket_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False)
    author_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_staff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    ticket: Mapped["Ticket"] = relationship("Ticket", back_populates="replies")


class AppSetting(TimestampMixin, Base):
    """Key/value application setting editable from the back-office."""
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
