"""Notification model: per-recipient inbox entries."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.models.enums import NotificationCategory, NotificationPriority


class Notification(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    # Either a specific user or a role-wide queue (e.g. "admin")
    recipient_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    recipient_role: Mapped[str | None] = mapped_column(String(50))

    type: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[NotificationCategory] = mapped_column(
        nullable=False, default=NotificationCategory.INFO
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        nullable=False, default=NotificationPriority.NORMAL
    )
    action_url: Mapped[str | None] = mapped_column(String(500))
    metadata_extra: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_notifications_recipient_unread", "recipient_id", "is_read"),
        Index("ix_notifications_recipient_role", "recipient_role"),
    )
