"""CustomizationRequest model: bespoke design work from request to order."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.clock import utcnow
from marketplace.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.models.enums import CustomizationStatus


class CustomizationRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "customization_requests"

    # Parties
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    designer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    shop_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Product being customized
    product_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Content
    customer_design_file: Mapped[dict | None] = mapped_column(JSONType)
    customer_notes: Mapped[str | None] = mapped_column(Text)
    designer_final_file: Mapped[dict | None] = mapped_column(JSONType)
    designer_preview_file: Mapped[dict | None] = mapped_column(JSONType)
    designer_notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    pricing_agreement: Mapped[dict | None] = mapped_column(JSONType)

    status: Mapped[CustomizationStatus] = mapped_column(
        nullable=False, default=CustomizationStatus.PENDING_DESIGNER_REVIEW
    )

    # Timestamps
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Set once, after approval
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    __table_args__ = (
        Index("ix_customization_requests_customer_id", "customer_id"),
        Index("ix_customization_requests_designer_id", "designer_id"),
        Index("ix_customization_requests_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<CustomizationRequest id={self.id} status={self.status}>"
