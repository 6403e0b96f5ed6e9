"""Order model: orders placed from approved customization requests."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.clock import utcnow
from marketplace.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.models.enums import OrderStatus


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    shop_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    shop_owner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    customization_request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    status: Mapped[OrderStatus] = mapped_column(nullable=False, default=OrderStatus.PENDING)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    status_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_orders_customer_id", "customer_id"),
        Index("ix_orders_customization_request_id", "customization_request_id"),
    )
