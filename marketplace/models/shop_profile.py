"""ShopProfile model: printing shops a customer can route work to."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.models.enums import ShopApprovalStatus


class ShopProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "shop_profiles"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    shop_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    approval_status: Mapped[ShopApprovalStatus] = mapped_column(
        nullable=False, default=ShopApprovalStatus.PENDING
    )

    __table_args__ = (Index("ix_shop_profiles_owner_id", "owner_id"),)

    @property
    def accepts_orders(self) -> bool:
        return self.is_active and self.approval_status == ShopApprovalStatus.APPROVED
