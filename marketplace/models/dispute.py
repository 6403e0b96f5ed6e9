"""Dispute model: a complaint against an order or a customization request."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.exceptions import InvalidArgumentException
from marketplace.models.enums import (
    DisputeCategory,
    DisputeStatus,
    DisputeTargetType,
    ResolutionOutcome,
)


class Dispute(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "disputes"

    # Target: exactly one of order_id / customization_request_id
    target_type: Mapped[DisputeTargetType] = mapped_column(nullable=False)
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    customization_request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Parties
    filed_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    respondent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    category: Mapped[DisputeCategory] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_urls: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[DisputeStatus] = mapped_column(nullable=False, default=DisputeStatus.FILED)

    # Negotiation: each party's proposed outcome
    filer_outcome: Mapped[ResolutionOutcome | None] = mapped_column()
    respondent_outcome: Mapped[ResolutionOutcome | None] = mapped_column()

    # Resolution
    resolution_outcome: Mapped[ResolutionOutcome | None] = mapped_column()
    resolution_reason: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    resolved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Timestamps
    filed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    negotiation_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    escalated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    escalated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status_changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_disputes_order_id", "order_id"),
        Index("ix_disputes_customization_request_id", "customization_request_id"),
        Index("ix_disputes_status_deadline", "status", "negotiation_deadline"),
        Index("ix_disputes_filed_by", "filed_by"),
    )

    @classmethod
    def for_target(
        cls,
        *,
        order_id: uuid.UUID | None,
        customization_request_id: uuid.UUID | None,
        **fields,
    ) -> Dispute:
        """Build a dispute bound to exactly one target."""
        if (order_id is None) == (customization_request_id is None):
            raise InvalidArgumentException(
                "A dispute must reference exactly one of order_id or customization_request_id"
            )
        target_type = (
            DisputeTargetType.ORDER if order_id is not None else DisputeTargetType.CUSTOMIZATION_REQUEST
        )
        return cls(
            target_type=target_type,
            order_id=order_id,
            customization_request_id=customization_request_id,
            **fields,
        )

    @property
    def target_id(self) -> uuid.UUID:
        return self.order_id if self.order_id is not None else self.customization_request_id

    def is_party(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.filed_by, self.respondent_id)

    def __repr__(self) -> str:
        return f"<Dispute id={self.id} target={self.target_type} status={self.status}>"


# One open dispute per (target, filer). Closed disputes drop out of the index.
_open_dispute = Dispute.status != DisputeStatus.CLOSED

Index(
    "uq_disputes_open_order_filer",
    Dispute.order_id,
    Dispute.filed_by,
    unique=True,
    postgresql_where=_open_dispute,
    sqlite_where=_open_dispute,
)
Index(
    "uq_disputes_open_request_filer",
    Dispute.customization_request_id,
    Dispute.filed_by,
    unique=True,
    postgresql_where=_open_dispute,
    sqlite_where=_open_dispute,
)
