"""Dispute eligibility: who may file against which order or customization request."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.clock import Clock, as_utc, utcnow
from marketplace.config import settings
from marketplace.exceptions import InvalidArgumentException, NotFoundException
from marketplace.models.customization_request import CustomizationRequest
from marketplace.models.dispute import Dispute
from marketplace.models.enums import DisputeStatus, DisputeTargetType
from marketplace.models.order import Order
from marketplace.models.shop_profile import ShopProfile
from marketplace.modules.dispute.constants import (
    DISPUTABLE_CUSTOMIZATION_STATUSES,
    DISPUTABLE_ORDER_STATUSES,
    REASON_ALREADY_DISPUTED,
    REASON_NO_COUNTERPARTY,
    REASON_NOT_A_PARTY,
    REASON_STATUS_NOT_DISPUTABLE,
    REASON_WINDOW_EXPIRED,
)


@dataclass
class Eligibility:
    eligible: bool
    reason: str | None = None
    respondent_id: uuid.UUID | None = None


@dataclass
class DisputeTarget:
    """The parties and status clock of an order or customization request."""

    target_type: DisputeTargetType
    target_id: uuid.UUID
    customer_id: uuid.UUID
    designer_id: uuid.UUID | None
    shop_owner_id: uuid.UUID | None
    disputable: bool
    status_changed_at: datetime

    @property
    def parties(self) -> set[uuid.UUID]:
        return {p for p in (self.customer_id, self.designer_id, self.shop_owner_id) if p is not None}

    def respondent_for(self, filer_id: uuid.UUID) -> uuid.UUID | None:
        """The counter-party of ``filer_id``: the provider if the customer files, else the customer."""
        if filer_id != self.customer_id:
            return self.customer_id
        if self.target_type == DisputeTargetType.ORDER:
            return self.shop_owner_id
        return self.designer_id


class EligibilityChecker:
    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        filing_window_days: int | None = None,
    ):
        self.db = db
        self.clock = clock
        if filing_window_days is None:
            filing_window_days = settings.dispute_filing_window_days
        self.filing_window = timedelta(days=filing_window_days)

    async def _shop_owner(self, shop_id: uuid.UUID | None) -> uuid.UUID | None:
        if shop_id is None:
            return None
        shop = await self.db.get(ShopProfile, shop_id)
        return shop.owner_id if shop is not None else None

    async def resolve_target(
        self,
        order_id: uuid.UUID | None,
        customization_request_id: uuid.UUID | None,
    ) -> DisputeTarget:
        if (order_id is None) == (customization_request_id is None):
            raise InvalidArgumentException(
                "Exactly one of order_id or customization_request_id is required"
            )

        if order_id is not None:
            order = await self.db.get(Order, order_id)
            if order is None:
                raise NotFoundException(f"Order {order_id} not found")
            designer_id = None
            if order.customization_request_id is not None:
                request = await self.db.get(CustomizationRequest, order.customization_request_id)
                designer_id = request.designer_id if request is not None else None
            return DisputeTarget(
                target_type=DisputeTargetType.ORDER,
                target_id=order.id,
                customer_id=order.customer_id,
                designer_id=designer_id,
                shop_owner_id=order.shop_owner_id,
                disputable=order.status in DISPUTABLE_ORDER_STATUSES,
                status_changed_at=order.status_changed_at,
            )

        request = await self.db.get(CustomizationRequest, customization_request_id)
        if request is None:
            raise NotFoundException(f"Customization request {customization_request_id} not found")
        return DisputeTarget(
            target_type=DisputeTargetType.CUSTOMIZATION_REQUEST,
            target_id=request.id,
            customer_id=request.customer_id,
            designer_id=request.designer_id,
            shop_owner_id=await self._shop_owner(request.shop_id),
            disputable=request.status in DISPUTABLE_CUSTOMIZATION_STATUSES,
            status_changed_at=request.status_changed_at,
        )

    async def _has_open_dispute(self, target: DisputeTarget, user_id: uuid.UUID) -> bool:
        target_column = (
            Dispute.order_id
            if target.target_type == DisputeTargetType.ORDER
            else Dispute.customization_request_id
        )
        result = await self.db.execute(
            select(Dispute.id)
            .where(
                target_column == target.target_id,
                Dispute.filed_by == user_id,
                Dispute.status != DisputeStatus.CLOSED,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def can_file_dispute(
        self,
        order_id: uuid.UUID | None,
        customization_request_id: uuid.UUID | None,
        user_id: uuid.UUID,
    ) -> Eligibility:
        target = await self.resolve_target(order_id, customization_request_id)

        if user_id not in target.parties:
            return Eligibility(False, REASON_NOT_A_PARTY)
        if await self._has_open_dispute(target, user_id):
            return Eligibility(False, REASON_ALREADY_DISPUTED)
        if not target.disputable:
            return Eligibility(False, REASON_STATUS_NOT_DISPUTABLE)
        if self.clock() - as_utc(target.status_changed_at) > self.filing_window:
            return Eligibility(False, REASON_WINDOW_EXPIRED)

        respondent_id = target.respondent_for(user_id)
        if respondent_id is None or respondent_id == user_id:
            return Eligibility(False, REASON_NO_COUNTERPARTY)
        return Eligibility(True, respondent_id=respondent_id)
