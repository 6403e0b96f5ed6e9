"""Orders placed from approved customization requests."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.clock import Clock, utcnow
from marketplace.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from marketplace.models.enums import CustomizationStatus, OrderStatus
from marketplace.models.order import Order
from marketplace.models.shop_profile import ShopProfile
from marketplace.modules.customization.service import CustomizationService
from marketplace.modules.events.outbox_service import OutboxService
from marketplace.modules.identity.auth import AuthenticatedUser
from marketplace.modules.order.constants import (
    EVENT_ORDER_CREATED,
    EVENT_ORDER_STATUS_CHANGED,
    VALID_ORDER_TRANSITIONS,
)

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def get_order(self, order_id: uuid.UUID) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def create_from_customization(
        self,
        request_id: uuid.UUID,
        customer: AuthenticatedUser,
        total_amount: Decimal,
    ) -> Order:
        """Place the order for an approved design and complete the request."""
        customizations = CustomizationService(self.db, clock=self.clock)
        request = await customizations.get_request(request_id)
        if request.customer_id != customer.id:
            raise ForbiddenException("Only the requesting customer can place this order")
        if request.status != CustomizationStatus.APPROVED:
            raise InvalidStateException(
                f"Customization request {request_id} is not approved",
                details=[{"field": "status", "message": request.status.value}],
            )
        if request.shop_id is None:
            raise InvalidStateException("Select a printing shop before placing the order")

        shop = await self.db.get(ShopProfile, request.shop_id)
        if shop is None or not shop.accepts_orders:
            raise InvalidStateException(f"Shop {request.shop_id} is not accepting orders")

        order = Order(
            customer_id=customer.id,
            shop_id=shop.id,
            shop_owner_id=shop.owner_id,
            customization_request_id=request.id,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            status_changed_at=self.clock(),
        )
        self.db.add(order)
        await self.db.flush()

        await customizations.complete_with_order(request.id, order.id, customer)

        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_CREATED,
            aggregate_type="order",
            aggregate_id=str(order.id),
            payload={
                "order_id": str(order.id),
                "actor_id": str(customer.id),
                "customer_id": str(order.customer_id),
                "shop_owner_id": str(order.shop_owner_id),
                "customization_request_id": str(request.id),
                "status": order.status.value,
            },
        )
        logger.info("Created order %s from customization request %s", order.id, request.id)
        return order

    async def update_status(
        self, order_id: uuid.UUID, user: AuthenticatedUser, status: OrderStatus
    ) -> Order:
        """Move an order along fulfilment; the shop owner or an admin only."""
        order = await self.get_order(order_id)
        if not user.is_admin and order.shop_owner_id != user.id:
            raise ForbiddenException("Only the fulfilling shop can update this order")

        allowed = VALID_ORDER_TRANSITIONS.get(order.status, [])
        if status not in allowed:
            raise BusinessRuleException(
                f"Cannot transition order from '{order.status.value}' to '{status.value}'. "
                f"Allowed transitions: {[s.value for s in allowed]}"
            )

        old_status = order.status
        order.status = status
        order.status_changed_at = self.clock()
        await self.db.flush()

        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_STATUS_CHANGED,
            aggregate_type="order",
            aggregate_id=str(order.id),
            payload={
                "order_id": str(order.id),
                "actor_id": str(user.id),
                "customer_id": str(order.customer_id),
                "shop_owner_id": str(order.shop_owner_id) if order.shop_owner_id else None,
                "from_status": old_status.value,
                "status": status.value,
            },
        )
        logger.info("Order %s moved from %s to %s", order.id, old_status.value, status.value)
        return order
