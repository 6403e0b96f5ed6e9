"""Order API router: placing and fulfilling orders for approved designs."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database.session import get_db
from marketplace.exceptions import ForbiddenException
from marketplace.modules.identity.auth import AuthenticatedUser, get_current_user
from marketplace.modules.order.schemas import OrderFromCustomization, OrderResponse, OrderStatusUpdate
from marketplace.modules.order.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderFromCustomization,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Place the order for an approved customization request."""
    order = await OrderService(db).create_from_customization(
        body.customization_request_id, user, body.total_amount
    )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).get_order(order_id)
    if not user.is_admin and user.id not in (order.customer_id, order.shop_owner_id):
        raise ForbiddenException("You do not have access to this order")
    return OrderResponse.model_validate(order)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).update_status(order_id, user, body.status)
    return OrderResponse.model_validate(order)
