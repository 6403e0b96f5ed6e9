"""Pydantic v2 schemas for orders created from approved designs."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.enums import OrderStatus


class OrderFromCustomization(BaseModel):
    customization_request_id: uuid.UUID
    total_amount: Decimal = Field(..., ge=0)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    shop_id: uuid.UUID | None = None
    shop_owner_id: uuid.UUID | None = None
    customization_request_id: uuid.UUID | None = None
    status: OrderStatus
    total_amount: Decimal
    status_changed_at: datetime
    created_at: datetime
