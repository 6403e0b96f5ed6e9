"""Pydantic v2 schemas for the customization request API."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.enums import CustomizationStatus


class DesignFile(BaseModel):
    """Reference to a file already uploaded to blob storage."""

    url: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0)
    content_type: str
    uploaded_at: datetime | None = None


class CustomizationCreate(BaseModel):
    product_id: uuid.UUID | None = None
    product_name: str = Field(..., min_length=1, max_length=255)
    customer_design_file: DesignFile
    customer_notes: str | None = None
    pricing_agreement: dict | None = None


class SelectShopRequest(BaseModel):
    shop_id: uuid.UUID


class SubmitFinalRequest(BaseModel):
    file: DesignFile | None = None
    preview_file: DesignFile | None = None
    notes: str | None = None


class RejectRequest(BaseModel):
    reason: str = Field(..., max_length=2000)


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class CustomizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    designer_id: uuid.UUID | None = None
    shop_id: uuid.UUID | None = None
    product_id: uuid.UUID | None = None
    product_name: str
    customer_design_file: dict | None = None
    customer_notes: str | None = None
    designer_final_file: dict | None = None
    designer_preview_file: dict | None = None
    designer_notes: str | None = None
    rejection_reason: str | None = None
    cancellation_reason: str | None = None
    status: CustomizationStatus
    order_id: uuid.UUID | None = None
    requested_at: datetime
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    approved_at: datetime | None = None
    status_changed_at: datetime
    created_at: datetime
    updated_at: datetime


class CustomizationListResponse(BaseModel):
    items: list[CustomizationResponse]
    total: int
    limit: int
    offset: int
