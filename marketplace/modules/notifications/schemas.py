"""Pydantic v2 schemas for the notification inbox and activity feed."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.enums import NotificationCategory, NotificationPriority


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    recipient_id: uuid.UUID | None = None
    recipient_role: str | None = None
    type: str
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    action_url: str | None = None
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_extra")
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread: int
    limit: int
    offset: int


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: uuid.UUID | None = None
    action: str
    target_type: str
    target_id: str
    description: str
    occurred_at: datetime
