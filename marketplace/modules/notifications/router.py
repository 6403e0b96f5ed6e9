"""Notification inbox and activity feed API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database.session import get_db
from marketplace.exceptions import ForbiddenException
from marketplace.modules.identity.auth import AuthenticatedUser, get_current_user
from marketplace.modules.notifications.schemas import (
    ActivityResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from marketplace.modules.notifications.service import ActivityService, NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])
activity_router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = NotificationService(db)
    items, total = await svc.list_for_user(user, unread_only=unread_only, limit=limit, offset=offset)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=await svc.unread_count(user),
        limit=limit,
        offset=offset,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread=await NotificationService(db).unread_count(user))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).mark_read(notification_id, user)
    return NotificationResponse.model_validate(notification)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return MarkAllReadResponse(updated=await NotificationService(db).mark_all_read(user))


@activity_router.get("/", response_model=list[ActivityResponse])
async def list_activities(
    target_type: str = Query(..., max_length=100),
    target_id: str = Query(..., max_length=255),
    limit: int = Query(50, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail for one entity (admin only)."""
    if not user.is_admin:
        raise ForbiddenException("This action requires admin access")
    activities = await ActivityService(db).list_for_target(target_type, target_id, limit)
    return [ActivityResponse.model_validate(a) for a in activities]
