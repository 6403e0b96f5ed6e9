"""Notification inbox and activity feed queries."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.clock import Clock, utcnow
from marketplace.exceptions import ForbiddenException, NotFoundException
from marketplace.models.activity import Activity
from marketplace.models.notification import Notification
from marketplace.modules.identity.auth import AuthenticatedUser


class NotificationService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    @staticmethod
    def _visible_to(user: AuthenticatedUser):
        condition = Notification.recipient_id == user.id
        if user.is_admin:
            condition = condition | (Notification.recipient_role == user.role.value)
        return condition

    async def list_for_user(
        self,
        user: AuthenticatedUser,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int]:
        conditions = [self._visible_to(user)]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))

        total = (
            await self.db.execute(select(func.count()).select_from(Notification).where(*conditions))
        ).scalar() or 0
        result = await self.db.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def unread_count(self, user: AuthenticatedUser) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(self._visible_to(user), Notification.is_read.is_(False))
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: uuid.UUID, user: AuthenticatedUser) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException(f"Notification {notification_id} not found")
        is_recipient = notification.recipient_id == user.id or (
            user.is_admin and notification.recipient_role == user.role.value
        )
        if not is_recipient:
            raise ForbiddenException("You can only mark your own notifications as read")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = self.clock()
            await self.db.flush()
        return notification

    async def mark_all_read(self, user: AuthenticatedUser) -> int:
        """Mark every unread notification visible to the user; returns the count."""
        result = await self.db.execute(
            update(Notification)
            .where(self._visible_to(user), Notification.is_read.is_(False))
            .values(is_read=True, read_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_target(
        self, target_type: str, target_id: str, limit: int = 50
    ) -> list[Activity]:
        """Activity trail for one entity, oldest first."""
        result = await self.db.execute(
            select(Activity)
            .where(Activity.target_type == target_type, Activity.target_id == target_id)
            .order_by(Activity.occurred_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())
