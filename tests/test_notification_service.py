"""Tests for NotificationService and ActivityService."""

from __future__ import annotations

import uuid

import pytest

from marketplace.exceptions import ForbiddenException, NotFoundException
from marketplace.models.activity import Activity
from marketplace.models.enums import UserRole
from marketplace.models.notification import Notification
from marketplace.modules.identity.auth import AuthenticatedUser
from marketplace.modules.notifications.service import ActivityService, NotificationService


def _make_user(role: UserRole = UserRole.CUSTOMER) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid.uuid4(), email=f"{role.value}@example.com", role=role)


async def _notify(db, *, recipient_id=None, recipient_role=None, type="dispute_filed") -> Notification:
    notification = Notification(
        recipient_id=recipient_id,
        recipient_role=recipient_role,
        type=type,
        title="Dispute Filed",
        message="A dispute was filed against you.",
        metadata_extra={"event_type": "dispute.filed"},
    )
    db.add(notification)
    await db.flush()
    return notification


class TestInbox:
    @pytest.mark.asyncio
    async def test_lists_only_own_notifications(self, db_session):
        user, other = _make_user(), _make_user()
        mine = await _notify(db_session, recipient_id=user.id)
        await _notify(db_session, recipient_id=other.id)

        items, total = await NotificationService(db_session).list_for_user(user)

        assert total == 1
        assert items[0].id == mine.id

    @pytest.mark.asyncio
    async def test_admins_see_role_notifications(self, db_session):
        admin = _make_user(UserRole.ADMIN)
        broadcast = await _notify(db_session, recipient_role="admin", type="dispute_escalated")

        items, _ = await NotificationService(db_session).list_for_user(admin)
        assert [n.id for n in items] == [broadcast.id]

        customer_items, _ = await NotificationService(db_session).list_for_user(_make_user())
        assert customer_items == []

    @pytest.mark.asyncio
    async def test_mark_read_and_unread_count(self, db_session, clock):
        user = _make_user()
        first = await _notify(db_session, recipient_id=user.id)
        await _notify(db_session, recipient_id=user.id)
        service = NotificationService(db_session, clock=clock)

        assert await service.unread_count(user) == 2

        notification = await service.mark_read(first.id, user)
        assert notification.is_read is True
        assert notification.read_at == clock()
        assert await service.unread_count(user) == 1

        unread, total = await service.list_for_user(user, unread_only=True)
        assert total == 1
        assert unread[0].id != first.id

    @pytest.mark.asyncio
    async def test_mark_all_read(self, db_session):
        user = _make_user()
        for _ in range(3):
            await _notify(db_session, recipient_id=user.id)
        await _notify(db_session, recipient_id=uuid.uuid4())
        service = NotificationService(db_session)

        assert await service.mark_all_read(user) == 3
        assert await service.unread_count(user) == 0
        assert await service.mark_all_read(user) == 0

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses_notification(self, db_session):
        notification = await _notify(db_session, recipient_id=uuid.uuid4())

        with pytest.raises(ForbiddenException):
            await NotificationService(db_session).mark_read(notification.id, _make_user())

    @pytest.mark.asyncio
    async def test_mark_missing_notification(self, db_session):
        with pytest.raises(NotFoundException):
            await NotificationService(db_session).mark_read(uuid.uuid4(), _make_user())


class TestActivityFeed:
    @pytest.mark.asyncio
    async def test_list_for_target(self, db_session):
        target_id = str(uuid.uuid4())
        db_session.add_all([
            Activity(
                action="dispute.filed",
                target_type="dispute",
                target_id=target_id,
                description="Dispute on order filed",
                metadata_extra={},
            ),
            Activity(
                action="dispute.filed",
                target_type="dispute",
                target_id=str(uuid.uuid4()),
                description="Dispute on order filed",
                metadata_extra={},
            ),
        ])
        await db_session.flush()

        activities = await ActivityService(db_session).list_for_target("dispute", target_id)

        assert len(activities) == 1
        assert activities[0].target_id == target_id
