"""Tests for CustomizationService: lifecycle, guards, and outbox events."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from marketplace.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidArgumentException,
    InvalidStateException,
    InvalidTransitionException,
    NotFoundException,
)
from marketplace.models.enums import CustomizationStatus, ShopApprovalStatus, UserRole
from marketplace.models.event_outbox import EventOutbox
from marketplace.models.shop_profile import ShopProfile
from marketplace.modules.customization.service import CustomizationService
from marketplace.modules.identity.auth import AuthenticatedUser

DESIGN_FILE = {
    "url": "https://files.example.com/designs/mug.png",
    "path": "designs/mug.png",
    "file_name": "mug.png",
    "file_size": 2048,
    "content_type": "image/png",
}
FINAL_FILE = {**DESIGN_FILE, "path": "finals/mug.png", "file_name": "mug-final.png"}


def _make_user(role: UserRole = UserRole.CUSTOMER) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid.uuid4(), email=f"{role.value}@example.com", role=role)


async def _make_shop(db, *, is_active=True, approval=ShopApprovalStatus.APPROVED) -> ShopProfile:
    shop = ShopProfile(
        owner_id=uuid.uuid4(),
        shop_name="Print Hub",
        is_active=is_active,
        approval_status=approval,
    )
    db.add(shop)
    await db.flush()
    return shop


async def _event_types(db, request_id) -> list[str]:
    result = await db.execute(
        select(EventOutbox.event_type)
        .where(EventOutbox.aggregate_id == str(request_id))
        .order_by(EventOutbox.created_at.asc())
    )
    return list(result.scalars().all())


@pytest.fixture
def customer() -> AuthenticatedUser:
    return _make_user(UserRole.CUSTOMER)


@pytest.fixture
def designer() -> AuthenticatedUser:
    return _make_user(UserRole.DESIGNER)


@pytest.fixture
def service(db_session, clock) -> CustomizationService:
    return CustomizationService(db_session, clock=clock)


async def _create(service, customer):
    return await service.create_request(
        customer, {"product_name": "Ceramic Mug", "customer_design_file": DESIGN_FILE}
    )


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reject_resubmit_approve_complete(self, service, customer, designer, db_session):
        request = await _create(service, customer)
        assert request.status == CustomizationStatus.PENDING_DESIGNER_REVIEW

        request = await service.claim_request(request.id, designer)
        assert request.status == CustomizationStatus.IN_PROGRESS
        assert request.designer_id == designer.id
        assert request.assigned_at is not None

        request = await service.submit_final_work(request.id, designer, FINAL_FILE, notes="v1")
        assert request.status == CustomizationStatus.AWAITING_CUSTOMER_APPROVAL
        assert request.completed_at is not None

        request = await service.reject(request.id, customer, "wrong colors")
        assert request.status == CustomizationStatus.REJECTED
        assert request.rejection_reason == "wrong colors"

        request = await service.resubmit(request.id, designer)
        assert request.status == CustomizationStatus.IN_PROGRESS
        assert request.rejection_reason is None

        request = await service.submit_final_work(request.id, designer, FINAL_FILE, notes="v2")
        request = await service.approve(request.id, customer)
        assert request.status == CustomizationStatus.APPROVED
        assert request.approved_at is not None
        assert request.order_id is None

        order_id = uuid.uuid4()
        request = await service.complete_with_order(request.id, order_id, customer)
        assert request.status == CustomizationStatus.COMPLETED
        assert request.order_id == order_id

        assert sorted(await _event_types(db_session, request.id)) == sorted(
            [
                "customization.created",
                "customization.claimed",
                "customization.submitted",
                "customization.rejected",
                "customization.resubmitted",
                "customization.submitted",
                "customization.approved",
                "customization.completed",
            ]
        )

    @pytest.mark.asyncio
    async def test_status_changed_at_follows_transitions(self, service, customer, designer, clock):
        request = await _create(service, customer)
        clock.advance(hours=3)
        request = await service.claim_request(request.id, designer)
        assert request.status_changed_at.replace(tzinfo=None) == clock.now.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_create_requires_design_file(self, service, customer):
        with pytest.raises(InvalidArgumentException):
            await service.create_request(customer, {"product_name": "Mug", "customer_design_file": None})


class TestClaim:
    @pytest.mark.asyncio
    async def test_second_claim_conflicts(self, session_factory, clock, customer, designer):
        async with session_factory() as session:
            request = await _create(CustomizationService(session, clock=clock), customer)
            await session.commit()

        async with session_factory() as session:
            await CustomizationService(session, clock=clock).claim_request(request.id, designer)
            await session.commit()

        rival = _make_user(UserRole.DESIGNER)
        async with session_factory() as session:
            with pytest.raises(ConflictException):
                await CustomizationService(session, clock=clock).claim_request(request.id, rival)

        async with session_factory() as session:
            stored = await CustomizationService(session).get_request(request.id)
            assert stored.designer_id == designer.id

    @pytest.mark.asyncio
    async def test_claim_missing_request(self, service, designer):
        with pytest.raises(NotFoundException):
            await service.claim_request(uuid.uuid4(), designer)

    @pytest.mark.asyncio
    async def test_claim_cancelled_request_is_invalid_transition(self, service, customer, designer):
        request = await _create(service, customer)
        await service.cancel(request.id, customer)
        with pytest.raises(InvalidTransitionException):
            await service.claim_request(request.id, designer)


class TestSelectPrintingShop:
    @pytest.mark.asyncio
    async def test_select_approved_shop(self, service, customer, designer, db_session):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        shop = await _make_shop(db_session)

        request = await service.select_printing_shop(request.id, customer, shop.id)

        assert request.shop_id == shop.id
        assert request.status == CustomizationStatus.IN_PROGRESS

        assert "customization.shop_selected" in await _event_types(db_session, request.id)

    @pytest.mark.asyncio
    async def test_only_customer_may_select(self, service, customer, designer, db_session):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        shop = await _make_shop(db_session)

        with pytest.raises(ForbiddenException):
            await service.select_printing_shop(request.id, designer, shop.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "is_active,approval",
        [(False, ShopApprovalStatus.APPROVED), (True, ShopApprovalStatus.PENDING)],
    )
    async def test_shop_must_be_active_and_approved(
        self, service, customer, designer, db_session, is_active, approval
    ):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        shop = await _make_shop(db_session, is_active=is_active, approval=approval)

        with pytest.raises(InvalidStateException):
            await service.select_printing_shop(request.id, customer, shop.id)

    @pytest.mark.asyncio
    async def test_cannot_select_before_claim(self, service, customer, db_session):
        request = await _create(service, customer)
        shop = await _make_shop(db_session)

        with pytest.raises(InvalidTransitionException):
            await service.select_printing_shop(request.id, customer, shop.id)


class TestGuards:
    @pytest.mark.asyncio
    async def test_submit_requires_assigned_designer(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        with pytest.raises(ForbiddenException):
            await service.submit_final_work(request.id, _make_user(UserRole.DESIGNER), FINAL_FILE)

    @pytest.mark.asyncio
    async def test_submit_requires_file(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        with pytest.raises(InvalidArgumentException):
            await service.submit_final_work(request.id, designer, None)

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        await service.submit_final_work(request.id, designer, FINAL_FILE)

        with pytest.raises(InvalidArgumentException):
            await service.reject(request.id, customer, "   ")

    @pytest.mark.asyncio
    async def test_only_customer_may_approve(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        await service.submit_final_work(request.id, designer, FINAL_FILE)

        with pytest.raises(ForbiddenException):
            await service.approve(request.id, designer)

    @pytest.mark.asyncio
    async def test_invalid_transition_reports_states(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        with pytest.raises(InvalidTransitionException) as exc_info:
            await service.approve(request.id, customer)

        assert exc_info.value.current == "in_progress"
        assert exc_info.value.attempted == "approve"
        assert {"field": "status", "message": "in_progress"} in exc_info.value.details

    @pytest.mark.asyncio
    async def test_order_linked_only_once(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        await service.submit_final_work(request.id, designer, FINAL_FILE)
        await service.approve(request.id, customer)
        await service.complete_with_order(request.id, uuid.uuid4(), customer)

        with pytest.raises(InvalidTransitionException):
            await service.complete_with_order(request.id, uuid.uuid4(), customer)


class TestCancel:
    @pytest.mark.asyncio
    async def test_designer_cannot_cancel(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        with pytest.raises(ForbiddenException):
            await service.cancel(request.id, designer)

    @pytest.mark.asyncio
    async def test_admin_can_cancel(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        request = await service.cancel(request.id, _make_user(UserRole.ADMIN), "duplicate")

        assert request.status == CustomizationStatus.CANCELLED
        assert request.cancellation_reason == "duplicate"

    @pytest.mark.asyncio
    async def test_cancel_after_rejection_clears_reason(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)
        await service.submit_final_work(request.id, designer, FINAL_FILE)
        await service.reject(request.id, customer, "wrong colors")

        request = await service.cancel(request.id, customer)

        assert request.status == CustomizationStatus.CANCELLED
        assert request.rejection_reason is None

    @pytest.mark.asyncio
    async def test_terminal_request_cannot_be_cancelled(self, service, customer):
        request = await _create(service, customer)
        await service.cancel(request.id, customer)

        with pytest.raises(InvalidTransitionException):
            await service.cancel(request.id, customer)


class TestQueries:
    @pytest.mark.asyncio
    async def test_pending_and_statistics(self, service, customer, designer):
        first = await _create(service, customer)
        second = await _create(service, customer)
        await service.claim_request(first.id, designer)

        pending = await service.list_pending_requests()
        assert [r.id for r in pending] == [second.id]

        stats = await service.get_statistics()
        assert stats["pending_designer_review"] == 1
        assert stats["in_progress"] == 1
        assert stats["cancelled"] == 0
        assert stats["total"] == 2

    @pytest.mark.asyncio
    async def test_list_scoped_to_parties(self, service, customer, designer):
        request = await _create(service, customer)
        await _create(service, _make_user(UserRole.CUSTOMER))
        await service.claim_request(request.id, designer)

        items, total = await service.list_requests(designer)
        assert total == 1
        assert items[0].id == request.id

        _, admin_total = await service.list_requests(_make_user(UserRole.ADMIN))
        assert admin_total == 2

    @pytest.mark.asyncio
    async def test_outsider_cannot_view(self, service, customer, designer):
        request = await _create(service, customer)
        await service.claim_request(request.id, designer)

        with pytest.raises(ForbiddenException):
            service.ensure_can_view(request, _make_user(UserRole.DESIGNER))
