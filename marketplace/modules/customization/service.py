"""Customization request workflow: claim, shop selection, review, completion."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.clock import Clock, utcnow
from marketplace.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidArgumentException,
    InvalidStateException,
    InvalidTransitionException,
    NotFoundException,
)
from marketplace.models.customization_request import CustomizationRequest
from marketplace.models.enums import CustomizationStatus, CustomizationTransitionType, UserRole
from marketplace.models.shop_profile import ShopProfile
from marketplace.modules.customization.constants import (
    EVENT_CUSTOMIZATION_CREATED,
    TRANSITION_EVENT_MAP,
    VALID_TRANSITIONS,
)
from marketplace.modules.events.outbox_service import OutboxService
from marketplace.modules.identity.auth import AuthenticatedUser

logger = logging.getLogger(__name__)


def _statuses_allowing(transition_type: CustomizationTransitionType) -> list[CustomizationStatus]:
    return [status for status, moves in VALID_TRANSITIONS.items() if transition_type in moves]


def _str_or_none(value: uuid.UUID | None) -> str | None:
    return str(value) if value is not None else None


class CustomizationService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_transition(
        self, request: CustomizationRequest, transition_type: CustomizationTransitionType
    ) -> CustomizationStatus:
        """Return the target status, or raise if the table forbids the move."""
        allowed = VALID_TRANSITIONS.get(request.status, {})
        if transition_type not in allowed:
            raise InvalidTransitionException(
                "customization request",
                current=request.status.value,
                attempted=transition_type.value,
                allowed=[t.value for t in allowed],
            )
        return allowed[transition_type]

    def _apply(
        self, request: CustomizationRequest, transition_type: CustomizationTransitionType
    ) -> CustomizationStatus:
        old_status = request.status
        request.status = self._validate_transition(request, transition_type)
        if request.status != old_status:
            request.status_changed_at = self.clock()
        return old_status

    @staticmethod
    def _require_customer(request: CustomizationRequest, user: AuthenticatedUser) -> None:
        if request.customer_id != user.id:
            raise ForbiddenException("Only the requesting customer can perform this action")

    @staticmethod
    def _require_designer(request: CustomizationRequest, user: AuthenticatedUser) -> None:
        if request.designer_id is None or request.designer_id != user.id:
            raise ForbiddenException("Only the assigned designer can perform this action")

    async def _publish(
        self,
        request: CustomizationRequest,
        event_type: str,
        actor_id: uuid.UUID | None,
        from_status: CustomizationStatus | None = None,
        **extra,
    ) -> None:
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=event_type,
            aggregate_type="customization_request",
            aggregate_id=str(request.id),
            payload={
                "request_id": str(request.id),
                "actor_id": _str_or_none(actor_id),
                "customer_id": str(request.customer_id),
                "designer_id": _str_or_none(request.designer_id),
                "shop_id": _str_or_none(request.shop_id),
                "product_name": request.product_name,
                "from_status": from_status.value if from_status else None,
                "status": request.status.value,
                **extra,
            },
        )

    async def _publish_transition(
        self,
        request: CustomizationRequest,
        transition_type: CustomizationTransitionType,
        actor_id: uuid.UUID | None,
        from_status: CustomizationStatus,
        **extra,
    ) -> None:
        await self._publish(
            request, TRANSITION_EVENT_MAP[transition_type], actor_id, from_status, **extra
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_request(
        self, request_id: uuid.UUID, *, refresh: bool = False
    ) -> CustomizationRequest:
        request = await self.db.get(CustomizationRequest, request_id, populate_existing=refresh)
        if request is None:
            raise NotFoundException(f"Customization request {request_id} not found")
        return request

    def ensure_can_view(self, request: CustomizationRequest, user: AuthenticatedUser) -> None:
        """Parties and admins see a request; designers also see unclaimed ones."""
        if user.is_admin or user.id in (request.customer_id, request.designer_id):
            return
        if request.designer_id is None and user.role == UserRole.DESIGNER:
            return
        raise ForbiddenException("You do not have access to this customization request")

    async def list_requests(
        self,
        user: AuthenticatedUser,
        status: CustomizationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[CustomizationRequest], int]:
        """List requests the caller is a party to (all of them for admins)."""
        conditions = []
        if not user.is_admin:
            conditions.append(
                (CustomizationRequest.customer_id == user.id)
                | (CustomizationRequest.designer_id == user.id)
            )
        if status is not None:
            conditions.append(CustomizationRequest.status == status)

        total = (
            await self.db.execute(
                select(func.count()).select_from(CustomizationRequest).where(*conditions)
            )
        ).scalar() or 0

        result = await self.db.execute(
            select(CustomizationRequest)
            .where(*conditions)
            .order_by(CustomizationRequest.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_pending_requests(self, limit: int = 50) -> list[CustomizationRequest]:
        """Unclaimed requests, oldest first, for designers to pick up."""
        result = await self.db.execute(
            select(CustomizationRequest)
            .where(
                CustomizationRequest.status == CustomizationStatus.PENDING_DESIGNER_REVIEW,
                CustomizationRequest.designer_id.is_(None),
            )
            .order_by(CustomizationRequest.requested_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_statistics(self) -> dict[str, int]:
        """Request counts per status, including statuses with no requests."""
        result = await self.db.execute(
            select(CustomizationRequest.status, func.count()).group_by(CustomizationRequest.status)
        )
        counts = {status.value: 0 for status in CustomizationStatus}
        for status, count in result.all():
            counts[CustomizationStatus(status).value] = count
        counts["total"] = sum(counts.values())
        return counts

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_request(self, customer: AuthenticatedUser, data: dict) -> CustomizationRequest:
        """Create a new request waiting for a designer."""
        if not data.get("customer_design_file"):
            raise InvalidArgumentException("A design file is required")

        now = self.clock()
        request = CustomizationRequest(
            customer_id=customer.id,
            product_id=data.get("product_id"),
            product_name=data["product_name"],
            customer_design_file=data["customer_design_file"],
            customer_notes=data.get("customer_notes"),
            pricing_agreement=data.get("pricing_agreement"),
            status=CustomizationStatus.PENDING_DESIGNER_REVIEW,
            requested_at=now,
            status_changed_at=now,
        )
        self.db.add(request)
        await self.db.flush()

        await self._publish(request, EVENT_CUSTOMIZATION_CREATED, customer.id)
        logger.info("Created customization request %s for customer %s", request.id, customer.id)
        return request

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def claim_request(
        self, request_id: uuid.UUID, designer: AuthenticatedUser
    ) -> CustomizationRequest:
        """Assign the request to ``designer``; the first claim wins."""
        now = self.clock()
        result = await self.db.execute(
            update(CustomizationRequest)
            .where(
                CustomizationRequest.id == request_id,
                CustomizationRequest.designer_id.is_(None),
                CustomizationRequest.status.in_(
                    _statuses_allowing(CustomizationTransitionType.CLAIM)
                ),
            )
            .values(
                designer_id=designer.id,
                status=CustomizationStatus.IN_PROGRESS,
                assigned_at=now,
                status_changed_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            request = await self.get_request(request_id, refresh=True)
            if request.designer_id is not None:
                raise ConflictException(
                    f"Customization request {request_id} is already assigned",
                    details=[{"field": "designer_id", "message": "already assigned"}],
                )
            self._validate_transition(request, CustomizationTransitionType.CLAIM)
            raise ConflictException(f"Customization request {request_id} changed concurrently")

        request = await self.get_request(request_id, refresh=True)
        await self._publish_transition(
            request,
            CustomizationTransitionType.CLAIM,
            designer.id,
            CustomizationStatus.PENDING_DESIGNER_REVIEW,
        )
        logger.info("Customization request %s claimed by designer %s", request_id, designer.id)
        return request

    async def select_printing_shop(
        self, request_id: uuid.UUID, customer: AuthenticatedUser, shop_id: uuid.UUID
    ) -> CustomizationRequest:
        """Route the request to a printing shop that is active and approved."""
        request = await self.get_request(request_id)
        self._require_customer(request, customer)
        self._validate_transition(request, CustomizationTransitionType.SELECT_SHOP)

        shop = await self.db.get(ShopProfile, shop_id)
        if shop is None:
            raise NotFoundException(f"Shop {shop_id} not found")
        if not shop.accepts_orders:
            raise InvalidStateException(
                f"Shop {shop_id} is not accepting orders",
                details=[
                    {"field": "is_active", "message": str(shop.is_active).lower()},
                    {"field": "approval_status", "message": shop.approval_status.value},
                ],
            )

        from_status = self._apply(request, CustomizationTransitionType.SELECT_SHOP)
        request.shop_id = shop.id
        await self.db.flush()

        await self._publish_transition(
            request,
            CustomizationTransitionType.SELECT_SHOP,
            customer.id,
            from_status,
            shop_owner_id=str(shop.owner_id),
            shop_name=shop.shop_name,
        )
        logger.info("Customization request %s routed to shop %s", request_id, shop_id)
        return request

    async def submit_final_work(
        self,
        request_id: uuid.UUID,
        designer: AuthenticatedUser,
        file: dict | None,
        notes: str | None = None,
        preview_file: dict | None = None,
    ) -> CustomizationRequest:
        """Hand the finished design to the customer for review."""
        request = await self.get_request(request_id)
        self._require_designer(request, designer)
        if not file:
            raise InvalidArgumentException("A final design file is required")

        from_status = self._apply(request, CustomizationTransitionType.SUBMIT_FINAL)
        request.designer_final_file = file
        request.designer_preview_file = preview_file
        request.designer_notes = notes
        request.completed_at = self.clock()
        await self.db.flush()

        await self._publish_transition(
            request, CustomizationTransitionType.SUBMIT_FINAL, designer.id, from_status
        )
        logger.info("Final design submitted for customization request %s", request_id)
        return request

    async def approve(
        self, request_id: uuid.UUID, customer: AuthenticatedUser
    ) -> CustomizationRequest:
        request = await self.get_request(request_id)
        self._require_customer(request, customer)

        from_status = self._apply(request, CustomizationTransitionType.APPROVE)
        request.approved_at = self.clock()
        await self.db.flush()

        await self._publish_transition(
            request, CustomizationTransitionType.APPROVE, customer.id, from_status
        )
        logger.info("Customization request %s approved", request_id)
        return request

    async def reject(
        self, request_id: uuid.UUID, customer: AuthenticatedUser, reason: str
    ) -> CustomizationRequest:
        request = await self.get_request(request_id)
        self._require_customer(request, customer)
        if not reason or not reason.strip():
            raise InvalidArgumentException("A rejection reason is required")

        from_status = self._apply(request, CustomizationTransitionType.REJECT)
        request.rejection_reason = reason.strip()
        await self.db.flush()

        await self._publish_transition(
            request,
            CustomizationTransitionType.REJECT,
            customer.id,
            from_status,
            reason=request.rejection_reason,
        )
        logger.info("Customization request %s rejected", request_id)
        return request

    async def resubmit(
        self, request_id: uuid.UUID, designer: AuthenticatedUser
    ) -> CustomizationRequest:
        """Reopen a rejected request so the designer can revise the work."""
        request = await self.get_request(request_id)
        self._require_designer(request, designer)

        from_status = self._apply(request, CustomizationTransitionType.RESUBMIT)
        previous_reason = request.rejection_reason
        request.rejection_reason = None
        request.completed_at = None
        await self.db.flush()

        await self._publish_transition(
            request,
            CustomizationTransitionType.RESUBMIT,
            designer.id,
            from_status,
            previous_rejection_reason=previous_reason,
        )
        logger.info("Customization request %s reopened by designer %s", request_id, designer.id)
        return request

    async def complete_with_order(
        self, request_id: uuid.UUID, order_id: uuid.UUID, actor: AuthenticatedUser
    ) -> CustomizationRequest:
        """Link the order created from the approved design; allowed exactly once."""
        request = await self.get_request(request_id)
        if not actor.is_admin:
            self._require_customer(request, actor)
        self._validate_transition(request, CustomizationTransitionType.COMPLETE)

        now = self.clock()
        result = await self.db.execute(
            update(CustomizationRequest)
            .where(
                CustomizationRequest.id == request_id,
                CustomizationRequest.order_id.is_(None),
                CustomizationRequest.status.in_(
                    _statuses_allowing(CustomizationTransitionType.COMPLETE)
                ),
            )
            .values(order_id=order_id, status=CustomizationStatus.COMPLETED, status_changed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictException(
                f"Customization request {request_id} is already linked to an order"
            )

        request = await self.get_request(request_id, refresh=True)
        await self._publish_transition(
            request,
            CustomizationTransitionType.COMPLETE,
            actor.id,
            CustomizationStatus.APPROVED,
            order_id=str(order_id),
        )
        logger.info("Customization request %s completed with order %s", request_id, order_id)
        return request

    async def cancel(
        self, request_id: uuid.UUID, actor: AuthenticatedUser, reason: str | None = None
    ) -> CustomizationRequest:
        request = await self.get_request(request_id)
        if not actor.is_admin:
            self._require_customer(request, actor)

        from_status = self._apply(request, CustomizationTransitionType.CANCEL)
        request.cancellation_reason = reason
        request.rejection_reason = None
        await self.db.flush()

        await self._publish_transition(
            request,
            CustomizationTransitionType.CANCEL,
            actor.id,
            from_status,
            reason=reason,
            cancelled_by_admin=actor.is_admin,
        )
        logger.info("Customization request %s cancelled by %s", request_id, actor.id)
        return request
