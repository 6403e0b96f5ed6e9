"""Dispute workflow: filing, negotiation, escalation and admin decisions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.clock import Clock, as_utc, utcnow
from marketplace.config import settings
from marketplace.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidArgumentException,
    InvalidStateException,
    InvalidTransitionException,
    NotFoundException,
)
from marketplace.models.dispute import Dispute
from marketplace.models.enums import (
    DisputeCategory,
    DisputeStatus,
    DisputeTransitionType,
    ResolutionOutcome,
)
from marketplace.modules.dispute.constants import (
    EVENT_DISPUTE_CANCELLED,
    EVENT_DISPUTE_DECIDED,
    EVENT_DISPUTE_ESCALATED,
    EVENT_DISPUTE_FILED,
    EVENT_DISPUTE_OUTCOME_PROPOSED,
    EVENT_DISPUTE_RESOLVED,
    MAX_EVIDENCE_FILES,
    VALID_DISPUTE_TRANSITIONS,
)
from marketplace.modules.dispute.eligibility import Eligibility, EligibilityChecker
from marketplace.modules.events.outbox_service import OutboxService
from marketplace.modules.identity.auth import AuthenticatedUser

logger = logging.getLogger(__name__)


class DisputeService:
    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        negotiation_hours: int | None = None,
        filing_window_days: int | None = None,
    ):
        self.db = db
        self.clock = clock
        if negotiation_hours is None:
            negotiation_hours = settings.dispute_negotiation_hours
        self.negotiation_window = timedelta(hours=negotiation_hours)
        self.eligibility = EligibilityChecker(db, clock, filing_window_days)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_transition(
        self, dispute: Dispute, transition_type: DisputeTransitionType
    ) -> DisputeStatus:
        allowed = VALID_DISPUTE_TRANSITIONS.get(dispute.status, {})
        if transition_type not in allowed:
            raise InvalidTransitionException(
                "dispute",
                current=dispute.status.value,
                attempted=transition_type.value,
                allowed=[t.value for t in allowed],
            )
        return allowed[transition_type]

    def _apply(self, dispute: Dispute, transition_type: DisputeTransitionType) -> DisputeStatus:
        old_status = dispute.status
        dispute.status = self._validate_transition(dispute, transition_type)
        dispute.status_changed_at = self.clock()
        return old_status

    async def _publish(
        self, dispute: Dispute, event_type: str, actor_id: uuid.UUID | None, **extra
    ) -> None:
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=event_type,
            aggregate_type="dispute",
            aggregate_id=str(dispute.id),
            payload={
                "dispute_id": str(dispute.id),
                "actor_id": str(actor_id) if actor_id else None,
                "filed_by": str(dispute.filed_by),
                "respondent_id": str(dispute.respondent_id),
                "target_type": dispute.target_type.value,
                "target_id": str(dispute.target_id),
                "category": dispute.category.value,
                "status": dispute.status.value,
                **extra,
            },
        )

    @staticmethod
    def _require_party(dispute: Dispute, user: AuthenticatedUser) -> None:
        if not dispute.is_party(user.id):
            raise ForbiddenException("Only the parties to this dispute can perform this action")

    # ------------------------------------------------------------------
    # Eligibility & filing
    # ------------------------------------------------------------------

    async def can_file_dispute(
        self,
        order_id: uuid.UUID | None,
        customization_request_id: uuid.UUID | None,
        user_id: uuid.UUID,
    ) -> Eligibility:
        return await self.eligibility.can_file_dispute(order_id, customization_request_id, user_id)

    async def file_dispute(
        self,
        filer: AuthenticatedUser,
        *,
        order_id: uuid.UUID | None = None,
        customization_request_id: uuid.UUID | None = None,
        category: DisputeCategory,
        description: str,
        evidence_urls: list[str] | None = None,
    ) -> Dispute:
        """File a dispute and open its negotiation window."""
        evidence_urls = list(evidence_urls or [])
        if len(evidence_urls) > MAX_EVIDENCE_FILES:
            raise InvalidArgumentException(
                f"At most {MAX_EVIDENCE_FILES} evidence files are allowed per dispute"
            )
        if not description or not description.strip():
            raise InvalidArgumentException("A dispute description is required")

        eligibility = await self.can_file_dispute(order_id, customization_request_id, filer.id)
        if not eligibility.eligible:
            raise ForbiddenException(
                f"Cannot file dispute: {eligibility.reason}",
                details=[{"field": "eligibility", "message": eligibility.reason}],
            )

        now = self.clock()
        dispute = Dispute.for_target(
            order_id=order_id,
            customization_request_id=customization_request_id,
            filed_by=filer.id,
            respondent_id=eligibility.respondent_id,
            category=category,
            description=description.strip(),
            evidence_urls=evidence_urls,
            status=DisputeStatus.FILED,
            filed_at=now,
            negotiation_deadline=now + self.negotiation_window,
            status_changed_at=now,
        )
        self.db.add(dispute)
        self._apply(dispute, DisputeTransitionType.START_NEGOTIATION)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            if "filed_by" in str(exc):
                raise ConflictException(
                    "You already have an open dispute for this target",
                    details=[{"field": "eligibility", "message": "already disputed"}],
                ) from exc
            raise

        await self._publish(
            dispute,
            EVENT_DISPUTE_FILED,
            filer.id,
            negotiation_deadline=dispute.negotiation_deadline.isoformat(),
        )
        logger.info(
            "Dispute %s filed by %s against %s %s",
            dispute.id, filer.id, dispute.target_type.value, dispute.target_id,
        )
        return dispute

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_dispute(self, dispute_id: uuid.UUID) -> Dispute:
        """Load a dispute, escalating it first if its negotiation window lapsed."""
        dispute = await self.db.get(Dispute, dispute_id)
        if dispute is None:
            raise NotFoundException(f"Dispute {dispute_id} not found")
        if (
            dispute.status == DisputeStatus.NEGOTIATING
            and as_utc(dispute.negotiation_deadline) <= self.clock()
        ):
            await self.escalate_if_overdue(dispute_id)
            dispute = await self.db.get(Dispute, dispute_id, populate_existing=True)
        return dispute

    def ensure_can_view(self, dispute: Dispute, user: AuthenticatedUser) -> None:
        if not user.is_admin and not dispute.is_party(user.id):
            raise ForbiddenException("You do not have access to this dispute")

    async def list_for_user(
        self,
        user: AuthenticatedUser,
        status: DisputeStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dispute], int]:
        """Disputes the caller filed or responds to (all of them for admins)."""
        conditions = []
        if not user.is_admin:
            conditions.append((Dispute.filed_by == user.id) | (Dispute.respondent_id == user.id))
        if status is not None:
            conditions.append(Dispute.status == status)

        total = (
            await self.db.execute(select(func.count()).select_from(Dispute).where(*conditions))
        ).scalar() or 0
        result = await self.db.execute(
            select(Dispute)
            .where(*conditions)
            .order_by(Dispute.filed_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_admin_queue(self, limit: int = 50) -> list[Dispute]:
        """Escalated disputes awaiting an admin decision, oldest first."""
        result = await self.db.execute(
            select(Dispute)
            .where(Dispute.status == DisputeStatus.ESCALATED)
            .order_by(Dispute.escalated_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------

    async def resolve_negotiation(
        self,
        dispute_id: uuid.UUID,
        resolver: AuthenticatedUser,
        outcome: ResolutionOutcome,
    ) -> Dispute:
        """Record one party's outcome; the dispute closes once both agree."""
        dispute = await self.get_dispute(dispute_id)
        if dispute.status != DisputeStatus.NEGOTIATING:
            raise InvalidStateException(
                f"Dispute {dispute_id} is not in negotiation",
                details=[{"field": "status", "message": dispute.status.value}],
            )
        self._require_party(dispute, resolver)

        if resolver.id == dispute.filed_by:
            dispute.filer_outcome = outcome
        else:
            dispute.respondent_outcome = outcome

        if dispute.filer_outcome is not None and dispute.filer_outcome == dispute.respondent_outcome:
            now = self.clock()
            self._apply(dispute, DisputeTransitionType.RESOLVE)
            dispute.resolution_outcome = outcome
            dispute.resolved_at = now
            dispute.resolved_by = resolver.id
            self._apply(dispute, DisputeTransitionType.CLOSE)
            dispute.closed_at = now
            await self.db.flush()

            await self._publish(dispute, EVENT_DISPUTE_RESOLVED, resolver.id, outcome=outcome.value)
            logger.info("Dispute %s resolved by agreement (%s)", dispute_id, outcome.value)
            return dispute

        await self.db.flush()
        await self._publish(
            dispute, EVENT_DISPUTE_OUTCOME_PROPOSED, resolver.id, outcome=outcome.value
        )
        logger.info("Dispute %s: %s proposed %s", dispute_id, resolver.id, outcome.value)
        return dispute

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    async def _mark_escalated(
        self,
        dispute_id: uuid.UUID,
        now: datetime,
        escalated_by: uuid.UUID | None,
        overdue_only: bool,
    ) -> bool:
        """Conditionally move a negotiating dispute to escalated.

        Returns False when another caller (or the sweep) got there first.
        """
        conditions = [Dispute.id == dispute_id, Dispute.status == DisputeStatus.NEGOTIATING]
        if overdue_only:
            conditions.append(Dispute.negotiation_deadline <= now)
        result = await self.db.execute(
            update(Dispute)
            .where(*conditions)
            .values(
                status=DisputeStatus.ESCALATED,
                escalated_at=now,
                escalated_by=escalated_by,
                status_changed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def escalate(
        self,
        dispute_id: uuid.UUID,
        actor: AuthenticatedUser,
        reason: str | None = None,
    ) -> Dispute:
        """Manually hand a dispute to the admin queue."""
        dispute = await self.get_dispute(dispute_id)
        self._require_party(dispute, actor)
        self._validate_transition(dispute, DisputeTransitionType.ESCALATE)

        if not await self._mark_escalated(dispute_id, self.clock(), actor.id, overdue_only=False):
            raise ConflictException(f"Dispute {dispute_id} changed concurrently")

        dispute = await self.db.get(Dispute, dispute_id, populate_existing=True)
        await self._publish(dispute, EVENT_DISPUTE_ESCALATED, actor.id, reason=reason, automatic=False)
        logger.info("Dispute %s escalated by %s", dispute_id, actor.id)
        return dispute

    async def find_overdue(self) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(Dispute.id)
            .where(
                Dispute.status == DisputeStatus.NEGOTIATING,
                Dispute.negotiation_deadline <= self.clock(),
            )
            .order_by(Dispute.negotiation_deadline.asc())
        )
        return list(result.scalars().all())

    async def escalate_if_overdue(self, dispute_id: uuid.UUID) -> bool:
        """Escalate one lapsed negotiation; a no-op if it already moved on."""
        if not await self._mark_escalated(dispute_id, self.clock(), None, overdue_only=True):
            return False

        dispute = await self.db.get(Dispute, dispute_id, populate_existing=True)
        await self._publish(
            dispute,
            EVENT_DISPUTE_ESCALATED,
            None,
            reason="Negotiation window elapsed",
            automatic=True,
        )
        logger.info("Dispute %s escalated automatically after negotiation deadline", dispute_id)
        return True

    async def escalate_overdue(self) -> list[uuid.UUID]:
        """Escalate every lapsed negotiation; returns the disputes moved this run."""
        escalated = []
        for dispute_id in await self.find_overdue():
            if await self.escalate_if_overdue(dispute_id):
                escalated.append(dispute_id)
        return escalated

    # ------------------------------------------------------------------
    # Closing
    # ------------------------------------------------------------------

    async def admin_decide(
        self,
        dispute_id: uuid.UUID,
        admin: AuthenticatedUser,
        outcome: ResolutionOutcome,
        reason: str,
        notes: str | None = None,
    ) -> Dispute:
        if not admin.is_admin:
            raise ForbiddenException("Only admins can decide escalated disputes")
        if not reason or not reason.strip():
            raise InvalidArgumentException("A resolution reason is required")

        dispute = await self.get_dispute(dispute_id)
        self._apply(dispute, DisputeTransitionType.ADMIN_DECIDE)
        now = self.clock()
        dispute.resolution_outcome = outcome
        dispute.resolution_reason = reason.strip()
        dispute.admin_notes = notes
        dispute.resolved_by = admin.id
        dispute.resolved_at = now
        dispute.closed_at = now
        await self.db.flush()

        await self._publish(
            dispute, EVENT_DISPUTE_DECIDED, admin.id, outcome=outcome.value, reason=dispute.resolution_reason
        )
        logger.info("Dispute %s decided by admin %s (%s)", dispute_id, admin.id, outcome.value)
        return dispute

    async def withdraw(self, dispute_id: uuid.UUID, filer: AuthenticatedUser) -> Dispute:
        """The filer drops the dispute; it closes as dismissed."""
        dispute = await self.get_dispute(dispute_id)
        if dispute.filed_by != filer.id:
            raise ForbiddenException("Only the party who filed the dispute can withdraw it")

        self._apply(dispute, DisputeTransitionType.WITHDRAW)
        now = self.clock()
        dispute.resolution_outcome = ResolutionOutcome.DISMISSED
        dispute.resolution_reason = "Withdrawn by filer"
        dispute.resolved_by = filer.id
        dispute.resolved_at = now
        dispute.closed_at = now
        await self.db.flush()

        await self._publish(dispute, EVENT_DISPUTE_CANCELLED, filer.id)
        logger.info("Dispute %s withdrawn by %s", dispute_id, filer.id)
        return dispute
