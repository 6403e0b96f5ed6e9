"""Dispute API router: filing, negotiation, escalation and admin decisions."""

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.database.session import get_db
from marketplace.exceptions import ForbiddenException
from marketplace.models.enums import DisputeStatus
from marketplace.modules.dispute.schemas import (
    AdminDecisionRequest,
    DisputeCreate,
    DisputeListResponse,
    DisputeResponse,
    EligibilityResponse,
    EscalateRequest,
    ResolveNegotiationRequest,
)
from marketplace.modules.dispute.service import DisputeService
from marketplace.modules.identity.auth import AuthenticatedUser, get_current_user
from marketplace.rate_limit import limiter

router = APIRouter(prefix="/disputes", tags=["disputes"])


def _require_admin(user: AuthenticatedUser) -> None:
    """Raise ForbiddenException unless the user is a platform admin."""
    if not user.is_admin:
        raise ForbiddenException("This action requires admin access")


# ---------------------------------------------------------------------------
# Filing
# ---------------------------------------------------------------------------


@router.get("/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    order_id: uuid.UUID | None = Query(None),
    customization_request_id: uuid.UUID | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller may file a dispute against the given target."""
    eligibility = await DisputeService(db).can_file_dispute(
        order_id, customization_request_id, user.id
    )
    return EligibilityResponse(eligible=eligibility.eligible, reason=eligibility.reason)


@router.post("/", response_model=DisputeResponse, status_code=201)
@limiter.limit(settings.write_rate_limit)
async def file_dispute(
    request: Request,
    body: DisputeCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).file_dispute(
        user,
        order_id=body.order_id,
        customization_request_id=body.customization_request_id,
        category=body.category,
        description=body.description,
        evidence_urls=body.evidence_urls,
    )
    return DisputeResponse.model_validate(dispute)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/", response_model=DisputeListResponse)
async def list_disputes(
    status: DisputeStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await DisputeService(db).list_for_user(user, status=status, limit=limit, offset=offset)
    return DisputeListResponse(
        items=[DisputeResponse.model_validate(d) for d in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/admin/queue", response_model=list[DisputeResponse])
async def admin_queue(
    limit: int = Query(50, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Escalated disputes, oldest first."""
    _require_admin(user)
    return [DisputeResponse.model_validate(d) for d in await DisputeService(db).list_admin_queue(limit)]


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = DisputeService(db)
    dispute = await svc.get_dispute(dispute_id)
    svc.ensure_can_view(dispute, user)
    return DisputeResponse.model_validate(dispute)


# ---------------------------------------------------------------------------
# State Transitions
# ---------------------------------------------------------------------------


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_negotiation(
    dispute_id: uuid.UUID,
    body: ResolveNegotiationRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Propose (or agree to) a negotiated outcome."""
    dispute = await DisputeService(db).resolve_negotiation(dispute_id, user, body.outcome)
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/escalate", response_model=DisputeResponse)
async def escalate(
    dispute_id: uuid.UUID,
    body: EscalateRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).escalate(dispute_id, user, body.reason)
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/decide", response_model=DisputeResponse)
async def admin_decide(
    dispute_id: uuid.UUID,
    body: AdminDecisionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_admin(user)
    dispute = await DisputeService(db).admin_decide(
        dispute_id, user, body.outcome, body.reason, body.notes
    )
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/withdraw", response_model=DisputeResponse)
async def withdraw(
    dispute_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).withdraw(dispute_id, user)
    return DisputeResponse.model_validate(dispute)
