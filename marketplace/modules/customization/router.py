"""Customization request API router."""

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import settings
from marketplace.database.session import get_db
from marketplace.exceptions import ForbiddenException
from marketplace.models.enums import CustomizationStatus, UserRole
from marketplace.modules.customization.schemas import (
    CancelRequest,
    CustomizationCreate,
    CustomizationListResponse,
    CustomizationResponse,
    RejectRequest,
    SelectShopRequest,
    SubmitFinalRequest,
)
from marketplace.modules.customization.service import CustomizationService
from marketplace.modules.identity.auth import AuthenticatedUser, get_current_user
from marketplace.rate_limit import limiter

router = APIRouter(prefix="/customizations", tags=["customizations"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_customer(user: AuthenticatedUser) -> None:
    """Raise ForbiddenException unless the user is a customer."""
    if user.role != UserRole.CUSTOMER:
        raise ForbiddenException("This action requires a customer account")


def _require_designer(user: AuthenticatedUser) -> None:
    """Raise ForbiddenException unless the user is a designer."""
    if user.role != UserRole.DESIGNER:
        raise ForbiddenException("This action requires a designer account")


def _require_admin(user: AuthenticatedUser) -> None:
    if not user.is_admin:
        raise ForbiddenException("This action requires admin access")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@router.post("/", response_model=CustomizationResponse, status_code=201)
async def create_request(
    body: CustomizationCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a design for a designer to customize."""
    _require_customer(user)
    svc = CustomizationService(db)
    request = await svc.create_request(user, body.model_dump(mode="json"))
    return CustomizationResponse.model_validate(request)


@router.get("/", response_model=CustomizationListResponse)
async def list_requests(
    status: CustomizationStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List requests the caller is a party to."""
    svc = CustomizationService(db)
    items, total = await svc.list_requests(user, status=status, limit=limit, offset=offset)
    return CustomizationListResponse(
        items=[CustomizationResponse.model_validate(r) for r in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/pending", response_model=list[CustomizationResponse])
async def list_pending_requests(
    limit: int = Query(50, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Unclaimed requests, oldest first."""
    if user.role != UserRole.DESIGNER and not user.is_admin:
        raise ForbiddenException("Only designers can browse pending requests")
    svc = CustomizationService(db)
    return [CustomizationResponse.model_validate(r) for r in await svc.list_pending_requests(limit)]


@router.get("/statistics")
async def get_statistics(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    _require_admin(user)
    return await CustomizationService(db).get_statistics()


@router.get("/{request_id}", response_model=CustomizationResponse)
async def get_request(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = CustomizationService(db)
    request = await svc.get_request(request_id)
    svc.ensure_can_view(request, user)
    return CustomizationResponse.model_validate(request)


# ---------------------------------------------------------------------------
# State Transitions
# ---------------------------------------------------------------------------


@router.post("/{request_id}/claim", response_model=CustomizationResponse)
@limiter.limit(settings.write_rate_limit)
async def claim_request(
    request: Request,
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Claim an unassigned request (first designer wins)."""
    _require_designer(user)
    customization = await CustomizationService(db).claim_request(request_id, user)
    return CustomizationResponse.model_validate(customization)


@router.post("/{request_id}/shop", response_model=CustomizationResponse)
async def select_printing_shop(
    request_id: uuid.UUID,
    body: SelectShopRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await CustomizationService(db).select_printing_shop(request_id, user, body.shop_id)
    return CustomizationResponse.model_validate(request)


@router.post("/{request_id}/submit", response_model=CustomizationResponse)
async def submit_final_work(
    request_id: uuid.UUID,
    body: SubmitFinalRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Upload-complete final design handed to the customer for review."""
    request = await CustomizationService(db).submit_final_work(
        request_id,
        user,
        file=body.file.model_dump(mode="json") if body.file else None,
        notes=body.notes,
        preview_file=body.preview_file.model_dump(mode="json") if body.preview_file else None,
    )
    return CustomizationResponse.model_validate(request)


@router.post("/{request_id}/approve", response_model=CustomizationResponse)
async def approve(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await CustomizationService(db).approve(request_id, user)
    return CustomizationResponse.model_validate(request)


@router.post("/{request_id}/reject", response_model=CustomizationResponse)
async def reject(
    request_id: uuid.UUID,
    body: RejectRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await CustomizationService(db).reject(request_id, user, body.reason)
    return CustomizationResponse.model_validate(request)


@router.post("/{request_id}/resubmit", response_model=CustomizationResponse)
async def resubmit(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reopen a rejected request for revision."""
    request = await CustomizationService(db).resubmit(request_id, user)
    return CustomizationResponse.model_validate(request)


@router.post("/{request_id}/cancel", response_model=CustomizationResponse)
async def cancel(
    request_id: uuid.UUID,
    body: CancelRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await CustomizationService(db).cancel(request_id, user, body.reason)
    return CustomizationResponse.model_validate(request)
