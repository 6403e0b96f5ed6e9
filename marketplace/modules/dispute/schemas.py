"""Pydantic v2 schemas for Dispute API endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.enums import (
    DisputeCategory,
    DisputeStatus,
    DisputeTargetType,
    ResolutionOutcome,
)
from marketplace.modules.dispute.constants import MAX_EVIDENCE_FILES


class DisputeCreate(BaseModel):
    order_id: uuid.UUID | None = None
    customization_request_id: uuid.UUID | None = None
    category: DisputeCategory
    description: str = Field(..., min_length=1, max_length=5000)
    evidence_urls: list[str] = Field(default_factory=list, max_length=MAX_EVIDENCE_FILES)


class EligibilityResponse(BaseModel):
    eligible: bool
    reason: str | None = None


class ResolveNegotiationRequest(BaseModel):
    outcome: ResolutionOutcome


class EscalateRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class AdminDecisionRequest(BaseModel):
    outcome: ResolutionOutcome
    reason: str = Field(..., min_length=1, max_length=2000)
    notes: str | None = None


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    target_type: DisputeTargetType
    order_id: uuid.UUID | None = None
    customization_request_id: uuid.UUID | None = None
    filed_by: uuid.UUID
    respondent_id: uuid.UUID
    category: DisputeCategory
    description: str
    evidence_urls: list[str] = []
    status: DisputeStatus
    filer_outcome: ResolutionOutcome | None = None
    respondent_outcome: ResolutionOutcome | None = None
    resolution_outcome: ResolutionOutcome | None = None
    resolution_reason: str | None = None
    admin_notes: str | None = None
    resolved_by: uuid.UUID | None = None
    filed_at: datetime
    negotiation_deadline: datetime
    resolved_at: datetime | None = None
    escalated_at: datetime | None = None
    escalated_by: uuid.UUID | None = None
    closed_at: datetime | None = None


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    total: int
    limit: int
    offset: int
