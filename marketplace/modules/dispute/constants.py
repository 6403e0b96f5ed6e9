"""Dispute state machine transitions, event types, and filing rules."""

from __future__ import annotations

from marketplace.models.enums import (
    CustomizationStatus,
    DisputeStatus,
    DisputeTransitionType,
    OrderStatus,
)

# Valid transitions: from_status -> {transition_type -> to_status}
VALID_DISPUTE_TRANSITIONS: dict[DisputeStatus, dict[DisputeTransitionType, DisputeStatus]] = {
    DisputeStatus.FILED: {
        DisputeTransitionType.START_NEGOTIATION: DisputeStatus.NEGOTIATING,
        DisputeTransitionType.WITHDRAW: DisputeStatus.CLOSED,
    },
    DisputeStatus.NEGOTIATING: {
        DisputeTransitionType.RESOLVE: DisputeStatus.RESOLVED,
        DisputeTransitionType.ESCALATE: DisputeStatus.ESCALATED,
        DisputeTransitionType.WITHDRAW: DisputeStatus.CLOSED,
    },
    DisputeStatus.RESOLVED: {
        DisputeTransitionType.CLOSE: DisputeStatus.CLOSED,
    },
    DisputeStatus.ESCALATED: {
        DisputeTransitionType.ADMIN_DECIDE: DisputeStatus.CLOSED,
        DisputeTransitionType.WITHDRAW: DisputeStatus.CLOSED,
    },
}

# Terminal statuses (no further transitions possible)
TERMINAL_STATUSES: set[DisputeStatus] = {
    DisputeStatus.CLOSED,
}

# Target statuses a dispute may be filed against
DISPUTABLE_ORDER_STATUSES: set[OrderStatus] = {
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
}
DISPUTABLE_CUSTOMIZATION_STATUSES: set[CustomizationStatus] = {
    CustomizationStatus.IN_PROGRESS,
    CustomizationStatus.AWAITING_CUSTOMER_APPROVAL,
}

MAX_EVIDENCE_FILES = 5

# Ineligibility reasons returned by the eligibility checker
REASON_ALREADY_DISPUTED = "already disputed"
REASON_WINDOW_EXPIRED = "window expired"
REASON_NOT_A_PARTY = "not a party"
REASON_STATUS_NOT_DISPUTABLE = "status not disputable"
REASON_NO_COUNTERPARTY = "no counterparty"

# Event type strings for the outbox
EVENT_DISPUTE_FILED = "dispute.filed"
EVENT_DISPUTE_OUTCOME_PROPOSED = "dispute.outcome_proposed"
EVENT_DISPUTE_RESOLVED = "dispute.resolved"
EVENT_DISPUTE_ESCALATED = "dispute.escalated"
EVENT_DISPUTE_DECIDED = "dispute.decided"
EVENT_DISPUTE_CANCELLED = "dispute.cancelled"
