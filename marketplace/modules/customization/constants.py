"""Customization request state machine, event types, and party rules."""

from __future__ import annotations

from marketplace.models.enums import CustomizationStatus, CustomizationTransitionType

_CANCEL = {CustomizationTransitionType.CANCEL: CustomizationStatus.CANCELLED}

# Valid transitions: from_status -> {transition_type -> to_status}
VALID_TRANSITIONS: dict[CustomizationStatus, dict[CustomizationTransitionType, CustomizationStatus]] = {
    CustomizationStatus.PENDING_DESIGNER_REVIEW: {
        CustomizationTransitionType.CLAIM: CustomizationStatus.IN_PROGRESS,
        **_CANCEL,
    },
    CustomizationStatus.IN_PROGRESS: {
        CustomizationTransitionType.SELECT_SHOP: CustomizationStatus.IN_PROGRESS,
        CustomizationTransitionType.SUBMIT_FINAL: CustomizationStatus.AWAITING_CUSTOMER_APPROVAL,
        **_CANCEL,
    },
    CustomizationStatus.AWAITING_CUSTOMER_APPROVAL: {
        CustomizationTransitionType.APPROVE: CustomizationStatus.APPROVED,
        CustomizationTransitionType.REJECT: CustomizationStatus.REJECTED,
        **_CANCEL,
    },
    CustomizationStatus.APPROVED: {
        CustomizationTransitionType.COMPLETE: CustomizationStatus.COMPLETED,
        **_CANCEL,
    },
    CustomizationStatus.REJECTED: {
        CustomizationTransitionType.RESUBMIT: CustomizationStatus.IN_PROGRESS,
        **_CANCEL,
    },
}

# Terminal statuses (no further transitions possible)
TERMINAL_STATUSES: set[CustomizationStatus] = {
    CustomizationStatus.COMPLETED,
    CustomizationStatus.CANCELLED,
}

# Event type strings for the outbox
EVENT_CUSTOMIZATION_CREATED = "customization.created"
EVENT_CUSTOMIZATION_CLAIMED = "customization.claimed"
EVENT_CUSTOMIZATION_SHOP_SELECTED = "customization.shop_selected"
EVENT_CUSTOMIZATION_SUBMITTED = "customization.submitted"
EVENT_CUSTOMIZATION_APPROVED = "customization.approved"
EVENT_CUSTOMIZATION_REJECTED = "customization.rejected"
EVENT_CUSTOMIZATION_RESUBMITTED = "customization.resubmitted"
EVENT_CUSTOMIZATION_COMPLETED = "customization.completed"
EVENT_CUSTOMIZATION_CANCELLED = "customization.cancelled"

TRANSITION_EVENT_MAP: dict[CustomizationTransitionType, str] = {
    CustomizationTransitionType.CLAIM: EVENT_CUSTOMIZATION_CLAIMED,
    CustomizationTransitionType.SELECT_SHOP: EVENT_CUSTOMIZATION_SHOP_SELECTED,
    CustomizationTransitionType.SUBMIT_FINAL: EVENT_CUSTOMIZATION_SUBMITTED,
    CustomizationTransitionType.APPROVE: EVENT_CUSTOMIZATION_APPROVED,
    CustomizationTransitionType.REJECT: EVENT_CUSTOMIZATION_REJECTED,
    CustomizationTransitionType.RESUBMIT: EVENT_CUSTOMIZATION_RESUBMITTED,
    CustomizationTransitionType.COMPLETE: EVENT_CUSTOMIZATION_COMPLETED,
    CustomizationTransitionType.CANCEL: EVENT_CUSTOMIZATION_CANCELLED,
}
