"""Structural checks on the customization and dispute transition tables."""

from __future__ import annotations

from collections import deque

import pytest

from marketplace.models.enums import (
    CustomizationStatus,
    CustomizationTransitionType,
    DisputeStatus,
    DisputeTransitionType,
    OrderStatus,
)
from marketplace.modules.customization.constants import (
    TERMINAL_STATUSES as CUSTOMIZATION_TERMINAL,
    TRANSITION_EVENT_MAP,
    VALID_TRANSITIONS,
)
from marketplace.modules.dispute.constants import (
    TERMINAL_STATUSES as DISPUTE_TERMINAL,
    VALID_DISPUTE_TRANSITIONS,
)
from marketplace.modules.order.constants import VALID_ORDER_TRANSITIONS


def _reachable(table: dict, start) -> set:
    seen = {start}
    queue = deque([start])
    while queue:
        status = queue.popleft()
        for target in table.get(status, {}).values():
            if target not in seen:
                seen.add(target)
                queue.append(target)
    return seen


class TestCustomizationTable:
    def test_every_status_reachable_from_initial(self):
        reachable = _reachable(VALID_TRANSITIONS, CustomizationStatus.PENDING_DESIGNER_REVIEW)
        assert reachable == set(CustomizationStatus)

    def test_terminal_statuses_have_no_moves(self):
        for status in CUSTOMIZATION_TERMINAL:
            assert not VALID_TRANSITIONS.get(status)

    def test_cancel_allowed_from_every_open_status(self):
        for status in set(CustomizationStatus) - CUSTOMIZATION_TERMINAL:
            assert VALID_TRANSITIONS[status][CustomizationTransitionType.CANCEL] == (
                CustomizationStatus.CANCELLED
            )

    def test_every_transition_publishes_an_event(self):
        assert set(TRANSITION_EVENT_MAP) == set(CustomizationTransitionType)

    @pytest.mark.parametrize(
        "status,transition,target",
        [
            (CustomizationStatus.PENDING_DESIGNER_REVIEW, CustomizationTransitionType.CLAIM,
             CustomizationStatus.IN_PROGRESS),
            (CustomizationStatus.IN_PROGRESS, CustomizationTransitionType.SELECT_SHOP,
             CustomizationStatus.IN_PROGRESS),
            (CustomizationStatus.IN_PROGRESS, CustomizationTransitionType.SUBMIT_FINAL,
             CustomizationStatus.AWAITING_CUSTOMER_APPROVAL),
            (CustomizationStatus.AWAITING_CUSTOMER_APPROVAL, CustomizationTransitionType.REJECT,
             CustomizationStatus.REJECTED),
            (CustomizationStatus.REJECTED, CustomizationTransitionType.RESUBMIT,
             CustomizationStatus.IN_PROGRESS),
            (CustomizationStatus.APPROVED, CustomizationTransitionType.COMPLETE,
             CustomizationStatus.COMPLETED),
        ],
    )
    def test_documented_moves(self, status, transition, target):
        assert VALID_TRANSITIONS[status][transition] == target


class TestDisputeTable:
    def test_every_status_reachable_from_filed(self):
        assert _reachable(VALID_DISPUTE_TRANSITIONS, DisputeStatus.FILED) == set(DisputeStatus)

    def test_every_status_can_reach_closed(self):
        for status in DisputeStatus:
            assert DisputeStatus.CLOSED in _reachable(VALID_DISPUTE_TRANSITIONS, status)

    def test_closed_is_terminal(self):
        assert DISPUTE_TERMINAL == {DisputeStatus.CLOSED}
        assert DisputeStatus.CLOSED not in VALID_DISPUTE_TRANSITIONS

    def test_admin_decision_only_from_escalated(self):
        sources = [
            status
            for status, moves in VALID_DISPUTE_TRANSITIONS.items()
            if DisputeTransitionType.ADMIN_DECIDE in moves
        ]
        assert sources == [DisputeStatus.ESCALATED]


class TestOrderTable:
    def test_delivered_and_cancelled_are_final(self):
        assert OrderStatus.DELIVERED not in VALID_ORDER_TRANSITIONS
        assert OrderStatus.CANCELLED not in VALID_ORDER_TRANSITIONS
