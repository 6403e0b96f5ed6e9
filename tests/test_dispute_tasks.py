"""Tests for the overdue-dispute escalation sweep task."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from marketplace.modules.dispute.tasks import (
    _escalate_overdue_disputes_async,
    escalate_overdue_disputes,
)


def _async_cm(value=None):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.commit = AsyncMock()
    session.begin_nested = MagicMock(side_effect=lambda: _async_cm())
    return session


@pytest.fixture
def mock_session_factory(mock_session):
    return MagicMock(return_value=_async_cm(mock_session))


class TestEscalationSweep:
    @pytest.mark.asyncio
    async def test_counts_escalated_and_skipped(self, mock_session, mock_session_factory):
        overdue = [uuid.uuid4(), uuid.uuid4(), uuid.uuid4()]
        svc = MagicMock()
        svc.find_overdue = AsyncMock(return_value=overdue)
        # The middle dispute was resolved between the scan and the update
        svc.escalate_if_overdue = AsyncMock(side_effect=[True, False, True])

        with (
            patch("marketplace.modules.dispute.tasks.async_session", mock_session_factory),
            patch("marketplace.modules.dispute.tasks.DisputeService", return_value=svc),
        ):
            stats = await _escalate_overdue_disputes_async()

        assert stats == {"checked": 3, "escalated": 2, "errors": 0}
        assert mock_session.begin_nested.call_count == 3
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_on_one_dispute_does_not_stop_sweep(self, mock_session, mock_session_factory):
        overdue = [uuid.uuid4(), uuid.uuid4()]
        svc = MagicMock()
        svc.find_overdue = AsyncMock(return_value=overdue)
        svc.escalate_if_overdue = AsyncMock(side_effect=[RuntimeError("deadlock"), True])

        with (
            patch("marketplace.modules.dispute.tasks.async_session", mock_session_factory),
            patch("marketplace.modules.dispute.tasks.DisputeService", return_value=svc),
        ):
            stats = await _escalate_overdue_disputes_async()

        assert stats == {"checked": 2, "escalated": 1, "errors": 1}

    @pytest.mark.asyncio
    async def test_nothing_overdue(self, mock_session, mock_session_factory):
        svc = MagicMock()
        svc.find_overdue = AsyncMock(return_value=[])
        svc.escalate_if_overdue = AsyncMock()

        with (
            patch("marketplace.modules.dispute.tasks.async_session", mock_session_factory),
            patch("marketplace.modules.dispute.tasks.DisputeService", return_value=svc),
        ):
            stats = await _escalate_overdue_disputes_async()

        assert stats == {"checked": 0, "escalated": 0, "errors": 0}
        svc.escalate_if_overdue.assert_not_awaited()


def test_celery_task_runs_sweep():
    expected = {"checked": 1, "escalated": 1, "errors": 0}
    with patch(
        "marketplace.modules.dispute.tasks._escalate_overdue_disputes_async",
        AsyncMock(return_value=expected),
    ):
        assert escalate_overdue_disputes() == expected
