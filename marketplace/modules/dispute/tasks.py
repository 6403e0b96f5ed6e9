"""Celery tasks for dispute deadline automation."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from marketplace.database.engine import async_session
from marketplace.modules.dispute.service import DisputeService

logger = logging.getLogger(__name__)


async def _escalate_overdue_disputes_async() -> dict:
    """Escalate NEGOTIATING disputes whose negotiation_deadline has passed."""
    stats = {"checked": 0, "escalated": 0, "errors": 0}

    async with async_session() as session:
        svc = DisputeService(session)
        overdue = await svc.find_overdue()
        stats["checked"] = len(overdue)

        for dispute_id in overdue:
            try:
                async with session.begin_nested():
                    if await svc.escalate_if_overdue(dispute_id):
                        stats["escalated"] += 1
            except Exception:
                logger.exception("Error auto-escalating dispute %s", dispute_id)
                stats["errors"] += 1

        await session.commit()

    return stats


@celery.task(name="marketplace.modules.dispute.tasks.escalate_overdue_disputes")
def escalate_overdue_disputes():
    """Move disputes past their negotiation window to the admin queue."""
    stats = asyncio.run(_escalate_overdue_disputes_async())
    logger.info("Dispute escalation sweep: %s", stats)
    return stats
