"""OutboxService: publishes workflow events inside the caller's transaction."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.enums import EventStatus
from marketplace.models.event_outbox import EventOutbox


class OutboxService:
    """Writes events to the outbox; the Celery drain delivers them later."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status.

        The row is only flushed, so it commits or rolls back together with
        the state change that produced it.
        """
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
            schema_version=schema_version,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_pending_events(
        self, aggregate_id: str | None = None, batch_size: int = 50
    ) -> list[EventOutbox]:
        """Get pending events oldest first, optionally for one aggregate."""
        statement = select(EventOutbox).where(EventOutbox.status == EventStatus.PENDING)
        if aggregate_id is not None:
            statement = statement.where(EventOutbox.aggregate_id == aggregate_id)
        statement = statement.order_by(EventOutbox.created_at.asc()).limit(batch_size)
        result = await self.session.execute(statement)
        return list(result.scalars().all())
