"""EventHandlerRegistry: central registry for outbox event handlers."""

import logging
from collections import defaultdict
from collections.abc import Callable

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# handler(session, payload) -> optional list of soft warnings
Handler = Callable[[Session, dict], list[str] | None]


class EventHandlerRegistry:
    """Singleton-style registry for event handlers.

    Handlers receive the worker's sync session and the event payload, so
    their writes commit together with the event's COMPLETED marker.
    Multiple handlers can be registered for the same event_type.
    """

    _handlers: dict[str, list[Handler]] = defaultdict(list)

    @classmethod
    def register(cls, event_type: str, handler: Handler) -> None:
        """Register a handler for a given event type."""
        if handler in cls._handlers[event_type]:
            return
        cls._handlers[event_type].append(handler)
        logger.info("Registered handler %s for event type %s", handler.__name__, event_type)

    @classmethod
    def get_handlers(cls, event_type: str) -> list[Handler]:
        """Return all handlers registered for the given event type."""
        return cls._handlers.get(event_type, [])

    @classmethod
    def dispatch(cls, session: Session, event_type: str, payload: dict) -> list[dict]:
        """Dispatch an event to all registered handlers.

        Returns a list of result dicts with handler name, status and any
        soft warnings. Errors are logged and captured but do not stop other
        handlers.
        """
        results = []
        for handler in cls.get_handlers(event_type):
            try:
                warnings = handler(session, payload) or []
                results.append({"handler": handler.__name__, "status": "ok", "warnings": warnings})
            except Exception as exc:
                logger.exception(
                    "Handler %s failed for event type %s", handler.__name__, event_type
                )
                results.append({
                    "handler": handler.__name__,
                    "status": "error",
                    "error": str(exc),
                })
        return results

    @classmethod
    def clear(cls) -> None:
        """Remove all registered handlers. Useful for testing."""
        cls._handlers.clear()
