from marketplace.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from marketplace.database.engine import async_session, engine, sync_engine
from marketplace.database.session import get_db

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
    "sync_engine",
    "get_db",
]
