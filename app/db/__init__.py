"""
Database module - ProfileStore backends (MongoDB, PostgreSQL, in-memory).
"""
from app.core.config import Settings
from app.db.base import ProfileStore
from app.db.memory import InMemoryProfileStore
from app.db.mongodb import MongoProfileStore
from app.db.postgres import SqlProfileStore


def build_store(settings: Settings) -> ProfileStore:
    """Create the store handle selected by STORE_BACKEND. Does not connect yet."""
    if settings.store_backend == "memory":
        return InMemoryProfileStore(orphan_grace_seconds=settings.orphan_grace_seconds)
    if settings.store_backend == "postgres":
        return SqlProfileStore(
            settings.postgres_url,
            orphan_grace_seconds=settings.orphan_grace_seconds,
            echo=settings.debug,
        )
    return MongoProfileStore(
        settings.mongodb_uri,
        settings.mongodb_db,
        orphan_grace_seconds=settings.orphan_grace_seconds,
        server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms,
        socket_timeout_ms=settings.mongodb_socket_timeout_ms,
    )


__all__ = [
    "ProfileStore",
    "InMemoryProfileStore",
    "MongoProfileStore",
    "SqlProfileStore",
    "build_store",
]
