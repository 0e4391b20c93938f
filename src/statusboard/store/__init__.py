"""Storage backends for services, stat windows and incidents."""

from __future__ import annotations

import logging

from statusboard.config.models import StatusboardConfig
from statusboard.store.base import StatusStore, new_id
from statusboard.store.memory import InMemoryStore
from statusboard.store.sqlite import SqliteStore

logger = logging.getLogger(__name__)


def create_store(config: StatusboardConfig) -> StatusStore:
    """Build the store selected by ``config.store.backend``."""
    if config.store.backend == "memory":
        logger.info("Using in-memory store; data will not survive a restart")
        return InMemoryStore()
    return SqliteStore(config.store.db_path)


__all__ = ["InMemoryStore", "SqliteStore", "StatusStore", "create_store", "new_id"]
