"""Issue persistence."""

import logging

from issue_investigator.config.settings import InvestigatorSettings

from .base import IssueStore
from .memory import InMemoryIssueStore
from .redis_store import RedisIssueStore

logger = logging.getLogger(__name__)


async def build_store(settings: InvestigatorSettings) -> IssueStore:
    """Create the store selected by ``STORE_BACKEND``."""
    if settings.store_backend == "redis":
        from issue_investigator.infrastructure.redis_setup import get_redis_client

        client = await get_redis_client()
        return RedisIssueStore(client)

    if settings.store_backend != "memory":
        logger.warning(f"Unknown STORE_BACKEND '{settings.store_backend}', using in-memory store")
    return InMemoryIssueStore()


__all__ = [
    "IssueStore",
    "InMemoryIssueStore",
    "RedisIssueStore",
    "build_store",
]
