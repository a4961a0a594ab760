"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from socialnet.config import get_settings
from socialnet.db import DbClient, InMemoryDbClient, SqlDbClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so stored documents persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    logger.info("Using DB client: %s", _db_client.__class__.__name__)
    return _db_client
