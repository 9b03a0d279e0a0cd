"""
Datastore Factory

Provides a single entry point for obtaining a datastore instance.
Automatically selects Mock or Supabase based on ENV_MODE configuration.

Usage:
    from festa.services.datastore import get_datastore

    store = get_datastore()
    foods = await store.list_foods()

Environment Switching:
    - ENV_MODE=development → MockDatastore (in-memory tables)
    - ENV_MODE=staging → SupabaseDatastore
    - ENV_MODE=production → SupabaseDatastore
"""

import logging
from functools import lru_cache

from festa.core.config import get_settings
from festa.services.datastore.base import BaseDatastore
from festa.services.datastore.mock import MockDatastore
from festa.services.datastore.supabase import SupabaseDatastore

logger = logging.getLogger(__name__)


@lru_cache()
def get_datastore() -> BaseDatastore:
    """
    Get the configured datastore instance.

    The instance is cached so the whole process shares one HTTP connection
    pool (or, in development, one set of in-memory tables).

    Raises:
        ValueError: If not in development mode and Supabase is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Datastore: Using MockDatastore (development mode)")
        return MockDatastore()
    else:
        logger.info(
            f"Datastore: Using SupabaseDatastore "
            f"({settings.env_mode.value} mode)"
        )
        return SupabaseDatastore()


def reset_datastore() -> None:
    """
    Clear the cached datastore instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_datastore.cache_clear()
    logger.debug("Datastore cache cleared")


__all__ = [
    "get_datastore",
    "reset_datastore",
    "BaseDatastore",
    "MockDatastore",
    "SupabaseDatastore",
]
