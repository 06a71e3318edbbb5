"""Token store lifecycle management."""

import logging

from truedope.cache.store import MemoryTokenStore, RedisTokenStore, TokenStore
from truedope.config.settings import Settings

logger = logging.getLogger(__name__)

# Global token store
_token_store: TokenStore | None = None


def build_token_store(config: Settings) -> TokenStore:
    """Create the backend selected by configuration."""
    if config.redis_url is None:
        logger.warning("REDIS_URL not set, using in-memory token store (single process only)")
        return MemoryTokenStore()

    logger.info(f"Connecting to token store at {config.redis_url.split('@')[-1]}")
    return RedisTokenStore(
        config.redis_url,
        timeout_seconds=config.store_timeout_seconds,
        retry_backoff_seconds=config.store_retry_backoff_seconds,
    )


async def init_token_store(config: Settings) -> TokenStore:
    """Initialize the global token store and verify connectivity."""
    global _token_store

    _token_store = build_token_store(config)
    if not await _token_store.ping():
        logger.warning("Token store did not answer ping; requests needing it will fail with 503")
    return _token_store


async def close_token_store() -> None:
    """Close the token store gracefully."""
    global _token_store

    if _token_store is not None:
        await _token_store.close()
        _token_store = None
        logger.info("Token store closed")


def get_token_store() -> TokenStore:
    """FastAPI dependency returning the active token store."""
    if _token_store is None:
        raise RuntimeError("Token store not initialized. Call init_token_store() first.")
    return _token_store
