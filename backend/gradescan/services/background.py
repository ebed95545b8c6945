"""
Background worker - periodic processing cache cleanup.
"""

import asyncio

from gradescan.config import logger
from gradescan.services.cache import ContentAddressedCache


async def run_cache_cleanup_worker(cache: ContentAddressedCache, interval_seconds: float = 3600):
    """
    Remove expired cache entries every interval_seconds until cancelled.
    A failed pass is logged and the loop keeps going.
    """
    logger.info("🔄 Cache cleanup worker started")
    try:
        while True:
            try:
                removed = await cache.cleanup_expired()
                logger.info(f"Cache cleanup removed {removed} expired in-memory entries")
            except Exception as e:
                logger.error(f"Cache cleanup error: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("✅ Cache cleanup worker stopped cleanly")
        raise
