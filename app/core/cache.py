import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from app.core.config import settings
from app.schemas.trending import RankingSnapshot

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None

SNAPSHOT_KEY = "trending:snapshot"


# ── Connection pool ───────────────────────────────────────────────────────────

async def get_redis_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        logger.info("Redis connection pool created: %s", settings.redis_url)
    return _pool


async def get_redis() -> Redis:
    pool = await get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None
        logger.info("Redis connection pool closed")


# ── Ranking snapshot mirror ───────────────────────────────────────────────────

async def get_cached_snapshot() -> Optional[RankingSnapshot]:
    """Return the last mirrored ranking snapshot, or None on miss/error."""
    try:
        r = await get_redis()
        raw = await r.get(SNAPSHOT_KEY)
        if raw:
            return RankingSnapshot.model_validate_json(raw)
    except Exception:
        logger.warning("Snapshot cache read failed", exc_info=True)
    return None


async def set_cached_snapshot(snapshot: RankingSnapshot, ttl: Optional[int] = None) -> None:
    """Mirror a published snapshot so it survives a restart."""
    try:
        r = await get_redis()
        await r.setex(
            SNAPSHOT_KEY,
            ttl or settings.snapshot_mirror_ttl,
            snapshot.model_dump_json(),
        )
    except Exception:
        logger.warning("Snapshot cache write failed", exc_info=True)


async def invalidate_snapshot_cache() -> None:
    """Delete the mirrored snapshot."""
    try:
        r = await get_redis()
        await r.delete(SNAPSHOT_KEY)
    except Exception:
        logger.warning("Snapshot cache invalidation failed", exc_info=True)
