import logging

import httpx
from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.tasks.trending_tasks import refresh_trending, prune_interactions

logger = logging.getLogger(__name__)


async def on_startup(ctx: dict) -> None:
    ctx["http_client"] = httpx.AsyncClient(timeout=10.0)
    logger.info(
        "ARQ worker started. Functions: refresh_trending, prune_interactions; "
        "API: %s", settings.api_base_url
    )


async def on_shutdown(ctx: dict) -> None:
    http_client: httpx.AsyncClient | None = ctx.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    logger.info("ARQ worker shut down. HTTP client closed.")


class WorkerSettings:
    functions = [
        refresh_trending,
        prune_interactions,
    ]
    cron_jobs = [
        cron(refresh_trending, minute=set(settings.refresh_cron_minutes), run_at_startup=True),
        cron(prune_interactions, hour={3}, minute={15}),  # daily, off-peak
    ]
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    max_jobs = 10
    job_timeout = 60    # recompute is short; anything longer is a stuck API
    max_tries = 3       # Retry up to 3 times on failure
    on_startup = on_startup
    on_shutdown = on_shutdown
