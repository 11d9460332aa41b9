"""
Periodic trending jobs.

The ranking state lives in the API process, so the worker does not touch it
directly: each job calls the admin API over HTTP.
"""

import logging

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "/api/v1/admin/trending"


async def _post_admin(ctx: dict, path: str) -> dict:
    http_client: httpx.AsyncClient | None = ctx.get("http_client")
    url = f"{settings.api_base_url.rstrip('/')}{ADMIN_PREFIX}{path}"

    if http_client is not None:
        response = await http_client.post(url)
    else:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(url)

    response.raise_for_status()
    return response.json()


async def refresh_trending(ctx: dict) -> dict:
    """
    Force a trending recompute.

    Errors propagate so arq records the failure and retries the job.
    """
    result = await _post_admin(ctx, "/force-update")
    logger.info("Trending refreshed: %s products ranked", result.get("updated"))
    return result


async def prune_interactions(ctx: dict) -> dict:
    """Drop interactions older than the retention period."""
    result = await _post_admin(ctx, "/prune")
    logger.info("Pruned %s interactions", result.get("removed"))
    return result
