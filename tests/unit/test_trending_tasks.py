"""
Unit tests for the arq trending jobs.

The jobs call the admin API; an httpx.MockTransport stands in for it.
"""

from __future__ import annotations

import httpx
import pytest

from app.tasks.trending_tasks import prune_interactions, refresh_trending
from app.tasks.worker import WorkerSettings


def _ctx(handler) -> dict:
    return {"http_client": httpx.AsyncClient(transport=httpx.MockTransport(handler))}


class TestRefreshTrending:
    async def test_posts_force_update(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, str(request.url)))
            return httpx.Response(200, json={"updated": 4, "computed_at": "2026-03-02T12:00:00Z"})

        result = await refresh_trending(_ctx(handler))

        assert result["updated"] == 4
        assert seen == [("POST", "http://trending-api:8000/api/v1/admin/trending/force-update")]

    async def test_api_error_propagates_for_retry(self):
        with pytest.raises(httpx.HTTPStatusError):
            await refresh_trending(_ctx(lambda r: httpx.Response(503, json={"detail": "down"})))


class TestPruneInteractions:
    async def test_posts_prune(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/admin/trending/prune"
            return httpx.Response(200, json={"removed": 12})

        assert (await prune_interactions(_ctx(handler)))["removed"] == 12


class TestWorkerSettings:
    def test_cron_jobs_registered(self):
        names = {job.name for job in WorkerSettings.cron_jobs}
        assert names == {"cron:refresh_trending", "cron:prune_interactions"}
