"""
Integration tests for the trending read and ingest endpoints.

Covers:
  POST /api/v1/trending/interactions
  POST /api/v1/trending/interactions/batch
  GET  /api/v1/trending/interactions/stats
  GET  /api/v1/trending
  GET  /api/v1/trending/badges
"""

from __future__ import annotations

from unittest.mock import MagicMock

from httpx import AsyncClient

BASE = "/api/v1/trending"


async def _track(client: AsyncClient, type_: str, product_id: str | None, times: int = 1, **extra):
    for _ in range(times):
        payload = {"type": type_, "product_id": product_id, "session_id": "sess-42", **extra}
        response = await client.post(f"{BASE}/interactions", json=payload)
        assert response.status_code == 201


# ---------------------------------------------------------------------------
# POST /interactions
# ---------------------------------------------------------------------------
class TestTrackInteraction:
    async def test_records_interaction(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{BASE}/interactions",
            json={"type": "search", "search_term": "galaxy s24", "session_id": "s1"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["type"] == "search"
        assert data["brand"] == "SAMSUNG"
        assert data["timestamp"].startswith("2026-03-02T12:00:00")

    async def test_missing_session_id_returns_400(self, async_client: AsyncClient):
        response = await async_client.post(f"{BASE}/interactions", json={"type": "page_view"})
        assert response.status_code == 400
        assert "session_id" in response.json()["detail"]

    async def test_unknown_type_returns_400(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{BASE}/interactions", json={"type": "wishlist", "session_id": "s1"}
        )
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Batch and stats
# ---------------------------------------------------------------------------
class TestBatchAndStats:
    async def test_batch_reports_rejected_items(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{BASE}/interactions/batch",
            json={"interactions": [
                {"type": "product_view", "product_id": "pixel-8", "session_id": "s1"},
                {"type": "product_view", "product_id": "pixel-8"},
                {"type": "category_view", "category": "phones", "session_id": "s1"},
            ]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] == 2
        assert data["rejected"][0]["index"] == 1

    async def test_stats(self, async_client: AsyncClient):
        await _track(async_client, "page_view", None)
        await _track(async_client, "product_view", "pixel-8", 2)

        response = await async_client.get(f"{BASE}/interactions/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["total_interactions"] == 3
        assert data["by_type"]["product_view"] == 2
        assert len(data["recent_interactions"]) == 3


# ---------------------------------------------------------------------------
# GET /trending
# ---------------------------------------------------------------------------
class TestGetTrending:
    async def test_ranking_with_badges(self, async_client: AsyncClient):
        await _track(async_client, "product_view", "samsung-s24", 10)
        await _track(async_client, "result_click", "samsung-s24", 5)
        await _track(async_client, "search", "samsung-s24", 3)
        await _track(async_client, "product_view", "pixel-8", 2)

        response = await async_client.get(BASE)
        assert response.status_code == 200
        data = response.json()

        first, second = data["trending"]
        assert first["product_id"] == "samsung-s24"
        assert first["trending_score"] == 59.5
        assert first["rank"] == 1
        assert first["has_fire_badge"] is True
        assert first["fire_badge_position"] == 1
        assert first["fire_badge_time_remaining_ms"] == 7_200_000
        assert second["fire_badge_time_remaining_ms"] == 3_600_000
        assert data["cached"] is False
        assert data["config"]["update_interval_minutes"] == 5

    async def test_second_read_is_cached(self, async_client: AsyncClient):
        await _track(async_client, "product_view", "pixel-8")
        await async_client.get(BASE)
        response = await async_client.get(BASE)
        assert response.json()["cached"] is True

    async def test_filters(self, async_client: AsyncClient):
        await _track(async_client, "product_view", "samsung-s24", 2)
        await _track(async_client, "product_view", "iphone-15")

        response = await async_client.get(BASE, params={"brand": "Samsung"})
        assert [i["product_id"] for i in response.json()["trending"]] == ["samsung-s24"]

        response = await async_client.get(BASE, params={"limit": 1, "force": "true"})
        data = response.json()
        assert len(data["trending"]) == 1
        assert data["total_products"] == 2

    async def test_invalid_limit_rejected(self, async_client: AsyncClient):
        response = await async_client.get(BASE, params={"limit": 0})
        assert response.status_code == 422

    async def test_unavailable_returns_503(self, async_client: AsyncClient, trending_service):
        trending_service.rank_service.rank = MagicMock(side_effect=RuntimeError("boom"))
        response = await async_client.get(BASE)
        assert response.status_code == 503


# ---------------------------------------------------------------------------
# GET /trending/badges
# ---------------------------------------------------------------------------
class TestBadges:
    async def test_live_badges(self, async_client: AsyncClient, clock):
        await _track(async_client, "product_view", "samsung-s24", 3)
        await _track(async_client, "product_view", "pixel-8", 2)
        await _track(async_client, "product_view", "iphone-15", 1)
        await async_client.get(BASE)

        response = await async_client.get(f"{BASE}/badges")
        assert {b["product_id"] for b in response.json()} == {"samsung-s24", "pixel-8", "iphone-15"}

        clock.advance(minutes=45)
        response = await async_client.get(f"{BASE}/badges")
        assert {b["product_id"] for b in response.json()} == {"samsung-s24", "pixel-8"}


# ---------------------------------------------------------------------------
# GET /trending/brands
# ---------------------------------------------------------------------------
class TestBrands:
    async def test_brand_ranking(self, async_client: AsyncClient):
        await _track(async_client, "product_view", "iphone-15", 2)
        await _track(async_client, "search", None, search_term="galaxy s24")

        response = await async_client.get(f"{BASE}/brands")
        assert response.status_code == 200
        data = response.json()
        assert [(b["brand"], b["brand_score"]) for b in data["brands"]] == [("APPLE", 6.0), ("SAMSUNG", 1.5)]
        assert data["top_brand"] == "APPLE"
        assert data["brands"][0]["top_products"][0]["product_id"] == "iphone-15"

    async def test_brand_filter(self, async_client: AsyncClient):
        await _track(async_client, "product_view", "iphone-15")
        await _track(async_client, "product_view", "pixel-8")

        response = await async_client.get(f"{BASE}/brands", params={"brand": "Google"})
        assert [b["brand"] for b in response.json()["brands"]] == ["GOOGLE"]

    async def test_invalid_limit_rejected(self, async_client: AsyncClient):
        response = await async_client.get(f"{BASE}/brands", params={"limit": 0})
        assert response.status_code == 422
