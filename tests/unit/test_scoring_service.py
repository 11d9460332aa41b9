"""
Unit tests for ScoringService.

Trending score over windowed counts:
  views * 3 + clicks * 5 + searches * 1.5
A product whose last interaction is outside the window scores 0.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.trending import ProductMetrics, ScoringWeights
from app.services.scoring_service import ScoringService

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=24)
WEIGHTS = ScoringWeights()


def _metrics(
    product_id: str = "samsung-s24",
    views: int = 0,
    clicks: int = 0,
    searches: int = 0,
    hours_since_last: float = 1,
) -> ProductMetrics:
    return ProductMetrics(
        product_id=product_id,
        views=views,
        clicks=clicks,
        searches=searches,
        first_interaction=NOW - timedelta(hours=hours_since_last),
        last_interaction=NOW - timedelta(hours=hours_since_last),
    )


# ---------------------------------------------------------------------------
# calculate_raw_score
# ---------------------------------------------------------------------------
class TestCalculateRawScore:
    def test_default_weights(self):
        assert ScoringService.calculate_raw_score(1, 0, 0, WEIGHTS) == 3.0
        assert ScoringService.calculate_raw_score(0, 1, 0, WEIGHTS) == 5.0
        assert ScoringService.calculate_raw_score(0, 0, 1, WEIGHTS) == 1.5

    def test_custom_weights(self):
        weights = ScoringWeights(product_view=1.0, result_click=2.0, search=0.5)
        assert ScoringService.calculate_raw_score(2, 3, 4, weights) == 10.0

    def test_no_rounding(self):
        assert ScoringService.calculate_raw_score(0, 0, 3, WEIGHTS) == 4.5


# ---------------------------------------------------------------------------
# score
# ---------------------------------------------------------------------------
class TestScore:
    def test_samsung_s24_scenario(self):
        """10 views, 5 clicks, 3 searches inside the window -> 59.5"""
        metrics = _metrics(views=10, clicks=5, searches=3)
        assert ScoringService.score(metrics, NOW, WEIGHTS, WINDOW) == 59.5

    def test_outside_window_scores_zero(self):
        metrics = _metrics(views=100, hours_since_last=25)
        assert ScoringService.score(metrics, NOW, WEIGHTS, WINDOW) == 0.0

    def test_window_boundary_is_inclusive(self):
        metrics = _metrics(views=1, hours_since_last=24)
        assert ScoringService.score(metrics, NOW, WEIGHTS, WINDOW) == 3.0

    def test_no_interactions_scores_zero(self):
        metrics = ProductMetrics(product_id="never-seen")
        assert ScoringService.score(metrics, NOW, WEIGHTS, WINDOW) == 0.0

    def test_deterministic(self):
        metrics = _metrics(views=7, clicks=2, searches=9)
        results = {ScoringService.score(metrics, NOW, WEIGHTS, WINDOW) for _ in range(5)}
        assert len(results) == 1


# ---------------------------------------------------------------------------
# score_all
# ---------------------------------------------------------------------------
class TestScoreAll:
    def test_zero_scores_are_excluded(self):
        scored = ScoringService.score_all(
            [_metrics("a", views=1), _metrics("b"), _metrics("c", views=5, hours_since_last=48)],
            NOW, WEIGHTS, WINDOW,
        )
        assert [m.product_id for m in scored] == ["a"]
        assert scored[0].trending_score == 3.0

    def test_input_is_not_mutated(self):
        original = _metrics("a", clicks=2)
        ScoringService.score_all([original], NOW, WEIGHTS, WINDOW)
        assert original.trending_score == 0.0

    def test_bad_record_is_skipped(self):
        # naive datetime cannot be compared with an aware one
        bad = ProductMetrics(product_id="bad", views=3, last_interaction=datetime(2026, 3, 2, 11, 0))
        scored = ScoringService.score_all([bad, _metrics("good", views=1)], NOW, WEIGHTS, WINDOW)
        assert [m.product_id for m in scored] == ["good"]
