import logging
from typing import List, Optional
from datetime import datetime, timedelta
from app.schemas.trending import ProductMetrics, ScoringWeights

logger = logging.getLogger(__name__)


class ScoringService:
    """Service for scoring trending products from windowed interaction counts"""

    @staticmethod
    def calculate_raw_score(views: int, clicks: int, searches: int, weights: ScoringWeights) -> float:
        """Weighted sum of the interaction counters (no rounding)"""
        return (
            views * weights.product_view +
            clicks * weights.result_click +
            searches * weights.search
        )

    @staticmethod
    def is_within_window(last_interaction: Optional[datetime], now: datetime, window: timedelta) -> bool:
        """True when the last interaction falls inside the rolling recency window"""
        if last_interaction is None:
            return False
        return now - last_interaction <= window

    @staticmethod
    def score(
        metrics: ProductMetrics,
        now: datetime,
        weights: ScoringWeights,
        window: timedelta
    ) -> float:
        """Trending score for one product.

        Score = views * w_view + clicks * w_click + searches * w_search

        The counters are expected to be windowed already; a product whose
        last interaction is older than the window scores 0.
        """
        if not ScoringService.is_within_window(metrics.last_interaction, now, window):
            return 0.0

        return ScoringService.calculate_raw_score(
            metrics.views, metrics.clicks, metrics.searches, weights
        )

    @staticmethod
    def score_all(
        metrics: List[ProductMetrics],
        now: datetime,
        weights: ScoringWeights,
        window: timedelta
    ) -> List[ProductMetrics]:
        """Score every product, dropping zero scores.

        A product whose data cannot be scored is logged and skipped so the
        rest of the ranking still computes.
        """
        scored = []
        for record in metrics:
            try:
                value = ScoringService.score(record, now, weights, window)
            except Exception:
                logger.warning("Failed to score product %s", record.product_id, exc_info=True)
                continue

            if value <= 0:
                continue

            scored.append(record.model_copy(update={"trending_score": value}))

        return scored
