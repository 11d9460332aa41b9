"""
Rank assignment for scored products.

Sort order: score descending, then the more recent ``last_interaction``
first, then ``product_id`` ascending. The first three products get ranks
1..3. Outside the top three, products whose first-ever interaction is inside
the new-item window are marked "new"; everything else gets contiguous ranks
starting at 4.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.schemas.trending import NEW_POSITION, NUMERIC_POSITIONS, ProductMetrics, RankedProduct

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

TOP_POSITIONS = len(NUMERIC_POSITIONS)


def sort_key(metrics: ProductMetrics) -> tuple:
    last = metrics.last_interaction or _EPOCH
    return (-metrics.trending_score, -last.timestamp(), metrics.product_id)


def is_new_item(first_interaction: Optional[datetime], now: datetime, window: timedelta) -> bool:
    if first_interaction is None:
        return False
    return now - first_interaction <= window


class RankService:
    """Turns scored metrics into ordered, ranked entries."""

    def __init__(self, new_item_window: timedelta = timedelta(hours=24), max_items: int = 10):
        self.new_item_window = new_item_window
        self.max_items = max_items

    def rank(self, scored: List[ProductMetrics], now: datetime) -> List[RankedProduct]:
        ordered = sorted(scored, key=sort_key)

        top: List[RankedProduct] = []
        new_items: List[RankedProduct] = []
        rest: List[RankedProduct] = []

        for metrics in ordered:
            if len(top) < TOP_POSITIONS:
                top.append(self._entry(metrics, len(top) + 1))
            elif is_new_item(metrics.first_interaction, now, self.new_item_window):
                new_items.append(self._entry(metrics, NEW_POSITION))
            else:
                rest.append(self._entry(metrics, TOP_POSITIONS + len(rest) + 1))

        entries = (top + new_items + rest)[:self.max_items]
        logger.debug(
            "Ranked %d products (%d top, %d new, %d other)",
            len(ordered), len(top), len(new_items), len(rest)
        )
        return entries

    @staticmethod
    def _entry(metrics: ProductMetrics, rank) -> RankedProduct:
        return RankedProduct(
            product_id=metrics.product_id,
            brand=metrics.brand,
            score=metrics.trending_score,
            rank=rank,
            views=metrics.views,
            clicks=metrics.clicks,
            searches=metrics.searches,
            first_interaction=metrics.first_interaction,
            last_interaction=metrics.last_interaction,
        )
