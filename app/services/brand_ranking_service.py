"""
Brand-level ranking over retained interactions.

Every interaction is attributed to at most one brand: the brand carried by
the interaction (explicit, or inferred from a search term at ingest), else
the brand of its product. Brands are ordered by a weighted interaction score,
then by interaction count, then by name.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional

from app.models.interaction import InteractionType
from app.schemas.brand import (
    BrandAnalytics,
    BrandPerformance,
    BrandProduct,
    InteractionBreakdown,
)
from app.schemas.interaction import Interaction

logger = logging.getLogger(__name__)

BRAND_INTERACTION_WEIGHTS: Dict[InteractionType, float] = {
    InteractionType.PAGE_VIEW: 1.0,
    InteractionType.CATEGORY_VIEW: 2.0,
    InteractionType.PRODUCT_VIEW: 3.0,
    InteractionType.RESULT_CLICK: 5.0,
    InteractionType.SEARCH: 1.5,
}

_BREAKDOWN_FIELDS = {
    InteractionType.PAGE_VIEW: "page_views",
    InteractionType.CATEGORY_VIEW: "category_views",
    InteractionType.PRODUCT_VIEW: "product_views",
    InteractionType.RESULT_CLICK: "result_clicks",
    InteractionType.SEARCH: "searches",
}


def normalize_brand(brand: Optional[str]) -> Optional[str]:
    if not brand or not brand.strip():
        return None
    return brand.strip().upper()


def _rate(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


class BrandRankingService:
    """Aggregates interactions per brand and orders the brands."""

    def __init__(
        self,
        weights: Optional[Dict[InteractionType, float]] = None,
        top_products: int = 5
    ):
        self.weights = weights or BRAND_INTERACTION_WEIGHTS
        self.top_products = top_products

    def attribute(
        self,
        interaction: Interaction,
        product_brand: Callable[[str], Optional[str]]
    ) -> Optional[str]:
        brand = normalize_brand(interaction.brand)
        if brand is None and interaction.product_id:
            brand = normalize_brand(product_brand(interaction.product_id))
        return brand

    def rank(
        self,
        interactions: Iterable[Interaction],
        product_brand: Callable[[str], Optional[str]],
        product_names: Optional[Dict[str, str]] = None
    ) -> List[BrandAnalytics]:
        """
        Brand analytics ordered best first, ranks 1..n.

        Args:
            interactions: Retained interactions
            product_brand: Brand of a product id, or None when unknown
            product_names: Display names for top products
        """
        product_names = product_names or {}
        by_brand: Dict[str, List[Interaction]] = defaultdict(list)
        unattributed = 0

        for interaction in interactions:
            brand = self.attribute(interaction, product_brand)
            if brand is None:
                unattributed += 1
                continue
            by_brand[brand].append(interaction)

        analytics = [
            self._analyze(brand, brand_interactions, product_names)
            for brand, brand_interactions in by_brand.items()
        ]
        analytics.sort(key=lambda a: (-a.brand_score, -a.total_interactions, a.brand))

        ranked = [a.model_copy(update={"rank": position}) for position, a in enumerate(analytics, start=1)]
        logger.debug("Ranked %d brands (%d interactions without a brand)", len(ranked), unattributed)
        return ranked

    def _analyze(
        self,
        brand: str,
        interactions: List[Interaction],
        product_names: Dict[str, str]
    ) -> BrandAnalytics:
        breakdown = InteractionBreakdown()
        products: Dict[str, BrandProduct] = {}
        score = 0.0

        for interaction in interactions:
            score += self.weights.get(interaction.type, 1.0)
            field = _BREAKDOWN_FIELDS[interaction.type]
            setattr(breakdown, field, getattr(breakdown, field) + 1)

            if not interaction.product_id:
                continue
            product = products.get(interaction.product_id)
            if product is None:
                product = BrandProduct(
                    product_id=interaction.product_id,
                    name=product_names.get(interaction.product_id),
                )
                products[interaction.product_id] = product
            if interaction.type == InteractionType.PRODUCT_VIEW:
                product.views += 1
            elif interaction.type == InteractionType.RESULT_CLICK:
                product.clicks += 1

        for product in products.values():
            product.score = (
                product.views * self.weights[InteractionType.PRODUCT_VIEW]
                + product.clicks * self.weights[InteractionType.RESULT_CLICK]
            )
        top = sorted(products.values(), key=lambda p: (-p.score, p.product_id))[:self.top_products]

        total = len(interactions)
        views = breakdown.product_views
        clicks = breakdown.result_clicks
        return BrandAnalytics(
            brand=brand,
            rank=0,
            brand_score=score,
            total_interactions=total,
            product_count=len(products),
            interaction_breakdown=breakdown,
            conversion_rate=_rate(clicks, views),
            performance=BrandPerformance(
                engagement_rate=_rate(clicks + views, total),
                search_to_click_rate=_rate(clicks, breakdown.searches),
                view_to_click_rate=_rate(clicks, views),
            ),
            top_products=top,
            last_interaction=max(i.timestamp for i in interactions),
        )
