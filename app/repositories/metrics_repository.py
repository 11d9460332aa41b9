"""
Repository for persisted product metrics (trending_products table).
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.trending_product import TrendingProduct
from app.schemas.trending import ProductMetrics
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MetricsRepository(BaseRepository[TrendingProduct]):
    """Repository for product metric rows, one per product id."""

    def __init__(self):
        super().__init__(TrendingProduct)

    async def get_by_product_id(
        self,
        db: AsyncSession,
        product_id: str
    ) -> Optional[TrendingProduct]:
        try:
            stmt = select(TrendingProduct).where(TrendingProduct.product_id == product_id)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching metrics for {product_id}: {e}")
            raise

    async def upsert(
        self,
        db: AsyncSession,
        metrics: ProductMetrics
    ) -> TrendingProduct:
        """
        Write the in-memory record for a product.

        The in-memory counters are authoritative, so the row is overwritten
        rather than incremented.

        Args:
            db: Database session
            metrics: Current metrics of the product

        Returns:
            TrendingProduct row
        """
        values = {
            "brand": metrics.brand,
            "total_views": metrics.views,
            "total_clicks": metrics.clicks,
            "total_searches": metrics.searches,
            "trending_score": metrics.trending_score,
            "first_interaction": metrics.first_interaction,
            "last_interaction": metrics.last_interaction,
        }

        existing = await self.get_by_product_id(db, metrics.product_id)
        if existing is None:
            return await self.create(db, {"product_id": metrics.product_id, **values})

        for field, value in values.items():
            setattr(existing, field, value)
        await db.flush()
        return existing

    async def update_scores(
        self,
        db: AsyncSession,
        scores: Dict[str, float]
    ) -> None:
        """
        Store the scores of a recompute; products missing from *scores* are reset to 0.

        Args:
            db: Database session
            scores: product_id -> trending score
        """
        try:
            await db.execute(update(TrendingProduct).values(trending_score=0.0))
            for product_id, score in scores.items():
                await db.execute(
                    update(TrendingProduct)
                    .where(TrendingProduct.product_id == product_id)
                    .values(trending_score=score)
                )
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating trending scores: {e}")
            await db.rollback()
            raise

    async def list_metrics(self, db: AsyncSession) -> List[ProductMetrics]:
        rows = await self.get_all(db)
        return [
            ProductMetrics(
                product_id=row.product_id,
                brand=row.brand,
                views=row.total_views,
                clicks=row.total_clicks,
                searches=row.total_searches,
                first_interaction=row.first_interaction,
                last_interaction=row.last_interaction,
                trending_score=row.trending_score,
            )
            for row in rows
        ]
