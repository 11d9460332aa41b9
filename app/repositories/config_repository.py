"""
Repository for the singleton trending config row.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.models.trending_config import DEFAULT_CONFIG_ID, TrendingConfigRecord
from app.schemas.trending import TrendingConfig
from .base import BaseRepository

logger = logging.getLogger(__name__)


class ConfigRepository(BaseRepository[TrendingConfigRecord]):
    """Repository for trending configuration."""

    def __init__(self):
        super().__init__(TrendingConfigRecord)

    async def get_config(self, db: AsyncSession) -> Optional[TrendingConfig]:
        """
        Load the stored config.

        Args:
            db: Database session

        Returns:
            TrendingConfig, or None when nothing was stored yet
        """
        row = await self.get(db, DEFAULT_CONFIG_ID)
        if row is None:
            return None
        return TrendingConfig.model_validate(row)

    async def save_config(
        self,
        db: AsyncSession,
        config: TrendingConfig
    ) -> TrendingConfigRecord:
        values = config.model_dump()
        row = await self.get(db, DEFAULT_CONFIG_ID)
        if row is None:
            return await self.create(db, {"id": DEFAULT_CONFIG_ID, **values})

        for field, value in values.items():
            setattr(row, field, value)
        await db.flush()
        return row
