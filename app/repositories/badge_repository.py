"""
Repository for fire badge database operations.
"""

from typing import List, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.fire_badge import FireBadgeRecord
from app.schemas.trending import NEW_POSITION, FireBadge
from .base import BaseRepository

logger = logging.getLogger(__name__)


class BadgeRepository(BaseRepository[FireBadgeRecord]):
    """Repository for fire badge operations."""

    def __init__(self):
        super().__init__(FireBadgeRecord)

    async def save(
        self,
        db: AsyncSession,
        badge: FireBadge
    ) -> FireBadgeRecord:
        """
        Insert a badge or update the row with the same id.

        Only ``is_active`` ever changes after creation; start and end times
        are written once.

        Args:
            db: Database session
            badge: Badge to persist

        Returns:
            FireBadgeRecord row
        """
        existing = await self.get(db, badge.id)
        if existing is None:
            return await self.create(db, {
                "id": badge.id,
                "product_id": badge.product_id,
                "position": str(badge.position),
                "start_time": badge.start_time,
                "end_time": badge.end_time,
                "is_active": badge.is_active,
                "is_manual": badge.is_manual,
            })

        existing.is_active = badge.is_active
        await db.flush()
        return existing

    async def list_active(self, db: AsyncSession) -> List[FireBadge]:
        """
        All badges still flagged active.

        Args:
            db: Database session

        Returns:
            List of FireBadge
        """
        try:
            stmt = select(FireBadgeRecord).where(FireBadgeRecord.is_active == True)
            result = await db.execute(stmt)
            return [
                FireBadge(
                    id=row.id,
                    product_id=row.product_id,
                    position=row.position,
                    start_time=row.start_time,
                    end_time=row.end_time,
                    is_active=row.is_active,
                    is_manual=row.is_manual,
                )
                for row in result.scalars().all()
            ]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching active badges: {e}")
            raise

    async def new_badge_product_ids(self, db: AsyncSession) -> Set[str]:
        """Products that have ever held a "new" badge."""
        try:
            stmt = select(FireBadgeRecord.product_id).where(FireBadgeRecord.position == NEW_POSITION)
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching new-badge history: {e}")
            raise
