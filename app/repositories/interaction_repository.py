"""
Repository for user interaction database operations.
"""

from typing import List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.interaction import UserInteraction
from app.schemas.interaction import Interaction
from .base import BaseRepository

logger = logging.getLogger(__name__)


class InteractionRepository(BaseRepository[UserInteraction]):
    """Repository for interaction log operations."""

    def __init__(self):
        super().__init__(UserInteraction)

    async def add(
        self,
        db: AsyncSession,
        interaction: Interaction
    ) -> UserInteraction:
        """
        Append one interaction to the log.

        Args:
            db: Database session
            interaction: Validated interaction event

        Returns:
            Created UserInteraction row
        """
        return await self.create(db, interaction.model_dump())

    async def list_since(
        self,
        db: AsyncSession,
        cutoff: datetime
    ) -> List[UserInteraction]:
        """
        Interactions at or after *cutoff*, oldest first.

        Args:
            db: Database session
            cutoff: Earliest timestamp to include

        Returns:
            List of UserInteraction rows
        """
        try:
            stmt = (
                select(UserInteraction)
                .where(UserInteraction.timestamp >= cutoff)
                .order_by(UserInteraction.timestamp.asc())
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching interactions since {cutoff}: {e}")
            raise

    async def delete_older_than(
        self,
        db: AsyncSession,
        cutoff: datetime
    ) -> int:
        """
        Prune interactions older than *cutoff*.

        Args:
            db: Database session
            cutoff: Interactions with an earlier timestamp are deleted

        Returns:
            Number of rows deleted
        """
        try:
            stmt = delete(UserInteraction).where(UserInteraction.timestamp < cutoff)
            result = await db.execute(stmt)
            await db.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error pruning interactions before {cutoff}: {e}")
            await db.rollback()
            raise
