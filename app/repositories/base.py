"""
Base repository implementing common operations using SQLAlchemy 2.0.

This module provides a generic repository that the trending stores extend.
It handles basic database operations with async/await patterns and error
handling: SQLAlchemy errors are logged and re-raised to the caller.
"""

from __future__ import annotations
from typing import Generic, TypeVar, Type, Optional, Any
from sqlalchemy import select, func, delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

# Generic type variable for the model
T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic base repository.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages

    Example:
        class BadgeRepository(BaseRepository[FireBadgeRecord]):
            def __init__(self):
                super().__init__(FireBadgeRecord)
    """

    def __init__(self, model: Type[T]):
        """
        Initialize the repository with a model class.

        Args:
            model: The SQLAlchemy model class to manage
        """
        self.model = model

    async def get(
        self,
        db: AsyncSession,
        id: Any
    ) -> Optional[T]:
        """
        Retrieve a single record by primary key.

        Args:
            db: Active database session
            id: Primary key of the record

        Returns:
            Model instance if found, None otherwise
        """
        try:
            stmt = select(self.model).where(self.model.id == id)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {self.model.__name__} by id {id}: {e}")
            raise

    async def get_all(self, db: AsyncSession) -> list[T]:
        """
        Retrieve every record of the table.

        Args:
            db: Active database session

        Returns:
            List of model instances
        """
        try:
            result = await db.execute(select(self.model))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching all {self.model.__name__}: {e}")
            raise

    async def count(self, db: AsyncSession) -> int:
        try:
            result = await db.execute(select(func.count()).select_from(self.model))
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model.__name__}: {e}")
            raise

    async def create(
        self,
        db: AsyncSession,
        obj_in: dict
    ) -> T:
        """
        Create a new record.

        Args:
            db: Active database session
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance

        Raises:
            IntegrityError: If constraints are violated (e.g., duplicate product_id)

        Example:
            row = await repo.create(db, {"product_id": "samsung-s24"})
            await db.commit()
        """
        try:
            db_obj = self.model(**obj_in)
            db.add(db_obj)
            await db.flush()
            return db_obj
        except IntegrityError as e:
            logger.warning(f"Integrity error creating {self.model.__name__}: {e}")
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            await db.rollback()
            raise

    async def delete_all(self, db: AsyncSession) -> int:
        """
        Delete every record of the table.

        Args:
            db: Active database session

        Returns:
            Number of rows deleted
        """
        try:
            result = await db.execute(sql_delete(self.model))
            await db.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting all {self.model.__name__}: {e}")
            await db.rollback()
            raise
