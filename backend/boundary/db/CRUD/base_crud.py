"""
Base CRUD operations for SQLAlchemy models.

Provides generic bulk create, conditional delete and count operations
that model-specific CRUD classes inherit and extend.

Dependencies: sqlalchemy
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic base class for CRUD operations.

    Stateless: every method takes the session it runs in, and callers
    own transaction boundaries (commit/rollback).

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        """
        Initialize CRUD with target model.

        Args:
            model: SQLAlchemy model class for database operations
        """
        self.model = model

    async def create_many(
        self,
        session: AsyncSession,
        rows: Sequence[dict[str, Any]],
    ) -> list[ModelT]:
        """
        Add several records and flush them in one round trip.

        Args:
            session: Async database session
            rows: Field values, one dict per record

        Returns:
            Model instances in input order
        """
        instances = [self.model(**row) for row in rows]
        session.add_all(instances)
        await session.flush()
        return instances

    async def delete_where(self, session: AsyncSession, *conditions: Any) -> int:
        """
        Delete every record matching the conditions.

        Returns:
            Number of deleted rows (0 when nothing matched)
        """
        stmt = delete(self.model).where(*conditions)
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def count_where(self, session: AsyncSession, *conditions: Any) -> int:
        """Count records matching the conditions."""
        stmt = select(func.count()).select_from(self.model).where(*conditions)
        result = await session.execute(stmt)
        return int(result.scalar_one())
