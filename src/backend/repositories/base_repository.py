"""
Base repository with generic CRUD operations.

Provides reusable database operations that can be inherited by specific repositories.
Writes only flush by default; the calling service owns the transaction.
"""
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common CRUD operations.

    Usage:
        class WorkAssignmentRepository(BaseRepository[WorkAssignment]):
            model = WorkAssignment
    """

    model: Type[ModelType] = None

    @classmethod
    async def find_by_id(
        cls,
        db: AsyncSession,
        id_value: Any,
        *,
        for_update: bool = False,
    ) -> Optional[ModelType]:
        """
        Find a single record by ID.

        Args:
            db: Database session
            id_value: The ID value to search for
            for_update: Lock the row until the transaction ends (ignored by SQLite)
                and refresh any copy already held by the session

        Returns:
            Model instance or None if not found
        """
        stmt = select(cls.model).where(cls.model.id == id_value)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        *,
        obj_in: Dict[str, Any],
        commit: bool = False
    ) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Dictionary of field values
            commit: Commit immediately instead of only flushing

        Returns:
            Created model instance with its primary key populated
        """
        db_obj = cls.model(**obj_in)
        db.add(db_obj)

        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()

        return db_obj

