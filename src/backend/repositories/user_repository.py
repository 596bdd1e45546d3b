"""
User Repository for database operations.

Acts as the technician directory: technicians are users with
role=Technician, optionally carrying a TechnicianProfile.
"""
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.model_enum import UserRole
from db.models import TechnicianProfile, User
from repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User database operations."""

    model = User

    @classmethod
    async def get_technician_by_id(
        cls,
        db: AsyncSession,
        technician_id: int,
        *,
        for_update: bool = False,
    ) -> Optional[User]:
        """
        Find a technician by ID, active or not.

        Args:
            db: Database session
            technician_id: User ID
            for_update: Lock the technician row until the transaction ends

        Returns:
            The technician, or None if no user with that ID has the technician role
        """
        stmt = select(User).where(
            User.id == technician_id,
            User.role == UserRole.TECHNICIAN,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def get_active_technicians(cls, db: AsyncSession) -> List[User]:
        """Active technicians ordered by name, then ID."""
        stmt = (
            select(User)
            .where(User.role == UserRole.TECHNICIAN, User.is_active == True)  # noqa: E712
            .order_by(User.first_name, User.last_name, User.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def get_all_technicians(cls, db: AsyncSession) -> List[User]:
        """Every technician, active or not, ordered by name."""
        stmt = (
            select(User)
            .where(User.role == UserRole.TECHNICIAN)
            .order_by(User.first_name, User.last_name, User.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def get_technicians_by_ids(cls, db: AsyncSession, ids: List[int]) -> List[User]:
        """Technicians among ``ids``; order is not preserved."""
        if not ids:
            return []
        stmt = select(User).where(User.id.in_(ids), User.role == UserRole.TECHNICIAN)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def get_profiles(cls, db: AsyncSession, user_ids: List[int]) -> Dict[int, TechnicianProfile]:
        """Technician profiles keyed by user ID; technicians without one are absent."""
        if not user_ids:
            return {}
        stmt = select(TechnicianProfile).where(TechnicianProfile.user_id.in_(user_ids))
        result = await db.execute(stmt)
        return {profile.user_id: profile for profile in result.scalars().all()}
