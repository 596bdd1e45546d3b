"""
Test data factories for generating realistic test data.

Usage:
    technician = await create_technician(db, specializations="Network, WiFi")
    request = await create_request(db, customer, category=ServiceCategory.NETWORK_ISSUE)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from db.model_enum import (
    RequestPriority,
    ServiceCategory,
    ServiceStatus,
    UserRole,
    WorkAssignmentStatus,
)
from db.models import ServiceRequest, TechnicianProfile, User, WorkAssignment, utc_now


def _unique_suffix() -> str:
    """Generate a unique suffix for test data."""
    return uuid.uuid4().hex[:8]


def today_at(hour: int = 12) -> datetime:
    """A naive-UTC moment on the current UTC day."""
    return utc_now().replace(hour=hour, minute=0, second=0, microsecond=0)


class UserFactory:
    """Factory for creating User instances."""

    @classmethod
    def create(
        cls,
        role: UserRole = UserRole.CUSTOMER,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        """Create a User instance with realistic defaults."""
        suffix = _unique_suffix()

        first_names = ["Ayşe", "Mehmet", "Zeynep", "Can", "Elif", "Burak", "Deniz", "Emre"]
        last_names = ["Yılmaz", "Kaya", "Demir", "Şahin", "Çelik", "Aydın", "Öztürk", "Arslan"]
        idx = int(suffix, 16) % len(first_names)

        if first_name is None:
            first_name = first_names[idx]
        if last_name is None:
            last_name = last_names[idx]
        if email is None:
            email = f"user_{suffix}@example.com"

        return User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone or f"05{suffix}",
            role=role,
            is_active=is_active,
        )


class ServiceRequestFactory:
    """Factory for creating ServiceRequest instances."""

    @classmethod
    def create(
        cls,
        customer_id: int,
        title: Optional[str] = None,
        category: ServiceCategory = ServiceCategory.OTHER,
        priority: RequestPriority = RequestPriority.NORMAL,
        status: ServiceStatus = ServiceStatus.PENDING,
        scheduled_date: Optional[datetime] = None,
    ) -> ServiceRequest:
        return ServiceRequest(
            title=title or f"Request {_unique_suffix()}",
            description="Created by test factory",
            category=category,
            priority=priority,
            status=status,
            customer_id=customer_id,
            scheduled_date=scheduled_date,
        )


class WorkAssignmentFactory:
    """Factory for creating WorkAssignment instances."""

    @classmethod
    def create(
        cls,
        service_request_id: int,
        technician_id: int,
        status: WorkAssignmentStatus = WorkAssignmentStatus.ASSIGNED,
        scheduled_date: Optional[datetime] = None,
        assigned_date: Optional[datetime] = None,
        started_date: Optional[datetime] = None,
        completed_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> WorkAssignment:
        return WorkAssignment(
            service_request_id=service_request_id,
            technician_id=technician_id,
            status=status,
            scheduled_date=scheduled_date,
            assigned_date=assigned_date or utc_now(),
            started_date=started_date,
            completed_date=completed_date,
            notes=notes,
        )


# ============================================================================
# Persisting helpers
# ============================================================================

async def create_technician(
    db: AsyncSession,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    specializations: Optional[str] = None,
    is_active: bool = True,
) -> User:
    """Persist a technician and, when given specializations, its profile."""
    technician = UserFactory.create(
        role=UserRole.TECHNICIAN,
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
    )
    db.add(technician)
    await db.flush()

    if specializations is not None:
        db.add(TechnicianProfile(user_id=technician.id, specializations=specializations))

    await db.commit()
    return technician


async def create_customer(db: AsyncSession) -> User:
    customer = UserFactory.create(role=UserRole.CUSTOMER)
    db.add(customer)
    await db.commit()
    return customer


async def create_request(db: AsyncSession, customer: User, **kwargs) -> ServiceRequest:
    request = ServiceRequestFactory.create(customer_id=customer.id, **kwargs)
    db.add(request)
    await db.commit()
    return request


async def create_assignment(
    db: AsyncSession,
    request: ServiceRequest,
    technician: User,
    **kwargs,
) -> WorkAssignment:
    """Persist an assignment directly, bypassing the lifecycle service."""
    assignment = WorkAssignmentFactory.create(
        service_request_id=request.id,
        technician_id=technician.id,
        **kwargs,
    )
    db.add(assignment)
    await db.commit()
    return assignment
