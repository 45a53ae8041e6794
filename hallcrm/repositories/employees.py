"""Employee directory lookups."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.employee import Employee, EmployeeRole


async def get_by_name(session: AsyncSession, name: str) -> Employee | None:
    stmt = select(Employee).where(Employee.name == name).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_by_roles(session: AsyncSession, roles: Iterable[EmployeeRole]) -> list[Employee]:
    """Return employees holding any of the roles, in directory order."""

    stmt = (
        select(Employee)
        .where(Employee.role.in_(list(roles)))
        .order_by(Employee.created_at.asc(), Employee.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
