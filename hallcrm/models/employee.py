"""Employee directory model."""
from __future__ import annotations

from datetime import datetime
import enum

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, enum_values, utcnow

UNASSIGNED_NAME = "Unassigned"


class EmployeeRole(str, enum.Enum):
    OWNER = "Owner"
    ADMIN = "Admin"
    SALES = "Sales"
    FINANCE = "Finance"
    VIEWER = "Viewer"


ASSIGNABLE_ROLES: frozenset[EmployeeRole] = frozenset({EmployeeRole.SALES, EmployeeRole.ADMIN, EmployeeRole.OWNER})


class Employee(Base):
    """A user allowed into the CRM; leads are owned by employee name."""

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(
        Enum(EmployeeRole, name="employee_role", values_callable=enum_values),
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(String)
    email: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
