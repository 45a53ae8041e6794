"""Create database schema and seed the employee directory and default settings."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from hallcrm.core.logging_config import setup_logging
from hallcrm.db.session import SessionLocal, engine
from hallcrm.models.app_setting import AppSetting
from hallcrm.models.base import Base
from hallcrm.models.employee import Employee, EmployeeRole
from hallcrm.schemas.settings import (
	ASSIGNMENT_RULES_KEY,
	AUTOMATION_RULES_KEY,
	DEFAULT_AUTOMATION_KEY,
	INTEGRATIONS_KEY,
	AssignmentRules,
	AutomationRule,
	IntegrationSettings,
)

logger = logging.getLogger("hallcrm.scripts.bootstrap_db")

EMPLOYEES = [
	{"id": "emp-owner", "name": "Owner", "role": EmployeeRole.OWNER, "phone": "03000000001", "email": "owner@example.com"},
	{"id": "emp-admin", "name": "Admin", "role": EmployeeRole.ADMIN, "phone": "03000000002", "email": "admin@example.com"},
	{"id": "emp-ali", "name": "Ali", "role": EmployeeRole.SALES, "phone": "03000000003", "email": "ali@example.com"},
	{"id": "emp-sara", "name": "Sara", "role": EmployeeRole.SALES, "phone": "03000000004", "email": "sara@example.com"},
	{"id": "emp-finance", "name": "Finance", "role": EmployeeRole.FINANCE, "phone": None, "email": "finance@example.com"},
]

DEFAULT_DOCUMENTS = {
	INTEGRATIONS_KEY: IntegrationSettings().model_dump(mode="json", by_alias=True),
	ASSIGNMENT_RULES_KEY: AssignmentRules().model_dump(mode="json", by_alias=True),
	AUTOMATION_RULES_KEY: {DEFAULT_AUTOMATION_KEY: AutomationRule().model_dump(by_alias=True)},
}


async def create_schema() -> None:
	"""Create the database schema if it does not already exist."""

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)


async def seed_employees() -> None:
	"""Insert or update the demo employee directory, preserving directory order."""

	base_time = datetime.now(timezone.utc)
	async with SessionLocal() as session:
		async with session.begin():
			for position, data in enumerate(EMPLOYEES):
				employee = await session.get(Employee, data["id"])
				if employee is None:
					employee = Employee(created_at=base_time + timedelta(seconds=position), **data)
				else:
					employee.name = data["name"]
					employee.role = data["role"]
					employee.phone = data["phone"]
					employee.email = data["email"]
				session.add(employee)


async def seed_settings() -> None:
	"""Store default configuration documents without overwriting edited ones."""

	async with SessionLocal() as session:
		async with session.begin():
			for key, value in DEFAULT_DOCUMENTS.items():
				if await session.get(AppSetting, key) is None:
					session.add(AppSetting(key=key, value=value))


async def main() -> None:
	setup_logging()
	await create_schema()
	await seed_employees()
	await seed_settings()
	logger.info("Database schema ensured and demo data seeded.")


if __name__ == "__main__":
	asyncio.run(main())
