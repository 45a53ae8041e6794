"""Lead assignment engine."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.employee import ASSIGNABLE_ROLES, UNASSIGNED_NAME, Employee
from ..models.lead import Lead
from ..repositories import employees as employees_repo
from ..repositories import leads as leads_repo
from ..schemas.settings import (
    FALLBACK_ROUND_ROBIN,
    FALLBACK_UNASSIGNED,
    AssignmentMode,
    AssignmentRules,
)

logger = logging.getLogger(__name__)


class AssignmentMethod(str, enum.Enum):
    MANUAL = "manual"
    SINGLE_PERSON = "single_person"
    SOURCE_BASED = "source_based"
    FALLBACK_PERSON = "fallback_person"
    ROUND_ROBIN = "round_robin"
    UNASSIGNED = "unassigned"


@dataclass(slots=True, frozen=True)
class AssignmentDecision:
    assignee: str | None
    method: AssignmentMethod


def is_unassigned(lead: Lead) -> bool:
    return not lead.assignee or lead.assignee == UNASSIGNED_NAME


def eligible_employees(employees: Sequence[Employee]) -> list[Employee]:
    """Employees that round robin may pick, in the given (directory) order."""

    return [
        employee
        for employee in employees
        if employee.role in ASSIGNABLE_ROLES and employee.name and employee.name != UNASSIGNED_NAME
    ]


def pick_round_robin(names: Sequence[str], new_lead_counts: Mapping[str, int]) -> str | None:
    """Return the name holding the fewest ``New`` leads; earliest name wins ties."""

    best: str | None = None
    best_count = 0
    for name in names:
        count = new_lead_counts.get(name, 0)
        if best is None or count < best_count:
            best, best_count = name, count
    return best


def match_source_rule(source: str | None, rules: AssignmentRules) -> str | None:
    wanted = (source or "").strip().lower()
    for rule in rules.source_rules:
        if rule.source and rule.source.strip().lower() == wanted and rule.assign_to:
            return rule.assign_to
    return None


def choose_assignee(
    source: str | None,
    rules: AssignmentRules,
    employees: Sequence[Employee],
    new_lead_counts: Mapping[str, int],
) -> AssignmentDecision:
    """Decide who owns a lead. First matching rule wins."""

    if rules.mode is AssignmentMode.MANUAL:
        return AssignmentDecision(None, AssignmentMethod.MANUAL)

    if rules.mode is AssignmentMode.SINGLE_PERSON and rules.default_assignee:
        return AssignmentDecision(rules.default_assignee, AssignmentMethod.SINGLE_PERSON)

    if rules.mode is AssignmentMode.SOURCE_BASED:
        matched = match_source_rule(source, rules)
        if matched:
            return AssignmentDecision(matched, AssignmentMethod.SOURCE_BASED)

    fallback = (rules.fallback_assignee or "").strip()
    if fallback == FALLBACK_UNASSIGNED:
        return AssignmentDecision(None, AssignmentMethod.UNASSIGNED)
    if fallback and fallback != FALLBACK_ROUND_ROBIN:
        return AssignmentDecision(fallback, AssignmentMethod.FALLBACK_PERSON)

    names = [employee.name for employee in eligible_employees(employees)]
    picked = pick_round_robin(names, new_lead_counts)
    if picked is None:
        return AssignmentDecision(None, AssignmentMethod.UNASSIGNED)
    return AssignmentDecision(picked, AssignmentMethod.ROUND_ROBIN)


async def assign_lead(session: AsyncSession, lead: Lead, rules: AssignmentRules) -> AssignmentDecision:
    """Assign an unassigned lead in place and flush the change.

    Leads that already have an owner are returned untouched, as a manual pick.
    """

    if not is_unassigned(lead):
        return AssignmentDecision(lead.assignee, AssignmentMethod.MANUAL)

    employees: list[Employee] = []
    counts: dict[str, int] = {}
    if rules.mode is not AssignmentMode.MANUAL:
        employees = await employees_repo.list_by_roles(session, ASSIGNABLE_ROLES)
        counts = await leads_repo.count_new_by_assignee(
            session, [employee.name for employee in eligible_employees(employees)]
        )

    decision = choose_assignee(lead.source, rules, employees, counts)
    lead.assignment_method = decision.method.value
    if decision.assignee is not None:
        lead.assignee = decision.assignee
        lead.assigned_at = datetime.now(timezone.utc)
        logger.info("Lead %s assigned to %s via %s", lead.id, decision.assignee, decision.method.value)
    else:
        lead.assignee = None
        logger.info("Lead %s left unassigned (%s)", lead.id, decision.method.value)

    session.add(lead)
    await session.flush()
    return decision
