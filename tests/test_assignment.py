"""Tests for the lead assignment engine."""
from __future__ import annotations

import random
from unittest.mock import AsyncMock

import pytest

from hallcrm.models.employee import Employee, EmployeeRole
from hallcrm.repositories import employees as employees_repo
from hallcrm.repositories import leads as leads_repo
from hallcrm.schemas.settings import AssignmentRules
from hallcrm.services import assignment
from hallcrm.services.assignment import AssignmentMethod


def employee(name: str, role: EmployeeRole = EmployeeRole.SALES, phone: str | None = None) -> Employee:
    return Employee(id=f"emp-{name.lower()}", name=name, role=role, phone=phone)


DIRECTORY = [
    employee("Owner", EmployeeRole.OWNER),
    employee("Ali"),
    employee("Sara"),
    employee("Finance", EmployeeRole.FINANCE),
    employee("Viewer", EmployeeRole.VIEWER),
    employee("Unassigned"),
]


def rules(**fields) -> AssignmentRules:
    return AssignmentRules.model_validate(fields)


def test_manual_mode_leaves_lead_unassigned():
    decision = assignment.choose_assignee("Facebook", rules(mode="manual"), DIRECTORY, {})
    assert decision.assignee is None
    assert decision.method is AssignmentMethod.MANUAL


def test_single_person_mode():
    decision = assignment.choose_assignee(None, rules(mode="single_person", defaultAssignee="Sara"), DIRECTORY, {})
    assert decision.assignee == "Sara"
    assert decision.method is AssignmentMethod.SINGLE_PERSON


def test_single_person_without_default_falls_back_to_round_robin():
    decision = assignment.choose_assignee(None, rules(mode="single_person"), DIRECTORY, {"Owner": 3, "Ali": 1, "Sara": 2})
    assert decision == assignment.AssignmentDecision("Ali", AssignmentMethod.ROUND_ROBIN)


def test_source_based_match_is_trimmed_and_case_insensitive():
    config = rules(mode="source_based", sourceRules=[{"source": " facebook ", "assignTo": "Ali"}])

    decision = assignment.choose_assignee("Facebook", config, DIRECTORY, {})

    assert decision.assignee == "Ali"
    assert decision.method is AssignmentMethod.SOURCE_BASED


@pytest.mark.parametrize(
    ("fallback", "expected"),
    [
        ("unassigned", assignment.AssignmentDecision(None, AssignmentMethod.UNASSIGNED)),
        ("Sara", assignment.AssignmentDecision("Sara", AssignmentMethod.FALLBACK_PERSON)),
        ("round_robin", assignment.AssignmentDecision("Owner", AssignmentMethod.ROUND_ROBIN)),
        (None, assignment.AssignmentDecision("Owner", AssignmentMethod.ROUND_ROBIN)),
    ],
)
def test_source_based_without_match_uses_fallback(fallback, expected):
    config = rules(mode="source_based", sourceRules=[{"source": "Instagram", "assignTo": "Ali"}], fallbackAssignee=fallback)

    assert assignment.choose_assignee("Walk In", config, DIRECTORY, {}) == expected


def test_round_robin_skips_ineligible_roles_and_placeholder_name():
    counts = {"Owner": 5, "Ali": 5, "Sara": 5}
    decision = assignment.choose_assignee(None, rules(), DIRECTORY, counts)

    assert decision.assignee == "Owner"
    assert decision.assignee not in {"Finance", "Viewer", "Unassigned"}


def test_round_robin_without_eligible_employees():
    staff = [employee("Finance", EmployeeRole.FINANCE)]
    decision = assignment.choose_assignee(None, rules(), staff, {})
    assert decision == assignment.AssignmentDecision(None, AssignmentMethod.UNASSIGNED)


def test_round_robin_picks_minimum_count():
    rng = random.Random(7)
    staff = [employee(f"Rep{index}") for index in range(6)]
    names = [member.name for member in staff]

    for _ in range(200):
        counts = {name: rng.randint(0, 5) for name in names}
        decision = assignment.choose_assignee(None, rules(), staff, counts)

        assert decision.method is AssignmentMethod.ROUND_ROBIN
        assert all(counts[decision.assignee] <= count for count in counts.values())
        lowest = min(counts.values())
        assert decision.assignee == next(name for name in names if counts[name] == lowest)


@pytest.mark.parametrize("mode", ["manual", "single_person", "source_based", "round_robin"])
@pytest.mark.parametrize("fallback", [None, "unassigned", "round_robin", "Sara"])
def test_assignee_present_unless_mode_or_fallback_leaves_unassigned(mode, fallback):
    config = rules(mode=mode, defaultAssignee="Ali", sourceRules=[], fallbackAssignee=fallback)

    decision = assignment.choose_assignee("Website", config, DIRECTORY, {})

    leaves_unassigned = mode == "manual" or (mode in {"source_based", "round_robin"} and fallback == "unassigned")
    assert (decision.assignee is None) == leaves_unassigned


@pytest.mark.asyncio
async def test_assign_lead_writes_assignment(monkeypatch, session):
    lead = leads_repo.build_lead(client_name="Hina", source="Facebook")
    monkeypatch.setattr(employees_repo, "list_by_roles", AsyncMock(return_value=DIRECTORY))
    count_mock = AsyncMock(return_value={"Owner": 2, "Ali": 0, "Sara": 1})
    monkeypatch.setattr(leads_repo, "count_new_by_assignee", count_mock)

    decision = await assignment.assign_lead(session, lead, rules())

    assert decision.assignee == "Ali"
    assert lead.assignee == "Ali"
    assert lead.assignment_method == "round_robin"
    assert lead.assigned_at is not None
    assert count_mock.await_args.args[1] == ["Owner", "Ali", "Sara"]
    assert session.flushes == 1


@pytest.mark.asyncio
async def test_assign_lead_leaves_owned_lead_untouched(monkeypatch, session):
    lead = leads_repo.build_lead(client_name="Hina", assignee="Sara")
    list_mock = AsyncMock()
    monkeypatch.setattr(employees_repo, "list_by_roles", list_mock)

    decision = await assignment.assign_lead(session, lead, rules())

    assert decision.assignee == "Sara"
    assert lead.assignee == "Sara"
    list_mock.assert_not_awaited()


@pytest.mark.asyncio
async def test_manual_mode_does_not_read_directory(monkeypatch, session):
    lead = leads_repo.build_lead(client_name="Hina")
    list_mock = AsyncMock()
    monkeypatch.setattr(employees_repo, "list_by_roles", list_mock)

    decision = await assignment.assign_lead(session, lead, rules(mode="manual"))

    assert decision.assignee is None
    assert lead.assignment_method == "manual"
    list_mock.assert_not_awaited()
