"""
Pytest fixtures for the approval engine test suite.

Provides:
- Structured logging setup and log capture
- Org-chart (Directory) fixtures and factories
- Workflow definitions mirroring the default configuration set
- A deterministic clock and a wired WorkflowOrchestrator
- An in-memory SQLite identity store
"""

import json
import logging
from datetime import UTC, datetime
from io import StringIO
from typing import Callable, Generator

import pytest
from sqlalchemy.orm import Session

from approval_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from approval_kernel.domain.approval import ChainStrategy, WorkflowKind
from approval_kernel.domain.clock import DeterministicClock
from approval_kernel.domain.directory import Department, Directory, Person
from approval_kernel.domain.workflow import RoleSlot, StatusMapping, WorkflowDefinition
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from approval_services.workflow_orchestrator import WorkflowOrchestrator

FIXED_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture approval_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.initiate(...)
            logs = captured_logs()
            assert any(r["message"] == "chain_built" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("approval_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Directory fixtures
# =============================================================================


def _person(
    email: str,
    name: str,
    department: str,
    position: str,
    reports_to: str | None = None,
    **kwargs,
) -> Person:
    return Person(
        email=email,
        name=name,
        department=department,
        position=position,
        reports_to=reports_to,
        **kwargs,
    )


@pytest.fixture
def make_person() -> Callable[..., Person]:
    """Factory: make_person(email, name, department, position, reports_to=None, **extra)."""
    return _person


@pytest.fixture
def org_people() -> list[Person]:
    """
    A small organisation::

        md (Executive, root, top_approver)
        +-- tech.dir (Technical head)
        |   +-- ops.mgr
        |       +-- site.sup
        |           +-- tech
        +-- biz.head (Business head, business_head)
            +-- finance (finance)
            +-- coord (coordinator)
    """
    return [
        _person("md@corp.test", "Grace MD", "Executive", "Managing Director",
                hierarchy_level=6, is_department_head=True),
        _person("tech.dir@corp.test", "Sam Director", "Technical", "Technical Director",
                "md@corp.test", hierarchy_level=4, is_department_head=True,
                can_supervise=frozenset({"Operations Manager"})),
        _person("ops.mgr@corp.test", "Paul Ops", "Technical", "Operations Manager",
                "tech.dir@corp.test", hierarchy_level=3,
                can_supervise=frozenset({"Site Supervisor"})),
        _person("site.sup@corp.test", "Joe Site", "Technical", "Site Supervisor",
                "ops.mgr@corp.test", hierarchy_level=2,
                can_supervise=frozenset({"Field Technician"})),
        _person("tech@corp.test", "Eric Tech", "Technical", "Field Technician",
                "site.sup@corp.test", hierarchy_level=1),
        _person("biz.head@corp.test", "Kevin Biz", "Business", "Head of Business",
                "md@corp.test", hierarchy_level=5, is_department_head=True),
        _person("finance@corp.test", "Rani Finance", "Business", "Finance Officer",
                "biz.head@corp.test", hierarchy_level=3),
        _person("coord@corp.test", "Luc Coord", "Business", "Supply Chain Coordinator",
                "biz.head@corp.test", hierarchy_level=3),
    ]


ORG_DEPARTMENTS = (
    Department("Executive", "md@corp.test"),
    Department("Technical", "tech.dir@corp.test", aliases=("Tech",)),
    Department("Business", "biz.head@corp.test", aliases=("Supply Chain", "Finance")),
)

ORG_ROLES = {
    "finance": "finance@corp.test",
    "coordinator": "coord@corp.test",
    "business_head": "biz.head@corp.test",
    "top_approver": "md@corp.test",
}


@pytest.fixture
def make_directory() -> Callable[..., Directory]:
    """Factory: make_directory(people, departments=ORG_DEPARTMENTS, roles=ORG_ROLES)."""

    def _make(people, departments=ORG_DEPARTMENTS, roles=None, version="test") -> Directory:
        return Directory(
            people,
            departments=departments,
            role_holders=ORG_ROLES if roles is None else roles,
            version=version,
        )

    return _make


@pytest.fixture
def directory(org_people, make_directory) -> Directory:
    return make_directory(org_people)


# =============================================================================
# Workflow definitions
# =============================================================================


def _requisition_definition() -> WorkflowDefinition:
    return WorkflowDefinition(
        kind=WorkflowKind.PURCHASE_REQUISITION,
        strategy=ChainStrategy.SUPERVISORY_ESCALATION,
        slots=(
            RoleSlot.parse("finance", "Finance Officer", "role:finance"),
            RoleSlot.parse("coordinator", "Supply Chain Coordinator", "role:coordinator"),
            RoleSlot.parse("top_approver", "Managing Director", "role:top_approver"),
        ),
        stop_at_roles=("top_approver",),
        statuses=StatusMapping(
            completed="approved",
            rejected="rejected",
            pending_default="pending_supervisor",
            pending_by_slot={
                "supervisor": "pending_supervisor",
                "finance": "pending_finance_verification",
                "coordinator": "pending_supply_chain_review",
                "top_approver": "pending_head_approval",
            },
        ),
    )


def _budget_code_definition() -> WorkflowDefinition:
    return WorkflowDefinition(
        kind=WorkflowKind.BUDGET_CODE,
        strategy=ChainStrategy.FIXED_DEPTH,
        slots=(
            RoleSlot.parse("department_head", "Departmental Head", "department_head"),
            RoleSlot.parse("business_head", "Head of Business", "role:business_head"),
            RoleSlot.parse("finance", "Finance Officer", "role:finance"),
        ),
        statuses=StatusMapping(
            completed="active",
            rejected="rejected",
            pending_by_slot={
                "department_head": "pending_departmental_head",
                "business_head": "pending_head_of_business",
                "finance": "pending_finance",
            },
        ),
    )


def _debit_note_definition() -> WorkflowDefinition:
    return WorkflowDefinition(
        kind=WorkflowKind.DEBIT_NOTE,
        strategy=ChainStrategy.FIXED_DEPTH,
        slots=(
            RoleSlot.parse("department_head", "Department Head", "department_head"),
            RoleSlot.parse("finance", "Finance Officer", "role:finance"),
        ),
        statuses=StatusMapping(completed="approved", rejected="rejected"),
    )


def _task_completion_definition() -> WorkflowDefinition:
    return WorkflowDefinition(
        kind=WorkflowKind.TASK_COMPLETION,
        strategy=ChainStrategy.THREE_LEVEL,
        requires_grade=True,
        statuses=StatusMapping(
            completed="Completed",
            rejected="Rejected",
            pending_default="Pending Completion Approval",
        ),
    )


@pytest.fixture
def requisition_definition() -> WorkflowDefinition:
    return _requisition_definition()


@pytest.fixture
def budget_code_definition() -> WorkflowDefinition:
    return _budget_code_definition()


@pytest.fixture
def debit_note_definition() -> WorkflowDefinition:
    return _debit_note_definition()


@pytest.fixture
def task_completion_definition() -> WorkflowDefinition:
    return _task_completion_definition()


@pytest.fixture
def definitions() -> dict[WorkflowKind, WorkflowDefinition]:
    return {
        d.kind: d
        for d in (
            _requisition_definition(),
            _budget_code_definition(),
            _debit_note_definition(),
            _task_completion_definition(),
        )
    }


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def orchestrator(definitions, directory, clock) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(definitions, directory, clock=clock)


# =============================================================================
# Identity store
# =============================================================================


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session with the identity store tables created."""
    init_engine_from_url("sqlite://")
    create_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.close()
        drop_tables()
        reset_engine()
