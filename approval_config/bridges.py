"""
Config -> Kernel Bridges.

Functions that convert an ``ApprovalConfigurationSet`` into the kernel's
domain objects.  These live in approval_config (the producer) because the
kernel must NEVER import approval_config.

Usage:
    from approval_config.bridges import build_directory, build_workflow_definitions

    directory = build_directory(config_set)
    definitions = build_workflow_definitions(config_set)
"""

from __future__ import annotations

from approval_config.schema import (
    ApprovalConfigurationSet,
    PersonDef,
    StatusDef,
    WorkflowDef,
)
from approval_kernel.domain.approval import ChainStrategy, WorkflowKind
from approval_kernel.domain.directory import Department, Directory, Person, normalize_email
from approval_kernel.domain.workflow import RoleSlot, StatusMapping, WorkflowDefinition


def build_directory(config: ApprovalConfigurationSet) -> Directory:
    """Build the immutable Directory snapshot, versioned by the set checksum.

    A person is a department head when flagged explicitly, or when the
    department record names them as head.
    """
    heads = {
        normalize_email(dept.head)
        for dept in config.org_chart.departments
        if dept.head
    }
    persons = [_person(p, heads) for p in config.org_chart.people]
    departments = [
        Department(name=d.name, head_email=d.head, aliases=d.aliases)
        for d in config.org_chart.departments
    ]
    return Directory(
        persons,
        departments=departments,
        role_holders=config.org_chart.roles,
        version=config.checksum,
    )


def _person(data: PersonDef, heads: set[str]) -> Person:
    is_head = data.is_department_head
    if is_head is None:
        is_head = normalize_email(data.email) in heads
    return Person(
        email=data.email,
        name=data.name,
        department=data.department,
        position=data.position,
        reports_to=data.reports_to,
        can_supervise=frozenset(data.can_supervise),
        hierarchy_level=data.hierarchy_level,
        is_department_head=is_head,
        approval_authority=data.approval_authority,
    )


def build_workflow_definitions(
    config: ApprovalConfigurationSet,
) -> dict[WorkflowKind, WorkflowDefinition]:
    return {
        WorkflowKind(wf.kind): build_workflow_definition(wf)
        for wf in config.workflows
    }


def build_workflow_definition(wf: WorkflowDef) -> WorkflowDefinition:
    return WorkflowDefinition(
        kind=WorkflowKind(wf.kind),
        strategy=ChainStrategy(wf.strategy),
        statuses=_status_mapping(wf.statuses),
        slots=tuple(RoleSlot.parse(s.slot, s.label, s.holder) for s in wf.slots),
        stop_at_roles=wf.stop_at_roles,
        requires_grade=wf.requires_grade,
        description=wf.description,
    )


def _status_mapping(data: StatusDef) -> StatusMapping:
    return StatusMapping(
        completed=data.completed,
        rejected=data.rejected,
        pending_default=data.pending_default,
        auto_completed=data.auto_completed,
        pending_by_slot=data.pending_by_slot,
        pending_by_level=data.pending_by_level,
    )
