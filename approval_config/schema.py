"""
Approval configuration set schema.

Defines the human-authored, reviewable source artifact for the approval
engine: the org-chart snapshot and the per-kind workflow definitions.
YAML fragments are parsed into these types by the loader, checked by the
validator and turned into kernel domain objects by the bridges.

Key distinction:
  ApprovalConfigurationSet = source artifact (human-authored, versioned)
  ApprovalConfig           = runtime artifact (Directory + definitions)
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Org chart
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PersonDef:
    """One person in the org chart."""

    email: str
    name: str
    department: str
    position: str
    reports_to: str | None = None
    hierarchy_level: int = 0
    can_supervise: tuple[str, ...] = ()
    approval_authority: str | None = None
    is_department_head: bool | None = None  # None = derive from department head


@dataclass(frozen=True)
class DepartmentDef:
    name: str
    head: str | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class OrgChartDef:
    """Org-chart fragment (``org_chart.yaml``)."""

    people: tuple[PersonDef, ...]
    departments: tuple[DepartmentDef, ...] = ()
    roles: dict[str, str] = field(default_factory=dict)  # role name -> email


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SlotDef:
    """A role slot: ``holder`` is ``department_head`` or ``role:<name>``."""

    slot: str
    label: str
    holder: str


@dataclass(frozen=True)
class StatusDef:
    completed: str
    rejected: str = "rejected"
    pending_default: str = "pending_approval"
    auto_completed: str | None = None
    pending_by_slot: dict[str, str] = field(default_factory=dict)
    pending_by_level: dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowDef:
    """Workflow fragment entry (``workflows.yaml``)."""

    kind: str
    strategy: str
    statuses: StatusDef
    slots: tuple[SlotDef, ...] = ()
    stop_at_roles: tuple[str, ...] = ()
    requires_grade: bool = False
    description: str = ""


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApprovalConfigurationSet:
    """Complete approval configuration as authored."""

    name: str
    org_chart: OrgChartDef
    workflows: tuple[WorkflowDef, ...]
    checksum: str = ""
