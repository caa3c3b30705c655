"""
Workflow definitions (``approval_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects describing, per workflow kind, how its approval chain
is composed and how chain state maps onto the parent document's status
field.  Definitions are produced by ``approval_config`` from YAML and
consumed by the chain builder and the orchestrator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* A slot's holder is either the subject's department head or a named
  directory role; nothing else is accepted.
* Fixed-depth definitions declare at least one slot.
* Every status mapping has non-blank completed and rejected labels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from approval_kernel.domain.approval import ChainStrategy, WorkflowKind

DEPARTMENT_HEAD_HOLDER = "department_head"
ROLE_HOLDER_PREFIX = "role:"


class HolderKind(str, Enum):
    """Where a slot's approver comes from."""

    DEPARTMENT_HEAD = "department_head"
    ROLE = "role"


@dataclass(frozen=True)
class RoleSlot:
    """A role-based step position (fixed-depth steps or a supervisory tail).

    ``slot`` is the machine key stored on the step, ``label`` the role
    label shown to people.
    """

    slot: str
    label: str
    holder: HolderKind
    role_name: str | None = None

    def __post_init__(self) -> None:
        if not self.slot.strip():
            raise ValueError("RoleSlot.slot must be non-blank")
        if self.holder == HolderKind.ROLE and not (self.role_name or "").strip():
            raise ValueError(f"RoleSlot '{self.slot}' holder 'role' needs a role_name")

    @classmethod
    def parse(cls, slot: str, label: str, holder: str) -> RoleSlot:
        """Parse the ``department_head`` / ``role:<name>`` holder notation."""
        holder = holder.strip()
        if holder == DEPARTMENT_HEAD_HOLDER:
            return cls(slot=slot, label=label, holder=HolderKind.DEPARTMENT_HEAD)
        if holder.startswith(ROLE_HOLDER_PREFIX):
            return cls(
                slot=slot,
                label=label,
                holder=HolderKind.ROLE,
                role_name=holder[len(ROLE_HOLDER_PREFIX):].strip(),
            )
        raise ValueError(f"Unknown slot holder {holder!r} for slot '{slot}'")


@dataclass(frozen=True)
class StatusMapping:
    """Document status labels derived from chain state.

    Pending labels are looked up by the actionable step's slot first, then
    by its level, then fall back to ``pending_default``.
    """

    completed: str
    rejected: str
    pending_default: str = "pending_approval"
    auto_completed: str | None = None
    pending_by_slot: Mapping[str, str] = field(default_factory=dict)
    pending_by_level: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.completed.strip() or not self.rejected.strip():
            raise ValueError("StatusMapping needs completed and rejected labels")
        object.__setattr__(self, "pending_by_slot", MappingProxyType(dict(self.pending_by_slot)))
        object.__setattr__(self, "pending_by_level", MappingProxyType(dict(self.pending_by_level)))

    @property
    def auto_completed_label(self) -> str:
        return self.auto_completed or self.completed

    def pending_label(self, slot: str, level: int) -> str:
        if slot in self.pending_by_slot:
            return self.pending_by_slot[slot]
        if level in self.pending_by_level:
            return self.pending_by_level[level]
        return self.pending_default


@dataclass(frozen=True)
class WorkflowDefinition:
    """How one workflow kind builds its chain and labels its documents.

    ``slots`` is the fixed role sequence for fixed-depth kinds and the
    always-appended tail for the supervisory kind.  ``stop_at_roles``
    ends the supervisory walk before a supervisor holding one of those
    roles.
    """

    kind: WorkflowKind
    strategy: ChainStrategy
    statuses: StatusMapping
    slots: tuple[RoleSlot, ...] = ()
    stop_at_roles: tuple[str, ...] = ()
    requires_grade: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if self.strategy == ChainStrategy.FIXED_DEPTH and not self.slots:
            raise ValueError(f"Fixed-depth workflow '{self.kind.value}' declares no slots")
