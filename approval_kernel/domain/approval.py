"""
Approval chain domain types (``approval_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the approval workflow engine: step status
lifecycle, approver identity, typed step payloads, the chain itself,
build inputs/outputs and the read-only summary projection.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Step lifecycle -- ``STEP_TRANSITIONS`` defines the only user-driven
  status changes (pending -> approved | rejected).  ``skipped`` is only
  ever set at construction time and always carries a non-blank reason.
* Level contiguity -- an ``ApprovalChain`` has levels ``1..N`` in order,
  no gaps, no duplicates.
* Sequential order -- no step is approved or rejected while a lower
  level is still pending.
* Ownership -- a chain is a value embedded in exactly one parent
  document; every mutation returns a new chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Protocol
from uuid import UUID

from approval_kernel.domain.directory import normalize_email, same_email
from approval_kernel.exceptions import (
    InvalidDecisionError,
    LevelNotFoundError,
    MalformedChainError,
)


# =========================================================================
# Enumerations
# =========================================================================


class StepStatus(str, Enum):
    """Per-step status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


STEP_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({StepStatus.APPROVED, StepStatus.REJECTED}),
    StepStatus.APPROVED: frozenset(),
    StepStatus.REJECTED: frozenset(),
    StepStatus.SKIPPED: frozenset(),
}

TERMINAL_STEP_STATUSES: frozenset[StepStatus] = frozenset({
    StepStatus.APPROVED,
    StepStatus.REJECTED,
    StepStatus.SKIPPED,
})


class ApprovalDecision(str, Enum):
    """Decisions an approver can make on the actionable step."""

    APPROVE = "approve"
    REJECT = "reject"

    @classmethod
    def parse(cls, value: ApprovalDecision | str) -> ApprovalDecision:
        """Coerce *value*; unknown values raise InvalidDecisionError."""
        try:
            return cls(value.strip().lower() if isinstance(value, str) else value)
        except ValueError:
            raise InvalidDecisionError(value, tuple(d.value for d in cls)) from None


DECISION_STATUS: dict[ApprovalDecision, StepStatus] = {
    ApprovalDecision.APPROVE: StepStatus.APPROVED,
    ApprovalDecision.REJECT: StepStatus.REJECTED,
}


class ChainState(str, Enum):
    """Chain-level state derived from step statuses."""

    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    REJECTED = "rejected"


class WorkflowKind(str, Enum):
    """Business documents that carry an approval chain."""

    PURCHASE_REQUISITION = "purchase_requisition"
    BUDGET_CODE = "budget_code"
    DEBIT_NOTE = "debit_note"
    PURCHASE_ORDER = "purchase_order"
    TASK_COMPLETION = "task_completion"


class ChainStrategy(str, Enum):
    """How a chain's steps are derived."""

    SUPERVISORY_ESCALATION = "supervisory_escalation"
    FIXED_DEPTH = "fixed_depth"
    THREE_LEVEL = "three_level"


# =========================================================================
# Step building blocks
# =========================================================================


@dataclass(frozen=True)
class Approver:
    """Identity bound to a step.

    ``email`` is None when the org data could not resolve the approver;
    such a step can never be acted on (fail-closed).  ``user_id`` is only
    set when a registered system account matches the e-mail.
    """

    name: str
    email: str | None
    role: str
    department: str | None = None
    user_id: UUID | None = None

    @property
    def is_resolved(self) -> bool:
        return bool(normalize_email(self.email))

    def matches(self, email: str | None) -> bool:
        return self.is_resolved and same_email(self.email, email)

    @classmethod
    def unresolved(cls, role: str, department: str | None = None) -> Approver:
        return cls(name="N/A", email=None, role=role, department=department)


@dataclass(frozen=True)
class GradePayload:
    """Task-completion grading attached to an approved step."""

    grade: Decimal
    quality_notes: str = ""


@dataclass(frozen=True)
class ApprovalStep:
    """One ordered unit of required approval."""

    level: int
    approver: Approver
    status: StepStatus = StepStatus.PENDING
    slot: str = ""
    comments: str | None = None
    decided_at: datetime | None = None
    skip_reason: str | None = None
    payload: GradePayload | None = None

    def __post_init__(self) -> None:
        if self.level < 1:
            raise MalformedChainError(f"level must be >= 1, got {self.level}")
        if self.status == StepStatus.SKIPPED and not (self.skip_reason or "").strip():
            raise MalformedChainError(f"skipped level {self.level} has no reason")

    @property
    def is_pending(self) -> bool:
        return self.status == StepStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STEP_STATUSES


# =========================================================================
# Chain
# =========================================================================


@dataclass(frozen=True)
class ApprovalChain:
    """Ordered, immutable sequence of approval steps."""

    steps: tuple[ApprovalStep, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        seen_pending = False
        for expected, step in enumerate(self.steps, start=1):
            if step.level != expected:
                raise MalformedChainError(
                    f"levels must be contiguous from 1; position {expected} "
                    f"has level {step.level}"
                )
            if step.status == StepStatus.PENDING:
                seen_pending = True
            elif seen_pending and step.status in (StepStatus.APPROVED, StepStatus.REJECTED):
                raise MalformedChainError(
                    f"level {step.level} is {step.status.value} while a lower "
                    "level is still pending"
                )

    @classmethod
    def renumbered(cls, steps: list[ApprovalStep] | tuple[ApprovalStep, ...]) -> ApprovalChain:
        """Build a chain, assigning levels 1..N in the given order."""
        return cls(tuple(
            replace(step, level=index) for index, step in enumerate(steps, start=1)
        ))

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ApprovalStep]:
        return iter(self.steps)

    @property
    def levels(self) -> tuple[int, ...]:
        return tuple(step.level for step in self.steps)

    def step_at(self, level: int) -> ApprovalStep:
        """
        Raises:
            LevelNotFoundError: if ``level`` is outside ``1..N``.
        """
        if not 1 <= level <= len(self.steps):
            raise LevelNotFoundError(level, len(self.steps))
        return self.steps[level - 1]

    def with_step(self, step: ApprovalStep) -> ApprovalChain:
        """Return a new chain with the step at ``step.level`` replaced."""
        self.step_at(step.level)
        steps = list(self.steps)
        steps[step.level - 1] = step
        return ApprovalChain(tuple(steps))

    def approver_emails(self) -> tuple[str, ...]:
        return tuple(
            normalize_email(s.approver.email) for s in self.steps if s.approver.is_resolved
        )

    # -- embedding -----------------------------------------------------------

    def to_dict(self) -> list[dict[str, Any]]:
        """Plain-data form for embedding in the parent document."""
        return [
            {
                "level": s.level,
                "slot": s.slot,
                "approver": {
                    "name": s.approver.name,
                    "email": s.approver.email,
                    "role": s.approver.role,
                    "department": s.approver.department,
                    "user_id": str(s.approver.user_id) if s.approver.user_id else None,
                },
                "status": s.status.value,
                "comments": s.comments,
                "decided_at": s.decided_at.isoformat() if s.decided_at else None,
                "skip_reason": s.skip_reason,
                "payload": (
                    {"grade": str(s.payload.grade), "quality_notes": s.payload.quality_notes}
                    if s.payload is not None
                    else None
                ),
            }
            for s in self.steps
        ]

    @classmethod
    def from_dict(cls, data: list[dict[str, Any]]) -> ApprovalChain:
        steps = []
        for item in data:
            approver = item["approver"]
            payload = item.get("payload")
            decided_at = item.get("decided_at")
            steps.append(ApprovalStep(
                level=int(item["level"]),
                slot=item.get("slot", ""),
                approver=Approver(
                    name=approver["name"],
                    email=approver.get("email"),
                    role=approver["role"],
                    department=approver.get("department"),
                    user_id=UUID(approver["user_id"]) if approver.get("user_id") else None,
                ),
                status=StepStatus(item["status"]),
                comments=item.get("comments"),
                decided_at=datetime.fromisoformat(decided_at) if decided_at else None,
                skip_reason=item.get("skip_reason"),
                payload=(
                    GradePayload(
                        grade=Decimal(payload["grade"]),
                        quality_notes=payload.get("quality_notes", ""),
                    )
                    if payload
                    else None
                ),
            ))
        return cls(tuple(steps))


# =========================================================================
# Read model
# =========================================================================


@dataclass(frozen=True)
class ChainSummary:
    """Progress projection for UI and notification use.

    ``progress_percent`` excludes skipped steps from the denominator.
    """

    total: int
    approved: int
    rejected: int
    pending: int
    skipped: int
    effective_total: int
    progress_percent: int
    is_complete: bool
    current_level: int | None


# =========================================================================
# Build inputs / outputs
# =========================================================================


@dataclass(frozen=True)
class ChainSubject:
    """What a chain is being built for.

    ``subject_email`` is the employee the document is about (requester,
    task assignee).  ``creator_email`` is who raised the document.
    ``department`` names the owning department for department-scoped
    documents (debit notes, purchase orders) and for fallbacks.
    """

    subject_email: str | None = None
    creator_email: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class ChainBuildResult:
    """Builder output.  ``warnings`` lists org-data problems met on the way."""

    chain: ApprovalChain
    used_fallback: bool = False
    warnings: tuple[str, ...] = field(default=())


class IdentityResolver(Protocol):
    """Maps a directory e-mail to a registered system account id."""

    def resolve_user_id(self, email: str) -> UUID | None:
        ...
