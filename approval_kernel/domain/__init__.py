"""
Pure domain layer.

This module contains immutable value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files
- I/O

All domain objects are frozen and deterministic.
"""

from approval_kernel.domain.approval import (
    DECISION_STATUS,
    STEP_TRANSITIONS,
    TERMINAL_STEP_STATUSES,
    ApprovalChain,
    ApprovalDecision,
    ApprovalStep,
    Approver,
    ChainBuildResult,
    ChainState,
    ChainStrategy,
    ChainSubject,
    ChainSummary,
    GradePayload,
    IdentityResolver,
    StepStatus,
    WorkflowKind,
)
from approval_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from approval_kernel.domain.directory import (
    Department,
    Directory,
    Found,
    LookupResult,
    NotFound,
    Person,
    normalize_email,
    same_email,
)

__all__ = [
    "ApprovalChain",
    "ApprovalDecision",
    "ApprovalStep",
    "Approver",
    "ChainBuildResult",
    "ChainState",
    "ChainStrategy",
    "ChainSubject",
    "ChainSummary",
    "Clock",
    "DECISION_STATUS",
    "Department",
    "DeterministicClock",
    "Directory",
    "Found",
    "GradePayload",
    "IdentityResolver",
    "LookupResult",
    "NotFound",
    "Person",
    "STEP_TRANSITIONS",
    "StepStatus",
    "SystemClock",
    "TERMINAL_STEP_STATUSES",
    "WorkflowKind",
    "normalize_email",
    "same_email",
]
