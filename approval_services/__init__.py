"""
approval_services -- Package init and public API.

Responsibility:
    Orchestration over the pure approval engines: couples chain
    transitions to document status, completion side effects and the
    next-notification decision.  This is the only layer that reads the
    clock.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_import_boundaries.py):
        approval_services/ -> approval_engines/  (allowed)
        approval_services/ -> approval_kernel/   (allowed)
        approval_engines/  -> approval_services/ (FORBIDDEN)
        approval_kernel/   -> approval_services/ (FORBIDDEN)
"""

from approval_services.document_status import document_status, status_breakdown
from approval_services.workflow_orchestrator import (
    CompletionHandler,
    DecisionOutcome,
    DecisionResult,
    InitiationResult,
    RejectionRecord,
    ResubmissionResult,
    WorkflowOrchestrator,
)

__all__ = [
    "CompletionHandler",
    "DecisionOutcome",
    "DecisionResult",
    "InitiationResult",
    "RejectionRecord",
    "ResubmissionResult",
    "WorkflowOrchestrator",
    "document_status",
    "status_breakdown",
]
