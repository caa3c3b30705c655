"""
approval_services.workflow_orchestrator -- Couples approval chains to documents.

Responsibility:
    Build the initial chain for a new document, validate and apply each
    approver decision, derive the document status from the resulting
    chain, run completion side effects, and decide who is notified next.
    Thin coordinator -- chain composition and transitions are delegated
    to the pure engines, status labels to ``document_status``.

Architecture position:
    Services layer.  May import from approval_engines/ (pure engines)
    and approval_kernel/ (domain, exceptions, logging).
    Never loads or persists documents and never sends notifications; the
    caller owns both and must serialise decisions per document.

Invariants enforced:
    - Wrong person and wrong time are distinct failures:
      ``UnauthorizedApproverError`` vs ``InvalidTransitionError``.
    - Completion side effects run exactly once per chain, on the call
      that makes it complete (including auto-completion at initiation).
    - Org-data problems never block initiation; they are logged as
      ``org_data_quality`` warnings.

Failure modes:
    - ``WorkflowNotConfiguredError`` for a kind with no definition.
    - ``LevelNotFoundError`` for a level outside the chain.
    - ``UnauthorizedApproverError`` when the actor is not the step's
      approver (or the step's registered account differs).
    - ``InvalidTransitionError`` when the actor is the approver but the
      step is not currently actionable, or the chain is already decided.
    - ``MissingGradeError`` / ``InvalidGradeError`` for graded kinds.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol
from uuid import UUID

from approval_engines.chain_builder import build_chain
from approval_engines.chain_state import (
    apply_decision,
    can_act,
    chain_state,
    chain_summary,
    next_actionable,
)
from approval_engines.grading import make_grade_payload
from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalDecision,
    ApprovalStep,
    Approver,
    ChainState,
    ChainSubject,
    ChainSummary,
    IdentityResolver,
    StepStatus,
    WorkflowKind,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.directory import Directory, normalize_email
from approval_kernel.domain.workflow import WorkflowDefinition
from approval_kernel.exceptions import (
    InvalidTransitionError,
    MissingGradeError,
    UnauthorizedApproverError,
    WorkflowNotConfiguredError,
)
from approval_kernel.logging_config import LogContext, get_logger
from approval_services.document_status import document_status

logger = get_logger("services.workflow_orchestrator")


class DecisionOutcome(str, Enum):
    """What a recorded decision did to the chain."""

    ADVANCED = "advanced"
    COMPLETED = "completed"
    REJECTED = "rejected"


class CompletionHandler(Protocol):
    """Side effect run when a document's chain completes.

    Examples: activate a budget code, roll task scores into KPIs.  The
    handler runs inside the caller's unit of work; exceptions propagate.
    """

    def on_complete(
        self,
        kind: WorkflowKind,
        chain: ApprovalChain,
        document_id: str | None,
    ) -> None:
        ...


@dataclass(frozen=True)
class InitiationResult:
    chain: ApprovalChain
    document_status: str
    notify_target: Approver | None
    auto_completed: bool = False
    used_fallback: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionResult:
    chain: ApprovalChain
    document_status: str
    outcome: DecisionOutcome
    notify_target: Approver | None


@dataclass(frozen=True)
class RejectionRecord:
    """Snapshot of a rejected chain, kept in the document's rejection history."""

    chain: ApprovalChain
    rejected_level: int
    rejected_by: Approver
    reason: str | None
    rejected_at: datetime | None
    recorded_at: datetime


@dataclass(frozen=True)
class ResubmissionResult:
    initiation: InitiationResult
    rejection: RejectionRecord


class WorkflowOrchestrator:
    """Entry point for document approval workflows.

    Stateless between calls: the chain is passed in and a new chain is
    returned.  Holds only the directory snapshot, the workflow
    definitions and the injected collaborators.
    """

    def __init__(
        self,
        definitions: Mapping[WorkflowKind, WorkflowDefinition],
        directory: Directory,
        clock: Clock | None = None,
        identity: IdentityResolver | None = None,
        completion_handlers: Mapping[WorkflowKind, Sequence[CompletionHandler]] | None = None,
    ):
        self._definitions = dict(definitions)
        self._directory = directory
        self._clock = clock or SystemClock()
        self._identity = identity
        self._handlers = {
            kind: tuple(handlers) for kind, handlers in (completion_handlers or {}).items()
        }

    @property
    def directory(self) -> Directory:
        return self._directory

    def definition_for(self, kind: WorkflowKind | str) -> WorkflowDefinition:
        try:
            return self._definitions[WorkflowKind(kind)]
        except (KeyError, ValueError):
            raise WorkflowNotConfiguredError(str(getattr(kind, "value", kind))) from None

    # ------------------------------------------------------------------
    # Initiation
    # ------------------------------------------------------------------

    def initiate(
        self,
        kind: WorkflowKind | str,
        subject: ChainSubject,
        document_id: str | None = None,
    ) -> InitiationResult:
        """Build the initial chain and status for a new document."""
        definition = self.definition_for(kind)
        with LogContext.bind(document_id=document_id, workflow_kind=definition.kind.value):
            result = build_chain(
                definition=definition,
                subject=subject,
                directory=self._directory,
                identity=self._identity,
            )
            chain = result.chain
            self._log_build(definition, subject, result.used_fallback, result.warnings)

            first = next_actionable(chain)
            auto_completed = first is None
            status = document_status(definition, chain, auto_completed=auto_completed)

            logger.info(
                "chain_built",
                extra={
                    "workflow_kind": definition.kind.value,
                    "strategy": definition.strategy.value,
                    "levels": len(chain),
                    "skipped": sum(1 for s in chain if s.status == StepStatus.SKIPPED),
                    "used_fallback": result.used_fallback,
                    "document_status": status,
                    "directory_version": self._directory.version,
                },
            )

            if auto_completed:
                logger.info(
                    "chain_auto_completed",
                    extra={"workflow_kind": definition.kind.value, "levels": len(chain)},
                )
                self._run_completion(definition.kind, chain, document_id)

            return InitiationResult(
                chain=chain,
                document_status=status,
                notify_target=self._notify_target(first),
                auto_completed=auto_completed,
                used_fallback=result.used_fallback,
                warnings=result.warnings,
            )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def record_decision(
        self,
        kind: WorkflowKind | str,
        chain: ApprovalChain,
        level: int,
        acting_email: str,
        decision: ApprovalDecision | str,
        comments: str | None = None,
        *,
        grade: Decimal | int | float | str | None = None,
        quality_notes: str = "",
        acting_user_id: UUID | None = None,
        document_id: str | None = None,
    ) -> DecisionResult:
        """Validate and apply one approver decision.

        Returns the new chain, the recomputed document status and the
        approver to notify next (None when the chain is decided or the
        next approver has no resolvable identity).
        """
        definition = self.definition_for(kind)
        decision = ApprovalDecision.parse(decision)
        actor = normalize_email(acting_email)

        with LogContext.bind(
            document_id=document_id,
            actor_email=actor,
            workflow_kind=definition.kind.value,
        ):
            step = chain.step_at(level)
            self._authorize(chain, level, actor, acting_user_id)

            payload = None
            if decision == ApprovalDecision.APPROVE:
                if grade is not None:
                    payload = make_grade_payload(grade, quality_notes)
                elif definition.requires_grade:
                    raise MissingGradeError(definition.kind.value, level)

            new_chain = apply_decision(
                chain,
                level=level,
                decision=decision,
                decided_at=self._clock.now(),
                comments=comments,
                payload=payload,
            )

            state = chain_state(new_chain)
            if state == ChainState.REJECTED:
                outcome = DecisionOutcome.REJECTED
                notify = None
            elif state == ChainState.COMPLETE:
                outcome = DecisionOutcome.COMPLETED
                notify = None
            else:
                outcome = DecisionOutcome.ADVANCED
                notify = self._notify_target(next_actionable(new_chain))

            status = document_status(definition, new_chain)
            logger.info(
                "decision_recorded",
                extra={
                    "step_level": level,
                    "slot": step.slot,
                    "decision": decision.value,
                    "outcome": outcome.value,
                    "document_status": status,
                    "graded": payload is not None,
                },
            )

            if outcome == DecisionOutcome.COMPLETED:
                self._run_completion(definition.kind, new_chain, document_id)

            return DecisionResult(
                chain=new_chain,
                document_status=status,
                outcome=outcome,
                notify_target=notify,
            )

    def resubmit(
        self,
        kind: WorkflowKind | str,
        previous_chain: ApprovalChain,
        subject: ChainSubject,
        rejected_reason: str | None = None,
        document_id: str | None = None,
    ) -> ResubmissionResult:
        """Replace a rejected chain with a freshly built one.

        The discarded chain is returned as a ``RejectionRecord`` for the
        caller's append-only rejection history.
        """
        rejected = [s for s in previous_chain if s.status == StepStatus.REJECTED]
        if not rejected:
            current = next_actionable(previous_chain)
            raise InvalidTransitionError(
                current.level if current else len(previous_chain),
                chain_state(previous_chain).value,
                "only a rejected chain can be resubmitted",
            )

        step = rejected[0]
        record = RejectionRecord(
            chain=previous_chain,
            rejected_level=step.level,
            rejected_by=step.approver,
            reason=rejected_reason if rejected_reason is not None else step.comments,
            rejected_at=step.decided_at,
            recorded_at=self._clock.now(),
        )
        logger.info(
            "chain_resubmitted",
            extra={
                "workflow_kind": str(getattr(kind, "value", kind)),
                "document_id": document_id,
                "rejected_level": step.level,
            },
        )
        return ResubmissionResult(
            initiation=self.initiate(kind, subject, document_id=document_id),
            rejection=record,
        )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def can_act(self, acting_email: str | None, chain: ApprovalChain, level: int) -> bool:
        return can_act(acting_email, chain, level)

    def summary(self, chain: ApprovalChain) -> ChainSummary:
        return chain_summary(chain)

    def document_status(self, kind: WorkflowKind | str, chain: ApprovalChain) -> str:
        return document_status(self.definition_for(kind), chain)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _authorize(
        self,
        chain: ApprovalChain,
        level: int,
        actor: str,
        acting_user_id: UUID | None,
    ) -> None:
        step = chain.step_at(level)
        if not can_act(actor, chain, level):
            if step.approver.matches(actor):
                raise InvalidTransitionError(level, step.status.value, "step is not pending")
            logger.warning(
                "decision_unauthorized",
                extra={
                    "step_level": level,
                    "expected_email": step.approver.email,
                    "approver_resolved": step.approver.is_resolved,
                },
            )
            raise UnauthorizedApproverError(actor, level, step.approver.email)

        if (
            step.approver.user_id is not None
            and acting_user_id is not None
            and step.approver.user_id != acting_user_id
        ):
            logger.warning(
                "decision_unauthorized",
                extra={"step_level": level, "reason": "account mismatch"},
            )
            raise UnauthorizedApproverError(actor, level, step.approver.email)

    def _notify_target(self, step: ApprovalStep | None) -> Approver | None:
        if step is None:
            return None
        if not step.approver.is_resolved:
            logger.warning(
                "notify_target_unresolved",
                extra={"step_level": step.level, "slot": step.slot, "role": step.approver.role},
            )
            return None
        return step.approver

    def _run_completion(
        self,
        kind: WorkflowKind,
        chain: ApprovalChain,
        document_id: str | None,
    ) -> None:
        for handler in self._handlers.get(kind, ()):
            handler.on_complete(kind, chain, document_id)
            logger.info(
                "completion_handler_ran",
                extra={"handler": type(handler).__name__},
            )

    def _log_build(
        self,
        definition: WorkflowDefinition,
        subject: ChainSubject,
        used_fallback: bool,
        warnings: tuple[str, ...],
    ) -> None:
        if used_fallback:
            logger.warning(
                "chain_fallback_used",
                extra={
                    "workflow_kind": definition.kind.value,
                    "subject_email": subject.subject_email,
                    "creator_email": subject.creator_email,
                    "department": subject.department,
                },
            )
        for warning in warnings:
            logger.warning(
                "org_data_quality",
                extra={"workflow_kind": definition.kind.value, "detail": warning},
            )
