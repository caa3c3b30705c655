"""
approval_engines.chain_state -- Pure approval chain state machine.

Responsibility:
    Decide which step is actionable, whether a person may act on a level,
    apply approve/reject decisions, and project a progress summary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.

Invariants enforced:
    - Sequential order: only the lowest pending level may be decided.
    - One-way statuses: ``STEP_TRANSITIONS`` is the only source of legal
      status changes; decided steps never revert.
    - No user-driven skip: decisions map to approved/rejected only.
    - Rejection is terminal for the chain: later levels stay ``pending``
      in the data but no further decision is accepted.
    - Purity: the decision timestamp is a parameter; chains are immutable
      and every read is repeatable.

Failure modes:
    - ``LevelNotFoundError`` for a level outside ``1..N``.
    - ``InvalidTransitionError`` for a non-pending step, a level that is
      not the current actionable one, or a chain that is already rejected.

Concurrency:
    ``apply_decision`` has no compare-and-swap semantics.  Callers must
    serialise decisions per document (optimistic version check or single
    writer) so two decisions are never applied to the same stale chain.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    DECISION_STATUS,
    STEP_TRANSITIONS,
    ApprovalChain,
    ApprovalDecision,
    ApprovalStep,
    ChainState,
    ChainSummary,
    GradePayload,
    StepStatus,
)
from approval_kernel.exceptions import InvalidTransitionError, LevelNotFoundError


def next_actionable(chain: ApprovalChain) -> ApprovalStep | None:
    """Lowest-level pending step, or None when nothing is pending."""
    for step in chain:
        if step.status == StepStatus.PENDING:
            return step
    return None


def is_rejected(chain: ApprovalChain) -> bool:
    return any(step.status == StepStatus.REJECTED for step in chain)


def is_complete(chain: ApprovalChain) -> bool:
    """True iff no step is pending and no step is rejected."""
    return not any(
        step.status in (StepStatus.PENDING, StepStatus.REJECTED) for step in chain
    )


def chain_state(chain: ApprovalChain) -> ChainState:
    if is_rejected(chain):
        return ChainState.REJECTED
    if is_complete(chain):
        return ChainState.COMPLETE
    return ChainState.IN_PROGRESS


def can_act(person_email: str | None, chain: ApprovalChain, level: int) -> bool:
    """True iff ``level`` exists, is pending, and is bound to ``person_email``.

    A step whose approver could not be resolved never matches anyone.
    """
    try:
        step = chain.step_at(level)
    except LevelNotFoundError:
        return False
    return step.status == StepStatus.PENDING and step.approver.matches(person_email)


@traced_engine("chain_state", "1.0", fingerprint_fields=("level", "decision"))
def apply_decision(
    chain: ApprovalChain,
    *,
    level: int,
    decision: ApprovalDecision,
    decided_at: datetime,
    comments: str | None = None,
    payload: GradePayload | None = None,
) -> ApprovalChain:
    """Record ``decision`` on ``level`` and return the new chain.

    Rejection does not touch later levels.  The caller inspects
    ``next_actionable`` / ``chain_state`` on the result to decide what
    happens next.

    Raises:
        LevelNotFoundError: if ``level`` does not exist.
        InvalidTransitionError: if the step is not the current actionable
            step, or the chain has already been rejected.
    """
    step = chain.step_at(level)

    if is_rejected(chain):
        raise InvalidTransitionError(
            level, step.status.value, "chain has already been rejected"
        )
    if step.status != StepStatus.PENDING:
        raise InvalidTransitionError(level, step.status.value, "step is not pending")

    current = next_actionable(chain)
    if current is None or current.level != level:
        raise InvalidTransitionError(
            level,
            step.status.value,
            "step is not the current actionable level",
            actionable_level=current.level if current else None,
        )

    new_status = DECISION_STATUS[ApprovalDecision.parse(decision)]
    if new_status not in STEP_TRANSITIONS[step.status]:
        raise InvalidTransitionError(
            level, step.status.value, f"transition to {new_status.value} not allowed"
        )

    return chain.with_step(replace(
        step,
        status=new_status,
        comments=comments,
        decided_at=decided_at,
        payload=payload if new_status == StepStatus.APPROVED else None,
    ))


def chain_summary(chain: ApprovalChain) -> ChainSummary:
    """Read-only progress projection.

    ``progress_percent`` is ``approved / (total - skipped)`` as a
    round-half-up percentage, 0 when every step was skipped.
    """
    counts = {status: 0 for status in StepStatus}
    for step in chain:
        counts[step.status] += 1

    total = len(chain)
    effective_total = total - counts[StepStatus.SKIPPED]
    if effective_total > 0:
        progress = int(
            (Decimal(counts[StepStatus.APPROVED] * 100) / Decimal(effective_total))
            .quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        )
    else:
        progress = 0

    current = next_actionable(chain)
    return ChainSummary(
        total=total,
        approved=counts[StepStatus.APPROVED],
        rejected=counts[StepStatus.REJECTED],
        pending=counts[StepStatus.PENDING],
        skipped=counts[StepStatus.SKIPPED],
        effective_total=effective_total,
        progress_percent=progress,
        is_complete=is_complete(chain),
        current_level=current.level if current else None,
    )
