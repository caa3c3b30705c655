"""
approval_engines.grading -- Task-completion grade rules.

Responsibility:
    Validate grades attached to task-completion approvals and compute the
    derived scores used by the completion side effects (KPI and milestone
    roll-ups, which live outside this engine).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Grades are Decimal, 1.0 <= grade <= 5.0, at most one decimal place.
    - Floats are converted through ``str`` so 4.1 stays 4.1.

Failure modes:
    - ``InvalidGradeError`` for out-of-range, over-precise or
      non-numeric grades.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from approval_kernel.domain.approval import ApprovalChain, GradePayload, StepStatus
from approval_kernel.exceptions import InvalidGradeError

GRADE_MIN = Decimal("1.0")
GRADE_MAX = Decimal("5.0")


def validate_grade(grade: Decimal | int | float | str) -> Decimal:
    """Return ``grade`` as a Decimal or raise ``InvalidGradeError``."""
    if isinstance(grade, bool):
        raise InvalidGradeError(grade, "not a number")
    try:
        value = Decimal(str(grade).strip())
    except (InvalidOperation, ValueError):
        raise InvalidGradeError(grade, "not a number") from None
    if not value.is_finite():
        raise InvalidGradeError(grade, "not a finite number")
    if value < GRADE_MIN or value > GRADE_MAX:
        raise InvalidGradeError(grade, f"must be between {GRADE_MIN} and {GRADE_MAX}")
    if value != value.quantize(Decimal("0.1")):
        raise InvalidGradeError(grade, "at most one decimal place is allowed")
    return value.quantize(Decimal("0.1"))


def make_grade_payload(grade: Decimal | int | float | str, quality_notes: str = "") -> GradePayload:
    return GradePayload(grade=validate_grade(grade), quality_notes=quality_notes or "")


def effective_score(grade: Decimal, task_weight: Decimal | int) -> Decimal:
    """Share of the task's weight earned: ``grade / 5 * task_weight``."""
    score = validate_grade(grade) / GRADE_MAX * Decimal(task_weight)
    return score.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def final_grade(chain: ApprovalChain) -> Decimal | None:
    """Mean grade over approved steps, one decimal, None if ungraded."""
    grades = [
        step.payload.grade
        for step in chain
        if step.status == StepStatus.APPROVED and step.payload is not None
    ]
    if not grades:
        return None
    mean = sum(grades, Decimal("0")) / Decimal(len(grades))
    return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
