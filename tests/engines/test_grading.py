"""Tests for task-completion grading (``approval_engines.grading``)."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from approval_engines.chain_state import apply_decision
from approval_engines.grading import (
    effective_score,
    final_grade,
    make_grade_payload,
    validate_grade,
)
from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalDecision,
    ApprovalStep,
    Approver,
    StepStatus,
)
from approval_kernel.exceptions import InvalidGradeError

DECIDED = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


class TestValidateGrade:

    @pytest.mark.parametrize("raw, expected", [
        (1, Decimal("1.0")),
        ("5", Decimal("5.0")),
        (4.1, Decimal("4.1")),
        (Decimal("3.50"), Decimal("3.5")),
        (" 2.5 ", Decimal("2.5")),
    ])
    def test_valid_grades(self, raw, expected):
        assert validate_grade(raw) == expected

    @pytest.mark.parametrize("raw", [0, "0.9", 5.1, 6, -1])
    def test_out_of_range(self, raw):
        with pytest.raises(InvalidGradeError) as exc_info:
            validate_grade(raw)
        assert exc_info.value.code == "INVALID_GRADE"

    @pytest.mark.parametrize("raw", ["4.25", 3.33])
    def test_too_precise(self, raw):
        with pytest.raises(InvalidGradeError):
            validate_grade(raw)

    @pytest.mark.parametrize("raw", ["excellent", "", "NaN", "Infinity", True])
    def test_not_a_number(self, raw):
        with pytest.raises(InvalidGradeError):
            validate_grade(raw)


class TestScores:

    def test_make_grade_payload(self):
        payload = make_grade_payload("4.5", None)
        assert payload.grade == Decimal("4.5")
        assert payload.quality_notes == ""

    def test_effective_score(self):
        assert effective_score(Decimal("4.0"), 10) == Decimal("8.00")
        assert effective_score(Decimal("3.3"), Decimal("7")) == Decimal("4.62")

    def test_final_grade_is_mean_of_approved_grades(self):
        chain = ApprovalChain((
            ApprovalStep(level=1, approver=Approver("A", "a@corp.test", "Supervisor")),
            ApprovalStep(level=2, approver=Approver("B", "b@corp.test", "Supervisor")),
            ApprovalStep(
                level=3,
                approver=Approver.unresolved("Project Creator"),
                status=StepStatus.SKIPPED,
                skip_reason="No project creator assigned",
            ),
        ))
        for level, grade in ((1, "4.0"), (2, "4.5")):
            chain = apply_decision(
                chain,
                level=level,
                decision=ApprovalDecision.APPROVE,
                decided_at=DECIDED,
                payload=make_grade_payload(grade),
            )
        # 4.25 rounds half-up
        assert final_grade(chain) == Decimal("4.3")

    def test_final_grade_none_when_ungraded(self):
        chain = ApprovalChain((
            ApprovalStep(level=1, approver=Approver("A", "a@corp.test", "Supervisor")),
        ))
        assert final_grade(chain) is None
