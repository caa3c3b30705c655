"""
Module: approval_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    approval engines.  This is the import surface for approval_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ (and sibling engine modules).
    MUST NOT import approval_services, approval_config or SQLAlchemy.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; decision timestamps
      are passed in by the orchestrator.
    - Determinism: identical inputs always produce identical outputs.
"""

from approval_engines.chain_builder import (
    build_chain,
    build_fallback_chain,
    build_fixed_depth_chain,
    build_supervisory_chain,
    build_three_level_chain,
)
from approval_engines.chain_state import (
    apply_decision,
    can_act,
    chain_state,
    chain_summary,
    is_complete,
    is_rejected,
    next_actionable,
)
from approval_engines.grading import (
    effective_score,
    final_grade,
    make_grade_payload,
    validate_grade,
)

__all__ = [
    "apply_decision",
    "build_chain",
    "build_fallback_chain",
    "build_fixed_depth_chain",
    "build_supervisory_chain",
    "build_three_level_chain",
    "can_act",
    "chain_state",
    "chain_summary",
    "effective_score",
    "final_grade",
    "is_complete",
    "is_rejected",
    "make_grade_payload",
    "next_actionable",
    "validate_grade",
]
