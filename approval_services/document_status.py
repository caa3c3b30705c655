"""
approval_services.document_status -- Chain state to document status mapping.

Responsibility:
    Derive the parent document's status label from its approval chain,
    and aggregate labels across documents for the statistics view.

Architecture position:
    Services layer.  Pure functions over engine outputs; the orchestrator
    is the only caller that writes the result onto a document.

Invariants enforced:
    - Any rejected step makes the document rejected, whatever is still
      pending.
    - A complete chain maps to the completed label (or the
      auto-completed label when the chain never had an actionable step).
    - Otherwise the label is looked up by the actionable step's slot,
      then its level, then the kind's default pending label.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from approval_engines.chain_state import chain_state, next_actionable
from approval_kernel.domain.approval import ApprovalChain, ChainState
from approval_kernel.domain.workflow import WorkflowDefinition


def document_status(
    definition: WorkflowDefinition,
    chain: ApprovalChain,
    *,
    auto_completed: bool = False,
) -> str:
    statuses = definition.statuses
    state = chain_state(chain)
    if state == ChainState.REJECTED:
        return statuses.rejected
    if state == ChainState.COMPLETE:
        return statuses.auto_completed_label if auto_completed else statuses.completed

    step = next_actionable(chain)
    return statuses.pending_label(step.slot, step.level)


def status_breakdown(
    definition: WorkflowDefinition,
    chains: Iterable[ApprovalChain],
) -> dict[str, int]:
    """Number of documents per derived status label, sorted by label."""
    counts = Counter(document_status(definition, chain) for chain in chains)
    return dict(sorted(counts.items()))
