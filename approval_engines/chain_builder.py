"""
approval_engines.chain_builder -- Pure approval chain construction.

Responsibility:
    Derive the ordered list of approval steps for a business document from
    its workflow definition, the document's subject and an org-chart
    snapshot.  Three composition strategies share one output shape:

    * supervisory escalation -- walk ``reports_to`` from the subject, one
      step per hop, then append the definition's role tail;
    * fixed depth -- a short role sequence with self-approval and
      duplicate holders *omitted* and levels renumbered;
    * explicit three level -- supervisor, supervisor's supervisor and
      creator, with unusable levels *skipped* (never omitted).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel/domain/ types.

Invariants enforced:
    - Level contiguity: every chain has levels ``1..N``.
    - Termination: the supervisory walk records every e-mail it visits and
      stops at the first repeat, so it ends within ``len(directory)`` hops
      even on cyclic org data.
    - Fail-closed degradation: a role holder that cannot be resolved
      still yields a step, with a null identity, so no one can act on it.
    - No "subject not found" failure: an unresolvable subject yields the
      role-only fallback chain and ``used_fallback=True``.

Failure modes:
    - None raised for org-data gaps; they are returned as ``warnings``.
    - ``MalformedChainError`` only on an internal composition bug.
"""

from __future__ import annotations

from uuid import UUID

from approval_engines.tracer import traced_engine
from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalStep,
    Approver,
    ChainBuildResult,
    ChainStrategy,
    ChainSubject,
    IdentityResolver,
    StepStatus,
)
from approval_kernel.domain.directory import (
    Directory,
    NotFound,
    Person,
    normalize_email,
    same_email,
)
from approval_kernel.domain.workflow import HolderKind, RoleSlot, WorkflowDefinition

SUPERVISOR_SLOT = "supervisor"
IMMEDIATE_SUPERVISOR_SLOT = "immediate_supervisor"
SECOND_SUPERVISOR_SLOT = "supervisor_supervisor"
CREATOR_SLOT = "project_creator"

IMMEDIATE_SUPERVISOR_ROLE = "Immediate Supervisor"
SECOND_SUPERVISOR_ROLE = "Supervisor's Supervisor"
CREATOR_ROLE = "Project Creator"


# =========================================================================
# Entry point
# =========================================================================


@traced_engine("chain_builder", "1.0", fingerprint_fields=("definition", "subject"))
def build_chain(
    *,
    definition: WorkflowDefinition,
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None = None,
) -> ChainBuildResult:
    """Build the initial chain for a document.

    All steps are ``pending`` except those the three-level strategy marks
    ``skipped`` at construction time.
    """
    if definition.strategy == ChainStrategy.SUPERVISORY_ESCALATION:
        return build_supervisory_chain(definition, subject, directory, identity)
    if definition.strategy == ChainStrategy.FIXED_DEPTH:
        return build_fixed_depth_chain(definition, subject, directory, identity)
    return build_three_level_chain(subject, directory, identity)


# =========================================================================
# Supervisory escalation
# =========================================================================


def build_supervisory_chain(
    definition: WorkflowDefinition,
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None = None,
) -> ChainBuildResult:
    lookup = directory.find_by_email(subject.subject_email)
    if isinstance(lookup, NotFound):
        return build_fallback_chain(
            definition,
            subject,
            directory,
            identity,
            reason=f"subject {lookup.email or '<blank>'} not found in directory",
        )

    warnings: list[str] = []
    steps: list[ApprovalStep] = []
    stop_emails = {
        email
        for email in (directory.role_email(role) for role in definition.stop_at_roles)
        if email
    }

    current: Person = lookup.person
    seen = {current.key}
    while not current.is_root:
        supervisor_email = normalize_email(current.reports_to)
        if supervisor_email in stop_emails:
            break
        if supervisor_email in seen:
            warnings.append(
                f"reporting cycle at {supervisor_email}; hierarchy walk stopped"
            )
            break
        supervisor = directory.find_by_email(supervisor_email)
        if isinstance(supervisor, NotFound):
            warnings.append(
                f"{current.key} reports to {supervisor_email}, which is not in the "
                "directory; hierarchy walk stopped"
            )
            break

        person = supervisor.person
        role = "Department Head" if person.is_department_head else (person.position or "Supervisor")
        steps.append(ApprovalStep(
            level=len(steps) + 1,
            slot=SUPERVISOR_SLOT,
            approver=_approver(person, role, identity),
        ))
        seen.add(person.key)
        current = person

    department = lookup.person.department
    for slot in definition.slots:
        steps.append(_slot_step(slot, len(steps) + 1, department, directory, identity, warnings))

    return ChainBuildResult(chain=ApprovalChain(tuple(steps)), warnings=tuple(warnings))


# =========================================================================
# Fixed depth
# =========================================================================


def build_fixed_depth_chain(
    definition: WorkflowDefinition,
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None = None,
) -> ChainBuildResult:
    creator = directory.find_by_email(subject.creator_email) if subject.creator_email else None
    department = directory.resolve_department(subject.department)

    if isinstance(creator, NotFound):
        return build_fallback_chain(
            definition,
            subject,
            directory,
            identity,
            reason=f"creator {creator.email} not found in directory",
        )
    if creator is None and department is None:
        return build_fallback_chain(
            definition,
            subject,
            directory,
            identity,
            reason=f"department {subject.department!r} not found in directory",
        )
    warnings: list[str] = []
    if department is None:
        department = creator.person.department
        if (subject.department or "").strip():
            warnings.append(
                f"department {subject.department!r} not found in directory; "
                f"using creator's department {department!r}"
            )

    steps = _role_steps(
        definition.slots, department, subject.creator_email, directory, identity, warnings
    )
    return ChainBuildResult(chain=ApprovalChain.renumbered(steps), warnings=tuple(warnings))


# =========================================================================
# Explicit three level
# =========================================================================


def build_three_level_chain(
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None = None,
) -> ChainBuildResult:
    warnings: list[str] = []
    assignee = directory.find_by_email(subject.subject_email)

    if isinstance(assignee, NotFound):
        level_one = _fallback_supervisor_step(subject, directory, identity, warnings)
        level_two = _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE,
                             "Assignee not found in directory - no supervisor hierarchy")
        level_three = _creator_step(subject, directory, identity, (level_one, level_two))
        return ChainBuildResult(
            chain=ApprovalChain((level_one, level_two, level_three)),
            used_fallback=True,
            warnings=tuple(warnings)
            + (f"assignee {assignee.email or '<blank>'} not found in directory",),
        )

    person = assignee.person
    supervisor = directory.supervisor_of(person.email)

    if supervisor is None:
        if person.is_root:
            reason_one = "Top-level employee - no supervisor to grade"
            reason_two = "Top-level employee - no supervisor hierarchy"
        else:
            warnings.append(
                f"{person.key} reports to {normalize_email(person.reports_to)}, "
                "which is not in the directory"
            )
            reason_one = "Supervisor not found in directory"
            reason_two = "No supervisor hierarchy available"
        level_one = _skipped(1, IMMEDIATE_SUPERVISOR_SLOT, IMMEDIATE_SUPERVISOR_ROLE, reason_one)
        level_two = _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE, reason_two)
    elif supervisor.key == person.key:
        # An assignee never grades their own task.
        warnings.append(f"reporting cycle at {person.key}; {person.key} reports to themselves")
        level_one = _skipped(
            1, IMMEDIATE_SUPERVISOR_SLOT, IMMEDIATE_SUPERVISOR_ROLE,
            "Reporting line loops back to the assignee",
            _approver(supervisor, IMMEDIATE_SUPERVISOR_ROLE, identity),
        )
        level_two = _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE,
                             "No supervisor hierarchy available")
    else:
        level_one = ApprovalStep(
            level=1,
            slot=IMMEDIATE_SUPERVISOR_SLOT,
            approver=_approver(supervisor, IMMEDIATE_SUPERVISOR_ROLE, identity),
        )
        level_two = _second_supervisor_step(person, supervisor, subject, directory, identity)

    level_three = _creator_step(subject, directory, identity, (level_one, level_two))
    return ChainBuildResult(
        chain=ApprovalChain((level_one, level_two, level_three)),
        warnings=tuple(warnings),
    )


def _second_supervisor_step(
    assignee: Person,
    supervisor: Person,
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None,
) -> ApprovalStep:
    second = directory.supervisor_of(supervisor.email)
    if second is None:
        return _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE,
                        "No supervisor's supervisor in hierarchy")

    approver = _approver(second, SECOND_SUPERVISOR_ROLE, identity)
    if same_email(second.email, subject.creator_email):
        return _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE,
                        "Same as project creator - skipped to Level 3", approver)
    if same_email(second.email, supervisor.email) or same_email(second.email, assignee.email):
        return _skipped(2, SECOND_SUPERVISOR_SLOT, SECOND_SUPERVISOR_ROLE,
                        "Reporting line loops back to an earlier approver", approver)
    return ApprovalStep(level=2, slot=SECOND_SUPERVISOR_SLOT, approver=approver)


def _creator_step(
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None,
    earlier: tuple[ApprovalStep, ...],
) -> ApprovalStep:
    creator_email = normalize_email(subject.creator_email)
    if not creator_email:
        return _skipped(3, CREATOR_SLOT, CREATOR_ROLE, "No project creator assigned")

    lookup = directory.find_by_email(creator_email)
    if isinstance(lookup, NotFound):
        # The creator is a registered caller, not an org-chart reference.
        approver = Approver(
            name=creator_email,
            email=creator_email,
            role=CREATOR_ROLE,
            user_id=_user_id(identity, creator_email),
        )
    else:
        approver = _approver(lookup.person, CREATOR_ROLE, identity)

    acting_earlier = [s for s in earlier if s.status != StepStatus.SKIPPED]
    if any(s.approver.matches(creator_email) for s in acting_earlier):
        return _skipped(3, CREATOR_SLOT, CREATOR_ROLE,
                        "Creator is also supervisor - approval consolidated", approver)
    return ApprovalStep(level=3, slot=CREATOR_SLOT, approver=approver)


def _fallback_supervisor_step(
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None,
    warnings: list[str],
) -> ApprovalStep:
    head = directory.department_head(subject.department)
    if head is None:
        warnings.append(f"no department head resolvable for {subject.department!r}")
        return _skipped(1, IMMEDIATE_SUPERVISOR_SLOT, IMMEDIATE_SUPERVISOR_ROLE,
                        "Assignee not found in directory - no supervisor to grade")
    return ApprovalStep(
        level=1,
        slot=IMMEDIATE_SUPERVISOR_SLOT,
        approver=_approver(head, IMMEDIATE_SUPERVISOR_ROLE, identity),
    )


# =========================================================================
# Fallback
# =========================================================================


def build_fallback_chain(
    definition: WorkflowDefinition,
    subject: ChainSubject,
    directory: Directory,
    identity: IdentityResolver | None = None,
    reason: str = "subject not found in directory",
) -> ChainBuildResult:
    """Role-only chain used when the subject cannot be resolved.

    Department-head slots are kept only when the subject names a
    department the directory knows; everything derived from the subject's
    reporting line is dropped.  Document submission is never blocked by
    org-data gaps.
    """
    if definition.strategy == ChainStrategy.THREE_LEVEL:
        return build_three_level_chain(subject, directory, identity)

    warnings: list[str] = [reason]
    department = directory.resolve_department(subject.department)
    slots = tuple(
        slot
        for slot in definition.slots
        if slot.holder != HolderKind.DEPARTMENT_HEAD or department is not None
    )
    if definition.strategy == ChainStrategy.SUPERVISORY_ESCALATION:
        # The tail is appended in full, as in the regular build.
        steps = [
            _slot_step(slot, index, department, directory, identity, warnings)
            for index, slot in enumerate(slots, start=1)
        ]
    else:
        steps = _role_steps(
            slots, department, subject.creator_email, directory, identity, warnings
        )
    return ChainBuildResult(
        chain=ApprovalChain.renumbered(steps),
        used_fallback=True,
        warnings=tuple(warnings),
    )


# =========================================================================
# Helpers
# =========================================================================


def _role_steps(
    slots: tuple[RoleSlot, ...],
    department: str | None,
    creator_email: str | None,
    directory: Directory,
    identity: IdentityResolver | None,
    warnings: list[str],
) -> list[ApprovalStep]:
    """Fixed-depth composition: omit the creator's own slot and repeat holders."""
    steps: list[ApprovalStep] = []
    seen: set[str] = set()
    for slot in slots:
        step = _slot_step(slot, len(steps) + 1, department, directory, identity, warnings)
        email = normalize_email(step.approver.email)
        if email and (email == normalize_email(creator_email) or email in seen):
            continue
        if email:
            seen.add(email)
        steps.append(step)
    return steps


def _slot_step(
    slot: RoleSlot,
    level: int,
    department: str | None,
    directory: Directory,
    identity: IdentityResolver | None,
    warnings: list[str],
) -> ApprovalStep:
    if slot.holder == HolderKind.DEPARTMENT_HEAD:
        holder = directory.department_head(department)
        missing = f"no department head resolvable for {department!r}"
    else:
        holder = directory.holder_of(slot.role_name or "")
        configured = directory.role_email(slot.role_name or "")
        missing = (
            f"role '{slot.role_name}' holder {configured} is not in the directory"
            if configured
            else f"role '{slot.role_name}' has no configured holder"
        )

    if holder is None:
        warnings.append(f"{missing}; step '{slot.slot}' cannot be acted on")
        return ApprovalStep(
            level=level,
            slot=slot.slot,
            approver=Approver.unresolved(slot.label, department),
        )
    return ApprovalStep(level=level, slot=slot.slot, approver=_approver(holder, slot.label, identity))


def _approver(person: Person, role: str, identity: IdentityResolver | None) -> Approver:
    return Approver(
        name=person.name,
        email=person.key,
        role=role,
        department=person.department,
        user_id=_user_id(identity, person.key),
    )


def _user_id(identity: IdentityResolver | None, email: str) -> UUID | None:
    if identity is None:
        return None
    return identity.resolve_user_id(email)


def _skipped(
    level: int,
    slot: str,
    role: str,
    reason: str,
    approver: Approver | None = None,
) -> ApprovalStep:
    return ApprovalStep(
        level=level,
        slot=slot,
        approver=approver or Approver.unresolved(role),
        status=StepStatus.SKIPPED,
        skip_reason=reason,
    )
