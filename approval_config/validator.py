"""
Configuration Validator (``approval_config.validator``).

Responsibility
--------------
Validates an ``ApprovalConfigurationSet`` before it is bridged into a
``Directory`` and workflow definitions.

Invariants enforced
-------------------
* Person e-mails are present and unique (case-insensitive).
* Workflow kinds and strategies are known, and each kind is defined once.
* Slot holders use the ``department_head`` / ``role:<name>`` notation.
* Fixed-depth workflows declare at least one slot.

Failure modes
-------------
* Validation errors  -> the set MUST NOT be used.
* Validation warnings  -> org-data gaps the engine tolerates (dangling
  ``reports_to``, unknown role holders).  The builder fails closed on
  them at runtime; they should still be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from approval_config.schema import ApprovalConfigurationSet
from approval_kernel.domain.approval import ChainStrategy, WorkflowKind
from approval_kernel.domain.directory import normalize_email
from approval_kernel.domain.workflow import DEPARTMENT_HEAD_HOLDER, ROLE_HOLDER_PREFIX

_KINDS = {k.value for k in WorkflowKind}
_STRATEGIES = {s.value for s in ChainStrategy}


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: ApprovalConfigurationSet) -> ConfigValidationResult:
    result = ConfigValidationResult()
    emails = _validate_people(config, result)
    _validate_org_references(config, emails, result)
    _validate_workflows(config, result)
    return result


def _validate_people(
    config: ApprovalConfigurationSet,
    result: ConfigValidationResult,
) -> set[str]:
    emails: set[str] = set()
    for person in config.org_chart.people:
        key = normalize_email(person.email)
        if not key:
            result.add_error(f"Person '{person.name}' has no e-mail")
            continue
        if key in emails:
            result.add_error(f"Duplicate person e-mail: {key}")
        emails.add(key)
    return emails


def _validate_org_references(
    config: ApprovalConfigurationSet,
    emails: set[str],
    result: ConfigValidationResult,
) -> None:
    for person in config.org_chart.people:
        boss = normalize_email(person.reports_to)
        if boss and boss not in emails:
            result.add_warning(
                f"{normalize_email(person.email)} reports to {boss}, which is not in the org chart"
            )
    for dept in config.org_chart.departments:
        if dept.head and normalize_email(dept.head) not in emails:
            result.add_warning(f"Head of '{dept.name}' ({dept.head}) is not in the org chart")
    for role, email in sorted(config.org_chart.roles.items()):
        if normalize_email(email) not in emails:
            result.add_warning(f"Role '{role}' holder {email} is not in the org chart")


def _validate_workflows(
    config: ApprovalConfigurationSet,
    result: ConfigValidationResult,
) -> None:
    roles = set(config.org_chart.roles)
    seen: set[str] = set()
    for wf in config.workflows:
        if wf.kind not in _KINDS:
            result.add_error(f"Unknown workflow kind '{wf.kind}'")
        elif wf.kind in seen:
            result.add_error(f"Workflow kind '{wf.kind}' is defined more than once")
        seen.add(wf.kind)

        if wf.strategy not in _STRATEGIES:
            result.add_error(f"Workflow '{wf.kind}' has unknown strategy '{wf.strategy}'")
        if wf.strategy == ChainStrategy.FIXED_DEPTH.value and not wf.slots:
            result.add_error(f"Fixed-depth workflow '{wf.kind}' declares no slots")

        for slot in wf.slots:
            holder = slot.holder.strip()
            if holder == DEPARTMENT_HEAD_HOLDER:
                continue
            if not holder.startswith(ROLE_HOLDER_PREFIX):
                result.add_error(
                    f"Workflow '{wf.kind}' slot '{slot.slot}' has unknown holder '{slot.holder}'"
                )
                continue
            role = holder[len(ROLE_HOLDER_PREFIX):].strip()
            if role not in roles:
                result.add_warning(
                    f"Workflow '{wf.kind}' slot '{slot.slot}' references unassigned role '{role}'"
                )

        for role in wf.stop_at_roles:
            if role not in roles:
                result.add_warning(f"Workflow '{wf.kind}' stops at unassigned role '{role}'")
