"""
Configuration Loader (``approval_config.loader``).

Responsibility
--------------
Loads the YAML fragments of a configuration set and parses them into
typed ``approval_config.schema`` dataclass instances.  This is
**build/test tooling only** -- no service or orchestrator should call
this directly.  The single public entry point for runtime config is
``approval_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  It has no dependency on
kernel, engines, or services.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    ApprovalConfigurationSet,
    DepartmentDef,
    OrgChartDef,
    PersonDef,
    SlotDef,
    StatusDef,
    WorkflowDef,
)

ORG_CHART_FILE = "org_chart.yaml"
WORKFLOWS_FILE = "workflows.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _str_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_person(data: dict[str, Any]) -> PersonDef:
    """Parse a PersonDef from a dict."""
    return PersonDef(
        email=data["email"],
        name=data["name"],
        department=data["department"],
        position=data["position"],
        reports_to=data.get("reports_to") or None,
        hierarchy_level=int(data.get("hierarchy_level", 0)),
        can_supervise=_str_tuple(data.get("can_supervise")),
        approval_authority=data.get("approval_authority"),
        is_department_head=data.get("is_department_head"),
    )


def parse_department(data: dict[str, Any]) -> DepartmentDef:
    return DepartmentDef(
        name=data["name"],
        head=data.get("head") or None,
        aliases=_str_tuple(data.get("aliases")),
    )


def parse_org_chart(data: dict[str, Any]) -> OrgChartDef:
    """
    Parse the org-chart fragment.

    Raises:
        KeyError: if ``people`` or a required person field is missing.
        ValueError: if ``roles`` is not a mapping.
    """
    roles = data.get("roles") or {}
    if not isinstance(roles, dict):
        raise ValueError("org chart 'roles' must map role names to e-mails")
    return OrgChartDef(
        people=tuple(parse_person(p) for p in data["people"]),
        departments=tuple(parse_department(d) for d in data.get("departments", [])),
        roles={str(role): str(email) for role, email in roles.items() if email},
    )


def parse_slot(data: dict[str, Any]) -> SlotDef:
    return SlotDef(slot=data["slot"], label=data["label"], holder=data["holder"])


def parse_statuses(data: dict[str, Any]) -> StatusDef:
    """Parse a status mapping; ``pending_by_level`` keys become ints."""
    return StatusDef(
        completed=data["completed"],
        rejected=data.get("rejected", "rejected"),
        pending_default=data.get("pending_default", "pending_approval"),
        auto_completed=data.get("auto_completed"),
        pending_by_slot={str(k): str(v) for k, v in (data.get("pending_by_slot") or {}).items()},
        pending_by_level={int(k): str(v) for k, v in (data.get("pending_by_level") or {}).items()},
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowDef:
    """
    Parse a ``WorkflowDef`` from a dict.

    Raises:
        KeyError: if ``kind``, ``strategy`` or ``statuses`` is missing.
    """
    return WorkflowDef(
        kind=data["kind"],
        strategy=data["strategy"],
        statuses=parse_statuses(data["statuses"]),
        slots=tuple(parse_slot(s) for s in data.get("slots", [])),
        stop_at_roles=_str_tuple(data.get("stop_at_roles")),
        requires_grade=bool(data.get("requires_grade", False)),
        description=data.get("description", ""),
    )


def load_config_set(directory: Path) -> ApprovalConfigurationSet:
    """
    Load every fragment of the configuration set in ``directory``.

    The checksum covers the raw fragment contents, so any edit to the
    YAML produces a new directory version.
    """
    org_raw = load_yaml_file(directory / ORG_CHART_FILE)
    workflows_raw = load_yaml_file(directory / WORKFLOWS_FILE)

    return ApprovalConfigurationSet(
        name=directory.name,
        org_chart=parse_org_chart(org_raw),
        workflows=tuple(parse_workflow(w) for w in workflows_raw.get("workflows", [])),
        checksum=compute_checksum({"org_chart": org_raw, "workflows": workflows_raw}),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
