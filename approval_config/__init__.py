"""
approval_config -- single public entrypoint for approval configuration.

Responsibility:
    Provides the ONLY way to obtain the org chart and the workflow
    definitions at runtime through ``get_active_config()``.  YAML loading
    is internal tooling and never exposed to callers.

Architecture position:
    Configuration -- YAML-driven, validated before use.
    This package sits above ``approval_kernel`` and below
    ``approval_services``.  The kernel and the engines MUST NEVER import
    from ``approval_config``; bridges in this package translate the
    source artifact into kernel domain objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: a set with errors is never returned.
    - Deterministic identity: the same YAML always produces the same
      checksum, which becomes the ``Directory.version``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration set does not exist.
    - ``ValueError`` -- schema or structural validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``APPROVAL_CONFIG_TRACE`` log entry with the set name, checksum,
    headcount and workflow kinds, tying each chain back to the org-chart
    snapshot that produced it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from approval_config.bridges import build_directory, build_workflow_definitions
from approval_config.loader import load_config_set
from approval_config.validator import validate_configuration
from approval_kernel.domain.approval import WorkflowKind
from approval_kernel.domain.directory import Directory
from approval_kernel.domain.workflow import WorkflowDefinition

_logger = logging.getLogger("approval_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


@dataclass(frozen=True)
class ApprovalConfig:
    """Runtime configuration: the directory snapshot and workflow definitions."""

    directory: Directory
    definitions: dict[WorkflowKind, WorkflowDefinition]
    checksum: str
    warnings: tuple[str, ...] = ()


def get_active_config(
    config_dir: Path | None = None,
    set_name: str = "default",
) -> ApprovalConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to approval_config/sets/.
        set_name: Name of the configuration set subdirectory.

    Returns:
        ApprovalConfig built from a validated configuration set.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If configuration validation fails.
    """
    set_dir = (config_dir or _DEFAULT_CONFIG_DIR) / set_name
    if not set_dir.is_dir():
        raise FileNotFoundError(f"Configuration set not found: {set_dir}")

    config_set = load_config_set(set_dir)

    validation = validate_configuration(config_set)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"detail": warning})

    directory = build_directory(config_set)
    definitions = build_workflow_definitions(config_set)

    _logger.info(
        "APPROVAL_CONFIG_TRACE",
        extra={
            "trace_type": "APPROVAL_CONFIG_TRACE",
            "config_set": config_set.name,
            "checksum": config_set.checksum,
            "person_count": len(directory),
            "department_count": len(directory.department_names()),
            "workflow_kinds": sorted(kind.value for kind in definitions),
            "warning_count": len(validation.warnings),
        },
    )

    return ApprovalConfig(
        directory=directory,
        definitions=definitions,
        checksum=config_set.checksum,
        warnings=tuple(validation.warnings),
    )


__all__ = ["ApprovalConfig", "get_active_config"]
