"""
buildgate — verification integrations.

File: src/buildgate/integrations/__init__.py

Purpose
- Attach the dependency scan and the quality analysis to a host project.
- Each attachment is contained independently: a failure in one disables only
  that integration and is logged once.
"""

from __future__ import annotations

from typing import Any

import structlog

from buildgate.host.project import Project
from buildgate.integrations.containment import AttachOutcome, attempt_attach, report_outcome
from buildgate.integrations.dependency_check import (
    DEPENDENCY_CHECK,
    DependencyCheckExtension,
    apply_dependency_check,
    select_scan_configurations,
)
from buildgate.integrations.sonar import (
    SONAR_QUBE,
    SonarQubeEdition,
    SonarQubeExtension,
    apply_sonar,
    community_pull_request_rule,
)


def apply_verification(
    project: Project, *, logger: Any | None = None
) -> tuple[AttachOutcome, ...]:
    """Attach every verification integration, dependency scan first."""
    log = logger if logger is not None else structlog.get_logger(__name__)
    return (
        apply_dependency_check(project, logger=log),
        apply_sonar(project, logger=log),
    )


__all__ = [
    "AttachOutcome",
    "DEPENDENCY_CHECK",
    "DependencyCheckExtension",
    "SONAR_QUBE",
    "SonarQubeEdition",
    "SonarQubeExtension",
    "apply_dependency_check",
    "apply_sonar",
    "apply_verification",
    "attempt_attach",
    "community_pull_request_rule",
    "report_outcome",
    "select_scan_configurations",
]
