"""Code quality analysis integration wired behind coverage reporting."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Final

import structlog

from buildgate.extensions.base import ConfigurationExtension, ExtensionKey
from buildgate.extensions.skip import SkipGate
from buildgate.host.capabilities import (
    CHECK_TASK,
    COVERAGE_CAPABILITY,
    COVERAGE_SETTINGS,
    REPORT_TASK,
    TEST_TASK,
)
from buildgate.host.project import Project
from buildgate.integrations.containment import AttachOutcome, attempt_attach, report_outcome
from buildgate.lazy import Property
from buildgate.quality import SONAR_CAPABILITY, SONAR_SETTINGS, SONAR_TASK

EDITION_PROPERTY: Final[str] = "sonarqube.edition"
BUILD_REASON_VARIABLE: Final[str] = "BUILD_REASON"
PULL_REQUEST_BUILD_REASON: Final[str] = "PullRequest"
COVERAGE_XML_NAME: Final[str] = "coverage.xml"


class SonarQubeEdition(StrEnum):
    COMMUNITY = "community"
    DEVELOPER = "developer"
    ENTERPRISE = "enterprise"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, value: str) -> SonarQubeEdition | None:
        """Case-insensitive lookup; ``None`` for names outside the enumeration."""
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None


class SonarQubeExtension(ConfigurationExtension):
    """User-facing settings of the quality analysis."""

    integration = "sonarQube"

    def __init__(self, project: Project) -> None:
        super().__init__()
        self.skip: Property[bool] = Property(bool, name="sonarQube.skip").convention(False)
        self.edition: Property[SonarQubeEdition] = Property(
            SonarQubeEdition, name="sonarQube.edition"
        ).convention(
            project.providers.property(EDITION_PROPERTY)
            .map(lambda raw: SonarQubeEdition.of(raw) or SonarQubeEdition.UNKNOWN)
            .or_else(SonarQubeEdition.UNKNOWN)
        )


SONAR_QUBE = ExtensionKey("sonarQube", SonarQubeExtension)


def community_pull_request_rule(
    extension: SonarQubeExtension, environ: Mapping[str, str]
) -> str | None:
    """Community servers cannot analyze pull requests; skip those builds."""
    if extension.edition.get() is not SonarQubeEdition.COMMUNITY:
        return None
    if environ.get(BUILD_REASON_VARIABLE) != PULL_REQUEST_BUILD_REASON:
        return None
    return "community edition does not support pull request analysis"


def apply_sonar(project: Project, *, logger: Any | None = None) -> AttachOutcome:
    """Create the ``sonarQube`` extension and hang analysis off ``check``."""
    log = logger if logger is not None else structlog.get_logger(__name__)
    extension = project.extensions.create(SONAR_QUBE, project)
    outcome = attempt_attach(extension.integration, lambda: _attach(project, extension, log))
    return report_outcome(outcome, log)


def _attach(project: Project, extension: SonarQubeExtension, logger: Any) -> None:
    tasks = project.tasks
    check = tasks.named(CHECK_TASK)
    test = tasks.named(TEST_TASK)

    project.plugins.apply(COVERAGE_CAPABILITY)
    project.plugins.apply(SONAR_CAPABILITY)

    report = tasks.named(REPORT_TASK)
    coverage = project.extensions.get(COVERAGE_SETTINGS)
    report.depends_on(test)
    coverage.html_required = True
    coverage.xml_required = True

    # The capability may be applied without contributing a task.
    analysis = tasks.find(SONAR_TASK)
    if analysis is not None:
        analysis.only_if(
            extension.skip.map(lambda skip: not skip).get,
            f"{extension.integration} is skipped",
        )
        analysis.depends_on(report)

    check.depends_on(report)
    if analysis is not None:
        check.depends_on(analysis)

    project.after_configuration(
        lambda: _finalize(project, extension, logger), name=extension.integration
    )


def _finalize(project: Project, extension: SonarQubeExtension, logger: Any) -> None:
    explicitly_skipped = extension.skip.get()
    skip = SkipGate(
        extension, community_pull_request_rule, environ=project.environ, logger=logger
    ).resolve()
    if explicitly_skipped:
        logger.warning("integration_disabled", integration=extension.integration)

    settings = project.extensions.get(SONAR_SETTINGS)
    settings.skip_project = skip
    settings.set_property("sonar.projectKey", project.name)
    settings.set_property("sonar.python.coverage.reportPaths", _coverage_report_path(project))
    settings.set_property("sonar.qualitygate.wait", True)


def _coverage_report_path(project: Project) -> str:
    coverage = project.extensions.get(COVERAGE_SETTINGS)
    output_dir = coverage.output_dir or project.file("build/coverage")
    return os.path.relpath(output_dir / COVERAGE_XML_NAME, project.root_dir)


__all__ = [
    "BUILD_REASON_VARIABLE",
    "EDITION_PROPERTY",
    "PULL_REQUEST_BUILD_REASON",
    "SONAR_QUBE",
    "SonarQubeEdition",
    "SonarQubeExtension",
    "apply_sonar",
    "community_pull_request_rule",
]
