"""Built-in host capabilities: the verification lifecycle and coverage reports."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from buildgate.extensions.base import ExtensionKey

if TYPE_CHECKING:
    from buildgate.host.project import Project

VERIFICATION_GROUP = "verification"

LIFECYCLE_CAPABILITY = "lifecycle"
COVERAGE_CAPABILITY = "coverage"

CHECK_TASK = "check"
TEST_TASK = "test"
REPORT_TASK = "report"


@dataclass(slots=True)
class LifecycleCapability:
    """Provides the ``test`` and aggregate ``check`` steps."""

    test_action: Callable[[], None] | None = None
    capability_id: str = LIFECYCLE_CAPABILITY

    def apply(self, project: Project) -> None:
        project.tasks.register(
            TEST_TASK,
            action=self.test_action,
            group=VERIFICATION_GROUP,
            description="Runs the test suite.",
        )
        project.tasks.register(
            CHECK_TASK,
            group=VERIFICATION_GROUP,
            description="Runs all checks.",
        )


@dataclass(slots=True)
class CoverageReportSettings:
    """Native settings of the coverage capability."""

    html_required: bool = False
    xml_required: bool = False
    output_dir: Path | None = None


COVERAGE_SETTINGS = ExtensionKey("coverage", CoverageReportSettings)


class CoverageReporter(Protocol):
    def generate(self, settings: CoverageReportSettings) -> None: ...


@dataclass(slots=True)
class CoverageCapability:
    """Provides the ``report`` step that renders coverage collected by ``test``."""

    reporter: CoverageReporter | None = None
    capability_id: str = COVERAGE_CAPABILITY

    def apply(self, project: Project) -> None:
        project.plugins.apply(LIFECYCLE_CAPABILITY)
        settings = project.extensions.create(COVERAGE_SETTINGS)
        settings.output_dir = project.file("build/coverage")
        reporter = self.reporter
        project.tasks.register(
            REPORT_TASK,
            action=(lambda: reporter.generate(settings)) if reporter is not None else None,
            group=VERIFICATION_GROUP,
            description="Generates the code coverage report.",
        )


__all__ = [
    "CHECK_TASK",
    "COVERAGE_CAPABILITY",
    "COVERAGE_SETTINGS",
    "CoverageCapability",
    "CoverageReportSettings",
    "CoverageReporter",
    "LIFECYCLE_CAPABILITY",
    "LifecycleCapability",
    "REPORT_TASK",
    "TEST_TASK",
    "VERIFICATION_GROUP",
]
