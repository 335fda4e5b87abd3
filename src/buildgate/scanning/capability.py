"""Host capability wrapping an external dependency vulnerability scan engine."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from buildgate.errors import ScanEngineUnavailableError
from buildgate.extensions.base import ExtensionKey
from buildgate.scanning.models import DependencyFinding, ScannerSettings, ScanReport

if TYPE_CHECKING:
    from buildgate.host.project import Project

DEPENDENCY_CHECK_CAPABILITY = "dependency-check"

SCAN_ANALYZE_TASK = "scanAnalyze"
SCAN_AGGREGATE_TASK = "scanAggregate"
SCAN_UPDATE_TASK = "scanUpdate"
SCAN_PURGE_TASK = "scanPurge"


class ScanEngine(Protocol):
    """The scan engine itself lives outside this package."""

    def analyze(self, settings: ScannerSettings) -> ScanReport: ...

    def write_suppressions(
        self,
        findings: Sequence[DependencyFinding],
        target: Path,
        *,
        base: Path | None,
    ) -> None: ...

    def update_database(self, settings: ScannerSettings) -> None: ...

    def purge_database(self, settings: ScannerSettings) -> None: ...


class DependencyScanner:
    """Per-project facade over the engine plus the latest analysis result."""

    def __init__(
        self,
        engine: ScanEngine | None,
        settings: ScannerSettings | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        self.settings = settings if settings is not None else ScannerSettings()
        self.latest_report: ScanReport | None = None
        self._engine = engine
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def analyze(self) -> None:
        """Scan, remember the report, then fail on threshold violations."""
        if self.settings.skip:
            self._logger.info("dependency_scan_skipped")
            return
        report = self._require_engine().analyze(replace(self.settings))
        self.latest_report = report
        self._logger.info(
            "dependency_scan_finished",
            dependencies=len(report.findings),
            vulnerable=len(report.vulnerable_findings()),
        )
        report.enforce_threshold(self.settings.fail_build_on_cvss)

    def analyze_unsuppressed(self) -> ScanReport:
        """Scan ignoring any suppression file, for proposing new suppressions."""
        settings = replace(self.settings, suppression_file=None, skip=False)
        return self._require_engine().analyze(settings)

    def write_suppressions(
        self,
        findings: Sequence[DependencyFinding],
        target: Path,
        *,
        base: Path | None,
    ) -> None:
        self._require_engine().write_suppressions(findings, target, base=base)

    def update_database(self) -> None:
        self._require_engine().update_database(replace(self.settings))

    def purge_database(self) -> None:
        self._require_engine().purge_database(replace(self.settings))

    def _require_engine(self) -> ScanEngine:
        if self._engine is None:
            raise ScanEngineUnavailableError("no dependency scan engine is configured")
        return self._engine


DEPENDENCY_SCANNER = ExtensionKey("dependencyScanner", DependencyScanner)


@dataclass(slots=True)
class DependencyScanCapability:
    engine: ScanEngine | None = None
    capability_id: str = DEPENDENCY_CHECK_CAPABILITY

    def apply(self, project: Project) -> None:
        scanner = project.extensions.create(DEPENDENCY_SCANNER, self.engine)
        scanner.settings.output_dir = project.file("build/reports/dependency-check")
        project.tasks.register(
            SCAN_ANALYZE_TASK,
            action=scanner.analyze,
            description="Scans project dependencies for known vulnerabilities.",
        )
        project.tasks.register(
            SCAN_AGGREGATE_TASK,
            action=scanner.analyze,
            description="Scans the dependencies of all modules as one report.",
        )
        project.tasks.register(
            SCAN_UPDATE_TASK,
            action=scanner.update_database,
            description="Refreshes the local vulnerability data cache.",
        )
        project.tasks.register(
            SCAN_PURGE_TASK,
            action=scanner.purge_database,
            description="Deletes the local vulnerability data cache.",
        )


__all__ = [
    "DEPENDENCY_CHECK_CAPABILITY",
    "DEPENDENCY_SCANNER",
    "DependencyScanCapability",
    "DependencyScanner",
    "SCAN_AGGREGATE_TASK",
    "SCAN_ANALYZE_TASK",
    "SCAN_PURGE_TASK",
    "SCAN_UPDATE_TASK",
    "ScanEngine",
]
