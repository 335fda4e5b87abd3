"""Dependency vulnerability scanning integration."""

from __future__ import annotations

import math
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Final

import structlog

from buildgate.extensions.base import ConfigurationExtension, ExtensionKey
from buildgate.extensions.skip import SkipGate
from buildgate.host.capabilities import CHECK_TASK
from buildgate.host.project import Project
from buildgate.integrations.containment import AttachOutcome, attempt_attach, report_outcome
from buildgate.lazy import Property
from buildgate.paths import candidate_sibling, filter_exists
from buildgate.scanning.capability import (
    DEPENDENCY_CHECK_CAPABILITY,
    DEPENDENCY_SCANNER,
    SCAN_AGGREGATE_TASK,
    SCAN_ANALYZE_TASK,
    SCAN_PURGE_TASK,
    SCAN_UPDATE_TASK,
    DependencyScanner,
)
from buildgate.scanning.models import DataSourceSettings, ReportFormat
from buildgate.scanning.suppression import (
    CheckSuppressionFile,
    GenerateSuppressionFile,
    PrintVulnerabilityCause,
    UpdateSuppressionFile,
)

DEPENDENCY_CHECK_GROUP: Final[str] = "verification/dependency-check"
DEFAULT_SUPPRESSION_FILE_NAME: Final[str] = "dependency-check-suppression.xml"

CHECK_SUPPRESSION_FILE_TASK: Final[str] = "checkSuppressionFile"
GENERATE_SUPPRESSION_FILE_TASK: Final[str] = "generateSuppressionFile"
UPDATE_SUPPRESSION_FILE_TASK: Final[str] = "updateSuppressionFile"
PRINT_VULNERABILITY_CAUSE_TASK: Final[str] = "printVulnerabilityCause"

DB_DRIVER_PROPERTY: Final[str] = "DEPENDENCY_CHECK_DB_DRIVER"
DB_CONNECTION_PROPERTY: Final[str] = "DEPENDENCY_CHECK_DB_CONNECTION"
DB_USER_PROPERTY: Final[str] = "DEPENDENCY_CHECK_DB_USER"
DB_PASSWORD_PROPERTY: Final[str] = "DEPENDENCY_CHECK_DB_PASSWORD"

REPORT_FORMATS: Final[tuple[ReportFormat, ...]] = (ReportFormat.HTML, ReportFormat.JUNIT)

_SCANNED_PREFIXES: Final[tuple[str, ...]] = ("api", "implementation", "runtimeOnly")
_SCANNED_INFIXES: Final[tuple[str, ...]] = ("Api", "Implementation", "RuntimeOnly")


def _non_negative(value: float) -> None:
    if math.isnan(value) or value < 0:
        raise ValueError("cvss_threshold must be a number >= 0")


class DependencyCheckExtension(ConfigurationExtension):
    """User-facing settings of the dependency scan."""

    integration = "dependencyCheck"

    def __init__(self, project: Project) -> None:
        super().__init__()
        self.skip: Property[bool] = Property(bool, name="dependencyCheck.skip").convention(False)
        # Findings scoring >= the threshold fail the build. CVSS tops out at 10.0,
        # so anything above lets every finding pass.
        self.cvss_threshold: Property[float] = Property(
            float, name="dependencyCheck.cvssThreshold", validator=_non_negative
        ).convention(0.0)
        self.print_vulnerability_cause_enabled: Property[bool] = Property(
            bool, name="dependencyCheck.printVulnerabilityCauseEnabled"
        ).convention(False)
        # Relative paths are resolved against the project root, never the working directory.
        self.suppression_file: Property[Path] = Property(
            Path, name="dependencyCheck.suppressionFile", normalize=project.file
        ).convention(project.file(DEFAULT_SUPPRESSION_FILE_NAME))


DEPENDENCY_CHECK = ExtensionKey("dependencyCheck", DependencyCheckExtension)


def select_scan_configurations(names: Iterable[str]) -> list[str]:
    """Production dependency sets only; anything test-scoped is left out."""
    return [
        name
        for name in names
        if not name.startswith("test")
        and (
            name.startswith(_SCANNED_PREFIXES)
            or any(infix in name for infix in _SCANNED_INFIXES)
        )
    ]


def apply_dependency_check(project: Project, *, logger: Any | None = None) -> AttachOutcome:
    """Create the ``dependencyCheck`` extension and wire the scan into ``check``.

    The extension always exists afterwards so build configuration can keep
    referring to it; the wiring itself is contained.
    """
    log = logger if logger is not None else structlog.get_logger(__name__)
    extension = project.extensions.create(DEPENDENCY_CHECK, project)
    outcome = attempt_attach(
        extension.integration, lambda: _attach(project, extension, log)
    )
    return report_outcome(outcome, log)


def _attach(project: Project, extension: DependencyCheckExtension, logger: Any) -> None:
    tasks = project.tasks
    check = tasks.named(CHECK_TASK)

    project.plugins.apply(DEPENDENCY_CHECK_CAPABILITY)
    scanner = project.extensions.get(DEPENDENCY_SCANNER)
    # Look up every capability task before registering anything so a missing
    # one leaves the graph untouched.
    scan_tasks = [
        tasks.named(task_name)
        for task_name in (SCAN_ANALYZE_TASK, SCAN_AGGREGATE_TASK, SCAN_PURGE_TASK, SCAN_UPDATE_TASK)
    ]

    existing = filter_exists(extension.suppression_file)

    check_suppression = CheckSuppressionFile()
    check_suppression.original_suppression_file.convention(extension.suppression_file)
    check_suppression_task = tasks.attach(
        CHECK_SUPPRESSION_FILE_TASK,
        action=check_suppression,
        predicate=lambda: extension.suppression_file.get().exists(),
        reason="suppression file does not exist",
        group=DEPENDENCY_CHECK_GROUP,
        description="Validates the suppression file before scanning.",
    )

    generate = GenerateSuppressionFile(scanner, logger=logger)
    generate.original_suppression_file.convention(existing)
    generate.suppression_file.convention(
        candidate_sibling(project.root_dir, extension.suppression_file, must_exist=False)
    )
    tasks.attach(
        GENERATE_SUPPRESSION_FILE_TASK,
        action=generate,
        predicate=lambda: not existing.is_present(),
        reason="suppression file already exists",
        group=DEPENDENCY_CHECK_GROUP,
        description="Writes a candidate suppression file for the current findings.",
    )

    update = UpdateSuppressionFile(scanner, logger=logger)
    update.original_suppression_file.convention(existing)
    update.suppression_file.convention(
        candidate_sibling(project.root_dir, extension.suppression_file)
    )
    tasks.attach(
        UPDATE_SUPPRESSION_FILE_TASK,
        action=update,
        predicate=existing.is_present,
        reason="suppression file does not exist",
        group=DEPENDENCY_CHECK_GROUP,
        description="Writes a candidate merging current findings into the suppression file.",
    )

    print_cause = tasks.attach(
        PRINT_VULNERABILITY_CAUSE_TASK,
        action=PrintVulnerabilityCause(scanner, logger=logger),
        predicate=extension.print_vulnerability_cause_enabled.get,
        reason="printVulnerabilityCauseEnabled is false",
        group=DEPENDENCY_CHECK_GROUP,
        description="Prints the evidence behind found vulnerabilities.",
    )

    for scan_task in scan_tasks:
        scan_task.group = DEPENDENCY_CHECK_GROUP

    analyze = tasks.attach(
        SCAN_ANALYZE_TASK,
        predicate=extension.skip.map(lambda skip: not skip).get,
        reason=f"{extension.integration} is skipped",
        depends_on=(check_suppression_task,),
        finalized_by=(print_cause,),
    )
    check.depends_on(analyze)

    project.after_configuration(
        lambda: _finalize(project, extension, scanner, logger), name=extension.integration
    )


def _finalize(
    project: Project,
    extension: DependencyCheckExtension,
    scanner: DependencyScanner,
    logger: Any,
) -> None:
    skip = SkipGate(extension, environ=project.environ, logger=logger).resolve()
    if skip:
        logger.warning("integration_disabled", integration=extension.integration)

    settings = scanner.settings
    settings.skip = skip
    settings.fail_build_on_cvss = extension.cvss_threshold.get()
    settings.formats = list(REPORT_FORMATS)

    suppression_file = extension.suppression_file.get()
    if suppression_file.exists():
        logger.warning(
            "suppression_file_applied",
            integration=extension.integration,
            path=str(suppression_file),
        )
        settings.suppression_file = suppression_file

    settings.scan_configurations = select_scan_configurations(project.configurations)
    _configure_data_source(project, scanner, logger)


def _configure_data_source(project: Project, scanner: DependencyScanner, logger: Any) -> None:
    properties = project.properties
    connection = properties.get(DB_CONNECTION_PROPERTY)
    if connection is None:
        logger.warning("dependency_data_source", source="default", auto_update=True)
        return

    scanner.settings.auto_update = False
    scanner.settings.data = DataSourceSettings(
        driver=properties.get(DB_DRIVER_PROPERTY),
        connection_string=connection,
        username=properties.get(DB_USER_PROPERTY),
        password=properties.get(DB_PASSWORD_PROPERTY),
    )
    logger.warning(
        "dependency_data_source",
        source=connection,
        driver=properties.get(DB_DRIVER_PROPERTY),
        auto_update=False,
    )


__all__ = [
    "CHECK_SUPPRESSION_FILE_TASK",
    "DB_CONNECTION_PROPERTY",
    "DB_DRIVER_PROPERTY",
    "DB_PASSWORD_PROPERTY",
    "DB_USER_PROPERTY",
    "DEFAULT_SUPPRESSION_FILE_NAME",
    "DEPENDENCY_CHECK",
    "DEPENDENCY_CHECK_GROUP",
    "DependencyCheckExtension",
    "GENERATE_SUPPRESSION_FILE_TASK",
    "PRINT_VULNERABILITY_CAUSE_TASK",
    "REPORT_FORMATS",
    "UPDATE_SUPPRESSION_FILE_TASK",
    "apply_dependency_check",
    "select_scan_configurations",
]
