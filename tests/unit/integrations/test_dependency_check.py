"""Unit tests for the dependency scan integration."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from buildgate.extensions.base import configure
from buildgate.host.capabilities import LIFECYCLE_CAPABILITY, LifecycleCapability
from buildgate.host.project import Project
from buildgate.host.runner import TaskOutcome
from buildgate.integrations.dependency_check import (
    CHECK_SUPPRESSION_FILE_TASK,
    DEPENDENCY_CHECK,
    DEPENDENCY_CHECK_GROUP,
    GENERATE_SUPPRESSION_FILE_TASK,
    PRINT_VULNERABILITY_CAUSE_TASK,
    UPDATE_SUPPRESSION_FILE_TASK,
    DependencyCheckExtension,
    apply_dependency_check,
    select_scan_configurations,
)
from buildgate.scanning.capability import (
    DEPENDENCY_CHECK_CAPABILITY,
    DEPENDENCY_SCANNER,
    SCAN_AGGREGATE_TASK,
    SCAN_ANALYZE_TASK,
    DependencyScanCapability,
)
from buildgate.scanning.models import NEVER_FAIL_CVSS, ReportFormat

SUPPRESSIONS = "<suppressions/>\n"


@dataclass
class RecordingLogger:
    events: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    def debug(self, event: str, **kwargs: object) -> None:
        self.events.append(("debug", event, dict(kwargs)))

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append(("info", event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append(("warning", event, dict(kwargs)))

    def error(self, event: str, **kwargs: object) -> None:
        self.events.append(("error", event, dict(kwargs)))

    def named(self, event: str) -> list[dict[str, object]]:
        return [fields for _, name, fields in self.events if name == event]


def _project(
    tmp_path: Path,
    *,
    properties: Mapping[str, str] | None = None,
    configurations: tuple[str, ...] = ("api", "implementation", "testImplementation"),
) -> Project:
    project = Project(
        "service",
        tmp_path,
        properties=properties,
        environ={},
        configurations=configurations,
        capabilities=[LifecycleCapability(), DependencyScanCapability()],
    )
    project.plugins.apply(LIFECYCLE_CAPABILITY)
    return project


def _attached(tmp_path: Path, **kwargs: object) -> tuple[Project, DependencyCheckExtension, RecordingLogger]:
    project = _project(tmp_path, **kwargs)  # type: ignore[arg-type]
    logger = RecordingLogger()
    outcome = apply_dependency_check(project, logger=logger)
    assert outcome.attached
    return project, project.extensions.get(DEPENDENCY_CHECK), logger


def test_select_scan_configurations_keeps_production_sets_only() -> None:
    names = [
        "api",
        "apiElements",
        "implementation",
        "runtimeOnly",
        "debugRuntimeOnly",
        "releaseImplementation",
        "compileOnly",
        "testImplementation",
        "testRuntimeOnly",
        "annotationProcessor",
    ]

    assert select_scan_configurations(names) == [
        "api",
        "apiElements",
        "implementation",
        "runtimeOnly",
        "debugRuntimeOnly",
        "releaseImplementation",
    ]


def test_extension_conventions(tmp_path: Path) -> None:
    _, extension, _ = _attached(tmp_path)

    assert extension.skip.get() is False
    assert extension.cvss_threshold.get() == 0.0
    assert extension.print_vulnerability_cause_enabled.get() is False
    assert extension.suppression_file.get() == tmp_path.resolve() / "dependency-check-suppression.xml"


@pytest.mark.parametrize("value", [-0.5, math.nan])
def test_cvss_threshold_rejects_negative_and_nan(tmp_path: Path, value: float) -> None:
    _, extension, _ = _attached(tmp_path)

    with pytest.raises(ValueError):
        extension.cvss_threshold.set(value)


def test_tasks_are_wired_into_check(tmp_path: Path) -> None:
    project, _, _ = _attached(tmp_path)
    tasks = project.tasks

    analyze = tasks.named(SCAN_ANALYZE_TASK)
    assert SCAN_ANALYZE_TASK in tasks.named("check").dependencies
    assert analyze.dependencies == (CHECK_SUPPRESSION_FILE_TASK,)
    assert analyze.finalizers == (PRINT_VULNERABILITY_CAUSE_TASK,)
    for name in (
        CHECK_SUPPRESSION_FILE_TASK,
        GENERATE_SUPPRESSION_FILE_TASK,
        UPDATE_SUPPRESSION_FILE_TASK,
        PRINT_VULNERABILITY_CAUSE_TASK,
        SCAN_ANALYZE_TASK,
        SCAN_AGGREGATE_TASK,
    ):
        assert tasks.named(name).group == DEPENDENCY_CHECK_GROUP


def test_suppression_task_predicates_follow_the_filesystem(tmp_path: Path) -> None:
    project, extension, _ = _attached(tmp_path)
    check = project.tasks.named(CHECK_SUPPRESSION_FILE_TASK)
    generate = project.tasks.named(GENERATE_SUPPRESSION_FILE_TASK)
    update = project.tasks.named(UPDATE_SUPPRESSION_FILE_TASK)

    assert check.evaluate_predicates()[0] is False
    assert generate.evaluate_predicates() == (True, None)
    assert update.evaluate_predicates()[0] is False

    extension.suppression_file.get().write_text(SUPPRESSIONS, encoding="utf-8")

    assert check.evaluate_predicates() == (True, None)
    assert generate.evaluate_predicates() == (False, "suppression file already exists")
    assert update.evaluate_predicates() == (True, None)


def test_finalize_pushes_settings_to_scanner(tmp_path: Path) -> None:
    project, extension, logger = _attached(
        tmp_path, configurations=("api", "runtimeOnly", "testRuntimeOnly")
    )
    extension.cvss_threshold.set(7.0)

    project.finalize()

    settings = project.extensions.get(DEPENDENCY_SCANNER).settings
    assert settings.skip is False
    assert settings.fail_build_on_cvss == 7.0
    assert settings.formats == [ReportFormat.HTML, ReportFormat.JUNIT]
    assert settings.suppression_file is None
    assert settings.scan_configurations == ["api", "runtimeOnly"]
    assert settings.auto_update is True
    assert logger.named("dependency_data_source") == [{"source": "default", "auto_update": True}]
    assert logger.named("integration_disabled") == []
    assert extension.frozen


def test_existing_suppression_file_is_applied(tmp_path: Path) -> None:
    project, extension, logger = _attached(tmp_path)
    custom = tmp_path / "config" / "suppressions.xml"
    custom.parent.mkdir()
    custom.write_text(SUPPRESSIONS, encoding="utf-8")
    extension.suppression_file.set(custom)

    project.finalize()

    assert project.extensions.get(DEPENDENCY_SCANNER).settings.suppression_file == custom
    assert logger.named("suppression_file_applied") == [
        {"integration": "dependencyCheck", "path": str(custom)}
    ]


def test_relative_suppression_file_resolves_against_project_root(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = tmp_path / "project"
    elsewhere = tmp_path / "elsewhere"
    root.mkdir()
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    (root / "custom.xml").write_text(SUPPRESSIONS, encoding="utf-8")
    project, extension, _ = _attached(root)
    resolved = root.resolve() / "custom.xml"

    configure(extension, {"suppression_file": "custom.xml"})

    assert extension.suppression_file.get() == resolved
    assert project.tasks.named(CHECK_SUPPRESSION_FILE_TASK).evaluate_predicates() == (True, None)
    assert project.tasks.named(UPDATE_SUPPRESSION_FILE_TASK).evaluate_predicates() == (True, None)
    assert project.tasks.named(GENERATE_SUPPRESSION_FILE_TASK).evaluate_predicates()[0] is False

    project.finalize()

    assert project.extensions.get(DEPENDENCY_SCANNER).settings.suppression_file == resolved


def test_skip_disables_scan_and_is_logged(tmp_path: Path) -> None:
    project, extension, logger = _attached(tmp_path)
    extension.skip.set(True)
    extension.cvss_threshold.set(NEVER_FAIL_CVSS)

    report = project.finalize().runner(logger=logger).run([SCAN_ANALYZE_TASK])

    assert project.extensions.get(DEPENDENCY_SCANNER).settings.skip is True
    assert logger.named("integration_disabled") == [{"integration": "dependencyCheck"}]
    assert report.outcome(SCAN_ANALYZE_TASK) is TaskOutcome.SKIPPED
    assert report.outcome(PRINT_VULNERABILITY_CAUSE_TASK) is TaskOutcome.SKIPPED


def test_external_database_properties_disable_auto_update(tmp_path: Path) -> None:
    project, _, logger = _attached(
        tmp_path,
        properties={
            "DEPENDENCY_CHECK_DB_DRIVER": "org.postgresql.Driver",
            "DEPENDENCY_CHECK_DB_CONNECTION": "jdbc:postgresql://db:5432/nvd",
            "DEPENDENCY_CHECK_DB_USER": "scanner",
            "DEPENDENCY_CHECK_DB_PASSWORD": "s3cret",
        },
    )

    project.finalize()

    settings = project.extensions.get(DEPENDENCY_SCANNER).settings
    assert settings.auto_update is False
    assert settings.data.driver == "org.postgresql.Driver"
    assert settings.data.connection_string == "jdbc:postgresql://db:5432/nvd"
    assert settings.data.username == "scanner"
    assert settings.data.password == "s3cret"
    assert logger.named("dependency_data_source") == [
        {
            "source": "jdbc:postgresql://db:5432/nvd",
            "driver": "org.postgresql.Driver",
            "auto_update": False,
        }
    ]
    assert "s3cret" not in repr(logger.events)


class PartialScanCapability:
    """Provides the scanner and ``scanAnalyze`` but no aggregate task."""

    capability_id = DEPENDENCY_CHECK_CAPABILITY

    def apply(self, project: Project) -> None:
        scanner = project.extensions.create(DEPENDENCY_SCANNER, None)
        project.tasks.register(SCAN_ANALYZE_TASK, action=scanner.analyze)


def test_failed_attach_registers_no_suppression_tasks(tmp_path: Path) -> None:
    project = Project(
        "service",
        tmp_path,
        environ={},
        capabilities=[LifecycleCapability(), PartialScanCapability()],
    )
    project.plugins.apply(LIFECYCLE_CAPABILITY)
    logger = RecordingLogger()

    outcome = apply_dependency_check(project, logger=logger)

    assert outcome.failed
    for name in (
        CHECK_SUPPRESSION_FILE_TASK,
        GENERATE_SUPPRESSION_FILE_TASK,
        UPDATE_SUPPRESSION_FILE_TASK,
        PRINT_VULNERABILITY_CAUSE_TASK,
    ):
        assert project.tasks.find(name) is None
    assert SCAN_ANALYZE_TASK not in project.tasks.named("check").dependencies
    assert isinstance(project.extensions.get(DEPENDENCY_CHECK), DependencyCheckExtension)
