"""Unit tests for suppression-file task actions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from buildgate.errors import ScanEngineUnavailableError, SuppressionFileError
from buildgate.scanning.capability import DependencyScanner
from buildgate.scanning.models import DependencyFinding, ScannerSettings, ScanReport, Vulnerability
from buildgate.scanning.suppression import (
    CheckSuppressionFile,
    GenerateSuppressionFile,
    PrintVulnerabilityCause,
    UpdateSuppressionFile,
    validate_suppression_file,
)

SUPPRESSIONS = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<suppressions xmlns="https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd">'
    "</suppressions>\n"
)


@dataclass
class RecordingLogger:
    events: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append((event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append((event, dict(kwargs)))


@dataclass
class FakeEngine:
    report: ScanReport
    analyzed: list[ScannerSettings] = field(default_factory=list)
    written: list[tuple[tuple[str, ...], Path, Path | None]] = field(default_factory=list)

    def analyze(self, settings: ScannerSettings) -> ScanReport:
        self.analyzed.append(settings)
        return self.report

    def write_suppressions(
        self, findings: Sequence[DependencyFinding], target: Path, *, base: Path | None
    ) -> None:
        self.written.append((tuple(finding.dependency for finding in findings), target, base))
        target.write_text(SUPPRESSIONS, encoding="utf-8")

    def update_database(self, settings: ScannerSettings) -> None:
        return None

    def purge_database(self, settings: ScannerSettings) -> None:
        return None


def _engine() -> FakeEngine:
    return FakeEngine(
        ScanReport(
            findings=(
                DependencyFinding(
                    "urllib3:1.24.1",
                    file_path="site-packages/urllib3",
                    evidence=("vendor: urllib3", "version: 1.24.1"),
                    vulnerabilities=(Vulnerability("CVE-2019-11324", 7.5),),
                ),
                DependencyFinding("idna:3.4"),
            )
        )
    )


def test_validate_accepts_namespaced_suppressions_root(tmp_path: Path) -> None:
    path = tmp_path / "dependency-check-suppression.xml"
    path.write_text(SUPPRESSIONS, encoding="utf-8")

    validate_suppression_file(path)


@pytest.mark.parametrize(
    ("content", "detail"),
    [
        ("<suppressions>", "not well-formed XML"),
        ("<allowlist/>", "root element must be <suppressions>"),
    ],
)
def test_validate_rejects_malformed_files(tmp_path: Path, content: str, detail: str) -> None:
    path = tmp_path / "dependency-check-suppression.xml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SuppressionFileError) as error:
        validate_suppression_file(path)
    assert detail in str(error.value)
    assert error.value.path == path


def test_check_task_validates_the_configured_file(tmp_path: Path) -> None:
    seen: list[Path] = []
    task = CheckSuppressionFile(validator=seen.append)
    task.original_suppression_file.set(tmp_path / "suppressions.xml")

    task()

    assert seen == [tmp_path / "suppressions.xml"]


def test_generate_writes_candidate_from_unsuppressed_scan(tmp_path: Path) -> None:
    engine = _engine()
    scanner = DependencyScanner(engine, ScannerSettings(suppression_file=tmp_path / "base.xml"))
    logger = RecordingLogger()
    task = GenerateSuppressionFile(scanner, logger=logger)
    candidate = tmp_path / "dependency-check-suppression.new.xml"
    task.suppression_file.set(candidate)

    task()

    assert engine.analyzed[0].suppression_file is None
    assert engine.written == [(("urllib3:1.24.1",), candidate, None)]
    assert candidate.exists()
    assert logger.events == [
        (
            "suppression_candidate_written",
            {"path": str(candidate), "base": None, "findings": 1},
        )
    ]


def test_generate_refuses_when_suppression_file_exists(tmp_path: Path) -> None:
    engine = _engine()
    task = GenerateSuppressionFile(DependencyScanner(engine), logger=RecordingLogger())
    task.original_suppression_file.set(tmp_path / "dependency-check-suppression.xml")
    task.suppression_file.set(tmp_path / "dependency-check-suppression.new.xml")

    with pytest.raises(SuppressionFileError, match="updateSuppressionFile"):
        task()
    assert engine.written == []


def test_update_merges_into_candidate_and_never_touches_base(tmp_path: Path) -> None:
    base = tmp_path / "dependency-check-suppression.xml"
    base.write_text(SUPPRESSIONS, encoding="utf-8")
    engine = _engine()
    task = UpdateSuppressionFile(DependencyScanner(engine), logger=RecordingLogger())
    task.original_suppression_file.set(base)
    candidate = tmp_path / "dependency-check-suppression.new.xml"
    task.suppression_file.set(candidate)

    task()

    assert engine.written == [(("urllib3:1.24.1",), candidate, base)]
    assert base.read_text(encoding="utf-8") == SUPPRESSIONS


def test_update_refuses_to_overwrite_the_base_file(tmp_path: Path) -> None:
    base = tmp_path / "dependency-check-suppression.xml"
    base.write_text(SUPPRESSIONS, encoding="utf-8")
    engine = _engine()
    task = UpdateSuppressionFile(DependencyScanner(engine), logger=RecordingLogger())
    task.original_suppression_file.set(base)
    task.suppression_file.set(base)

    with pytest.raises(SuppressionFileError, match="overwrite"):
        task()
    assert engine.analyzed == []


def test_candidate_writers_require_an_engine(tmp_path: Path) -> None:
    task = GenerateSuppressionFile(DependencyScanner(None), logger=RecordingLogger())
    task.suppression_file.set(tmp_path / "candidate.xml")

    with pytest.raises(ScanEngineUnavailableError):
        task()


def test_print_cause_logs_evidence_of_last_scan() -> None:
    scanner = DependencyScanner(_engine(), ScannerSettings(fail_build_on_cvss=11.0), logger=RecordingLogger())
    logger = RecordingLogger()
    task = PrintVulnerabilityCause(scanner, logger=logger)

    task()
    scanner.analyze()
    task()

    assert logger.events == [
        ("vulnerability_cause_unavailable", {}),
        (
            "vulnerability_cause",
            {
                "dependency": "urllib3:1.24.1",
                "file_path": "site-packages/urllib3",
                "evidence": ["vendor: urllib3", "version: 1.24.1"],
                "vulnerabilities": ["CVE-2019-11324 (7.5)"],
            },
        ),
    ]
