"""Data exchanged with the dependency vulnerability scan engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from buildgate.errors import ThresholdExceeded

# CVSS scores top out at 10.0; anything above never fails a build.
MAX_CVSS_SCORE = 10.0
NEVER_FAIL_CVSS = 11.0


class ReportFormat(StrEnum):
    HTML = "html"
    JUNIT = "junit"
    JSON = "json"
    XML = "xml"
    SARIF = "sarif"


@dataclass(frozen=True, slots=True)
class Vulnerability:
    identifier: str
    cvss_score: float
    description: str = ""

    def __post_init__(self) -> None:
        if not 0.0 <= self.cvss_score <= MAX_CVSS_SCORE:
            raise ValueError(
                f"{self.identifier}: cvss_score must be between 0 and {MAX_CVSS_SCORE:g}"
            )


@dataclass(frozen=True, slots=True)
class DependencyFinding:
    """One scanned dependency, the evidence that identified it, and its vulnerabilities."""

    dependency: str
    file_path: str | None = None
    evidence: tuple[str, ...] = ()
    vulnerabilities: tuple[Vulnerability, ...] = ()


@dataclass(frozen=True, slots=True)
class ScanReport:
    findings: tuple[DependencyFinding, ...] = ()

    def vulnerable_findings(self) -> tuple[DependencyFinding, ...]:
        return tuple(finding for finding in self.findings if finding.vulnerabilities)

    def violations(self, threshold: float) -> tuple[tuple[str, str, float], ...]:
        """``(dependency, identifier, score)`` for every score >= ``threshold``, worst first."""
        offending = [
            (finding.dependency, vulnerability.identifier, vulnerability.cvss_score)
            for finding in self.findings
            for vulnerability in finding.vulnerabilities
            if vulnerability.cvss_score >= threshold
        ]
        offending.sort(key=lambda item: (-item[2], item[0], item[1]))
        return tuple(offending)

    def enforce_threshold(self, threshold: float) -> None:
        offending = self.violations(threshold)
        if offending:
            raise ThresholdExceeded(threshold, offending)


@dataclass(slots=True)
class DataSourceSettings:
    """External vulnerability database; an empty connection means the local cache."""

    driver: str | None = None
    connection_string: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @property
    def external(self) -> bool:
        return self.connection_string is not None


@dataclass(slots=True)
class ScannerSettings:
    """Native settings of the scan engine, populated at finalization."""

    skip: bool = False
    fail_build_on_cvss: float = NEVER_FAIL_CVSS
    formats: list[ReportFormat] = field(default_factory=lambda: [ReportFormat.HTML])
    suppression_file: Path | None = None
    scan_configurations: list[str] = field(default_factory=list)
    auto_update: bool = True
    data: DataSourceSettings = field(default_factory=DataSourceSettings)
    output_dir: Path | None = None


__all__ = [
    "DataSourceSettings",
    "DependencyFinding",
    "MAX_CVSS_SCORE",
    "NEVER_FAIL_CVSS",
    "ReportFormat",
    "ScanReport",
    "ScannerSettings",
    "Vulnerability",
]
