"""Task actions managing the optional suppression (allow-list) file.

The base suppression file is never written here. Proposed changes land in a
candidate sibling (``name.new.ext``) that a human promotes by hand.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from buildgate.errors import SuppressionFileError
from buildgate.lazy import Property
from buildgate.scanning.capability import DependencyScanner

SUPPRESSIONS_ROOT_TAG = "suppressions"

SuppressionValidator = Callable[[Path], None]


def validate_suppression_file(path: Path) -> None:
    """Well-formed XML whose root element is ``<suppressions>`` (any namespace)."""
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise SuppressionFileError(path, f"not well-formed XML ({exc})") from exc
    except OSError as exc:
        raise SuppressionFileError(path, f"unreadable ({exc.strerror or exc})") from exc

    local_name = root.tag.rsplit("}", 1)[-1]
    if local_name != SUPPRESSIONS_ROOT_TAG:
        raise SuppressionFileError(
            path, f"root element must be <{SUPPRESSIONS_ROOT_TAG}>, found <{local_name}>"
        )


class CheckSuppressionFile:
    """Validates the existing suppression file before the scan starts."""

    def __init__(self, validator: SuppressionValidator = validate_suppression_file) -> None:
        self.original_suppression_file: Property[Path] = Property(
            Path, name="checkSuppressionFile.originalSuppressionFile"
        )
        self._validator = validator

    def __call__(self) -> None:
        self._validator(self.original_suppression_file.get())


class _CandidateWriter:
    def __init__(self, task_name: str, scanner: DependencyScanner, logger: Any | None) -> None:
        self.original_suppression_file: Property[Path] = Property(
            Path, name=f"{task_name}.originalSuppressionFile"
        )
        self.suppression_file: Property[Path] = Property(Path, name=f"{task_name}.suppressionFile")
        self._scanner = scanner
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def _write(self, target: Path, base: Path | None) -> None:
        if base is not None and target.resolve() == base.resolve():
            raise SuppressionFileError(base, "candidate would overwrite the suppression file")
        findings = self._scanner.analyze_unsuppressed().vulnerable_findings()
        self._scanner.write_suppressions(findings, target, base=base)
        self._logger.warning(
            "suppression_candidate_written",
            path=str(target),
            base=None if base is None else str(base),
            findings=len(findings),
        )


class GenerateSuppressionFile(_CandidateWriter):
    """Proposes suppressions for every current finding when no file exists yet."""

    def __init__(self, scanner: DependencyScanner, *, logger: Any | None = None) -> None:
        super().__init__("generateSuppressionFile", scanner, logger)

    def __call__(self) -> None:
        existing = self.original_suppression_file.get_or_none()
        if existing is not None:
            raise SuppressionFileError(
                existing, "suppression file already exists; run updateSuppressionFile instead"
            )
        self._write(self.suppression_file.get(), None)


class UpdateSuppressionFile(_CandidateWriter):
    """Merges current findings into a copy of the existing suppression file."""

    def __init__(self, scanner: DependencyScanner, *, logger: Any | None = None) -> None:
        super().__init__("updateSuppressionFile", scanner, logger)

    def __call__(self) -> None:
        self._write(self.suppression_file.get(), self.original_suppression_file.get())


class PrintVulnerabilityCause:
    """Logs the evidence behind every vulnerable dependency of the last scan."""

    def __init__(self, scanner: DependencyScanner, *, logger: Any | None = None) -> None:
        self._scanner = scanner
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def __call__(self) -> None:
        report = self._scanner.latest_report
        if report is None:
            self._logger.info("vulnerability_cause_unavailable")
            return
        for finding in report.vulnerable_findings():
            self._logger.warning(
                "vulnerability_cause",
                dependency=finding.dependency,
                file_path=finding.file_path,
                evidence=list(finding.evidence),
                vulnerabilities=[
                    f"{vulnerability.identifier} ({vulnerability.cvss_score:g})"
                    for vulnerability in finding.vulnerabilities
                ],
            )


__all__ = [
    "CheckSuppressionFile",
    "GenerateSuppressionFile",
    "PrintVulnerabilityCause",
    "SUPPRESSIONS_ROOT_TAG",
    "SuppressionValidator",
    "UpdateSuppressionFile",
    "validate_suppression_file",
]
