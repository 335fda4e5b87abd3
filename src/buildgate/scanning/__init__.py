"""
buildgate — dependency vulnerability scanning boundary.

File: src/buildgate/scanning/__init__.py

Purpose
- Data model and protocol for the external scan engine, the host capability
  that exposes it as tasks, and the suppression-file task actions.

Non-functional requirements
- No vulnerability data or scanning logic lives here; the engine is injected.
"""

from buildgate.scanning.capability import (
    DEPENDENCY_CHECK_CAPABILITY,
    DEPENDENCY_SCANNER,
    SCAN_AGGREGATE_TASK,
    SCAN_ANALYZE_TASK,
    SCAN_PURGE_TASK,
    SCAN_UPDATE_TASK,
    DependencyScanCapability,
    DependencyScanner,
    ScanEngine,
)
from buildgate.scanning.models import (
    MAX_CVSS_SCORE,
    NEVER_FAIL_CVSS,
    DataSourceSettings,
    DependencyFinding,
    ReportFormat,
    ScannerSettings,
    ScanReport,
    Vulnerability,
)
from buildgate.scanning.suppression import (
    CheckSuppressionFile,
    GenerateSuppressionFile,
    PrintVulnerabilityCause,
    UpdateSuppressionFile,
    validate_suppression_file,
)

__all__ = [
    "CheckSuppressionFile",
    "DEPENDENCY_CHECK_CAPABILITY",
    "DEPENDENCY_SCANNER",
    "DataSourceSettings",
    "DependencyFinding",
    "DependencyScanCapability",
    "DependencyScanner",
    "GenerateSuppressionFile",
    "MAX_CVSS_SCORE",
    "NEVER_FAIL_CVSS",
    "PrintVulnerabilityCause",
    "ReportFormat",
    "SCAN_AGGREGATE_TASK",
    "SCAN_ANALYZE_TASK",
    "SCAN_PURGE_TASK",
    "SCAN_UPDATE_TASK",
    "ScanEngine",
    "ScanReport",
    "ScannerSettings",
    "UpdateSuppressionFile",
    "Vulnerability",
    "validate_suppression_file",
]
