"""
buildgate — error taxonomy.

File: src/buildgate/errors.py

Purpose
- Single home for every exception type raised by the configuration engine,
  the integrations, and the reference host runner.

Families
- ``ContractViolation``: programming errors (reading an unset value, writing
  after finalization). Never contained; they fail loudly at the call site.
- ``ConfigurationError``: invalid wiring or registry usage detected while the
  host project is being configured.
- ``IntegrationSetupError``: failures while attaching an integration. These are
  contained by ``buildgate.integrations.containment``.
- ``TaskFailure``: execution-time failures surfaced to the host failure channel.
"""

from __future__ import annotations

from collections.abc import Sequence


class BuildgateError(Exception):
    """Base class for all buildgate errors."""


class ContractViolation(BuildgateError):
    """Raised when a caller breaks an API contract of the configuration engine."""


class UnsetValueError(ContractViolation):
    """Raised when an unset lazy value is read without a fallback."""

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(f"value is not set: {description}")


class ConfigurationFrozenError(ContractViolation):
    """Raised when configuration state is mutated after finalization."""


class SkipGateUnresolvedError(ContractViolation):
    """Raised when a skip decision is read before finalization resolved it."""


class ConfigurationError(BuildgateError):
    """Raised for invalid configuration-phase usage."""


class DuplicateExtensionError(ConfigurationError):
    """Raised when an extension name is registered twice on one project."""


class UnknownExtensionError(ConfigurationError, KeyError):
    """Raised when a typed extension lookup misses."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown extension"


class DuplicateTaskError(ConfigurationError):
    """Raised when a task name is registered twice."""


class UnknownTaskError(ConfigurationError, KeyError):
    """Raised when a task is referenced before it exists."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown task"


class IntegrationSetupError(BuildgateError):
    """Raised while attaching an integration to a host project."""


class CapabilityNotFoundError(IntegrationSetupError):
    """Raised when the host does not provide a requested capability."""

    def __init__(self, capability_id: str) -> None:
        self.capability_id = capability_id
        super().__init__(f"host capability not available: {capability_id}")


class TaskFailure(BuildgateError):
    """Base class for failures raised by task actions at execution time."""


class SuppressionFileError(TaskFailure):
    """Raised when an existing suppression file is malformed."""

    def __init__(self, path: object, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"invalid suppression file {path}: {detail}")


class ThresholdExceeded(TaskFailure):
    """Raised when a finding meets or exceeds the configured severity threshold."""

    def __init__(self, threshold: float, offending: Sequence[tuple[str, str, float]]) -> None:
        self.threshold = threshold
        self.offending = tuple(offending)
        preview = ", ".join(
            f"{dependency} ({identifier}: {score:g})"
            for dependency, identifier, score in self.offending[:5]
        )
        suffix = "..." if len(self.offending) > 5 else ""
        super().__init__(
            f"{len(self.offending)} vulnerabilit{'y' if len(self.offending) == 1 else 'ies'} "
            f"with CVSS score >= {threshold:g}: {preview}{suffix}"
        )


class ScanEngineUnavailableError(TaskFailure):
    """Raised when a scan task runs on a host without a configured engine."""


class AnalysisServerUnavailableError(TaskFailure):
    """Raised when the analysis task runs on a host without a configured server."""


class BuildFailedError(BuildgateError):
    """Raised by the host runner when at least one task failed."""

    def __init__(self, failed_tasks: Sequence[str]) -> None:
        self.failed_tasks = tuple(failed_tasks)
        super().__init__(f"build failed: {', '.join(self.failed_tasks)}")


__all__ = [
    "AnalysisServerUnavailableError",
    "BuildFailedError",
    "BuildgateError",
    "CapabilityNotFoundError",
    "ConfigurationError",
    "ConfigurationFrozenError",
    "ContractViolation",
    "DuplicateExtensionError",
    "DuplicateTaskError",
    "IntegrationSetupError",
    "ScanEngineUnavailableError",
    "SkipGateUnresolvedError",
    "SuppressionFileError",
    "TaskFailure",
    "ThresholdExceeded",
    "UnknownExtensionError",
    "UnknownTaskError",
    "UnsetValueError",
]
