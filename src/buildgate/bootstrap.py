"""Assemble a finalized host project from effective configuration."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from buildgate.config.binding import apply_config, project_from_config
from buildgate.host.capabilities import (
    LIFECYCLE_CAPABILITY,
    CoverageCapability,
    CoverageReporter,
    LifecycleCapability,
)
from buildgate.host.plugins import Capability
from buildgate.host.project import FinalizedProject
from buildgate.integrations import AttachOutcome, apply_verification
from buildgate.quality import AnalysisServer, QualityAnalysisCapability
from buildgate.scanning.capability import DependencyScanCapability, ScanEngine


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    project: FinalizedProject
    outcomes: tuple[AttachOutcome, ...]

    @property
    def failed_integrations(self) -> tuple[str, ...]:
        return tuple(outcome.integration for outcome in self.outcomes if outcome.failed)


def default_capabilities(
    *,
    test_action: Callable[[], None] | None = None,
    coverage_reporter: CoverageReporter | None = None,
    scan_engine: ScanEngine | None = None,
    analysis_server: AnalysisServer | None = None,
) -> tuple[Capability, ...]:
    """Capabilities of the reference host; external tools are optional."""
    return (
        LifecycleCapability(test_action=test_action),
        CoverageCapability(reporter=coverage_reporter),
        DependencyScanCapability(engine=scan_engine),
        QualityAnalysisCapability(server=analysis_server),
    )


def bootstrap_project(
    config: Mapping[str, Any],
    *,
    capabilities: Iterable[Capability] | None = None,
    environ: Mapping[str, str] | None = None,
    logger: Any | None = None,
) -> BootstrapResult:
    """Configure phase followed by finalization.

    The lifecycle capability is applied first so ``check`` exists when the
    integrations attach.
    """
    project = project_from_config(
        config,
        capabilities=default_capabilities() if capabilities is None else capabilities,
        environ=environ,
    )
    project.plugins.apply(LIFECYCLE_CAPABILITY)
    outcomes = apply_verification(project, logger=logger)
    apply_config(project, config)
    return BootstrapResult(project=project.finalize(), outcomes=outcomes)


__all__ = ["BootstrapResult", "bootstrap_project", "default_capabilities"]
