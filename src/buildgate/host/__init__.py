"""
buildgate — host pipeline model.

File: src/buildgate/host/__init__.py

Purpose
- The interface boundary with the host build pipeline: the project handle with
  its two-phase configure/finalize lifecycle, host capabilities, and a
  reference scheduler that executes a finalized task graph.
"""

from buildgate.host.capabilities import (
    CHECK_TASK,
    COVERAGE_CAPABILITY,
    COVERAGE_SETTINGS,
    LIFECYCLE_CAPABILITY,
    REPORT_TASK,
    TEST_TASK,
    CoverageCapability,
    CoverageReporter,
    CoverageReportSettings,
    LifecycleCapability,
)
from buildgate.host.plugins import Capability, PluginContainer
from buildgate.host.project import FinalizedProject, Project, ProviderFactory
from buildgate.host.runner import PipelineRunner, RunReport, TaskOutcome, TaskResult

__all__ = [
    "CHECK_TASK",
    "COVERAGE_CAPABILITY",
    "COVERAGE_SETTINGS",
    "Capability",
    "CoverageCapability",
    "CoverageReportSettings",
    "CoverageReporter",
    "FinalizedProject",
    "LIFECYCLE_CAPABILITY",
    "LifecycleCapability",
    "PipelineRunner",
    "PluginContainer",
    "Project",
    "ProviderFactory",
    "REPORT_TASK",
    "RunReport",
    "TEST_TASK",
    "TaskOutcome",
    "TaskResult",
]
