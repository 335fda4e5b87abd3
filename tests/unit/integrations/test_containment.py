"""Unit tests for fail-soft integration attachment."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from buildgate.errors import CapabilityNotFoundError, UnsetValueError
from buildgate.host.capabilities import LIFECYCLE_CAPABILITY, LifecycleCapability
from buildgate.host.project import Project
from buildgate.integrations import apply_verification
from buildgate.integrations.containment import attempt_attach, report_outcome
from buildgate.integrations.dependency_check import DEPENDENCY_CHECK
from buildgate.integrations.sonar import SONAR_QUBE


@dataclass
class RecordingLogger:
    events: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append(("info", event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append(("warning", event, dict(kwargs)))

    def error(self, event: str, **kwargs: object) -> None:
        self.events.append(("error", event, dict(kwargs)))


def test_attach_success_reports_nothing() -> None:
    logger = RecordingLogger()

    outcome = report_outcome(attempt_attach("sonarQube", lambda: None), logger)

    assert outcome.attached
    assert not outcome.failed
    assert logger.events == []


def test_attach_failure_is_contained_and_logged_once() -> None:
    logger = RecordingLogger()

    def broken() -> None:
        raise CapabilityNotFoundError("sonar")

    outcome = report_outcome(attempt_attach("sonarQube", broken), logger)

    assert outcome.failed
    assert isinstance(outcome.error, CapabilityNotFoundError)
    assert len(logger.events) == 1
    level, event, fields = logger.events[0]
    assert (level, event) == ("error", "integration_attach_failed")
    assert fields["integration"] == "sonarQube"
    assert fields["error_type"] == "CapabilityNotFoundError"
    assert fields["exc_info"] is outcome.error


def test_contract_violations_are_not_contained() -> None:
    def misuse() -> None:
        raise UnsetValueError("sonarQube.edition")

    with pytest.raises(UnsetValueError):
        attempt_attach("sonarQube", misuse)


def test_missing_host_capabilities_disable_each_integration_independently(
    tmp_path: Path,
) -> None:
    project = Project("service", tmp_path, environ={}, capabilities=[LifecycleCapability()])
    project.plugins.apply(LIFECYCLE_CAPABILITY)
    logger = RecordingLogger()

    outcomes = apply_verification(project, logger=logger)

    assert [outcome.integration for outcome in outcomes if outcome.failed] == [
        "dependencyCheck",
        "sonarQube",
    ]
    errors = [event for event in logger.events if event[0] == "error"]
    assert [fields["integration"] for _, _, fields in errors] == ["dependencyCheck", "sonarQube"]
    # Extensions exist even though wiring failed, and the host still finalizes.
    assert project.extensions.find(DEPENDENCY_CHECK) is not None
    assert project.extensions.find(SONAR_QUBE) is not None
    finalized = project.finalize()
    assert finalized.graph.topological_sort() == ("check", "test")
