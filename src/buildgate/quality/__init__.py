"""Host capability wrapping an external code quality analysis server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from buildgate.errors import AnalysisServerUnavailableError
from buildgate.extensions.base import ExtensionKey

if TYPE_CHECKING:
    from buildgate.host.project import Project

SONAR_CAPABILITY = "sonar"
SONAR_TASK = "sonar"


@dataclass(slots=True)
class SonarSettings:
    """Native analysis settings, populated at finalization."""

    skip_project: bool = False
    properties: dict[str, object] = field(default_factory=dict)

    def set_property(self, key: str, value: object) -> None:
        self.properties[key] = value


SONAR_SETTINGS = ExtensionKey("sonar", SonarSettings)


class AnalysisServer(Protocol):
    def analyze(self, settings: SonarSettings) -> None: ...


@dataclass(slots=True)
class QualityAnalysisCapability:
    """Registers the ``sonar`` task uploading analysis results to the server."""

    server: AnalysisServer | None = None
    register_task: bool = True
    capability_id: str = SONAR_CAPABILITY

    def apply(self, project: Project) -> None:
        settings = project.extensions.create(SONAR_SETTINGS)
        if not self.register_task:
            return
        server = self.server

        def analyze() -> None:
            if settings.skip_project:
                return
            if server is None:
                raise AnalysisServerUnavailableError("no quality analysis server is configured")
            server.analyze(settings)

        project.tasks.register(
            SONAR_TASK,
            action=analyze,
            description="Analyzes the project and uploads the results to the quality server.",
        )


__all__ = [
    "AnalysisServer",
    "QualityAnalysisCapability",
    "SONAR_CAPABILITY",
    "SONAR_SETTINGS",
    "SONAR_TASK",
    "SonarSettings",
]
