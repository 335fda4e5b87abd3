"""Unit tests for binding effective config onto a host project."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildgate.bootstrap import default_capabilities
from buildgate.config.binding import apply_config, project_from_config
from buildgate.config.schema import default_config, merge_config
from buildgate.errors import ConfigurationError
from buildgate.host.capabilities import LIFECYCLE_CAPABILITY
from buildgate.integrations import apply_verification
from buildgate.integrations.dependency_check import DEPENDENCY_CHECK
from buildgate.integrations.sonar import SONAR_QUBE, SonarQubeEdition


def _config(tmp_path: Path, overlay: dict[str, object]) -> dict[str, object]:
    return merge_config(
        default_config(), merge_config({"project": {"root_dir": str(tmp_path)}}, overlay)
    )


def test_project_from_config_uses_root_name_and_properties(tmp_path: Path) -> None:
    config = _config(tmp_path, {"properties": {"sonarqube.edition": "community"}})

    project = project_from_config(config, environ={"BUILD_REASON": "PullRequest"})

    assert project.name == tmp_path.resolve().name
    assert project.root_dir == tmp_path.resolve()
    assert project.properties == {"sonarqube.edition": "community"}
    assert project.environ == {"BUILD_REASON": "PullRequest"}
    assert project.configurations == ["api", "implementation", "runtimeOnly", "testImplementation"]


def test_explicit_project_name_wins(tmp_path: Path) -> None:
    config = _config(tmp_path, {"project": {"name": "billing-service"}})

    assert project_from_config(config, environ={}).name == "billing-service"


def test_apply_config_sets_explicit_values_and_keeps_conventions(tmp_path: Path) -> None:
    config = _config(
        tmp_path,
        {
            "dependency_check": {"cvss_threshold": 7.0},
            "sonar_qube": {"edition": "developer"},
        },
    )
    project = project_from_config(config, capabilities=default_capabilities(), environ={})
    project.plugins.apply(LIFECYCLE_CAPABILITY)
    apply_verification(project)

    apply_config(project, config)

    dependency_check = project.extensions.get(DEPENDENCY_CHECK)
    assert dependency_check.cvss_threshold.get() == 7.0
    assert dependency_check.skip.get() is False
    assert dependency_check.suppression_file.get() == (
        tmp_path.resolve() / "dependency-check-suppression.xml"
    )
    assert project.extensions.get(SONAR_QUBE).edition.get() is SonarQubeEdition.DEVELOPER


def test_apply_config_requires_attached_integration(tmp_path: Path) -> None:
    config = _config(tmp_path, {"sonar_qube": {"skip": True}})
    project = project_from_config(config, environ={})

    with pytest.raises(ConfigurationError, match="sonar_qube"):
        apply_config(project, config)


def test_empty_sections_are_ignored(tmp_path: Path) -> None:
    config = _config(tmp_path, {})
    project = project_from_config(config, environ={})

    apply_config(project, config)

    assert project.extensions.configuration_extensions() == ()
