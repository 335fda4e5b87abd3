"""Bind effective configuration onto a host project and its extensions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from buildgate.errors import ConfigurationError
from buildgate.extensions.base import ExtensionKey, configure
from buildgate.host.plugins import Capability
from buildgate.host.project import Project
from buildgate.integrations import DEPENDENCY_CHECK, SONAR_QUBE

# Config section -> extension it configures.
EXTENSION_SECTIONS: tuple[tuple[str, ExtensionKey[Any]], ...] = (
    ("dependency_check", DEPENDENCY_CHECK),
    ("sonar_qube", SONAR_QUBE),
)


def project_from_config(
    config: Mapping[str, Any],
    *,
    capabilities: Iterable[Capability] = (),
    environ: Mapping[str, str] | None = None,
) -> Project:
    section: Mapping[str, Any] = config.get("project", {})
    root_dir = Path(section.get("root_dir", ".")).expanduser().resolve()
    return Project(
        section.get("name") or root_dir.name,
        root_dir,
        properties=config.get("properties", {}),
        environ=environ,
        configurations=section.get("configurations", ()),
        capabilities=capabilities,
    )


def apply_config(project: Project, config: Mapping[str, Any]) -> None:
    """Apply integration sections as explicit extension values.

    Runs during the configure phase, after the integrations created their
    extensions. Keys absent from a section keep the extension's conventions.
    """
    for section_name, key in EXTENSION_SECTIONS:
        settings: Mapping[str, object] = config.get(section_name) or {}
        if not settings:
            continue
        extension = project.extensions.find(key)
        if extension is None:
            raise ConfigurationError(
                f"[{section_name}] is configured but the {key.name} integration is not attached"
            )
        configure(extension, settings)


__all__ = ["EXTENSION_SECTIONS", "apply_config", "project_from_config"]
