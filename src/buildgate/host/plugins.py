"""Host capabilities that integrations can apply by identifier."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from buildgate.errors import CapabilityNotFoundError, ConfigurationError

if TYPE_CHECKING:
    from buildgate.host.project import Project


class Capability(Protocol):
    """Something the host pipeline knows how to provide (tasks, native settings)."""

    capability_id: str

    def apply(self, project: Project) -> None: ...


class PluginContainer:
    """Capabilities available on a host project; applying one is idempotent."""

    __slots__ = ("_project", "_available", "_applied")

    def __init__(self, project: Project) -> None:
        self._project = project
        self._available: dict[str, Capability] = {}
        self._applied: dict[str, Capability] = {}

    def register(self, capability: Capability) -> None:
        capability_id = capability.capability_id
        if capability_id in self._available:
            raise ConfigurationError(f"capability already registered: {capability_id}")
        self._available[capability_id] = capability

    def apply(self, capability_id: str) -> Capability:
        applied = self._applied.get(capability_id)
        if applied is not None:
            return applied
        capability = self._available.get(capability_id)
        if capability is None:
            raise CapabilityNotFoundError(capability_id)
        capability.apply(self._project)
        self._applied[capability_id] = capability
        return capability


__all__ = ["Capability", "PluginContainer"]
