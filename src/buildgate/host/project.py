"""Host project handle and its two-phase configure/finalize lifecycle."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from buildgate.errors import ConfigurationFrozenError
from buildgate.extensions.base import ExtensionRegistry
from buildgate.host.plugins import Capability, PluginContainer
from buildgate.lazy import Provider, provider_from
from buildgate.planning.assembler import TaskGraphAssembler, TaskNode

if TYPE_CHECKING:
    from buildgate.host.runner import PipelineRunner
    from buildgate.planning.task_graph import TaskGraph

FinalizationHook = Callable[[], None]


class ProviderFactory:
    """Lazy views over project properties and the process environment."""

    __slots__ = ("_project",)

    def __init__(self, project: Project) -> None:
        self._project = project

    def property(self, name: str) -> Provider[str]:
        return provider_from(
            lambda: self._project.properties.get(name), description=f"property {name}"
        )

    def environment_variable(self, name: str) -> Provider[str]:
        return provider_from(
            lambda: self._project.environ.get(name), description=f"environment {name}"
        )


class Project:
    """Configuration-phase view of one host project/module.

    All wiring happens against this object. :meth:`finalize` runs the
    registered finalization hooks exactly once, freezes extension and task
    state, and returns the read-only :class:`FinalizedProject` handed to the
    host scheduler.
    """

    def __init__(
        self,
        name: str,
        root_dir: str | Path,
        *,
        properties: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
        configurations: Iterable[str] = (),
        capabilities: Iterable[Capability] = (),
    ) -> None:
        self.name = name
        self.root_dir = Path(root_dir).expanduser().resolve()
        self._properties: dict[str, str] = dict(properties or {})
        self.environ: Mapping[str, str] = dict(os.environ if environ is None else environ)
        self.configurations: list[str] = list(configurations)
        self.tasks = TaskGraphAssembler()
        self.extensions = ExtensionRegistry()
        self.plugins = PluginContainer(self)
        self.providers = ProviderFactory(self)
        self._hooks: list[tuple[str, FinalizationHook]] = []
        self._finalized: FinalizedProject | None = None
        for capability in capabilities:
            self.plugins.register(capability)

    @property
    def finalized(self) -> bool:
        return self._finalized is not None

    @property
    def properties(self) -> Mapping[str, str]:
        return MappingProxyType(self._properties)

    def file(self, relative: str | Path) -> Path:
        return self.root_dir / relative

    def set_property(self, name: str, value: str) -> None:
        self._assert_configurable()
        self._properties[name] = value

    def after_configuration(self, hook: FinalizationHook, *, name: str | None = None) -> None:
        """Run ``hook`` at finalization, after all ordinary configuration code."""
        self._assert_configurable()
        self._hooks.append((name or getattr(hook, "__name__", "hook"), hook))

    def finalize(self) -> FinalizedProject:
        self._assert_configurable()
        for _, hook in self._hooks:
            hook()
        self.extensions.freeze_all()
        self.tasks.freeze()
        graph = self.tasks.build_graph()
        self._finalized = FinalizedProject(project=self, graph=graph)
        return self._finalized

    def _assert_configurable(self) -> None:
        if self._finalized is not None:
            raise ConfigurationFrozenError(f"project {self.name} is already finalized")

    def __repr__(self) -> str:
        return f"Project({self.name!r}, {str(self.root_dir)!r})"


@dataclass(frozen=True, slots=True)
class FinalizedProject:
    """Read-only project state after the finalization barrier."""

    project: Project
    graph: TaskGraph

    @property
    def name(self) -> str:
        return self.project.name

    def task(self, name: str) -> TaskNode:
        return self.project.tasks.named(name)

    def tasks(self) -> tuple[TaskNode, ...]:
        return tuple(self.project.tasks)

    def runner(self, *, logger: Any | None = None) -> PipelineRunner:
        from buildgate.host.runner import PipelineRunner

        return PipelineRunner(self, logger=logger)


__all__ = ["FinalizationHook", "FinalizedProject", "Project", "ProviderFactory"]
