"""Wiring of named steps into the host pipeline's dependency graph.

Steps are attached during configuration and handed to the host scheduler
afterwards. Activation predicates close over live configuration objects and
are only evaluated when the scheduler is about to run the step.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from buildgate.errors import (
    ConfigurationError,
    ConfigurationFrozenError,
    DuplicateTaskError,
    UnknownTaskError,
)
from buildgate.planning.task_graph import TaskGraph

Predicate = Callable[[], bool]
TaskAction = Callable[[], None]


@dataclass(frozen=True, slots=True)
class TaskPredicate:
    """Activation predicate plus the reason reported when it evaluates false."""

    reason: str
    check: Predicate


class TaskNode:
    """One named step: actions, activation predicates, and ordering edges."""

    __slots__ = (
        "_name",
        "_assembler",
        "group",
        "description",
        "_actions",
        "_predicates",
        "_depends_on",
        "_finalized_by",
    )

    def __init__(
        self,
        name: str,
        assembler: TaskGraphAssembler,
        *,
        group: str | None = None,
        description: str | None = None,
    ) -> None:
        self._name = name
        self._assembler = assembler
        self.group = group
        self.description = description
        self._actions: list[TaskAction] = []
        self._predicates: list[TaskPredicate] = []
        self._depends_on: dict[str, None] = {}
        self._finalized_by: dict[str, None] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def dependencies(self) -> tuple[str, ...]:
        return tuple(self._depends_on)

    @property
    def finalizers(self) -> tuple[str, ...]:
        return tuple(self._finalized_by)

    @property
    def predicates(self) -> tuple[TaskPredicate, ...]:
        return tuple(self._predicates)

    def do_last(self, action: TaskAction) -> TaskNode:
        self._assembler._assert_writable()
        self._actions.append(action)
        return self

    def only_if(self, predicate: Predicate, reason: str = "onlyIf predicate is false") -> TaskNode:
        self._assembler._assert_writable()
        self._predicates.append(TaskPredicate(reason=reason, check=predicate))
        return self

    def depends_on(self, *tasks: TaskNode | str) -> TaskNode:
        """Referenced steps complete (or are skipped) before this one starts."""
        self._assembler._assert_writable()
        for name in self._resolve(tasks):
            self._depends_on.setdefault(name, None)
        return self

    def finalized_by(self, *tasks: TaskNode | str) -> TaskNode:
        """Referenced steps run after this one whatever its outcome."""
        self._assembler._assert_writable()
        for name in self._resolve(tasks):
            self._finalized_by.setdefault(name, None)
        return self

    def evaluate_predicates(self) -> tuple[bool, str | None]:
        for predicate in self._predicates:
            if not predicate.check():
                return False, predicate.reason
        return True, None

    def execute(self) -> None:
        for action in self._actions:
            action()

    def _resolve(self, tasks: Iterable[TaskNode | str]) -> list[str]:
        names: list[str] = []
        for task in tasks:
            name = task.name if isinstance(task, TaskNode) else task
            if name == self._name:
                raise ConfigurationError(f"task {name!r} cannot reference itself")
            self._assembler.named(name)
            names.append(name)
        return names

    def __repr__(self) -> str:
        return f"TaskNode({self._name!r})"


class TaskGraphAssembler:
    """Registry of task nodes that can be frozen and exported as a DAG."""

    __slots__ = ("_tasks", "_frozen")

    def __init__(self) -> None:
        self._tasks: dict[str, TaskNode] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __iter__(self) -> Iterator[TaskNode]:
        return iter(tuple(self._tasks.values()))

    def names(self) -> tuple[str, ...]:
        return tuple(self._tasks)

    def register(
        self,
        name: str,
        *,
        action: TaskAction | None = None,
        group: str | None = None,
        description: str | None = None,
    ) -> TaskNode:
        self._assert_writable()
        if not name:
            raise ConfigurationError("task name must be non-empty")
        if name in self._tasks:
            raise DuplicateTaskError(f"task already registered: {name}")
        node = TaskNode(name, self, group=group, description=description)
        if action is not None:
            node.do_last(action)
        self._tasks[name] = node
        return node

    def attach(
        self,
        name: str,
        *,
        predicate: Predicate | None = None,
        reason: str = "onlyIf predicate is false",
        depends_on: Iterable[TaskNode | str] = (),
        finalized_by: Iterable[TaskNode | str] = (),
        action: TaskAction | None = None,
        group: str | None = None,
        description: str | None = None,
    ) -> TaskNode:
        """Create ``name`` (or configure the existing step) and wire its edges.

        Edge targets must already be registered.
        """
        node = self._tasks.get(name)
        if node is None:
            node = self.register(name, action=action, group=group, description=description)
        else:
            if action is not None:
                node.do_last(action)
            if group is not None:
                node.group = group
            if description is not None:
                node.description = description
        if predicate is not None:
            node.only_if(predicate, reason)
        node.depends_on(*depends_on)
        node.finalized_by(*finalized_by)
        return node

    def named(self, name: str) -> TaskNode:
        node = self._tasks.get(name)
        if node is None:
            raise UnknownTaskError(f"task not found: {name}")
        return node

    def find(self, name: str) -> TaskNode | None:
        return self._tasks.get(name)

    def build_graph(self) -> TaskGraph:
        """Ordering graph: dependencies precede a step, finalizers follow it.

        Raises :class:`~buildgate.planning.task_graph.CycleError` on cycles.
        """
        graph = TaskGraph(nodes=self._tasks)
        for node in self._tasks.values():
            for dependency in node.dependencies:
                graph.add_edge(dependency, node.name)
            for finalizer in node.finalizers:
                graph.add_edge(node.name, finalizer)
        graph.topological_sort()
        return graph

    def freeze(self) -> None:
        self._frozen = True

    def _assert_writable(self) -> None:
        if self._frozen:
            raise ConfigurationFrozenError("task graph cannot be changed after finalization")


__all__ = [
    "Predicate",
    "TaskAction",
    "TaskGraphAssembler",
    "TaskNode",
    "TaskPredicate",
]
