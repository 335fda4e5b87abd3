"""Reference host scheduler for finalized projects.

Execution rules:
- requested tasks run together with their dependency closure and finalizers,
  in deterministic topological order;
- activation predicates are evaluated immediately before a task would run, and
  a false predicate records the task as skipped (skipped dependencies count as
  satisfied);
- a failed dependency marks dependents as not run, and once any task failed no
  further regular task is started;
- a finalizer runs when at least one task it finalizes actually executed,
  whether that task succeeded or failed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from buildgate.errors import BuildFailedError, ContractViolation
from buildgate.planning.task_graph import TaskGraph

if TYPE_CHECKING:
    from buildgate.host.project import FinalizedProject
    from buildgate.planning.assembler import TaskNode


class TaskOutcome(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_RUN = "not_run"


@dataclass(frozen=True, slots=True)
class TaskResult:
    name: str
    outcome: TaskOutcome
    reason: str | None = None
    error: Exception | None = None

    @property
    def executed(self) -> bool:
        return self.outcome in (TaskOutcome.SUCCESS, TaskOutcome.FAILED)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "error": None if self.error is None else str(self.error),
        }


@dataclass(frozen=True, slots=True)
class RunReport:
    """Ordered per-task results of one pipeline run."""

    results: tuple[TaskResult, ...]

    def result(self, name: str) -> TaskResult:
        for result in self.results:
            if result.name == name:
                return result
        raise KeyError(f"task was not scheduled: {name}")

    def outcome(self, name: str) -> TaskOutcome:
        return self.result(name).outcome

    @property
    def executed(self) -> tuple[str, ...]:
        return tuple(result.name for result in self.results if result.executed)

    @property
    def failures(self) -> tuple[TaskResult, ...]:
        return tuple(result for result in self.results if result.outcome is TaskOutcome.FAILED)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        failures = self.failures
        if failures:
            raise BuildFailedError([result.name for result in failures]) from failures[0].error

    def to_dict(self) -> dict[str, object]:
        return {
            "succeeded": self.succeeded,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    order: tuple[str, ...]
    finalizer_only: frozenset[str]
    finalized_by: dict[str, tuple[str, ...]]


class PipelineRunner:
    """Runs tasks of a :class:`~buildgate.host.project.FinalizedProject`."""

    __slots__ = ("_project", "_logger")

    def __init__(self, project: FinalizedProject, *, logger: Any | None = None) -> None:
        self._project = project
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def plan(self, targets: Sequence[str]) -> ExecutionPlan:
        tasks = self._project.project.tasks
        required = self._dependency_closure(targets)
        scheduled: dict[str, None] = dict.fromkeys(required)
        finalizer_only: set[str] = set()

        pending = list(required)
        while pending:
            name = pending.pop()
            for finalizer in tasks.named(name).finalizers:
                if finalizer in scheduled:
                    continue
                finalizer_only.add(finalizer)
                scheduled[finalizer] = None
                pending.append(finalizer)
                for dependency in self._dependency_closure([finalizer]):
                    if dependency not in scheduled:
                        scheduled[dependency] = None
                        pending.append(dependency)

        finalized_by: dict[str, list[str]] = {}
        for name in scheduled:
            for finalizer in tasks.named(name).finalizers:
                finalized_by.setdefault(finalizer, []).append(name)

        subgraph = TaskGraph(
            nodes=scheduled,
            edges=(
                (parent, child)
                for parent, child in self._project.graph.edges
                if parent in scheduled and child in scheduled
            ),
        )
        return ExecutionPlan(
            order=subgraph.topological_sort(),
            finalizer_only=frozenset(finalizer_only),
            finalized_by={name: tuple(sorted(owners)) for name, owners in finalized_by.items()},
        )

    def run(self, targets: Sequence[str]) -> RunReport:
        plan = self.plan(targets)
        tasks = self._project.project.tasks
        results: dict[str, TaskResult] = {}
        build_failed = False

        for name in plan.order:
            node = tasks.named(name)
            if name in plan.finalizer_only:
                owners = plan.finalized_by.get(name, ())
                if not any(results[owner].executed for owner in owners if owner in results):
                    results[name] = self._record(
                        TaskResult(name, TaskOutcome.SKIPPED, "finalized task did not execute")
                    )
                    continue
            elif build_failed:
                results[name] = self._record(
                    TaskResult(name, TaskOutcome.NOT_RUN, "build already failed")
                )
                continue

            blocked = [
                dependency
                for dependency in node.dependencies
                if dependency in results
                and results[dependency].outcome in (TaskOutcome.FAILED, TaskOutcome.NOT_RUN)
            ]
            if blocked:
                results[name] = self._record(
                    TaskResult(name, TaskOutcome.NOT_RUN, f"dependency {blocked[0]} did not complete")
                )
                continue

            result = self._record(self._execute(node))
            results[name] = result
            if result.outcome is TaskOutcome.FAILED:
                build_failed = True

        return RunReport(results=tuple(results[name] for name in plan.order))

    def _execute(self, node: TaskNode) -> TaskResult:
        should_run, reason = node.evaluate_predicates()
        if not should_run:
            return TaskResult(node.name, TaskOutcome.SKIPPED, reason)
        try:
            node.execute()
        except ContractViolation:
            raise
        except Exception as exc:  # noqa: BLE001 - recorded on the host failure channel.
            return TaskResult(node.name, TaskOutcome.FAILED, type(exc).__name__, exc)
        return TaskResult(node.name, TaskOutcome.SUCCESS)

    def _record(self, result: TaskResult) -> TaskResult:
        if result.outcome is TaskOutcome.FAILED:
            self._logger.error(
                "task_failed", task=result.name, error=str(result.error), reason=result.reason
            )
        else:
            self._logger.info(
                "task_finished",
                task=result.name,
                outcome=result.outcome.value,
                reason=result.reason,
            )
        return result

    def _dependency_closure(self, targets: Iterable[str]) -> tuple[str, ...]:
        tasks = self._project.project.tasks
        seen: dict[str, None] = {}
        stack = list(targets)
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen[name] = None
            stack.extend(tasks.named(name).dependencies)
        return tuple(seen)


__all__ = ["ExecutionPlan", "PipelineRunner", "RunReport", "TaskOutcome", "TaskResult"]
