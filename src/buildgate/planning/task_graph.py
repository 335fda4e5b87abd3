"""Ordering graph over task names.

An edge ``before -> after`` means ``before`` executes first. Ties between
tasks that are ready at the same time are broken by name, so the same
configuration always yields the same execution order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from heapq import heapify, heappop, heappush


class CycleError(ValueError):
    """The task graph has no valid execution order."""

    cycles: tuple[tuple[str, ...], ...]

    def __init__(self, cycles: Iterable[Sequence[str]]) -> None:
        self.cycles = tuple(tuple(path) for path in cycles)
        shown = "; ".join(" -> ".join(path) for path in self.cycles[:3]) or "unknown"
        more = f" (+{len(self.cycles) - 3} more)" if len(self.cycles) > 3 else ""
        super().__init__(f"task dependency cycle: {shown}{more}")


class TaskGraph:
    __slots__ = ("_successors",)

    def __init__(
        self,
        nodes: Iterable[str] = (),
        edges: Iterable[tuple[str, str]] = (),
    ) -> None:
        self._successors: dict[str, set[str]] = {}
        for name in nodes:
            self.add_node(name)
        for before, after in edges:
            self.add_edge(before, after)

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        """``(before, after)`` pairs sorted by name."""
        return tuple(
            (before, after)
            for before in sorted(self._successors)
            for after in sorted(self._successors[before])
        )

    def add_node(self, name: str) -> None:
        if not name:
            raise ValueError("task name must be non-empty")
        self._successors.setdefault(name, set())

    def add_edge(self, before: str, after: str) -> None:
        self.add_node(before)
        self.add_node(after)
        self._successors[before].add(after)

    def topological_sort(self) -> tuple[str, ...]:
        """Execution order; raises :class:`CycleError` when none exists."""
        waiting_on = dict.fromkeys(self._successors, 0)
        for successors in self._successors.values():
            for after in successors:
                waiting_on[after] += 1

        ready = [name for name, count in waiting_on.items() if count == 0]
        heapify(ready)
        order: list[str] = []
        while ready:
            name = heappop(ready)
            order.append(name)
            for after in self._successors[name]:
                waiting_on[after] -= 1
                if waiting_on[after] == 0:
                    heappush(ready, after)

        if len(order) < len(self._successors):
            raise CycleError(self.detect_cycles())
        return tuple(order)

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """Closed cycle paths such as ``("a", "b", "a")``, each rotated to start at its smallest name."""
        finished: set[str] = set()
        found: set[tuple[str, ...]] = set()

        for root in sorted(self._successors):
            if root in finished:
                continue
            path: list[str] = [root]
            on_path = {root}
            branches = [iter(sorted(self._successors[root]))]
            while branches:
                after = next(branches[-1], None)
                if after is None:
                    done = path.pop()
                    on_path.discard(done)
                    finished.add(done)
                    branches.pop()
                elif after in on_path:
                    found.add(_rotate(path[path.index(after):]))
                elif after not in finished:
                    path.append(after)
                    on_path.add(after)
                    branches.append(iter(sorted(self._successors[after])))

        return tuple(sorted(found))


def _rotate(loop: Sequence[str]) -> tuple[str, ...]:
    start = loop.index(min(loop))
    ordered = tuple(loop[start:]) + tuple(loop[:start])
    return ordered + (ordered[0],)


__all__ = ["CycleError", "TaskGraph"]
