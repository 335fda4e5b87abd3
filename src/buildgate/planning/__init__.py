"""
buildgate — planning package.

File: src/buildgate/planning/__init__.py

Purpose
- Task wiring for the host pipeline: named steps with activation predicates,
  "depends on" edges, and "finalized by" edges, exported as a deterministic DAG.

Functional requirements
- Edge targets must exist when an edge is added.
- Predicates are stored, never evaluated, while wiring.
"""

from buildgate.planning.assembler import (
    Predicate,
    TaskAction,
    TaskGraphAssembler,
    TaskNode,
    TaskPredicate,
)
from buildgate.planning.task_graph import CycleError, TaskGraph

__all__ = [
    "CycleError",
    "Predicate",
    "TaskAction",
    "TaskGraph",
    "TaskGraphAssembler",
    "TaskNode",
    "TaskPredicate",
]
