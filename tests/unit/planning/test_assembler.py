"""Unit tests for planning.assembler."""

from __future__ import annotations

import pytest

from buildgate.errors import (
    ConfigurationError,
    ConfigurationFrozenError,
    DuplicateTaskError,
    UnknownTaskError,
)
from buildgate.planning.assembler import TaskGraphAssembler
from buildgate.planning.task_graph import CycleError


def test_register_rejects_duplicates_and_empty_names() -> None:
    tasks = TaskGraphAssembler()
    tasks.register("check")

    with pytest.raises(DuplicateTaskError):
        tasks.register("check")
    with pytest.raises(ConfigurationError):
        tasks.register("")


def test_named_raises_for_missing_task_and_find_returns_none() -> None:
    tasks = TaskGraphAssembler()

    with pytest.raises(UnknownTaskError) as error:
        tasks.named("sonar")
    assert "sonar" in str(error.value)
    assert tasks.find("sonar") is None


def test_edges_require_existing_targets_and_reject_self_reference() -> None:
    tasks = TaskGraphAssembler()
    check = tasks.register("check")

    with pytest.raises(UnknownTaskError):
        check.depends_on("scanAnalyze")
    with pytest.raises(ConfigurationError):
        check.depends_on(check)
    with pytest.raises(UnknownTaskError):
        tasks.attach("scanAnalyze", finalized_by=("printVulnerabilityCause",))


def test_attach_creates_or_configures_existing_task() -> None:
    calls: list[str] = []
    tasks = TaskGraphAssembler()
    tasks.register("checkSuppressionFile")
    tasks.register("printVulnerabilityCause")
    tasks.register("scanAnalyze", action=lambda: calls.append("scan"))

    node = tasks.attach(
        "scanAnalyze",
        predicate=lambda: False,
        reason="dependencyCheck is skipped",
        depends_on=("checkSuppressionFile",),
        finalized_by=("printVulnerabilityCause",),
        group="verification/dependency-check",
    )

    assert node is tasks.named("scanAnalyze")
    assert node.group == "verification/dependency-check"
    assert node.dependencies == ("checkSuppressionFile",)
    assert node.finalizers == ("printVulnerabilityCause",)
    assert node.evaluate_predicates() == (False, "dependencyCheck is skipped")
    node.execute()
    assert calls == ["scan"]


def test_predicates_are_stored_not_evaluated_during_wiring() -> None:
    evaluations: list[str] = []
    tasks = TaskGraphAssembler()

    def predicate() -> bool:
        evaluations.append("evaluated")
        return True

    node = tasks.attach("generateSuppressionFile", predicate=predicate)
    assert evaluations == []

    assert node.evaluate_predicates() == (True, None)
    assert evaluations == ["evaluated"]


def test_first_false_predicate_reports_its_reason() -> None:
    tasks = TaskGraphAssembler()
    node = tasks.register("sonar")
    node.only_if(lambda: True, "never reported")
    node.only_if(lambda: False, "sonarQube is skipped")
    node.only_if(lambda: False, "not reached")

    assert node.evaluate_predicates() == (False, "sonarQube is skipped")


def test_duplicate_edges_are_recorded_once() -> None:
    tasks = TaskGraphAssembler()
    tasks.register("report")
    check = tasks.register("check")

    check.depends_on("report")
    check.depends_on(tasks.named("report"))

    assert check.dependencies == ("report",)


def test_build_graph_orders_dependencies_before_and_finalizers_after() -> None:
    tasks = TaskGraphAssembler()
    tasks.register("checkSuppressionFile")
    tasks.register("printVulnerabilityCause")
    tasks.attach(
        "scanAnalyze",
        depends_on=("checkSuppressionFile",),
        finalized_by=("printVulnerabilityCause",),
    )
    tasks.attach("check", depends_on=("scanAnalyze",))

    graph = tasks.build_graph()

    assert ("checkSuppressionFile", "scanAnalyze") in graph.edges
    assert ("scanAnalyze", "printVulnerabilityCause") in graph.edges
    order = graph.topological_sort()
    assert order.index("checkSuppressionFile") < order.index("scanAnalyze")
    assert order.index("scanAnalyze") < order.index("printVulnerabilityCause")


def test_build_graph_rejects_cycles() -> None:
    tasks = TaskGraphAssembler()
    report = tasks.register("report")
    test = tasks.register("test")
    report.depends_on(test)
    test.depends_on(report)

    with pytest.raises(CycleError):
        tasks.build_graph()


def test_frozen_assembler_rejects_every_mutation() -> None:
    tasks = TaskGraphAssembler()
    report = tasks.register("report")
    tasks.register("check")
    tasks.freeze()

    assert tasks.frozen
    with pytest.raises(ConfigurationFrozenError):
        tasks.register("sonar")
    with pytest.raises(ConfigurationFrozenError):
        tasks.named("check").depends_on(report)
    with pytest.raises(ConfigurationFrozenError):
        report.only_if(lambda: True)
    with pytest.raises(ConfigurationFrozenError):
        report.do_last(lambda: None)
