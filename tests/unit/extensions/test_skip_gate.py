"""Unit tests for the finalization-time skip gate."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import pytest

from buildgate.errors import SkipGateUnresolvedError
from buildgate.extensions.base import ConfigurationExtension
from buildgate.extensions.skip import SkipGate
from buildgate.lazy import Property, provider_of


@dataclass
class RecordingLogger:
    events: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append(("info", event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append(("warning", event, dict(kwargs)))

    def error(self, event: str, **kwargs: object) -> None:
        self.events.append(("error", event, dict(kwargs)))


class Switchable(ConfigurationExtension):
    integration = "switchable"

    def __init__(self) -> None:
        super().__init__()
        self.skip: Property[bool] = Property(bool, name="switchable.skip").convention(False)


def _always(reason: str):  # type: ignore[no-untyped-def]
    calls: list[Mapping[str, str]] = []

    def rule(extension: Switchable, environ: Mapping[str, str]) -> str | None:
        calls.append(environ)
        return reason

    return rule, calls


def test_decision_before_resolution_is_a_contract_violation() -> None:
    gate = SkipGate(Switchable(), environ={}, logger=RecordingLogger())

    assert not gate.resolved
    with pytest.raises(SkipGateUnresolvedError):
        _ = gate.decision


def test_explicit_skip_short_circuits_rule_without_logging() -> None:
    extension = Switchable()
    extension.skip.set(True)
    rule, calls = _always("should not fire")
    logger = RecordingLogger()

    gate = SkipGate(extension, rule, environ={"BUILD_REASON": "PullRequest"}, logger=logger)

    assert gate.resolve() is True
    assert gate.decision is True
    assert calls == []
    assert logger.events == []


def test_no_rule_means_explicit_value_only() -> None:
    gate = SkipGate(Switchable(), environ={}, logger=RecordingLogger())

    assert gate.resolve() is False


def test_firing_rule_latches_skip_and_logs_one_warning() -> None:
    extension = Switchable()
    rule, calls = _always("pull requests are not analyzed")
    logger = RecordingLogger()
    environ = {"BUILD_REASON": "PullRequest"}

    gate = SkipGate(extension, rule, environ=environ, logger=logger)

    assert gate.resolve() is True
    assert extension.skip.get() is True
    assert calls == [environ]
    assert logger.events == [
        (
            "warning",
            "skip_latched",
            {"integration": "switchable", "reason": "pull requests are not analyzed"},
        )
    ]


def test_resolution_runs_once() -> None:
    extension = Switchable()
    rule, calls = _always("latched")
    logger = RecordingLogger()
    gate = SkipGate(extension, rule, environ={}, logger=logger)

    assert gate.resolve() is True
    assert gate.resolve() is True

    assert len(calls) == 1
    assert len(logger.events) == 1


def test_rule_returning_none_keeps_skip_false() -> None:
    extension = Switchable()
    gate = SkipGate(extension, lambda ext, env: None, environ={}, logger=RecordingLogger())

    assert gate.resolve() is False
    assert extension.skip.get() is False


def test_non_boolean_derived_skip_is_rejected_on_resolution() -> None:
    extension = Switchable()
    extension.skip.set(provider_of("yes"))  # type: ignore[arg-type]
    gate = SkipGate(extension, environ={}, logger=RecordingLogger())

    with pytest.raises(TypeError):
        gate.resolve()
    assert not gate.resolved
