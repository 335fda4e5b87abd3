"""Effective skip decision for an integration, resolved once at finalization."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from buildgate.errors import SkipGateUnresolvedError
from buildgate.lazy import Property


class Skippable(Protocol):
    integration: str
    skip: Property[bool]


class SkipRule(Protocol):
    """Automatic skip policy; returns the reason when it fires, else ``None``."""

    def __call__(self, extension: Any, environ: Mapping[str, str]) -> str | None: ...


class SkipGate:
    """``effective_skip = explicit_skip or rule(extension)``.

    When the rule fires the extension's ``skip`` property is latched to ``True``
    so every later reader sees the same decision.
    """

    __slots__ = ("_extension", "_rule", "_environ", "_logger", "_decision")

    def __init__(
        self,
        extension: Skippable,
        rule: SkipRule | None = None,
        *,
        environ: Mapping[str, str],
        logger: Any | None = None,
    ) -> None:
        self._extension = extension
        self._rule = rule
        self._environ = environ
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._decision: bool | None = None

    @property
    def resolved(self) -> bool:
        return self._decision is not None

    @property
    def decision(self) -> bool:
        if self._decision is None:
            raise SkipGateUnresolvedError(
                f"skip decision for {self._extension.integration} read before finalization"
            )
        return self._decision

    def resolve(self) -> bool:
        if self._decision is not None:
            return self._decision
        self._decision = self._evaluate()
        return self._decision

    def _evaluate(self) -> bool:
        if self._extension.skip.get():
            return True
        if self._rule is None:
            return False
        reason = self._rule(self._extension, self._environ)
        if reason is None:
            return False
        self._logger.warning(
            "skip_latched",
            integration=self._extension.integration,
            reason=reason,
        )
        self._extension.skip.set(True)
        return True


__all__ = [
    "SkipGate",
    "SkipRule",
    "Skippable",
]
