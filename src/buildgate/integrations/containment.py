"""Fail-soft boundary around attaching one integration to a host project."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from buildgate.errors import ContractViolation


@dataclass(frozen=True, slots=True)
class AttachOutcome:
    """Result of :func:`attempt_attach`; ``error`` is set when attachment failed."""

    integration: str
    attached: bool
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return not self.attached


def attempt_attach(integration: str, fn: Callable[[], None]) -> AttachOutcome:
    """Run ``fn``; any failure disables the integration instead of the host build.

    Contract violations are programming errors and are re-raised.
    """
    try:
        fn()
    except ContractViolation:
        raise
    except Exception as exc:  # noqa: BLE001 - integration setup containment boundary.
        return AttachOutcome(integration=integration, attached=False, error=exc)
    return AttachOutcome(integration=integration, attached=True)


def report_outcome(outcome: AttachOutcome, logger: Any) -> AttachOutcome:
    if outcome.error is not None:
        logger.error(
            "integration_attach_failed",
            integration=outcome.integration,
            error=str(outcome.error),
            error_type=type(outcome.error).__name__,
            exc_info=outcome.error,
        )
    return outcome


__all__ = ["AttachOutcome", "attempt_attach", "report_outcome"]
