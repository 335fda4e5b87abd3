"""Logging configuration for the buildgate CLI and embedding hosts."""

from buildgate.observability.logging import (
    REDACTED_VALUE,
    configure_logging,
    parse_log_level,
    redact_event,
)

__all__ = ["REDACTED_VALUE", "configure_logging", "parse_log_level", "redact_event"]
