"""
buildgate config package public API.

File: src/buildgate/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``buildgate.toml`` + ``BUILDGATE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from buildgate.config.binding import apply_config, project_from_config
from buildgate.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    effective_config,
    load_config,
    normalize_paths,
    parse_property_overrides,
)
from buildgate.config.schema import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_CONFIG,
    PATH_FIELDS,
    BuildgateConfig,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
    validate_config,
)

__all__ = [
    "BuildgateConfig",
    "CONFIG_SCHEMA_VERSION",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PATH_FIELDS",
    "apply_config",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "effective_config",
    "load_config",
    "merge_config",
    "normalize_paths",
    "parse_property_overrides",
    "project_from_config",
    "redact_config",
    "validate_config",
]
