"""
buildgate — configuration extensions.

File: src/buildgate/extensions/__init__.py

Purpose
- Per-integration bundles of lazy properties, the typed registry that owns
  them on a host project, and the skip gate resolved at finalization.
"""

from buildgate.extensions.base import (
    ConfigurationExtension,
    ExtensionKey,
    ExtensionRegistry,
    configure,
)
from buildgate.extensions.skip import SkipGate, SkipRule, Skippable

__all__ = [
    "ConfigurationExtension",
    "ExtensionKey",
    "ExtensionRegistry",
    "SkipGate",
    "SkipRule",
    "Skippable",
    "configure",
]
