"""
buildgate — verification gates for a host build pipeline.

File: src/buildgate/__init__.py

Purpose
- Package root. Attaches a dependency vulnerability scan and a code quality
  analysis to a host project's ``check`` step, with lazily resolved settings,
  conditional task activation, and fail-soft integration setup.

Import boundary
- No side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
