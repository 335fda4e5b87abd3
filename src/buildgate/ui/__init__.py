"""UI package exports for the CLI and its rendering."""

from buildgate.ui.cli import CLIError, build_parser, main, run_cli
from buildgate.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
