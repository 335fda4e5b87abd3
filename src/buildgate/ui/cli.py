"""Command-line interface router for buildgate."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog
import yaml

from buildgate.bootstrap import BootstrapResult, bootstrap_project
from buildgate.config import (
    ConfigLoadError,
    ConfigValidationError,
    effective_config,
    load_config,
    parse_property_overrides,
)
from buildgate.errors import ConfigurationError, UnknownTaskError
from buildgate.observability import configure_logging
from buildgate.ui.render import CLIRenderer, create_renderer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="buildgate",
        description=(
            "buildgate — verification gates for a host build pipeline.\n\n"
            "Common workflows:\n"
            "  buildgate tasks              List wired tasks and their edges\n"
            "  buildgate plan check         Show what 'check' would run\n"
            "  buildgate config             Show the effective (redacted) config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to buildgate TOML config (default: ./buildgate.toml if present).",
    )
    common.add_argument(
        "-P",
        "--property",
        dest="properties",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set a project property (repeatable).",
    )
    common.add_argument(
        "--root-dir",
        default=None,
        help="Project root directory (overrides project.root_dir).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        help="Override observability.log_level.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    tasks_parser = subparsers.add_parser(
        "tasks",
        parents=[common],
        help="List the wired tasks of the project",
        description="Wire and finalize the project, then list tasks with their edges.",
    )
    tasks_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    tasks_parser.set_defaults(handler=_cmd_tasks)

    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Show the ordered execution plan for target tasks",
        description=(
            "Resolve the dependency closure and finalizers of TARGET tasks and evaluate "
            "their activation predicates against the finalized configuration."
        ),
    )
    plan_parser.add_argument("targets", nargs="+", metavar="TARGET", help="Task names")
    plan_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    plan_parser.set_defaults(handler=_cmd_plan)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective configuration",
        description="Print the effective configuration with sensitive values redacted.",
    )
    config_parser.add_argument("--json", action="store_true", help="Emit JSON instead of YAML")
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


def _cmd_tasks(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    bootstrap = _bootstrap(config)
    finalized = bootstrap.project

    payload: dict[str, object] = {
        "command": "tasks",
        "project": finalized.name,
        "integrations": _integrations_payload(bootstrap),
        "tasks": [
            {
                "name": node.name,
                "group": node.group,
                "description": node.description,
                "dependencies": list(node.dependencies),
                "finalizers": list(node.finalizers),
                "conditions": [predicate.reason for predicate in node.predicates],
            }
            for node in sorted(finalized.tasks(), key=lambda item: item.name)
        ],
    }

    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Project", finalized.name)
    _render_integrations(renderer, bootstrap)
    rows = [
        [
            node.name,
            node.group or "",
            ", ".join(node.dependencies),
            ", ".join(node.finalizers),
        ]
        for node in sorted(finalized.tasks(), key=lambda item: item.name)
    ]
    renderer.table(["TASK", "GROUP", "DEPENDS ON", "FINALIZED BY"], rows, title="Tasks:")
    if renderer.verbose:
        renderer.section("Descriptions:")
        renderer.items(
            [
                f"{node.name}: {node.description}"
                for node in sorted(finalized.tasks(), key=lambda item: item.name)
                if node.description
            ]
        )
    return 0


def _cmd_plan(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    bootstrap = _bootstrap(config)
    finalized = bootstrap.project
    targets = [target.strip() for target in args.targets if target.strip()]

    try:
        plan = finalized.runner().plan(targets)
    except UnknownTaskError as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    steps: list[dict[str, object]] = []
    rows: list[list[str]] = []
    for name in plan.order:
        should_run, reason = finalized.task(name).evaluate_predicates()
        finalizes = plan.finalized_by.get(name, ()) if name in plan.finalizer_only else ()
        steps.append(
            {
                "task": name,
                "would_run": should_run,
                "reason": reason,
                "finalizes": list(finalizes),
            }
        )
        rows.append([name, "run" if should_run else "skip", reason or "", ", ".join(finalizes)])

    payload: dict[str, object] = {
        "command": "plan",
        "project": finalized.name,
        "targets": targets,
        "integrations": _integrations_payload(bootstrap),
        "steps": steps,
    }

    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Project", finalized.name)
    renderer.kv("Targets", ", ".join(targets))
    _render_integrations(renderer, bootstrap)
    renderer.table(["TASK", "ACTION", "REASON", "FINALIZES"], rows, title="Execution plan:")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    redacted = effective_config(config)

    if _flag(args, "json"):
        _emit_json({"command": "config", "config": redacted})
        return 0

    print(yaml.safe_dump(redacted, sort_keys=True, default_flow_style=False).rstrip("\n"))
    return 0


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    cli_overrides: dict[str, object] = {}
    root_dir = _optional_str(getattr(args, "root_dir", None))
    if root_dir is not None:
        cli_overrides["project.root_dir"] = root_dir
    log_level = _optional_str(getattr(args, "log_level", None))
    if log_level is not None:
        cli_overrides["observability.log_level"] = log_level

    try:
        properties = parse_property_overrides(list(getattr(args, "properties", None) or ()))
        config = load_config(
            _optional_str(getattr(args, "config_path", None)),
            cli_overrides=cli_overrides,
            property_overrides=properties,
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    observability: Mapping[str, Any] = config.get("observability", {})
    configure_logging(
        observability.get("log_level", "INFO"),
        log_format=observability.get("log_format", "text"),
    )
    return config


def _bootstrap(config: Mapping[str, Any]) -> BootstrapResult:
    try:
        result = bootstrap_project(config)
    except ConfigurationError as exc:
        raise CLIError(str(exc), exit_code=2) from exc
    logger.debug(
        "project_finalized",
        project=result.project.name,
        tasks=len(result.project.tasks()),
        failed_integrations=list(result.failed_integrations),
    )
    return result


def _integrations_payload(bootstrap: BootstrapResult) -> list[dict[str, object]]:
    return [
        {
            "integration": outcome.integration,
            "attached": outcome.attached,
            "error": None if outcome.error is None else str(outcome.error),
        }
        for outcome in bootstrap.outcomes
    ]


def _render_integrations(renderer: CLIRenderer, bootstrap: BootstrapResult) -> None:
    renderer.section("Integrations:")
    renderer.items(
        [
            f"{outcome.integration}: attached"
            if outcome.attached
            else f"{outcome.integration}: disabled ({outcome.error})"
            for outcome in bootstrap.outcomes
        ]
    )


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=2)
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "main", "run_cli"]
