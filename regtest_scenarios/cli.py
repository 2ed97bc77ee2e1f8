"""
Command line for the scenario engine.

  regtest-scenarios list
  regtest-scenarios templates
  regtest-scenarios validate PATH
  regtest-scenarios summary PATH
  regtest-scenarios run (PATH | --template NAME) [--dry-run] [--verbose] [--interactive] [--param KEY=VALUE ...]
  regtest-scenarios new NAME [--description TEXT] [--kind json|python] [--output PATH]

RPC connection and storage come from settings (BITCOIN_RPC_*, SCRIPTS_DIR env vars).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from regtest_scenarios.backends import RpcBackend
from regtest_scenarios.core.config import settings
from regtest_scenarios.core.errors import ScriptError
from regtest_scenarios.core.store import ScriptInfo
from regtest_scenarios.engines import ScriptEngine
from regtest_scenarios.models import (
    EventKind,
    ExecutionOptions,
    ExecutionStatus,
    ScriptEvent,
    ScriptKind,
    StepStatus,
)


def _parse_param(raw: str) -> tuple[str, Any]:
    """KEY=VALUE; VALUE is JSON when it parses, else a plain string."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {raw!r}")
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value


def _confirm(prompt: str) -> bool:
    print(prompt)
    try:
        answer = input("[y/N] ").strip().lower()
    except EOFError:
        return False
    return answer in ("y", "yes")


def _print_event(verbose: bool):
    def _listener(event: ScriptEvent) -> None:
        if event.kind is EventKind.PROGRESS:
            print(f"[{event.step}/{event.total}] {event.message}")
        elif event.kind is EventKind.LOG and verbose:
            print(event.message)
        elif event.kind is EventKind.WARNING:
            print(f"WARNING: {event.message}", file=sys.stderr)

    return _listener


def _print_catalog(scripts: list[ScriptInfo]) -> None:
    for i, info in enumerate(scripts, start=1):
        desc = info.description[:80] + ("..." if len(info.description) > 80 else "")
        print(f"{i}. {info.name} ({info.kind.value}{', v' + info.version if info.version else ''})")
        print(f"   {desc or 'No description'}")
        print(f"   {info.path}")


def _cmd_list(engine: ScriptEngine, args: argparse.Namespace) -> int:
    scripts = engine.list_scripts()
    if not scripts:
        print(f"No scripts found in {settings.SCRIPTS_DIR}")
        return 0
    _print_catalog(scripts)
    return 0


def _cmd_templates(engine: ScriptEngine, args: argparse.Namespace) -> int:
    templates = engine.list_templates()
    if not templates:
        print("No script templates found.")
        return 0
    print(f"Found {len(templates)} script templates:")
    _print_catalog(templates)
    return 0


def _cmd_validate(engine: ScriptEngine, args: argparse.Namespace) -> int:
    script = engine.load_script(args.path)
    report = engine.validate_script(script)
    if report.valid:
        print("Script is valid")
        return 0
    print("Validation errors:")
    for error in report.errors:
        tag = " (advisory)" if error in report.advisories else ""
        print(f"  - {error}{tag}")
    return 1 if report.blocking_errors else 0


def _cmd_summary(engine: ScriptEngine, args: argparse.Namespace) -> int:
    print(engine.generate_summary(engine.load_script(args.path)))
    return 0


def _load_for_run(engine: ScriptEngine, args: argparse.Namespace) -> dict[str, Any] | str | None:
    if args.template is None:
        return engine.load_script(args.path)
    info = engine.find_template(args.template)
    if info is None:
        print(f"Template not found: {args.template}", file=sys.stderr)
        print("Available templates:", file=sys.stderr)
        for t in engine.list_templates():
            print(f"- {t.name}", file=sys.stderr)
        return None
    print(f"Running template: {info.name}")
    return engine.load_script(info.path)


def _cmd_run(engine: ScriptEngine, args: argparse.Namespace) -> int:
    if (args.path is None) == (args.template is None):
        print("Either PATH or --template is required (not both)", file=sys.stderr)
        return 1
    script = _load_for_run(engine, args)
    if script is None:
        return 1
    options = ExecutionOptions(
        dry_run=args.dry_run,
        verbose=args.verbose,
        interactive=args.interactive,
        params=dict(args.param or []),
        confirm=_confirm if args.interactive else None,
    )
    try:
        result = engine.execute_script(script, options, listener=_print_event(args.verbose))
    except ScriptError as e:
        print(f"Script execution failed: {e}", file=sys.stderr)
        return 1
    done = sum(1 for s in result.steps if s.status is StepStatus.SUCCESS)
    print(f"Status: {result.status.value}")
    print(f"Duration: {(result.duration_ms or 0) / 1000:.2f} seconds")
    print(f"Steps completed: {done} of {len(result.steps)}")
    if result.outputs.wallets:
        print(f"Wallets: {', '.join(result.outputs.wallets)}")
    if result.outputs.transactions:
        print(f"Transactions: {len(result.outputs.transactions)}")
    if result.outputs.blocks:
        print(f"Blocks mined: {len(result.outputs.blocks)}")
    return 0 if result.status is ExecutionStatus.COMPLETED else 2


def _cmd_new(engine: ScriptEngine, args: argparse.Namespace) -> int:
    kind = ScriptKind(args.kind)
    content = engine.new_script(args.name, args.description, kind)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(content, indent=2) if isinstance(content, dict) else content
        out.write_text(text, encoding="utf-8")
    else:
        out = engine.save_script(args.name, content, kind)
    print(f"Script saved to: {out}")
    print(f"Run it with: regtest-scenarios run {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regtest-scenarios",
        description="Run scenario scripts against a regtest bitcoind.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List saved scripts").set_defaults(func=_cmd_list)
    sub.add_parser("templates", help="List bundled scenario templates").set_defaults(func=_cmd_templates)

    p = sub.add_parser("validate", help="Validate a script file")
    p.add_argument("path")
    p.set_defaults(func=_cmd_validate)

    p = sub.add_parser("summary", help="Show what a script would do")
    p.add_argument("path")
    p.set_defaults(func=_cmd_summary)

    p = sub.add_parser("run", help="Execute a script")
    p.add_argument("path", nargs="?")
    p.add_argument("-t", "--template", metavar="NAME", help="Run a bundled template instead of a file")
    p.add_argument("-d", "--dry-run", action="store_true", help="Only summarize; no node calls")
    p.add_argument("-v", "--verbose", action="store_true", help="Log every step")
    p.add_argument("-i", "--interactive", action="store_true", help="Confirm before each step")
    p.add_argument(
        "-p",
        "--param",
        action="append",
        type=_parse_param,
        metavar="KEY=VALUE",
        help="Variable passed to the script (repeatable)",
    )
    p.set_defaults(func=_cmd_run)

    p = sub.add_parser("new", help="Create a starter script")
    p.add_argument("name")
    p.add_argument("--description", default="A regtest scenario script")
    p.add_argument("--kind", choices=[k.value for k in ScriptKind], default=ScriptKind.PYTHON.value)
    p.add_argument("-o", "--output", help="Write here instead of SCRIPTS_DIR")
    p.set_defaults(func=_cmd_new)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = ScriptEngine(RpcBackend())
    try:
        return args.func(engine, args)
    except ScriptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
