#!/usr/bin/env python3
"""
extproc: run one external program and report the captured result

Commands:
  extproc run -- CMD [ARGS...]     # run with the configured TTL
  extproc run --timeout 0.5 -- CMD # override the TTL (minutes)
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from extproc.core.configuration import ConfigurationError, ExecutionConfig, load_config
from extproc.core.executor import execute
from extproc.core.models import ProcessResult
from extproc.utils.logging_config import setup_logging
from extproc.utils.time_format import format_millis


def _parse_env(pairs: Optional[List[str]]) -> Dict[str, str]:
    env: Dict[str, str] = {}
    for item in pairs or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {item!r}")
        env[key] = value
    return env


def render_result(result: ProcessResult) -> List[object]:
    """Return rich renderables describing a result."""
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text

    if result.is_ok:
        status = Text("ok", style="bold green")
    elif result.timed_out:
        status = Text("timeout", style="magenta")
    elif result.is_warn:
        status = Text("warning", style="yellow")
    else:
        status = Text("failed", style="bold red")

    table = Table(show_header=False, expand=True)
    table.add_column("field", style="bold")
    table.add_column("value")
    table.add_row("process", result.process)
    table.add_row("command", result.command)
    table.add_row("status", status)
    table.add_row("exit code", str(result.exit_code))
    table.add_row("optional", "yes" if result.optional else "no")
    table.add_row("elapsed", format_millis(result.elapsed_ms))
    if result.failure is not None:
        table.add_row("failure", result.failure.value)
    if result.exception:
        table.add_row("exception", result.exception)

    renderables: List[object] = [table]
    if result.out:
        renderables.append(Panel(Text(result.out.rstrip("\n")), title="stdout"))
    if result.error:
        renderables.append(Panel(Text(result.error.rstrip("\n")), title="stderr", border_style="red"))
    return renderables


def exit_status(result: ProcessResult) -> int:
    # Optional processes never fail the caller
    if result.is_ok or result.is_warn:
        return 0
    return result.exit_code if result.exit_code > 0 else 1


def cmd_run(args: argparse.Namespace) -> int:
    argv = list(args.argv or [])
    if argv and argv[0] == "--":
        argv = argv[1:]
    if not argv:
        print("extproc run: missing command", file=sys.stderr)
        return 2
    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"extproc: {e}", file=sys.stderr)
        return 2
    if args.timeout is not None:
        config = ExecutionConfig(
            process_ttl=args.timeout,
            join_timeout=config.join_timeout,
            kill_grace=config.kill_grace,
        )

    result = execute(
        args.label or argv[0],
        argv,
        env=args.env,
        optional=args.optional,
        timeout=config.timeout_seconds,
        join_timeout=config.join_timeout,
        kill_grace=config.kill_grace,
    )
    logging.getLogger("extproc").info(
        "%s finished exit=%d elapsed=%s", result.process, result.exit_code, format_millis(result.elapsed_ms)
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        from rich.console import Console
        console = Console()
        for r in render_result(result):
            console.print(r)
    return exit_status(result)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="extproc", description="Run external programs with captured output and a deadline")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser("run", help="Run a command and report its result")
    p_run.add_argument("--label", help="Name of the operation (default: the executable)")
    p_run.add_argument("--optional", action="store_true", help="Report failure as a warning (exit 0)")
    p_run.add_argument("--env", action="append", metavar="KEY=VALUE", help="Extra environment variable; can repeat")
    p_run.add_argument("--timeout", type=float, help="TTL in minutes (overrides config; 0 disables)")
    p_run.add_argument("--config", help="Execution config YAML (default: $EXTPROC_CONFIG)")
    p_run.add_argument("--json", action="store_true", help="Print the result as JSON")
    p_run.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO")
    p_run.add_argument("--log-file", help="Log file (default: extproc_data/extproc.log)")
    p_run.add_argument("argv", nargs=argparse.REMAINDER, help="Command and arguments, after --")
    p_run.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    if getattr(args, "timeout", None) is not None and args.timeout < 0:
        parser.error("--timeout must not be negative")
    try:
        args.env = _parse_env(getattr(args, "env", None))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    # Keep stdout clean for machine readable output
    console_level = "CRITICAL" if getattr(args, "json", False) else None
    setup_logging(level=args.log_level, log_file=args.log_file, console_level=console_level)
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
