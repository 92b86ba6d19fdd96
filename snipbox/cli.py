"""
Command-line interface for snipbox.

Runs a snippet file once, serves the HTTP API, or reports which dialect
transpilers are available.
"""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .core.config import ConfigManager
from .core.exceptions import ConfigurationError, format_error_message
from .core.logging import setup_logging
from .dialects.resolver import dialect_for_suffix, supported_dialects
from .dialects.transpilers import detect_transpiler_health
from .engine import SnippetEngine
from .types import RunRequest

EXIT_CODES = {"ok": 0, "fault": 1, "dependency-missing": 2}

COLORS = {
    "ok": "green",
    "fault": "red",
    "dependency-missing": "yellow",
}


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def cmd_run(args: argparse.Namespace, manager: ConfigManager, console: Console) -> int:
    try:
        source = _read_source(args.path)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Cannot read {args.path}: {e}[/red]")
        return 1

    dialect = args.dialect
    if dialect is None:
        dialect = "python" if args.path == "-" else dialect_for_suffix(Path(args.path).suffix).value

    engine = SnippetEngine(manager.config.engine)
    response = engine.run(RunRequest(dialect=dialect, source=source, deadline_seconds=args.deadline))

    if args.plain:
        print(response.text)
    else:
        console.print(
            Panel(
                Text(response.text),
                title=f"{dialect} · {response.status}",
                border_style=COLORS[response.status],
                expand=False,
            )
        )
    return EXIT_CODES[response.status]


def cmd_doctor(args: argparse.Namespace, manager: ConfigManager, console: Console) -> int:
    engine_cfg = manager.config.engine
    table = Table(title="Dialects")
    table.add_column("Dialect")
    table.add_column("Available")
    table.add_column("Detail")
    for entry in detect_transpiler_health().values():
        mark = "[green]yes[/green]" if entry.available else "[red]no[/red]"
        table.add_row(entry.dialect, mark, entry.detail)
    console.print(table)
    console.print(
        f"Deadline: {engine_cfg.deadline_seconds:g}s "
        f"(max {engine_cfg.max_deadline_seconds:g}s), "
        f"output cap: {engine_cfg.max_output_chars} chars"
    )
    console.print(f"Importable modules: {', '.join(sorted(engine_cfg.allowed_modules))}")
    return 0


def cmd_serve(args: argparse.Namespace, manager: ConfigManager, console: Console) -> int:
    from .server import serve

    serve(manager.config, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipbox",
        description="snipbox: run short code snippets in an in-process sandbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a Python file
  snipbox run hello.py

  # Run Coconut from stdin
  echo 'range(3) |> list |> print' | snipbox run - --dialect coconut

  # Serve the HTTP API on port 5000
  snipbox serve --port 5000
        """,
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Directory containing snipbox.yaml (default: current directory)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: from config, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a snippet file once")
    run_parser.add_argument("path", help="Snippet file, or - for stdin")
    run_parser.add_argument(
        "--dialect",
        "-d",
        type=str,
        default=None,
        help=f"Source dialect ({', '.join(supported_dialects())}); inferred from the file suffix",
    )
    run_parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Deadline in seconds (bounded by engine.max_deadline_seconds)",
    )
    run_parser.add_argument(
        "--plain",
        action="store_true",
        help="Print only the result text",
    )
    run_parser.set_defaults(handler=cmd_run)

    serve_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(handler=cmd_serve)

    doctor_parser = subparsers.add_parser("doctor", help="Show dialect availability")
    doctor_parser.set_defaults(handler=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    console = Console()
    manager = ConfigManager(args.project_root)

    try:
        config = manager.config
    except ConfigurationError as e:
        console.print(f"[red]{format_error_message(e)}[/red]")
        return 1

    setup_logging(args.log_level or config.log_level)
    return args.handler(args, manager, console)


if __name__ == "__main__":
    sys.exit(main())
