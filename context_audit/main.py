#!/usr/bin/env python3
"""Command-line entry point for the interrupt-context audit.

Examples:
  # Audit a kernel tree with the built-in interrupt-context rules
  context-audit kernel/ arch/x86/

  # Use a different root and extra blacklisted functions
  context-audit src/ --source irq_handler --blacklist sleep --sink panic

  # Audit a hand-written or exported call graph description
  context-audit callgraph.yaml --config audit.toml --summary
"""

import argparse
import sys
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.table import Table

from .analysis.reachability import AuditResult, ReachabilityAnalyzer
from .config import SUPPORTED_FORMATS, AuditConfig, AuditConfigError, load_config
from .graph.program import Program
from .parsers.c_frontend import C_EXTENSIONS, CFrontend
from .parsers.graph_loader import GraphLoader, ProgramLoadError

EXIT_CLEAN = 0
EXIT_VIOLATIONS = 1
EXIT_USAGE = 2

console = Console()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="context-audit",
        description=(
            "Report call chains from an interrupt-context entry point to "
            "functions that must not run in that context."
        ),
        epilog=__doc__.split("Examples:", 1)[1].rstrip(),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        type=Path,
        help="C sources or directories, or one call graph description (.yaml/.json/.toml)",
    )
    parser.add_argument("--config", type=Path, help="YAML, TOML or JSON audit configuration")
    parser.add_argument("--source", help="Function the audit starts from")
    parser.add_argument(
        "--blacklist",
        action="append",
        metavar="NAME",
        help="Function that must not be reached (repeatable, replaces the configured list)",
    )
    parser.add_argument(
        "--sink",
        action="append",
        metavar="NAME",
        help="Function that ends a path (repeatable, replaces the configured list)",
    )
    parser.add_argument(
        "--summary", action="store_true", help="Print a table of violations when done"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def collect_c_files(inputs: list[Path]) -> list[Path]:
    files = []
    for path in inputs:
        if path.is_dir():
            files.extend(
                sorted(p for p in path.rglob("*") if p.is_file() and p.suffix in C_EXTENSIONS)
            )
        else:
            files.append(path)
    return files


def load_program(inputs: list[Path]) -> Program:
    missing = [str(p) for p in inputs if not p.exists()]
    if missing:
        raise FileNotFoundError(f"Input not found: {', '.join(missing)}")

    descriptions = [
        p for p in inputs if p.is_file() and p.suffix.lower() in SUPPORTED_FORMATS
    ]
    if descriptions:
        if len(inputs) != 1:
            raise ProgramLoadError("A call graph description must be the only input")
        return GraphLoader().load_file(descriptions[0])

    c_files = collect_c_files(inputs)
    unsupported = [str(p) for p in c_files if p.suffix not in C_EXTENSIONS]
    if unsupported:
        raise ProgramLoadError(f"Unsupported input: {', '.join(unsupported)}")
    logger.info(f"Parsing {len(c_files)} C files")
    return CFrontend().load_files(c_files)


def resolve_config(args: argparse.Namespace) -> AuditConfig:
    config = load_config(args.config) if args.config else AuditConfig()
    return config.with_overrides(
        source_function=args.source, blacklist=args.blacklist, sinks=args.sink
    )


def print_summary(result: AuditResult) -> None:
    if not result.source_found:
        console.print(
            f"[yellow]Source function {result.source_function} not found; nothing audited[/yellow]"
        )
        return

    if not result.violations:
        console.print(
            f"[green]No black-listed function reachable from {result.source_function}[/green] "
            f"({result.functions_visited} functions, {result.blocks_visited} blocks explored)"
        )
        return

    table = Table(title=f"Black-listed calls reachable from {result.source_function}")
    table.add_column("Function", style="red")
    table.add_column("Depth", justify="right")
    table.add_column("Call chain")
    for violation in result.violations:
        table.add_row(violation.function, str(violation.depth), " -> ".join(violation.chain))
    console.print(table)
    console.print(
        f"Found [red]{len(result.violations)}[/red] violations "
        f"({result.functions_visited} functions, {result.blocks_visited} blocks explored)"
    )


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = resolve_config(args)
        program = load_program(args.inputs)
    except (AuditConfigError, ProgramLoadError, FileNotFoundError) as e:
        logger.error(str(e))
        console.print(f"[bold red]Error:[/bold red] {e}")
        return EXIT_USAGE

    result = ReachabilityAnalyzer(config).analyze(program)
    if args.summary:
        print_summary(result)
    return EXIT_CLEAN if result.passed else EXIT_VIOLATIONS


if __name__ == "__main__":
    sys.exit(main())
