"""Main entry point for the bigfile command line."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import BigfileConfig
from .errors import BigfileError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="bigfile",
        description="Disable expensive editor features on very large files",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser("scan", help="Show which features each file would lose")
    scan_parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        help="Files or directories to scan (defaults to the watch directories)",
    )
    scan_parser.add_argument(
        "--all",
        action="store_true",
        dest="show_all",
        help="Also list files that match no rule",
    )

    subparsers.add_parser("features", help="List registered features")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    subparsers.add_parser("watch", help="Watch directories and report big files as they change")

    return parser.parse_args(argv)


def _iter_files(paths: list[Path]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file()))
        else:
            files.append(path)
    return files


def cmd_scan(config: BigfileConfig, args: argparse.Namespace) -> int:
    """Execute scan command.

    Args:
        config: Bigfile configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    from .daemon import process_path
    from .host import LocalHost
    from .plugin import setup

    console = Console()
    host = LocalHost()
    instance = setup(host, config)

    files = _iter_files(args.paths or config.watch_directories)
    reports = [process_path(instance, host, path) for path in files]
    shown = [r for r in reports if r.is_big or args.show_all]

    if not shown:
        console.print(f"[green]No big files among {len(reports)} scanned[/green]")
        return 0

    table = Table(title=f"Scanned {len(reports)} files")
    table.add_column("File", style="cyan")
    table.add_column("Location", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Immediate", style="red")
    table.add_column("Deferred", style="yellow")
    table.add_column("State", style="dim")

    for report in shown:
        table.add_row(
            report.path.name,
            str(report.path.parent),
            "?" if report.size is None else str(report.size),
            ", ".join(report.immediate),
            ", ".join(report.deferred),
            report.state.value,
        )

    console.print(table)
    return 0


def cmd_features(config: BigfileConfig, args: argparse.Namespace) -> int:
    """Execute features command."""
    from .features import FeatureRegistry

    console = Console()
    registry = FeatureRegistry.builtin()
    used = {name for rule in config.rules for name in rule.feature_names if isinstance(name, str)}

    table = Table(title=f"Registered features ({len(registry)})")
    table.add_column("Feature", style="cyan")
    table.add_column("Timing")
    table.add_column("In rules", style="green")

    for feature in sorted(registry, key=lambda f: f.name):
        table.add_row(
            feature.name,
            "deferred" if feature.deferred else "immediate",
            "yes" if feature.name in used else "",
        )

    console.print(table)
    return 0


def cmd_config(config: BigfileConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        config: Bigfile configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or BigfileConfig.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        for rule in config.rules:
            names = [n if isinstance(n, str) else n.name for n in rule.feature_names]
            table.add_row(
                f"Rule {rule.rule_id}",
                f">= {rule.threshold} units, {' '.join(rule.patterns)}: {', '.join(names) or '-'}",
            )
        table.add_row("Size unit", f"{config.size_unit} bytes")
        table.add_row("Watch directories", "\n".join(str(d) for d in config.watch_directories))
        table.add_row("Log file", str(config.log_file))
        table.add_row("Log level", config.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def cmd_watch(config: BigfileConfig, args: argparse.Namespace) -> int:
    """Execute watch command."""
    from .daemon import BigfileDaemon

    if not config.watch_directories:
        Console().print("[red]No watch directories configured[/red]")
        return 1

    daemon = BigfileDaemon(config)
    asyncio.run(daemon.run_daemon())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    try:
        config = BigfileConfig.load(args.config)
    except BigfileError as exc:
        Console(stderr=True).print(f"[red]{exc}[/red]")
        return 2

    command = args.command or "scan"
    if command == "scan" and not hasattr(args, "paths"):
        args.paths = []
        args.show_all = False

    try:
        if command == "scan":
            return cmd_scan(config, args)
        elif command == "features":
            return cmd_features(config, args)
        elif command == "config":
            return cmd_config(config, args)
        elif command == "watch":
            return cmd_watch(config, args)
    except BigfileError as exc:
        Console(stderr=True).print(f"[red]{exc}[/red]")
        return 2

    print(f"Unknown command: {command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
