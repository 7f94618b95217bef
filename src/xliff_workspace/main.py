"""Main entry point for xliff-workspace."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import WorkspaceConfig
from .errors import WorkspaceError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse. Defaults to ``sys.argv[1:]``.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="xliff-workspace",
        description="Index and watch a directory tree of XLIFF translation files",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command (default)
    scan_parser = subparsers.add_parser("scan", help="List translation groups")
    scan_parser.add_argument(
        "root",
        type=Path,
        nargs="?",
        default=None,
        help="Workspace root (defaults to the configured root)",
    )

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Scan, then report changes until interrupted")
    watch_parser.add_argument(
        "root",
        type=Path,
        nargs="?",
        default=None,
        help="Workspace root (defaults to the configured root)",
    )

    # New language command
    language_parser = subparsers.add_parser(
        "new-language", help="Create a language variant of a translation file"
    )
    language_parser.add_argument("file", type=Path, help="Any file of the translation group")
    language_parser.add_argument("language", help="Two-letter language code, e.g. de")

    # Config command
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

    return parser.parse_args(argv)


def _resolve_root(config: WorkspaceConfig, args: argparse.Namespace) -> Path | None:
    return getattr(args, "root", None) or config.workspace_root


def cmd_scan(config: WorkspaceConfig, args: argparse.Namespace) -> int:
    """Execute scan command.

    Args:
        config: Workspace configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    from .scanner import scan_workspace

    console = Console()
    root = _resolve_root(config, args)
    if root is None:
        console.print("[red]No workspace root given or configured[/red]")
        return 1

    try:
        result = scan_workspace(root)
    except WorkspaceError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    if not result.groups:
        console.print("[yellow]No translation files found[/yellow]")
        return 0

    table = Table(title=f"{len(result.groups)} groups, {result.total_files} files")
    table.add_column("Group", style="cyan")
    table.add_column("Languages", style="green")
    table.add_column("Source", style="dim")

    for group in result.groups:
        table.add_row(
            group.display_name,
            ", ".join(group.languages()),
            group.source_file.name if group.source_file else "-",
        )

    console.print(table)
    return 0


def cmd_watch(config: WorkspaceConfig, args: argparse.Namespace) -> int:
    """Execute watch command.

    Args:
        config: Workspace configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    from .service import WorkspaceService

    console = Console()
    root = _resolve_root(config, args)
    if root is None:
        console.print("[red]No workspace root given or configured[/red]")
        return 1

    service = WorkspaceService(config, root)
    try:
        asyncio.run(service.run())
    except WorkspaceError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    return 0


def cmd_new_language(config: WorkspaceConfig, args: argparse.Namespace) -> int:
    """Execute new-language command.

    Args:
        config: Workspace configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    from .files import create_language_variant
    from .naming import FileIdentity, is_localization_file
    from .scanner import scan_workspace

    console = Console()
    path = args.file.absolute()
    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        return 1

    if not is_localization_file(path):
        console.print(f"[red]Not a translation file: {path.name}[/red]")
        return 1

    try:
        result = scan_workspace(path.parent)
        group = result.group_for(FileIdentity.from_path(path).key)
        if group is None:
            console.print(f"[red]Not a translation file: {path.name}[/red]")
            return 1
        created = create_language_variant(group, args.language)
    except (ValueError, OSError) as e:
        console.print(f"[red]{e}[/red]")
        return 1

    console.print(f"[green]Created: {created}[/green]")
    return 0


def cmd_config(config: WorkspaceConfig, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        config: Workspace configuration.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or WorkspaceConfig.get_config_path()
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

        table.add_row("Workspace root", str(config.workspace_root or "-"))
        table.add_row("Event queue size", str(config.event_queue_size or "unbounded"))
        table.add_row("Poll interval", f"{config.poll_interval}s")
        table.add_row("Rescan on start", str(config.rescan_on_start))
        table.add_row("Log file", str(config.log_file))
        table.add_row("Log level", config.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    try:
        config = WorkspaceConfig.load(args.config)
    except ValueError as e:
        Console().print(f"[red]{e}[/red]")
        return 1

    # Default to scan command
    command = args.command or "scan"

    if command == "scan":
        return cmd_scan(config, args)
    elif command == "watch":
        return cmd_watch(config, args)
    elif command == "new-language":
        return cmd_new_language(config, args)
    elif command == "config":
        return cmd_config(config, args)
    else:
        print(f"Unknown command: {command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
