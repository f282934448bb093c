#!/usr/bin/env python3
"""
Mvmender UNIFIED CLI
--------------------
Diagnoses and repairs malformed RPG Maker MV data files.
"""

import sys
import argparse
import logging

from mvmender.core.engine import MenderEngine
from mvmender.ui.formatter import MenderFormatter
from mvmender.cli.commands.base import (
    get_console,
    print_custom_header,
    print_version,
    add_standard_flags,
    normalize_paths,
    validate_required_arg,
)
from mvmender.cli.commands.scan import handle_scan_command
from mvmender.cli.commands.fix import handle_fix_command

console = get_console()
logger = logging.getLogger("mvmender.cli")


def print_help(prog: str):
    """Displays the main help menu."""
    from rich.table import Table
    console.print("\n[bold cyan]┌─ COMMANDS[/bold cyan]")
    cmd_table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
    cmd_table.add_column(style="bold green", width=12)
    cmd_table.add_column(style="white")
    cmd_table.add_row("scan", "Diagnose data files and preview repairs (read-only)")
    cmd_table.add_row("fix", "Repair data files in place (backs up to .bak first)")
    cmd_table.add_row("version", "Display version info")
    console.print(cmd_table)

    console.print("\n[bold cyan]┌─ OPTIONS[/bold cyan]")
    opt_table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
    opt_table.add_column(style="yellow", width=24)
    opt_table.add_column(style="dim white")
    opt_table.add_row("--output text|json", "Report format")
    opt_table.add_row("-r, --recursive", "Descend into sub-folders")
    opt_table.add_row("--workers N", "Files processed in parallel")
    opt_table.add_row("--dry-run", "fix: show repairs without writing")
    opt_table.add_row("-y, --yes", "fix: do not ask for confirmation")
    opt_table.add_row("--output-dir DIR", "fix: write repaired copies to DIR")
    opt_table.add_row("-s, --summary-only", "Show aggregate stats only")
    opt_table.add_row("--verbose", "Show the full repair trail and INFO logs")
    console.print(opt_table)

    console.print(f"\n[bold magenta]💡 TIP[/bold magenta]")
    console.print(f"   Point [cyan bold]{prog} scan[/cyan bold] at a project folder; its data/ folder is found automatically.\n")


def build_parser(prog: str = "mvmender") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, add_help=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument('-v', '--version', action='store_true')

    subparsers = parser.add_subparsers(dest="command")

    scan_parser = subparsers.add_parser("scan", add_help=False)
    add_standard_flags(scan_parser)

    fix_parser = subparsers.add_parser("fix", add_help=False)
    add_standard_flags(fix_parser)
    fix_parser.add_argument("--dry-run", action="store_true")
    fix_parser.add_argument("-y", "--yes", action="store_true", help="Auto-confirm")
    fix_parser.add_argument("--output-dir", dest="output_dir", default=None,
                            help="Write repaired copies here instead of in place")

    subparsers.add_parser("version", add_help=False)
    return parser


def main(argv=None):
    """
    Primary orchestration logic for the CLI.
    """
    argv = sys.argv[1:] if argv is None else argv

    # Setup Logging (Default: WARNING, Verbose: INFO)
    log_level = logging.INFO if "--verbose" in argv else logging.WARNING
    logging.basicConfig(level=log_level, format="%(message)s")

    parser = build_parser()
    args, unknown = parser.parse_known_args(argv)

    if unknown:
        console.print(f"[red]Error: Unrecognized arguments: {unknown}[/red]")
        print_help(parser.prog)
        return 1

    is_json = getattr(args, 'output', 'text') == 'json'
    if is_json:
        # Keep stdout clean for the JSON document
        logging.getLogger().setLevel(logging.ERROR)

    if hasattr(args, 'path') and args.path:
        args.path = normalize_paths(args.path)

    if args.version or args.command == "version":
        print_version()
        return 0

    if args.help or not args.command:
        print_custom_header()
        print_help(parser.prog)
        return 0

    if not validate_required_arg(args.path, "path", args.command,
                                 [f"mvmender {args.command} .", f"mvmender {args.command} <project-or-file>"]):
        return 1

    try:
        engine = MenderEngine(workspace_path=".", workers=args.workers)
        formatter = MenderFormatter(console)

        if not is_json:
            print_custom_header()

        if args.command == "scan":
            return handle_scan_command(args, engine, formatter)
        return handle_fix_command(args, engine, formatter)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[bold red]Fatal Error:[/bold red] {e}")
        logger.error("Unhandled CLI error", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
