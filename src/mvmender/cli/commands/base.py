"""
CLI SHARED UTILITIES
--------------------
Common logic used across multiple CLI commands.
"""

import os
import platform
from pathlib import Path
from typing import List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from mvmender import __version__
from mvmender.core.io import is_project_root

# Global UI Controller
console = Console()


def get_console():
    return console


def add_standard_flags(sub):
    """Helper to inject path arguments and common options into sub-parsers."""
    sub.add_argument("path", nargs="*", metavar="TARGET",
                     help="Project folder(s), data folder(s) or .json file(s)")
    sub.add_argument("--output", choices=["text", "json"], default="text", help="Output format")
    sub.add_argument("-r", "--recursive", action="store_true", default=None,
                     help="Descend into sub-folders of a data folder")
    sub.add_argument("--workers", type=int, default=None, metavar="N",
                     help="Files repaired in parallel (default: batch.workers)")
    sub.add_argument("-h", "--help", action="store_true")
    sub.add_argument("-s", "--summary-only", action="store_true",
                     help="Show aggregate stats (recommended for 100+ files)")
    sub.add_argument("--verbose", action="store_true", help="Show the full repair trail")


def validate_required_arg(value, arg_name: str, context: str, examples: list):
    """
    Validates that a required argument is present.
    If missing, prints an error panel and returns False.
    """
    if value:
        return True

    error_msg = f"[bold red]❌ Missing Required Argument: {arg_name}[/bold red]\n\n"
    error_msg += f"The [bold]{context}[/bold] command requires a target.\n"

    if examples:
        error_msg += f"\n[dim italic]Try:[/dim italic]\n"
        for ex in examples:
            error_msg += f"  [cyan]{ex}[/cyan]\n"

    console.print(Panel(
        error_msg,
        border_style="red",
        title="[bold yellow]Input Error[/bold yellow]",
        padding=(0, 2),
        expand=False
    ))
    return False


def normalize_paths(raw_paths):
    """
    Flattens a list of paths that might contain split commas.
    Example: ["f1,f2", "f3"] -> ["f1", "f2", "f3"]
    """
    if not raw_paths:
        return []

    normalized = []
    for p in raw_paths:
        for sub in p.split(","):
            clean = sub.strip()
            if clean:
                normalized.append(clean)
    return normalized


def collect_targets(engine, targets: List[str], recursive=None) -> List[str]:
    """
    Expands CLI targets into workspace-relative data file paths.
    Missing targets are passed through so the engine reports FILE_NOT_FOUND.
    """
    paths = []
    for target in targets:
        if os.path.isdir(target):
            paths.extend(engine.find_data_files(os.path.abspath(target), recursive=recursive))
        else:
            abs_target = Path(target).resolve()
            try:
                paths.append(str(abs_target.relative_to(engine.workspace)))
            except ValueError:
                paths.append(target)
    return paths


def describe_target(target: str) -> str:
    if os.path.isdir(target) and is_project_root(Path(target)):
        return f"RPG Maker MV project: {target}"
    return target


def print_custom_header():
    """
    Displays the top-level application banner.
    """
    console.print("")
    console.print(Panel(
        "[bold]🩹 Mvmender[/bold]\n"
        "[dim italic]RPG Maker MV Data Repair[/dim italic]",
        border_style="cyan",
        box=box.ROUNDED,
        padding=(0, 2),
        expand=False
    ))


def print_version():
    """
    Displays system information panel.
    """
    info_table = Table(box=None, show_header=False, padding=(0, 1))
    info_table.add_column(width=18, justify="left")
    info_table.add_column(justify="left")

    info_table.add_row("Client Version:", f"[bold white]{__version__}[/bold white]")
    info_table.add_row("Platform:", f"{platform.system()} {platform.release()} ({platform.machine()})")
    info_table.add_row("Runtime:", f"Python {platform.python_version()}")

    console.print(Panel.fit(
        info_table,
        title=f"[bold]Operational Context[/bold]",
        border_style="cyan",
        padding=(0, 2)
    ))
