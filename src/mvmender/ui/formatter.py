#!/usr/bin/env python3
"""
MVMENDER FORMATTER - The Visual Heart
-------------------------------------
Renders repair reports using 'rich'.
Single-file reports show issues, applied fixes and the strategy history;
batch runs get a per-file table or, at scale, aggregate statistics.

Author: Mvmender Team
Date: 2026-10-19
"""

from typing import Dict, Any, List, Optional
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from mvmender.core.engine import summarize

console = Console()

ERROR_STATUSES = (
    "ENGINE_ERROR", "FILE_NOT_FOUND", "SECURITY_ERROR", "EMPTY_FILE",
    "READ_ERROR", "WRITE_ERROR", "BACKUP_ERROR", "CANCELLED",
)

STATUS_STYLES = {
    "REPAIRED": "bold green",
    "PREVIEW": "yellow",
    "UNCHANGED": "dim green",
    "IGNORED": "dim",
    "FAILED": "bold red",
}


class MenderFormatter:
    """
    Renders repair reports for single files and batches.
    """

    def __init__(self, out: Optional[Console] = None):
        self.console = out or console

    # -------------------------------------------------------------------------
    # Single File Report
    # -------------------------------------------------------------------------

    def display_report(self, result: Dict[str, Any], verbose: bool = False):
        """
        Renders the full details for a single file.

        Args:
            result: Result dict from engine.repair_file()
            verbose: If True, also shows every strategy attempt.
        """
        status = result.get("status", "UNKNOWN")
        file_path = result.get("file_path", "Unknown")

        if status in ERROR_STATUSES:
            self.display_error(file_path, result.get("error", "Unknown error"), status)
            return

        color = "green" if result.get("success") else "red"
        strategy = result.get("strategy_used") or "-"
        body = (
            f"[bold]Status:[/bold] {status}\n"
            f"[bold]Strategy:[/bold] {strategy}\n"
            f"[bold]Fixes Applied:[/bold] {len(result.get('fixes', []))}"
        )
        if result.get("original_error"):
            body += f"\n[bold]Parser Error:[/bold] {result['original_error']}"
        if result.get("backup_created"):
            body += f"\n[bold]Backup:[/bold] {result['backup_created']}"
        if result.get("output_path"):
            body += f"\n[bold]Written To:[/bold] {result['output_path']}"

        self.console.print(Panel(
            body,
            title=f"[bold {color}]{file_path}[/bold {color}]",
            border_style=color,
            expand=True
        ))

        self._render_issues(result.get("issues", []))

        if verbose or not result.get("success"):
            self._render_attempts(result.get("attempts", []), file_path)

    def _render_issues(self, issues: List[Dict[str, Any]]):
        """Renders a table of every issue found in the original text."""
        if not issues:
            return

        table = Table(title="[bold red]ISSUES FOUND[/bold red]", show_header=True,
                      header_style="bold white", expand=True, box=None)
        table.add_column("Severity", width=10)
        table.add_column("Kind", width=20)
        table.add_column("Where", width=16)
        table.add_column("Message")

        for issue in issues:
            is_error = issue["severity"] == "error"
            sev_style = "bold red" if is_error else "bold yellow"
            icon = "❌" if is_error else "⚠️"
            fix_tag = "" if issue["fixable"] else " [dim](manual)[/dim]"
            table.add_row(
                f"[{sev_style}]{icon} {issue['severity'].upper()}[/{sev_style}]",
                f"[cyan]{issue['kind']}[/cyan]",
                f"{issue['line']}:{issue['column']}",
                f"{issue['message']}{fix_tag}"
            )

        self.console.print(table)
        self.console.print()

    def _render_attempts(self, attempts: List[Dict[str, Any]], file_path: Optional[str] = None):
        """Shows each strategy in the escalation chain and what it did."""
        if not attempts:
            return
        tree = Tree(f"[bold cyan]📋 Repair Trail{f': {file_path}' if file_path else ''}[/bold cyan]")
        for attempt in attempts:
            if attempt["error"] is None:
                branch = tree.add(f"[green]✅ {attempt['name']}: verified[/green]")
            elif attempt["error"].startswith("not applicable"):
                branch = tree.add(f"[dim]○ {attempt['name']}: {attempt['error']}[/dim]")
            else:
                branch = tree.add(f"[bold red]❌ {attempt['name']}: {attempt['error']}[/bold red]")
            for fix in attempt.get("applied_fixes", []):
                branch.add(f"[dim]└─ {fix['kind']} at {fix['line']}:{fix['column']}: {fix['message']}[/dim]")

        self.console.print(tree)
        self.console.print()

    # -------------------------------------------------------------------------
    # Batch Table
    # -------------------------------------------------------------------------

    def print_final_table(self, reports: List[Dict[str, Any]], summary_only: bool = False):
        """
        Per-file summary table.

        Args:
            reports: List of file processing results
            summary_only: If True, show aggregate stats only (recommended for 100+ files)
        """
        if not reports:
            self.console.print("[dim yellow]No files processed.[/dim yellow]")
            return

        if summary_only or len(reports) > 100:
            self._print_summary_stats(reports)
            return

        table = Table(
            title="\n[bold magenta]━━━ Mvmender Repair Summary ━━━[/bold magenta]",
            show_header=True,
            header_style="bold white on magenta",
            show_lines=True,
            padding=(0, 1)
        )
        table.add_column("File", style="cyan", no_wrap=False)
        table.add_column("Issues", justify="center", width=8)
        table.add_column("Fixes", justify="center", width=7)
        table.add_column("Strategy", justify="left", width=16)
        table.add_column("Time", justify="right", width=8)
        table.add_column("Status", justify="center", width=14)
        table.add_column("✓", justify="center", width=3)

        for r in reports:
            status = r.get("status", "UNKNOWN")
            style = STATUS_STYLES.get(status, "bold red")
            table.add_row(
                r.get("full_path") or r.get("file_path", "Unknown"),
                str(len(r.get("issues", []))),
                str(len(r.get("fixes", []))),
                r.get("strategy_used") or "-",
                f"{r.get('processing_time_seconds', 0):.2f}s",
                f"[{style}]{status}[/{style}]",
                "✅" if r.get("success") else "❌"
            )

        self.console.print(table)

        stats = summarize(reports)
        ok = stats["total_files"] - stats["failed_files"]
        self.console.print(f"\n[bold]Mvmender Summary:[/bold]")
        self.console.print(f"  Total: {stats['total_files']} | "
                           f"[green]✓ {ok}[/green] | "
                           f"[cyan]→ {stats['repaired_files']}[/cyan] | "
                           f"[red]✗ {stats['failed_files']}[/red]")
        self.console.print(f"\n[dim]💾 Backups: *.json.bak[/dim]\n")

    def _print_summary_stats(self, reports: List[Dict[str, Any]]):
        """
        Compact summary mode for large batches.
        Shows aggregate statistics without per-file details.
        """
        stats = summarize(reports)
        by_status: Dict[str, int] = {}
        for r in reports:
            status = r.get("status", "UNKNOWN")
            by_status[status] = by_status.get(status, 0) + 1

        summary_text = (
            f"[bold cyan]Files Processed:[/bold cyan] {stats['total_files']}\n"
            f"[bold cyan]Files With Issues:[/bold cyan] {stats['files_with_issues']}\n"
            f"[bold cyan]Total Issues:[/bold cyan] {stats['total_issues']} "
            f"([green]{stats['fixable_issues']} fixable[/green], "
            f"[red]{stats['unfixable_issues']} manual[/red])\n\n"

            f"[bold]Status Breakdown:[/bold]\n"
            f"  [green]✓ Repaired:[/green] {by_status.get('REPAIRED', 0)}\n"
            f"  [yellow]⚠ Preview:[/yellow] {by_status.get('PREVIEW', 0)}\n"
            f"  [dim]○ Unchanged:[/dim] {by_status.get('UNCHANGED', 0)}\n"
            f"  [red]✗ Failed:[/red] {stats['failed_files']}\n"
        )

        if stats["issues_by_kind"]:
            summary_text += f"\n[bold]Issue Kinds:[/bold]\n"
            for kind, count in sorted(stats["issues_by_kind"].items(), key=lambda x: x[1], reverse=True):
                summary_text += f"  {kind}: {count}\n"

        self.console.print(Panel(
            summary_text,
            title="[bold magenta]━━━ Mvmender Batch Summary ━━━[/bold magenta]",
            border_style="magenta",
            padding=(1, 2)
        ))

    def display_error(self, file_path: str, error_msg: str, status: str = "ERROR"):
        """Displays a formatted error panel."""
        self.console.print(Panel(
            f"[red]{error_msg}[/red]",
            title=f"[bold red]❌ {status}: {file_path}[/bold red]",
            border_style="red",
            padding=(1, 2)
        ))
