"""
FIX COMMAND
-----------
Repairs data files in place. Every written file gets a <file>.bak first.
With --output-dir the repaired copies go to that folder and the originals
stay untouched.
"""
import time
from mvmender.cli.commands.base import get_console, collect_targets
from mvmender.ui.reporters import JSONReporter
from mvmender.ui.diff import DiffEngine


def handle_fix_command(args, engine, formatter):
    """
    Handles 'fix' subcommand execution.
    """
    console = get_console()
    is_dry = getattr(args, 'dry_run', False)
    auto_yes = getattr(args, 'yes', False)
    output_dir = getattr(args, "output_dir", None)
    is_json = getattr(args, 'output', 'text') == 'json'
    start_time = time.time()

    # JSON Mode Safety Check
    if is_json and not (is_dry or auto_yes):
        console.print("[red]Error: JSON output requires non-interactive mode. Please use --yes or --dry-run.[/red]",
                      style="bold red")
        return 1

    paths = collect_targets(engine, args.path, recursive=args.recursive)
    if not paths:
        if not is_json:
            console.print("[yellow]No data files found.[/yellow]")
        return 0

    # 1. Dry run pass
    results = engine.batch_repair(paths, dry_run=True, workers=args.workers)
    to_write = [r["full_path"] for r in results if r.get("status") == "PREVIEW"]

    if not is_json and not args.summary_only:
        for r in results:
            if r.get("repaired_content"):
                DiffEngine.render_diff(r["raw_content"], r["repaired_content"], r["full_path"])

    # 2. Confirmation
    apply = bool(to_write) and not is_dry
    if apply and not auto_yes:
        console.print(f"\n[bold yellow]About to modify {len(to_write)} file(s):[/bold yellow]")
        for path in to_write[:10]:
            console.print(f"  - {path}")
        if len(to_write) > 10:
            console.print(f"  [dim]... and {len(to_write) - 10} more.[/dim]")
        if output_dir:
            console.print(f"[dim]Repaired copies go to {output_dir}; originals are not touched.[/dim]")
        else:
            console.print("[dim]A .bak copy of each file is written first.[/dim]")
        confirm = console.input("[bold yellow]Apply repairs? (y/n) [n]: [/bold yellow]")
        if confirm.strip().lower() != "y":
            console.print("[red]Aborted.[/red]")
            return 0

    # 3. Write pass
    if apply:
        written = engine.batch_repair(to_write, dry_run=False, workers=args.workers, output_dir=output_dir)
        by_path = {r["full_path"]: r for r in written}
        results = [by_path.get(r["full_path"], r) for r in results]
    elif is_dry and to_write and not is_json:
        console.print("[dim yellow]Dry-run: No changes written.[/dim yellow]")

    # FINAL OUTPUT
    if is_json:
        mode = "dry-run" if is_dry else "live"
        print(JSONReporter().generate(results, time.time() - start_time, mode=mode))
    elif len(results) == 1:
        formatter.display_report(results[0], verbose=args.verbose)
    else:
        formatter.print_final_table(results, summary_only=args.summary_only)

    return 1 if any(not r.get("success") for r in results) else 0
