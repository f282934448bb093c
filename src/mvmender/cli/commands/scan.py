"""
SCAN COMMAND
------------
Diagnoses data files and previews repairs (read-only).
"""
import sys
import time
from mvmender.cli.commands.base import get_console, collect_targets, describe_target
from mvmender.ui.reporters import JSONReporter
from mvmender.ui.diff import DiffEngine


def handle_scan_command(args, engine, formatter):
    """
    Handles 'scan' subcommand execution.
    """
    console = get_console()
    is_json = getattr(args, 'output', 'text') == 'json'
    start_time = time.time()

    targets = args.path if args.path else ["."]
    job_results = []

    file_targets = [t for t in targets if t != "-"]
    if "-" in targets:
        job_results.append(engine.repair_text(sys.stdin.read(), source_name="<stdin>"))

    if file_targets:
        if not is_json:
            for target in file_targets:
                console.print(f"[dim]🔍 {describe_target(target)}[/dim]")
        paths = collect_targets(engine, file_targets, recursive=args.recursive)
        job_results.extend(engine.batch_repair(paths, dry_run=True, workers=args.workers))

    if is_json:
        print(JSONReporter().generate(job_results, time.time() - start_time, mode="scan"))
    elif len(job_results) == 1:
        result = job_results[0]
        formatter.display_report(result, verbose=args.verbose)
        if result.get("repaired_content"):
            DiffEngine.render_diff(result["raw_content"], result["repaired_content"], result["file_path"])
    else:
        formatter.print_final_table(job_results, summary_only=args.summary_only)

    needs_work = [j for j in job_results if not j.get("success") or j.get("repaired_content")]
    exit_code = 1 if needs_work else 0

    if exit_code and not is_json:
        fixable = [j for j in needs_work if j.get("success")]
        if fixable:
            console.print(f"\n[bold]💡 Tip:[/bold] Run [cyan]mvmender fix <paths>[/cyan] "
                          f"to repair {len(fixable)} file(s).\n")
        if len(needs_work) > len(fixable):
            console.print(f"[bold red]{len(needs_work) - len(fixable)} file(s) need manual repair.[/bold red]\n")

    return exit_code
