#!/usr/bin/env python3
"""
Mvmender ENGINE - The High Orchestrator
---------------------------------------
Coordinates repairs of RPG Maker MV data files on disk.

Responsibilities:
- Project discovery (data/System.json) and data-file crawling
- Per-file repair through the RepairPipeline
- Backup-before-write: a failed backup means nothing is written
- Bounded-concurrency batch runs with cooperative cancellation
- Summary aggregation for reporters

Author: Mvmender Team
Date: 2026-10-19
"""

import time
import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence

from mvmender.core.pipeline import RepairPipeline
from mvmender.core.io import FileSystemManager
from mvmender.core.config import ConfigManager, RepairOptions
from mvmender.models import RawDocument, RepairResult, Severity

logger = logging.getLogger("mvmender.engine")

# Statuses that count as "the repair worked"
REPAIR_STATUSES = ("PREVIEW", "REPAIRED")


class MenderEngine:
    """
    Principal Orchestrator for data-file repair.

    The engine owns one RepairPipeline, which is shared by all worker
    threads; the pipeline keeps no per-document state.
    """

    def __init__(self,
                 workspace_path: str = ".",
                 app_name: str = "mvmender",
                 options: Optional[RepairOptions] = None,
                 workers: Optional[int] = None):
        """
        Args:
            workspace_path: Root that relative paths are resolved against.
                Config files are looked up here too.
            options: Overrides the repair options from the config file.
            workers: Overrides batch.workers from the config file.
        """
        self.workspace = Path(workspace_path).resolve()
        self.app_name = app_name
        self.fs = FileSystemManager(self.workspace, app_name=self.app_name)
        self.config = ConfigManager(self.workspace, app_name=self.app_name)

        self.options = options or self.config.repair_options
        self.workers = max(1, workers or self.config.workers)
        self.pipeline = RepairPipeline(self.options)

    # =========================================================================
    # PUBLIC API: SINGLE FILE
    # =========================================================================

    def repair_file(self, relative_path: str, dry_run: bool = True,
                    output_dir: Optional[str] = None) -> Dict[str, Any]:
        """
        Performs a full diagnose-and-repair cycle on a single data file.

        With dry_run=False a successful, changed repair is written back after
        `<file>.bak` has been created. With output_dir the repaired copy goes
        to output_dir/<relative_path> instead and the original is left alone.
        Never raises; failures come back as result dicts with an error status.
        """
        relative_path = str(relative_path)
        full_path = (self.workspace / relative_path).resolve()

        try:
            full_path.relative_to(self.workspace)
        except ValueError:
            return self._file_error(relative_path, "SECURITY_ERROR", "Path outside workspace")

        if self.config.is_ignored(relative_path):
            return {
                "file_path": Path(relative_path).name,
                "full_path": relative_path,
                "success": True,
                "status": "IGNORED",
                "written": False,
                "backup_created": None,
                "raw_content": None,
                "repaired_content": None,
                "strategy_used": None,
                "original_error": None,
                "issues": [],
                "fixes": [],
                "attempts": [],
                "logic_logs": [f"File ignored by .{self.app_name}.yaml config"],
                "timestamp": time.time(),
                "processing_time_seconds": 0.0,
            }

        if not full_path.is_file():
            return self._file_error(relative_path, "FILE_NOT_FOUND", "Path does not exist")

        start_time = time.time()

        try:
            raw_text = self.fs.read_text(full_path)
        except (OSError, UnicodeDecodeError) as e:
            return self._file_error(relative_path, "READ_ERROR", str(e), time.time() - start_time)

        if not raw_text.strip():
            return self._file_error(relative_path, "EMPTY_FILE", "File contains no content")

        try:
            outcome = self.pipeline.repair_document(RawDocument(text=raw_text, origin=relative_path))
            result = self._build_result(relative_path, raw_text, outcome, dry_run)
            result["processing_time_seconds"] = time.time() - start_time
        except Exception as e:
            logger.error(f"Pipeline error: {str(e)}", exc_info=True)
            return self._file_error(relative_path, "ENGINE_ERROR", str(e), time.time() - start_time)

        # =====================================================================
        # BACKUP, THEN ATOMIC WRITE
        # =====================================================================
        if dry_run or not outcome.changed:
            return result

        if output_dir is not None:
            target = self._output_path(output_dir, full_path.relative_to(self.workspace))
            if target != full_path:
                return self._write_copy(relative_path, target, outcome.final_text, result, start_time)

        try:
            backup_path = self.fs.create_backup(full_path)
        except IOError as e:
            logger.error(f"{relative_path}: {e}; repaired content NOT written")
            return self._file_error(relative_path, "BACKUP_ERROR", str(e), time.time() - start_time)

        result["backup_created"] = self._display_path(backup_path)

        try:
            self.fs.atomic_write(full_path, outcome.final_text)
        except IOError as e:
            logger.error(f"{relative_path}: {e}")
            error = self._file_error(relative_path, "WRITE_ERROR", str(e), time.time() - start_time)
            error["backup_created"] = result["backup_created"]
            return error

        result["written"] = True
        result["status"] = "REPAIRED"
        logger.info(f"Repaired and saved: {relative_path}")
        return result

    def repair_text(self, content: str, source_name: str = "stdin") -> Dict[str, Any]:
        """Repairs content from a stream without disk I/O (written=False)."""
        start_time = time.time()
        if not content.strip():
            return self._file_error(source_name, "EMPTY_FILE", "Stream contains no content")
        try:
            outcome = self.pipeline.repair_document(RawDocument(text=content, origin=source_name))
        except Exception as e:
            logger.error(f"Stream error: {e}")
            return self._file_error(source_name, "ENGINE_ERROR", str(e))
        result = self._build_result(source_name, content, outcome, dry_run=True)
        result["processing_time_seconds"] = time.time() - start_time
        return result

    # =========================================================================
    # PUBLIC API: DISCOVERY & BATCH
    # =========================================================================

    def find_data_files(self, root_path: Optional[str] = None,
                        recursive: Optional[bool] = None) -> List[str]:
        """
        Lists *.json data files under root_path (a project root or a data
        folder), relative to the workspace, skipping ignored ones.
        """
        root = Path(root_path) if root_path else self.workspace
        if not root.is_absolute():
            root = self.workspace / root
        recursive = self.config.recursive if recursive is None else recursive

        found = []
        for _, rel_path in self.fs.crawl(root, recursive=recursive):
            if self.config.is_ignored(rel_path):
                logger.debug(f"Skipping ignored file: {rel_path}")
                continue
            found.append(rel_path)
        return found

    def batch_repair(self,
                     paths: Sequence[str],
                     dry_run: bool = True,
                     workers: Optional[int] = None,
                     cancel_event: Optional[threading.Event] = None,
                     output_dir: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Repairs many files concurrently.

        Args:
            paths: File paths relative to the workspace.
            dry_run: If True, preview repairs without writing.
            workers: Thread pool size (defaults to batch.workers).
            cancel_event: Once set, files not yet started are reported as
                CANCELLED. A file already in progress always finishes.
            output_dir: Write repaired copies under this folder instead of
                overwriting the originals.

        Returns:
            One result per path, in input order.
        """
        pool_size = max(1, workers or self.workers)
        cancel_event = cancel_event or threading.Event()

        def run(path: str) -> Dict[str, Any]:
            if cancel_event.is_set():
                return self._file_error(path, "CANCELLED", "Batch cancelled before this file started")
            return self.repair_file(path, dry_run=dry_run, output_dir=output_dir)

        logger.info(f"Repairing {len(paths)} file(s) with {pool_size} worker(s)")
        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix=self.app_name) as pool:
            futures = [pool.submit(run, path) for path in paths]
            try:
                return [future.result() for future in futures]
            except KeyboardInterrupt:
                cancel_event.set()
                logger.warning("Interrupted: letting files already in progress finish")
                raise

    def batch_repair_dir(self, root_path: Optional[str] = None, dry_run: bool = True,
                         recursive: Optional[bool] = None,
                         cancel_event: Optional[threading.Event] = None) -> List[Dict[str, Any]]:
        """Crawls root_path and repairs every data file found."""
        paths = self.find_data_files(root_path, recursive=recursive)
        if not paths:
            logger.warning(f"No data files found under {root_path or self.workspace}")
        return self.batch_repair(paths, dry_run=dry_run, cancel_event=cancel_event)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _build_result(self, path: str, raw_text: str, outcome: RepairResult, dry_run: bool) -> Dict[str, Any]:
        logs = []
        for fix in outcome.fixes_applied:
            logs.append(f"{fix.kind.value} at {fix.position}: {fix.message}")
        for attempt in outcome.attempted_strategies:
            if attempt.succeeded:
                logs.append(f"{attempt.name}: candidate verified")
            else:
                logs.append(f"{attempt.name}: {attempt.error}")
        for issue in outcome.issues:
            if issue.severity is Severity.WARNING:
                logs.append(f"Warning at {issue.position}: {issue.message}")

        return {
            "file_path": Path(path).name,
            "full_path": path,
            "success": outcome.success,
            "status": self._derive_status(outcome, dry_run),
            "written": False,
            "backup_created": None,
            "raw_content": raw_text,
            "repaired_content": outcome.final_text if outcome.changed else None,
            "strategy_used": outcome.strategy_used,
            "original_error": outcome.original_error,
            "issues": [i.to_dict() for i in outcome.issues],
            "fixes": [f.to_dict() for f in outcome.fixes_applied],
            "attempts": [a.to_dict() for a in outcome.attempted_strategies],
            "logic_logs": logs,
            "timestamp": time.time(),
            "processing_time_seconds": 0.0,
        }

    def _derive_status(self, outcome: RepairResult, dry: bool) -> str:
        """
        Returns:
            Status string (UNCHANGED, PREVIEW, REPAIRED, FAILED)
        """
        if not outcome.success:
            return "FAILED"
        if not outcome.changed:
            return "UNCHANGED"
        # REPAIRED is only set once the write has happened
        return "PREVIEW"

    def _output_path(self, output_dir: str, relative_path: Path) -> Path:
        root = Path(output_dir)
        if not root.is_absolute():
            root = self.workspace / root
        return (root / relative_path).resolve()

    def _write_copy(self, relative_path: str, target: Path, content: str,
                    result: Dict[str, Any], start_time: float) -> Dict[str, Any]:
        """Writes the repaired text to target; no backup, the original is untouched."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self.fs.atomic_write(target, content)
        except (OSError, IOError) as e:
            logger.error(f"{relative_path}: {e}")
            return self._file_error(relative_path, "WRITE_ERROR", str(e), time.time() - start_time)

        result["written"] = True
        result["status"] = "REPAIRED"
        result["output_path"] = self._display_path(target)
        logger.info(f"Repaired copy saved: {relative_path} -> {result['output_path']}")
        return result

    def _display_path(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.workspace))
        except ValueError:
            return str(path)

    def _file_error(self,
                    path: str,
                    status: str,
                    error: str,
                    processing_time: float = 0.0) -> Dict[str, Any]:
        """
        Constructs a standardized error result object.

        Args:
            path: File path that failed
            status: Error status code
            error: Error message
            processing_time: Time spent before error
        """
        return {
            "file_path": path,
            "full_path": path,
            "status": status,
            "error": error,
            "success": False,
            "written": False,
            "backup_created": None,
            "raw_content": None,
            "repaired_content": None,
            "strategy_used": None,
            "original_error": None,
            "issues": [],
            "fixes": [],
            "attempts": [],
            "logic_logs": [f"Error: {error}"],
            "timestamp": time.time(),
            "processing_time_seconds": processing_time,
        }


def summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Aggregates per-file results into project-level counts.

    Returns:
        total_files, files_with_issues, total_issues, issues_by_kind,
        issues_by_severity, fixable_issues, unfixable_issues,
        repaired_files, failed_files
    """
    by_kind: Counter = Counter()
    by_severity: Counter = Counter()
    fixable = 0
    files_with_issues = 0

    for res in results:
        issues = res.get("issues") or []
        if issues:
            files_with_issues += 1
        for issue in issues:
            by_kind[issue["kind"]] += 1
            by_severity[issue["severity"]] += 1
            if issue["fixable"]:
                fixable += 1

    total = sum(by_kind.values())
    return {
        "total_files": len(results),
        "files_with_issues": files_with_issues,
        "total_issues": total,
        "issues_by_kind": dict(sorted(by_kind.items())),
        "issues_by_severity": dict(sorted(by_severity.items())),
        "fixable_issues": fixable,
        "unfixable_issues": total - fixable,
        "repaired_files": sum(1 for r in results if r.get("status") in REPAIR_STATUSES),
        "failed_files": sum(1 for r in results if not r.get("success")),
    }
