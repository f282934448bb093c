"""
Mvmender DIAGNOSER
------------------
Runs the scanner and every registered detector over one version of the
document text. Strategies call this again after each edit; issues never
outlive the text they were found on.

Author: Mvmender Team
Date: 2026-10-19
"""

import logging
from dataclasses import dataclass
from typing import Tuple, List, Optional

from mvmender.models import Issue, IssueKind
from mvmender.parsers.scanner import JsonScanner, ScanResult
from mvmender.parsers.detectors import DetectorRegistry, BaseDetector
from mvmender.core.config import RepairOptions

logger = logging.getLogger("mvmender.diagnosis")


@dataclass(frozen=True)
class Diagnosis:
    text: str
    scan: ScanResult
    issues: Tuple[Issue, ...]

    @property
    def fixable(self) -> List[Issue]:
        return [i for i in self.issues if i.fixable]

    @property
    def parses(self) -> bool:
        return not any(i.kind is IssueKind.INVALID_JSON for i in self.issues)

    @property
    def parse_error(self) -> Optional[Issue]:
        for issue in self.issues:
            if issue.kind is IssueKind.INVALID_JSON:
                return issue
        return None


class Diagnoser:
    """Scanner + detectors, bound to one set of RepairOptions."""

    def __init__(self, options: Optional[RepairOptions] = None,
                 detectors: Optional[List[BaseDetector]] = None):
        self.options = options or RepairOptions()
        self.scanner = JsonScanner(self.options.free_text_keys)
        self.detectors = detectors if detectors is not None else DetectorRegistry.get_all_detectors()
        self._context = {"options": self.options}

    def diagnose(self, text: str) -> Diagnosis:
        scan = self.scanner.scan(text)
        found: List[Issue] = []
        for detector in self.detectors:
            found.extend(detector.detect(text, scan, self._context))
        found.sort(key=Issue.sort_key)
        logger.debug(f"Diagnosed {len(found)} issue(s) across {scan.newlines.line_count} line(s)")
        return Diagnosis(text=text, scan=scan, issues=tuple(found))
