"""
Mvmender REPAIR STRATEGIES
--------------------------
Each strategy turns the current text (plus its diagnosis) into a new
RepairCandidate, or declines with NotApplicable. Strategies never guess:
they only apply edits that a detector has pinned to an exact offset, or a
bracket correction whose size is small and unambiguous.

- PointPatch: insert commas, escape stray quotes, strip leading garbage
  (and optionally escape raw control characters), rescanning between passes.
- BracketBalance: close unclosed containers or drop trailing surplus closers.

Author: Mvmender Team
Date: 2026-10-19
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from mvmender.models import Issue, IssueKind, Severity, RepairCandidate
from mvmender.parsers.detectors.structure import balance_plan
from mvmender.core.diagnosis import Diagnosis, Diagnoser

logger = logging.getLogger("mvmender.strategies")

# Kinds with a single, exact text edit
POINT_EDITABLE = frozenset({
    IssueKind.MISSING_COMMA,
    IssueKind.UNESCAPED_QUOTE,
    IssueKind.CONTROL_CHARACTER,
    IssueKind.LEADING_GARBAGE,
})


class NotApplicable(Exception):
    """Raised by a strategy that declines to touch the text."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class BaseStrategy(ABC):

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def apply(self, diagnosis: Diagnosis, diagnoser: Diagnoser) -> RepairCandidate:
        """
        Produces a candidate from diagnosis.text.

        Raises:
            NotApplicable: when the strategy has nothing safe to do.
        """
        pass


# =============================================================================
# PATCH HELPERS
# =============================================================================

def select_fixes(issues) -> List[Issue]:
    """
    Picks the point edits to apply in one pass.

    Sorted by (offset, kind). An issue overlapping the previously kept one
    is dropped; it will be re-detected after the rescan if still relevant.
    """
    chosen: List[Issue] = []
    candidates = sorted((i for i in issues if i.fixable and i.kind in POINT_EDITABLE), key=Issue.sort_key)
    for issue in candidates:
        if chosen and issue.overlaps(chosen[-1]):
            logger.debug(f"Deferring {issue.kind.value} at {issue.position}: overlaps {chosen[-1].kind.value}")
            continue
        chosen.append(issue)
    return chosen


def edit_for(issue: Issue) -> Tuple[int, int, str]:
    """(start, end, replacement) for one point-editable issue."""
    if issue.kind is IssueKind.MISSING_COMMA:
        at = issue.detail["insert_at"]
        return at, at, ","
    if issue.kind is IssueKind.UNESCAPED_QUOTE:
        at = issue.detail["insert_at"]
        return at, at, "\\"
    if issue.kind is IssueKind.CONTROL_CHARACTER:
        return issue.offset, issue.offset + 1, issue.detail["replacement"]
    if issue.kind is IssueKind.LEADING_GARBAGE:
        return 0, issue.detail["delete_until"], ""
    raise ValueError(f"{issue.kind.value} has no point edit")


def apply_fixes(text: str, fixes: List[Issue]) -> str:
    """Applies edits rightmost-first so earlier offsets stay valid."""
    for start, end, replacement in sorted((edit_for(f) for f in fixes), reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


# =============================================================================
# STRATEGIES
# =============================================================================

class PointPatchStrategy(BaseStrategy):

    @property
    def name(self) -> str:
        return "PointPatch"

    @property
    def description(self) -> str:
        return "Apply every fixable point issue, rescanning between passes"

    def apply(self, diagnosis: Diagnosis, diagnoser: Diagnoser) -> RepairCandidate:
        text = diagnosis.text
        current = diagnosis
        applied: List[Issue] = []

        for pass_no in range(1, diagnoser.options.max_passes + 1):
            fixes = select_fixes(current.issues)
            if not fixes:
                break
            text = apply_fixes(text, fixes)
            applied.extend(fixes)
            logger.debug(f"Pass {pass_no}: applied {len(fixes)} point fix(es)")

            current = diagnoser.diagnose(text)
            if current.parses:
                break

        if not applied:
            raise NotApplicable("no point-fixable issues")
        return RepairCandidate(text=text, applied_fixes=tuple(applied), strategy_name=self.name)


class BracketBalanceStrategy(BaseStrategy):
    """
    Closes unclosed containers at the end of the text, or removes surplus
    closers trailing it. Declines whenever the imbalance is ambiguous.
    """

    @property
    def name(self) -> str:
        return "BracketBalance"

    @property
    def description(self) -> str:
        return "Close or trim brackets when depth is off by a small amount"

    def apply(self, diagnosis: Diagnosis, diagnoser: Diagnoser) -> RepairCandidate:
        scan = diagnosis.scan
        plan = balance_plan(scan, diagnoser.options.max_balance_delta)
        if not plan.applicable:
            raise NotApplicable(plan.reason)

        text = diagnosis.text
        if plan.append:
            body = text.rstrip()
            patched = body + plan.append + text[len(body):]
            fixes = [Issue(
                kind=IssueKind.UNBALANCED_BRACKET,
                position=scan.position(len(body)),
                length=0,
                severity=Severity.ERROR,
                fixable=True,
                message=f"Appended missing '{plan.append}'",
                detail={"inserted": plan.append, "insert_at": len(body)},
            )]
        else:
            dropped = set(plan.drop)
            patched = "".join(ch for i, ch in enumerate(text) if i not in dropped)
            fixes = [Issue(
                kind=IssueKind.UNBALANCED_BRACKET,
                position=scan.position(offset),
                length=1,
                severity=Severity.ERROR,
                fixable=True,
                message=f"Removed surplus '{text[offset]}'",
                detail={"removed": text[offset]},
            ) for offset in plan.drop]

        logger.debug(f"Bracket balance: {'; '.join(f.message for f in fixes)}")
        return RepairCandidate(text=patched, applied_fixes=tuple(fixes), strategy_name=self.name)
