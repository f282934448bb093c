"""
Mvmender STRUCTURE DETECTORS
----------------------------
Detectors that reason about the shape of the token stream rather than the
contents of individual strings:

- LeadingGarbage: HTML or editor debris in front of the root container.
- MissingComma: two values (or members) sitting side by side.
- UnbalancedBracket: unclosed openers and surplus closers.

Author: Mvmender Team
Date: 2026-10-19
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Tuple, Optional

from mvmender.models import Issue, IssueKind, Severity, TokenType
from mvmender.parsers.scanner import ScanResult, OPENERS, WHITESPACE
from mvmender.parsers.detectors.base import BaseDetector
from mvmender.core.config import RepairOptions

logger = logging.getLogger("mvmender.detectors.structure")


def _options(context: Dict[str, Any]) -> RepairOptions:
    return context.get("options") or RepairOptions()


# Bare JSON scalars: null, true, false and numbers
_JSON_WORD = re.compile(r"null|true|false|-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_WORD_SPLIT = re.compile(r"[\s<>/=,:]+")


def looks_like_json(prefix: str) -> bool:
    """
    Whether text in front of the root container could be part of the data
    itself (e.g. `null,` of an array whose opening bracket was lost).
    """
    stripped = prefix.strip()
    if stripped.endswith((",", ":")) or any(ch in stripped for ch in '"}]'):
        return True
    return any(_JSON_WORD.fullmatch(word) for word in _WORD_SPLIT.split(stripped) if word)


class LeadingGarbageDetector(BaseDetector):
    """
    Flags non-blank text before the first '{' or '['.
    Exported data sometimes arrives wrapped in an HTML page or a log line.
    """

    @property
    def name(self) -> str:
        return "leading_garbage"

    @property
    def description(self) -> str:
        return "Text before the root array/object (e.g. an HTML wrapper)"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        first = scan.first_opener
        if first <= 0:
            return []
        prefix = text[:first]
        if not prefix.strip():
            return []
        if looks_like_json(prefix):
            logger.debug(f"Text before offset {first} looks like data, not a wrapper")
            return []

        preview = prefix.strip()
        if len(preview) > 40:
            preview = preview[:37] + "..."
        return [Issue(
            kind=IssueKind.LEADING_GARBAGE,
            position=scan.position(0),
            length=first,
            severity=Severity.ERROR,
            fixable=True,
            message=f"Unexpected text before the root container: {preview!r}",
            detail={"delete_until": first, "preview": preview},
        )]


class MissingCommaDetector(BaseDetector):
    """
    Walks the token stream with a container stack and flags a value-ending
    token directly followed by a value-starting token.

    Covers `"a":1 "b":2`, `}{`, `][`, `}"key":` and `"str" "key":` alike.
    """

    @property
    def name(self) -> str:
        return "missing_comma"

    @property
    def description(self) -> str:
        return "Adjacent values or members with no separating comma"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        floor = max(scan.first_opener, 0)
        tokens = [t for t in scan.tokens if t.start >= floor]

        issues: List[Issue] = []
        # Each frame is [opener, current_key]
        frames: List[list] = []
        prev = None
        prev_ends_value = False

        for idx, tok in enumerate(tokens):
            nxt = tokens[idx + 1] if idx + 1 < len(tokens) else None
            is_key = tok.type is TokenType.STRING and nxt is not None and nxt.is_punct(":")
            starts_value = tok.type in (TokenType.STRING, TokenType.LITERAL) or tok.is_punct("{[")

            if prev_ends_value and starts_value and frames:
                previous_key = frames[-1][1] if frames[-1][0] == "{" else None
                next_key = tok.value if is_key else None
                issues.append(self._issue(scan, prev.end, tok.start, previous_key, next_key))

            if tok.is_punct("{["):
                frames.append([tok.value, None])
            elif tok.is_punct("}]"):
                if frames:
                    frames.pop()
            elif is_key and frames and frames[-1][0] == "{":
                frames[-1][1] = tok.value

            prev = tok
            prev_ends_value = (
                tok.type is TokenType.LITERAL
                or (tok.type is TokenType.STRING and not is_key)
                or tok.is_punct("}]")
            )

        return issues

    def _issue(self, scan: ScanResult, gap_start: int, gap_end: int,
               previous_key: Optional[str], next_key: Optional[str]) -> Issue:
        if previous_key is not None and next_key is not None:
            message = f"Missing comma between '{previous_key}' and '{next_key}'"
        elif next_key is not None:
            message = f"Missing comma before '{next_key}'"
        else:
            message = "Missing comma between values"
        logger.debug(f"{message} at offset {gap_start}")
        return Issue(
            kind=IssueKind.MISSING_COMMA,
            position=scan.position(gap_start),
            length=gap_end - gap_start,
            severity=Severity.ERROR,
            fixable=True,
            message=message,
            detail={"previous_key": previous_key, "next_key": next_key, "insert_at": gap_start},
        )


@dataclass(frozen=True)
class BalancePlan:
    """
    What it would take to balance a document's brackets.

    Exactly one of `append` / `drop` is set when `reason` is None.
    """
    append: str = ""
    drop: Tuple[int, ...] = ()
    reason: Optional[str] = None

    @property
    def applicable(self) -> bool:
        return self.reason is None


def balance_plan(scan: ScanResult, max_delta: int) -> BalancePlan:
    """Decides whether the bracket imbalance is small and unambiguous enough to fix."""
    if scan.unterminated_string is not None:
        return BalancePlan(reason=f"text ends inside a string opened at {scan.position(scan.unterminated_string)}")
    if scan.mismatched_closers:
        return BalancePlan(reason=f"mismatched closer at {scan.position(scan.mismatched_closers[0])}")

    missing = len(scan.open_stack)
    surplus = len(scan.stray_closers)
    if not missing and not surplus:
        return BalancePlan(reason="brackets are already balanced")
    if missing and surplus:
        return BalancePlan(reason="both unclosed openers and surplus closers")
    if missing + surplus > max_delta:
        return BalancePlan(reason=f"off by {missing + surplus}, more than the allowed {max_delta}")

    if surplus:
        tail = scan.text[scan.stray_closers[0]:]
        if any(ch not in WHITESPACE and ch not in "}]" for ch in tail):
            return BalancePlan(reason="surplus closers are not at the end of the text")
        return BalancePlan(drop=scan.stray_closers)

    return BalancePlan(append="".join(OPENERS[ch] for ch, _ in reversed(scan.open_stack)))


class UnbalancedBracketDetector(BaseDetector):
    """Reports unclosed openers, stray closers and mismatched closers."""

    @property
    def name(self) -> str:
        return "unbalanced_bracket"

    @property
    def description(self) -> str:
        return "Brace/bracket depth does not return to zero outside strings"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        if scan.is_balanced:
            return []

        fixable = balance_plan(scan, _options(context).max_balance_delta).applicable
        issues: List[Issue] = []

        def add(offset: int, message: str, detail: Dict[str, Any]):
            issues.append(Issue(
                kind=IssueKind.UNBALANCED_BRACKET,
                position=scan.position(offset),
                length=1,
                severity=Severity.ERROR,
                fixable=fixable,
                message=message,
                detail=detail,
            ))

        for ch, offset in scan.open_stack:
            add(offset, f"Unclosed '{ch}'", {"char": ch, "expected": OPENERS[ch]})
        for offset in scan.stray_closers:
            add(offset, f"Unexpected '{text[offset]}' with no open container", {"char": text[offset]})
        for offset in scan.mismatched_closers:
            add(offset, f"'{text[offset]}' does not close the open container", {"char": text[offset]})

        return issues
