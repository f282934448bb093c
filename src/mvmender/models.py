#!/usr/bin/env python3
"""
MVMENDER CORE MODELS
--------------------
Defines the value objects passed between the Scanner, the Detectors, the
Repair Strategies and the Verifier.

Every model here is frozen. Detectors produce Issues, strategies produce
RepairCandidates, and the pipeline packages the outcome in a RepairResult.
Nothing is mutated once created, so documents can be repaired concurrently
without sharing state.

Author: Mvmender Team
Date: 2026-10-19
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Any, Tuple, Mapping, Dict, List


class IssueKind(str, Enum):
    """Corruption (or warning) categories the detectors can report."""
    MISSING_COMMA = "MissingComma"
    UNESCAPED_QUOTE = "UnescapedQuote"
    CONTROL_CHARACTER = "ControlCharacter"
    MODERN_SYNTAX_WARNING = "ModernSyntaxWarning"
    MISSING_SEMICOLON = "MissingSemicolonWarning"
    LEADING_GARBAGE = "LeadingGarbage"
    UNBALANCED_BRACKET = "UnbalancedBracket"
    INVALID_JSON = "InvalidJson"


# Same-offset issues are applied in this order
KIND_ORDER: Dict[IssueKind, int] = {kind: idx for idx, kind in enumerate(IssueKind)}


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class TokenType(str, Enum):
    STRING = "string"
    LITERAL = "literal"
    PUNCT = "punct"


@dataclass(frozen=True)
class RawDocument:
    """The unparsed text blob plus where it came from."""
    text: str
    origin: str = "<memory>"


@dataclass(frozen=True)
class Position:
    """
    1-based line/column plus the absolute offset.

    Column and offset count characters of the decoded text (str indices), not UTF-8
    bytes; ScanResult.byte_offset converts when a byte position is needed.
    """
    line: int
    column: int
    offset: int

    def __str__(self):
        return f"line {self.line}, column {self.column}"

    def to_dict(self) -> dict:
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass(frozen=True)
class LexState:
    """
    Running state of the lexical scanner.

    escape_next is only ever True for the single character that follows an
    unescaped backslash inside a string.
    """
    inside_string: bool = False
    escape_next: bool = False
    brace_depth: int = 0
    bracket_depth: int = 0


@dataclass(frozen=True)
class Token:
    """
    A lexical token.

    For STRING tokens `start` is the opening quote and `end` is one past the
    closing quote. `value` holds the raw (still escaped) inner text.
    """
    type: TokenType
    start: int
    end: int
    value: str = ""

    def is_punct(self, chars: str) -> bool:
        return self.type is TokenType.PUNCT and self.value in chars


@dataclass(frozen=True)
class FreeTextSpan:
    """
    A string value that belongs to a free-text key (e.g. 'note').

    start/end delimit the whole literal including its quotes. stray_quotes
    lists offsets of raw '"' characters inside the value that should have
    been escaped.
    """
    key: str
    start: int
    end: int
    stray_quotes: Tuple[int, ...] = ()

    @property
    def content_start(self) -> int:
        return self.start + 1

    @property
    def content_end(self) -> int:
        return self.end - 1


def _freeze(detail: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(detail or {}))


@dataclass(frozen=True)
class Issue:
    """
    A single finding against a specific version of the document text.

    Issues are only valid for the text they were detected on. After any
    edit the document is rescanned and the issue list rebuilt.
    """
    kind: IssueKind
    position: Position
    length: int
    severity: Severity
    fixable: bool
    message: str = ""
    detail: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    def __post_init__(self):
        if self.kind is IssueKind.INVALID_JSON and (self.fixable or self.severity is not Severity.ERROR):
            raise ValueError("InvalidJson issues are always non-fixable errors")
        if not isinstance(self.detail, MappingProxyType):
            object.__setattr__(self, "detail", _freeze(self.detail))

    @property
    def offset(self) -> int:
        return self.position.offset

    @property
    def end(self) -> int:
        # Zero-length issues (pure insertions) still occupy their anchor point
        return self.position.offset + max(self.length, 1)

    def overlaps(self, other: "Issue") -> bool:
        return self.offset < other.end and other.offset < self.end

    def sort_key(self) -> Tuple[int, int]:
        return (self.offset, KIND_ORDER[self.kind])

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "line": self.position.line,
            "column": self.position.column,
            "offset": self.position.offset,
            "length": self.length,
            "severity": self.severity.value,
            "fixable": self.fixable,
            "message": self.message,
            "detail": dict(self.detail),
        }


@dataclass(frozen=True)
class RepairCandidate:
    """One strategy's proposed text plus the fixes that produced it."""
    text: str
    applied_fixes: Tuple[Issue, ...]
    strategy_name: str


@dataclass(frozen=True)
class StrategyAttempt:
    """
    History entry for one strategy in the escalation chain.

    error is None only for the attempt that produced the accepted text.
    """
    name: str
    error: Optional[str]
    applied_fixes: Tuple[Issue, ...] = ()
    changed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "error": self.error,
            "changed": self.changed,
            "applied_fixes": [f.to_dict() for f in self.applied_fixes],
        }


@dataclass(frozen=True)
class RepairResult:
    """
    Terminal output of the repair pipeline.

    On success final_text/strategy_used/fixes_applied are set. On failure
    original_error carries the parser's complaint about the untouched input
    and attempted_strategies explains what each strategy changed and why it
    still did not parse.
    """
    success: bool
    final_text: Optional[str] = None
    strategy_used: Optional[str] = None
    fixes_applied: Tuple[Issue, ...] = ()
    original_error: Optional[str] = None
    attempted_strategies: Tuple[StrategyAttempt, ...] = ()
    issues: Tuple[Issue, ...] = ()
    origin: str = "<memory>"

    @property
    def changed(self) -> bool:
        return bool(self.success and self.fixes_applied)

    def issues_of(self, kind: IssueKind) -> List[Issue]:
        return [i for i in self.issues if i.kind is kind]

    def to_dict(self) -> dict:
        """Serializes the result for JSON reports."""
        return {
            "origin": self.origin,
            "success": self.success,
            "strategy_used": self.strategy_used,
            "fixes_applied": [f.to_dict() for f in self.fixes_applied],
            "original_error": self.original_error,
            "attempted_strategies": [a.to_dict() for a in self.attempted_strategies],
            "issues": [i.to_dict() for i in self.issues],
        }
