import re
from typing import List, Dict, Any

from mvmender.models import Issue, IssueKind, Severity
from mvmender.parsers.scanner import ScanResult
from mvmender.parsers.detectors.base import BaseDetector

# `(a, b) =>` or `x =>`
ARROW_RE = re.compile(r"(\([^()]*\)|[A-Za-z_$][\w$]*)\s*=>")
# Notes store newlines as `\n`, so `\nlet x` has no word boundary before `let`
DECL_RE = re.compile(r"(?:(?<=\\[nrt])|(?<![\w$]))(let|const)\s+([A-Za-z_$][\w$]*)")


class ModernSyntaxDetector(BaseDetector):
    """
    Warns about ES6 syntax in note scripts that older MV plugins
    evaluate with engines that predate it. Never altered.
    """

    @property
    def name(self) -> str:
        return "modern_syntax"

    @property
    def description(self) -> str:
        return "Arrow functions and let/const inside note scripts"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        issues = []
        for span in scan.free_text_spans:
            body = text[span.content_start:span.content_end]
            base = span.content_start

            for match in ARROW_RE.finditer(body):
                issues.append(self._warning(
                    scan, base + match.start(), match.end() - match.start(),
                    "Arrow function in note script (may not be supported by older plugins)",
                    {"key": span.key, "construct": "arrow_function", "snippet": match.group(0)},
                ))

            for match in DECL_RE.finditer(body):
                keyword, ident = match.group(1), match.group(2)
                issues.append(self._warning(
                    scan, base + match.start(1), match.end() - match.start(1),
                    f"'{keyword}' declaration in note script (may not be supported by older plugins)",
                    {"key": span.key, "construct": keyword, "identifier": ident},
                ))

        return issues

    def _warning(self, scan: ScanResult, offset: int, length: int,
                 message: str, detail: Dict[str, Any]) -> Issue:
        return Issue(
            kind=IssueKind.MODERN_SYNTAX_WARNING,
            position=scan.position(offset),
            length=length,
            severity=Severity.WARNING,
            fixable=False,
            message=message,
            detail=detail,
        )


# A statement ending in a word or `)`/`]`, a line break (escaped or raw), then
# a line opening with an assignment, call, member access or `++`/`--`
STATEMENT_BREAK_RE = re.compile(
    r"([\w$)\]])[ \t]*(?:\\r)?(?:\\n|\r?\n)[ \t]*"
    r"([A-Za-z_$][\w$.]*)[ \t]*(?:=(?!=)|\(|\+\+|--)"
)


class MissingSemicolonDetector(BaseDetector):
    """
    Warns when a note script continues on a new line without ending the
    previous statement. Plugins that join note lines before evaluating them
    choke on this. Never altered.
    """

    @property
    def name(self) -> str:
        return "missing_semicolon"

    @property
    def description(self) -> str:
        return "Unterminated statements inside note scripts"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        issues = []
        for span in scan.free_text_spans:
            body = text[span.content_start:span.content_end]
            for match in STATEMENT_BREAK_RE.finditer(body):
                # The semicolon belongs right after the last character of the statement
                offset = span.content_start + match.end(1)
                issues.append(Issue(
                    kind=IssueKind.MISSING_SEMICOLON,
                    position=scan.position(offset),
                    length=0,
                    severity=Severity.WARNING,
                    fixable=False,
                    message="Missing semicolon in note script",
                    detail={"key": span.key, "next_statement": match.group(2)},
                ))
        return issues
