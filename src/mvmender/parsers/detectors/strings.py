"""
Mvmender STRING DETECTORS
-------------------------
Detectors that look inside string literals: raw quotes in free-text
values and raw control characters.

Author: Mvmender Team
Date: 2026-10-19
"""

from typing import List, Dict, Any

from mvmender.models import Issue, IssueKind, Severity
from mvmender.parsers.scanner import ScanResult
from mvmender.parsers.detectors.base import BaseDetector
from mvmender.core.config import RepairOptions

JSON_ESCAPES = {
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
    "\f": "\\f",
}


def escape_control(ch: str) -> str:
    return JSON_ESCAPES.get(ch, f"\\u{ord(ch):04x}")


class UnescapedQuoteDetector(BaseDetector):
    """
    Flags raw '"' characters inside free-text values (the 'note' field).
    The scanner has already located the real terminator of each value.
    """

    @property
    def name(self) -> str:
        return "unescaped_quote"

    @property
    def description(self) -> str:
        return "Unescaped double quotes inside free-text values"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        issues = []
        for span in scan.free_text_spans:
            for offset in span.stray_quotes:
                issues.append(Issue(
                    kind=IssueKind.UNESCAPED_QUOTE,
                    position=scan.position(offset),
                    length=1,
                    severity=Severity.ERROR,
                    fixable=True,
                    message=f"Unescaped quote inside '{span.key}'",
                    detail={"key": span.key, "insert_at": offset},
                ))
        return issues


class ControlCharacterDetector(BaseDetector):
    """
    Flags raw control characters (U+0000 - U+001F) inside strings.

    Informational unless `repair.escape_control_characters` is enabled,
    in which case they become fixable errors.
    """

    @property
    def name(self) -> str:
        return "control_character"

    @property
    def description(self) -> str:
        return "Raw control characters inside string literals"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        options: RepairOptions = context.get("options") or RepairOptions()
        escape = options.escape_control_characters

        issues = []
        for offset in scan.control_characters:
            ch = text[offset]
            code = f"U+{ord(ch):04X}"
            issues.append(Issue(
                kind=IssueKind.CONTROL_CHARACTER,
                position=scan.position(offset),
                length=1,
                severity=Severity.ERROR if escape else Severity.WARNING,
                fixable=escape,
                message=f"Raw control character {code} inside a string",
                detail={"char": code, "replacement": escape_control(ch)},
            ))
        return issues
