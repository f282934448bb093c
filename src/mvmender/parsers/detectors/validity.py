from typing import List, Dict, Any

from mvmender.models import Issue, IssueKind, Severity
from mvmender.parsers.scanner import ScanResult
from mvmender.parsers.detectors.base import BaseDetector
from mvmender.core.verifier import verify


class InvalidJsonDetector(BaseDetector):
    """
    The parse attempt itself. Registered last so every point detector has
    already had its say; never fixable.
    """

    @property
    def name(self) -> str:
        return "invalid_json"

    @property
    def description(self) -> str:
        return "The document does not parse to an array or object"

    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        verdict = verify(text)
        if verdict.ok:
            return []

        offset = min(verdict.offset or 0, len(text))
        return [Issue(
            kind=IssueKind.INVALID_JSON,
            position=scan.position(offset),
            length=0,
            severity=Severity.ERROR,
            fixable=False,
            message=f"Invalid JSON: {verdict.error}",
            detail={"parser_error": verdict.error},
        )]
