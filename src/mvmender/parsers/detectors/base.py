from abc import ABC, abstractmethod
from typing import List, Dict, Any

from mvmender.models import Issue
from mvmender.parsers.scanner import ScanResult


class BaseDetector(ABC):
    """
    Abstract strategy for spotting one corruption pattern.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this detector."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this detector flags."""
        pass

    @abstractmethod
    def detect(self, text: str, scan: ScanResult, context: Dict[str, Any]) -> List[Issue]:
        """
        Inspects one version of the document text.

        Args:
            text: The raw document text (same text the scan was built from)
            scan: Token stream and lexical facts from the JsonScanner
            context: Shared read-only settings (e.g. 'options': RepairOptions)

        Returns:
            Issues anchored to offsets in `text`.
        """
        pass
