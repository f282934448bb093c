"""
MVMENDER REPORTERS
------------------
Structured output generators for scripting and CI.
"""
import json
import time
from typing import Dict, Any, List

from mvmender import __version__
from mvmender.core.engine import summarize

# File bodies stay out of machine-readable reports
_BULKY_FIELDS = ("raw_content", "repaired_content")


class JSONReporter:
    """Generates a standard JSON report of the execution."""

    def generate(self, results: List[Dict[str, Any]], duration: float, mode: str = "scan") -> str:
        report = {
            "metadata": {
                "tool": "mvmender",
                "version": __version__,
                "mode": mode,
                "timestamp": time.time(),
                "duration_seconds": duration
            },
            "summary": summarize(results),
            "results": [
                {k: v for k, v in r.items() if k not in _BULKY_FIELDS}
                for r in results
            ]
        }
        return json.dumps(report, indent=2)
