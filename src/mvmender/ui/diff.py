"""
MVMENDER DIFF ENGINE
--------------------
Provides colorful diffs of proposed repairs for the CLI.

RPG Maker writes most data files as one very long line, so a line diff is
useless there. For such documents the diff shows a window of text around
each changed region instead. Regions are found in a single forward walk,
never by aligning the whole text.

Author: Mvmender Team
Date: 2026-10-19
"""

import difflib
from typing import Optional, Iterator, Tuple
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

console = Console()

CONTEXT_CHARS = 30
MAX_ROWS = 50
# Lines longer than this are shown as character windows
LONG_LINE = 400
MAX_EDIT = 16
SYNC_CHARS = 8
BLOCK = 512


class DiffEngine:
    """Renders colorful diffs for JSON data files."""

    @staticmethod
    def render_diff(original: str, repaired: str, file_path: str, out: Optional[Console] = None):
        """
        Displays a diff between the original and repaired content.

        Args:
            original: The raw content before repair.
            repaired: The content after repair.
            file_path: Name of the file being modified.
        """
        out = out or console
        if original == repaired:
            out.print(f"[dim]No changes for {file_path}[/dim]")
            return

        title = f":wrench: Proposed Changes for [bold cyan]{file_path}[/bold cyan]"
        if _longest_line(original) > LONG_LINE or original.count("\n") <= 1:
            body = DiffEngine._char_windows(original, repaired)
        else:
            body = DiffEngine._unified(original, repaired)
        out.print(Panel(body, title=title, expand=False, border_style="blue"))

    @staticmethod
    def _unified(original: str, repaired: str) -> Text:
        """Standard unified diff with colors."""
        diff_text = Text()
        for line in difflib.unified_diff(
            original.splitlines(keepends=True),
            repaired.splitlines(keepends=True),
            fromfile="Original",
            tofile="Repaired",
            n=2
        ):
            if not line.endswith("\n"):
                line += "\n"
            if line.startswith("---") or line.startswith("+++"):
                diff_text.append(line, style="bold magenta")
            elif line.startswith("@@"):
                diff_text.append(line, style="cyan")
            elif line.startswith("-"):
                diff_text.append(line, style="red")
            elif line.startswith("+"):
                diff_text.append(line, style="green")
            else:
                diff_text.append(line, style="dim white")
        return diff_text

    @staticmethod
    def _char_windows(original: str, repaired: str) -> Text:
        """One row per changed region: `...context[-old][+new]context...`."""
        diff_text = Text()
        for row, (i1, i2, j1, j2) in enumerate(changed_regions(original, repaired)):
            if row == MAX_ROWS:
                diff_text.append("... more changes not shown\n", style="dim italic")
                break
            lead = original[max(0, i1 - CONTEXT_CHARS):i1]
            tail = original[i2:i2 + CONTEXT_CHARS]
            diff_text.append(f"@@ offset {i1} @@ ", style="cyan")
            diff_text.append("..." + lead, style="dim white")
            if i2 > i1:
                diff_text.append(original[i1:i2], style="bold white on red")
            if j2 > j1:
                diff_text.append(repaired[j1:j2], style="bold white on green")
            diff_text.append(tail + "...\n", style="dim white")
        return diff_text


def changed_regions(original: str, repaired: str) -> Iterator[Tuple[int, int, int, int]]:
    """
    Yields (i1, i2, j1, j2) for each changed region, walking both texts once.

    Repairs are small local edits, so after each mismatch the texts line up
    again within MAX_EDIT characters. If they do not, everything up to the
    common suffix is reported as a single region.
    """
    n, m = len(original), len(repaired)
    i = j = 0
    while i < n and j < m:
        if i + BLOCK <= n and j + BLOCK <= m and original[i:i + BLOCK] == repaired[j:j + BLOCK]:
            i += BLOCK
            j += BLOCK
            continue
        # First difference inside this block
        stop = min(n - i, m - j, BLOCK)
        k = 0
        while k < stop and original[i + k] == repaired[j + k]:
            k += 1
        i += k
        j += k
        if k == stop:
            continue
        region = _resync(original, repaired, i, j)
        if region is None:
            break
        yield region
        i, j = region[1], region[3]

    if i < n or j < m:
        suffix = 0
        while suffix < n - i and suffix < m - j and original[n - 1 - suffix] == repaired[m - 1 - suffix]:
            suffix += 1
        if i < n - suffix or j < m - suffix:
            yield i, n - suffix, j, m - suffix


def _resync(original: str, repaired: str, i: int, j: int) -> Optional[Tuple[int, int, int, int]]:
    """Smallest (removed, inserted) pair after which SYNC_CHARS characters agree."""
    n, m = len(original), len(repaired)
    for total in range(1, 2 * MAX_EDIT + 1):
        for removed in range(max(0, total - MAX_EDIT), min(total, MAX_EDIT) + 1):
            inserted = total - removed
            a = original[i + removed:i + removed + SYNC_CHARS]
            b = repaired[j + inserted:j + inserted + SYNC_CHARS]
            if a != b:
                continue
            if len(a) == SYNC_CHARS or (i + removed + len(a) == n and j + inserted + len(b) == m):
                return i, i + removed, j, j + inserted
    return None


def _longest_line(text: str) -> int:
    return max((len(line) for line in text.splitlines()), default=0)
