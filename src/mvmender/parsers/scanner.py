#!/usr/bin/env python3
"""
MVMENDER SCANNER - The Lexical Cartographer
-------------------------------------------
Walks raw JSON text once, left to right, and classifies it into positioned
tokens without ever requiring the document to be valid.

Everything downstream (detectors, strategies) reasons about "is this offset
inside a string literal" through the ScanResult produced here, so the
escape handling in this module is the foundation of the whole engine:

- `\\"` does not close a string, `\\\\"` does.
- Braces and brackets only count toward depth outside string literals.
- Free-text values (the `note` field of RPG Maker data) are allowed to hold
  raw script source. When such a value contains unescaped quotes the scanner
  looks ahead for the quote that really terminates it, so embedded quotes do
  not derail the rest of the document.

Scanning never fails. Problems are recorded, not raised.

Author: Mvmender Team
Date: 2026-10-19
"""

import re
import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import List, Tuple, Optional, Iterable

from mvmender.models import Position, LexState, Token, TokenType, FreeTextSpan

logger = logging.getLogger("mvmender.scanner")

STRUCTURAL = "{}[]:,"
OPENERS = {"{": "}", "[": "]"}
CLOSERS = {"}": "{", "]": "["}
WHITESPACE = " \t\r\n"

# A quoted key followed by a colon: "name":
_KEY_AHEAD = re.compile(r'"(?:[^"\\\r\n]|\\.)*"[ \t\r\n]*:')


class NewlineIndex:
    """
    Maps character offsets to 1-based (line, column) positions.

    Built once per document from the sorted offsets of every newline; each
    lookup is a bisect, never a rescan of the text.
    """

    def __init__(self, newline_offsets: Iterable[int]):
        self._newlines: List[int] = list(newline_offsets)

    @classmethod
    def from_text(cls, text: str) -> "NewlineIndex":
        return cls(i for i, ch in enumerate(text) if ch == "\n")

    @property
    def line_count(self) -> int:
        return len(self._newlines) + 1

    def position(self, offset: int) -> Position:
        # Number of newlines strictly before offset == zero-based line index
        line_idx = bisect_left(self._newlines, offset)
        line_start = self._newlines[line_idx - 1] + 1 if line_idx else 0
        return Position(line=line_idx + 1, column=offset - line_start + 1, offset=offset)


@dataclass(frozen=True)
class ScanResult:
    """Classification of one version of a document's text."""
    text: str
    tokens: Tuple[Token, ...]
    free_text_spans: Tuple[FreeTextSpan, ...]
    control_characters: Tuple[int, ...]
    final_state: LexState
    open_stack: Tuple[Tuple[str, int], ...]
    stray_closers: Tuple[int, ...]
    mismatched_closers: Tuple[int, ...]
    unterminated_string: Optional[int]
    newlines: NewlineIndex

    @property
    def brace_depth(self) -> int:
        return self.final_state.brace_depth

    @property
    def bracket_depth(self) -> int:
        return self.final_state.bracket_depth

    @property
    def is_balanced(self) -> bool:
        return not (self.open_stack or self.stray_closers or self.mismatched_closers)

    @property
    def first_opener(self) -> int:
        """Offset of the first '{' or '[' in the raw text, or -1."""
        hits = [i for i in (self.text.find("{"), self.text.find("[")) if i != -1]
        return min(hits) if hits else -1

    def position(self, offset: int) -> Position:
        return self.newlines.position(offset)

    def byte_offset(self, offset: int) -> int:
        """UTF-8 byte offset of a character offset, for tools that seek in the raw file."""
        return len(self.text[:offset].encode("utf-8"))

    def string_at(self, offset: int) -> Optional[Token]:
        """Returns the string literal covering offset, if any."""
        for token in self.tokens:
            if token.start > offset:
                break
            if token.type is TokenType.STRING and token.start <= offset < token.end:
                return token
        if self.unterminated_string is not None and offset >= self.unterminated_string:
            return Token(TokenType.STRING, self.unterminated_string, len(self.text),
                         self.text[self.unterminated_string + 1:])
        return None

    def is_inside_string(self, offset: int) -> bool:
        return self.string_at(offset) is not None


class JsonScanner:
    """
    Single-pass lexical scanner for possibly-broken JSON.

    The scanner holds configuration only; all running state lives in local
    variables of scan(), so one instance can be shared between threads.
    """

    def __init__(self, free_text_keys: Iterable[str] = ("note",)):
        self.free_text_keys = frozenset(free_text_keys)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def scan(self, text: str) -> ScanResult:
        tokens: List[Token] = []
        spans: List[FreeTextSpan] = []
        controls: List[int] = []
        newlines: List[int] = []
        stack: List[Tuple[str, int]] = []
        stray: List[int] = []
        mismatched: List[int] = []

        inside_string = False
        escape_next = False
        brace_depth = 0
        bracket_depth = 0
        string_start = -1

        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "\n":
                newlines.append(i)

            if inside_string:
                if escape_next:
                    escape_next = False
                elif ch == "\\":
                    escape_next = True
                elif ch == '"':
                    inside_string = False
                    tokens.append(Token(TokenType.STRING, string_start, i + 1, text[string_start + 1:i]))
                elif ch < " ":
                    controls.append(i)
                i += 1
                continue

            if ch == '"':
                key = self._pending_free_text_key(tokens)
                if key is not None:
                    end, strays = self._find_free_text_end(text, i)
                    if end != -1:
                        self._consume_span(text, i + 1, end, newlines, controls)
                        tokens.append(Token(TokenType.STRING, i, end + 1, text[i + 1:end]))
                        spans.append(FreeTextSpan(key=key, start=i, end=end + 1, stray_quotes=tuple(strays)))
                        if strays:
                            logger.debug(f"Free-text '{key}' at {i} holds {len(strays)} raw quote(s)")
                        i = end + 1
                        continue
                inside_string = True
                string_start = i
                i += 1
                continue

            if ch in OPENERS:
                stack.append((ch, i))
                if ch == "{":
                    brace_depth += 1
                else:
                    bracket_depth += 1
                tokens.append(Token(TokenType.PUNCT, i, i + 1, ch))
            elif ch in CLOSERS:
                if ch == "}":
                    brace_depth -= 1
                else:
                    bracket_depth -= 1
                if stack and stack[-1][0] == CLOSERS[ch]:
                    stack.pop()
                elif not stack:
                    stray.append(i)
                else:
                    mismatched.append(i)
                tokens.append(Token(TokenType.PUNCT, i, i + 1, ch))
            elif ch in ":,":
                tokens.append(Token(TokenType.PUNCT, i, i + 1, ch))
            elif ch not in WHITESPACE:
                start = i
                while i + 1 < n and text[i + 1] not in STRUCTURAL and text[i + 1] not in WHITESPACE and text[i + 1] != '"':
                    i += 1
                tokens.append(Token(TokenType.LITERAL, start, i + 1, text[start:i + 1]))
            i += 1

        return ScanResult(
            text=text,
            tokens=tuple(tokens),
            free_text_spans=tuple(spans),
            control_characters=tuple(controls),
            final_state=LexState(
                inside_string=inside_string,
                escape_next=escape_next,
                brace_depth=brace_depth,
                bracket_depth=bracket_depth,
            ),
            open_stack=tuple(stack),
            stray_closers=tuple(stray),
            mismatched_closers=tuple(mismatched),
            unterminated_string=string_start if inside_string else None,
            newlines=NewlineIndex(newlines),
        )

    # =========================================================================
    # FREE-TEXT LOOKAHEAD
    # =========================================================================

    def _pending_free_text_key(self, tokens: List[Token]) -> Optional[str]:
        """Returns the key name if the next string is the value of a free-text key."""
        if len(tokens) < 2:
            return None
        colon, key = tokens[-1], tokens[-2]
        if not colon.is_punct(":") or key.type is not TokenType.STRING:
            return None
        return key.value if key.value in self.free_text_keys else None

    def _find_free_text_end(self, text: str, start: int) -> Tuple[int, List[int]]:
        """
        Finds the quote that really closes the free-text value opened at start.

        Returns (closing_offset, stray_quote_offsets) or (-1, []) when no
        plausible terminator exists.
        """
        strays: List[int] = []
        escape_next = False
        for j in range(start + 1, len(text)):
            ch = text[j]
            if escape_next:
                escape_next = False
                continue
            if ch == "\\":
                escape_next = True
                continue
            if ch == '"':
                if self._is_terminator(text, j + 1):
                    return j, strays
                strays.append(j)
        return -1, []

    def _is_terminator(self, text: str, k: int) -> bool:
        """Whether the text at k can legally follow the end of a value."""
        k = _skip_ws(text, k)
        if k >= len(text):
            return True
        ch = text[k]
        if ch == ",":
            return _KEY_AHEAD.match(text, _skip_ws(text, k + 1)) is not None
        if ch in CLOSERS:
            after = _skip_ws(text, k + 1)
            return after >= len(text) or text[after] in ',}]{["'
        if ch == '"':
            # A bare key right after the value (missing comma)
            return _KEY_AHEAD.match(text, k) is not None
        return False

    def _consume_span(self, text: str, start: int, end: int,
                      newlines: List[int], controls: List[int]) -> None:
        escape_next = False
        for j in range(start, end):
            ch = text[j]
            if ch == "\n":
                newlines.append(j)
            if escape_next:
                escape_next = False
            elif ch == "\\":
                escape_next = True
            elif ch < " ":
                controls.append(j)


def _skip_ws(text: str, k: int) -> int:
    while k < len(text) and text[k] in WHITESPACE:
        k += 1
    return k
