"""Numeric tokenizer for path data, point lists and attribute number lists.

SVG packs numbers aggressively: ``M10-20.5.5e2`` is the three numbers
``10``, ``-20.5`` and ``.5e2``. A new number starts at whitespace, a comma,
a sign that does not follow an exponent marker, or a second decimal point.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from svgcompact.errors import NumberTokenError

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE = " \t\r\n\f"
_SEPARATORS = _WHITESPACE + ","


class PathTokenizer:
    """Cursor over a string that reads floats, flags and command letters."""

    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos
        self.length = len(text)

    @property
    def at_end(self) -> bool:
        return self.pos >= self.length

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < self.length else ""

    def advance(self) -> None:
        self.pos += 1

    def skip_whitespace(self) -> None:
        while self.pos < self.length and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def skip_separator(self) -> None:
        """Skip whitespace and at most one comma."""
        self.skip_whitespace()
        if self.pos < self.length and self.text[self.pos] == ",":
            self.pos += 1
            self.skip_whitespace()

    def next_float(self) -> float:
        """Read the next number, consuming the separator that follows it."""
        self.skip_separator()
        match = _NUMBER_RE.match(self.text, self.pos)
        if match is None:
            raise NumberTokenError(self.text, self.pos)
        self.pos = match.end()
        self.skip_separator()
        return float(match.group())

    def next_flag(self) -> int:
        """Read a single ``0``/``1`` arc flag; no separator is required after it."""
        self.skip_separator()
        ch = self.peek()
        if ch not in ("0", "1"):
            raise NumberTokenError(self.text, self.pos)
        self.pos += 1
        self.skip_separator()
        return int(ch)

    def skip_token(self) -> str:
        """Drop everything up to the next separator; returns what was dropped."""
        start = self.pos
        self.pos += 1
        while self.pos < self.length and self.text[self.pos] not in _SEPARATORS:
            self.pos += 1
        return self.text[start:self.pos]


def parse_numbers(text: str, ctx: ParseContext | None = None) -> list[float]:
    """Parse a whitespace/comma separated number list.

    Malformed tokens are dropped and parsing resumes at the next token.
    """
    tokens = PathTokenizer(text)
    numbers: list[float] = []
    tokens.skip_separator()
    while not tokens.at_end:
        try:
            numbers.append(tokens.next_float())
        except NumberTokenError:
            dropped = tokens.skip_token()
            if ctx is not None:
                ctx.warn("Dropping malformed number %r in %r", dropped, text)
            else:
                logger.debug("Dropping malformed number %r in %r", dropped, text)
            tokens.skip_separator()
    return numbers
