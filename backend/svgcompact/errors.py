"""Exception types raised by the SVG parser."""

from __future__ import annotations


class SvgParseError(Exception):
    """Fatal parse failure.

    Wraps transport and decoding failures (unreadable stream, bad gzip data,
    malformed markup) via ``__cause__``, and is the base class of the
    semantic failures below.
    """


class UnitMixingError(SvgParseError):
    """The document measures lengths in more than one physical unit."""

    def __init__(self, assumed: str, found: str) -> None:
        super().__init__(f"Mixing units; SVG contains both {assumed} and {found}")
        self.assumed = assumed
        self.found = found


class StructureError(SvgParseError):
    """A state stack was popped without a matching push, or left unbalanced."""


class NumberTokenError(ValueError):
    """No valid number (or flag) could be read at the tokenizer position."""

    def __init__(self, text: str, pos: int) -> None:
        snippet = text[pos:pos + 12]
        super().__init__(f"Expected number at offset {pos}: {snippet!r}")
        self.pos = pos
