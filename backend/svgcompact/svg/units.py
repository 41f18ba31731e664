"""Length values with optional unit suffixes."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext


class Unit(enum.Enum):
    """Recognized length units and their scale factor to user units."""

    PERCENT = ("%", 0.01, False)
    PT = ("pt", 1.0, True)
    PX = ("px", 1.0, False)
    MM = ("mm", 100.0, True)

    def __init__(self, abbreviation: str, scale: float, physical: bool) -> None:
        self.abbreviation = abbreviation
        self.scale = scale
        # Physical units take part in the document-wide assumed-unit check
        self.physical = physical

    @classmethod
    def match(cls, value: str) -> Unit | None:
        for unit in cls:
            if value.endswith(unit.abbreviation):
                return unit
        return None


def parse_length(
    value: str | None,
    ctx: ParseContext,
    default: float | None = None,
) -> float | None:
    """Parse ``"12"``, ``"12px"``, ``"50%"``, ``"3mm"`` into user units.

    Returns ``default`` when the value is absent or not a number. The first
    physical unit seen fixes the document's assumed unit; a different one
    later raises :class:`~svgcompact.errors.UnitMixingError`.
    """
    if value is None:
        return default
    text = value.strip()
    unit = Unit.match(text)
    if unit is not None:
        text = text[: -len(unit.abbreviation)].strip()
    try:
        number = float(text)
    except ValueError:
        ctx.warn("Dropping malformed length %r", value)
        return default
    if unit is None:
        return number
    if unit.physical:
        ctx.check_unit(unit.abbreviation)
    return number * unit.scale
