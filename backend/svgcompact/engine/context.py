"""ParseContext — the per-call state shared by the driver and its helpers.

Everything that outlives a single element but must not outlive a single
parse lives here: the assumed physical unit, the caller's color map and
dynamic-text table, the diagnostic verbosity, the element listener and the
font lookup. One context is created per parse and never shared.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from svgcompact.errors import StructureError, UnitMixingError

if TYPE_CHECKING:
    from svgcompact.render.picture import Canvas
    from svgcompact.svg.style import PaintStyle

logger = logging.getLogger(__name__)

T = TypeVar("T")

Rect = tuple[float, float, float, float]

# Maps a font-family name to a font file path (or None when unknown)
FontLookup = Callable[[str], "str | None"]


class Verbosity(enum.IntEnum):
    """Diagnostic verbosity; messages below the level are dropped."""

    ERROR = logging.ERROR
    WARN = logging.WARNING
    INFO = logging.INFO

    @classmethod
    def parse(cls, name: str | int | Verbosity) -> Verbosity:
        if isinstance(name, int):
            return cls(name)
        return cls[name.strip().upper().replace("WARNING", "WARN")]


class SvgElementListener:
    """Hooks invoked synchronously while the document is drawn.

    Subclass and override what you need; the defaults draw everything
    unchanged.
    """

    def on_svg_start(self, canvas: Canvas, bounds: Rect) -> None:
        pass

    def on_svg_end(self, canvas: Canvas, bounds: Rect) -> None:
        pass

    def before_draw(
        self,
        element_id: str | None,
        element: Any,
        bounds: Rect | None,
        paint: PaintStyle | None,
    ) -> Any:
        """Return the element to draw (possibly a replacement) or None to skip it."""
        return element

    def after_draw(self, element_id: str | None, element: Any, paint: PaintStyle | None) -> None:
        pass


@dataclass
class ParseContext:
    """Shared state for one parse call."""

    # Original packed color → replacement; unmapped colors are memoized
    color_map: dict[int, int] = field(default_factory=dict)
    # Exact-match text substitutions, drained when the parse ends
    dynamic_texts: dict[str, str] | None = None
    font_lookup: FontLookup | None = None
    listener: SvgElementListener | None = None
    verbosity: Verbosity = Verbosity.ERROR
    # First physical unit seen in the document
    assumed_unit: str | None = None

    # --- Diagnostics ---
    def log(self, level: int, msg: str, *args: object) -> None:
        if level >= self.verbosity:
            logger.log(level, msg, *args)

    def error(self, msg: str, *args: object) -> None:
        self.log(logging.ERROR, msg, *args)

    def warn(self, msg: str, *args: object) -> None:
        self.log(logging.WARNING, msg, *args)

    def info(self, msg: str, *args: object) -> None:
        self.log(logging.INFO, msg, *args)

    # --- Units ---
    def check_unit(self, unit: str) -> None:
        if self.assumed_unit is None:
            self.assumed_unit = unit
        elif self.assumed_unit != unit:
            raise UnitMixingError(self.assumed_unit, unit)

    # --- Colors ---
    def map_color(self, color: int) -> int:
        mapped = self.color_map.get(color)
        if mapped is not None:
            return mapped
        self.color_map[color] = color
        return color

    # --- Text ---
    def substitute_text(self, text: str) -> str:
        if self.dynamic_texts and text in self.dynamic_texts:
            return self.dynamic_texts[text]
        return text

    def finish(self) -> None:
        """Release single-use resources at the end of the parse."""
        if self.dynamic_texts is not None:
            self.dynamic_texts.clear()
            self.dynamic_texts = None


class ContextStack(Generic[T]):
    """A named LIFO stack whose misuse is a structural error."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: list[T] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, item: T) -> None:
        self._items.append(item)

    def pop(self) -> T:
        if not self._items:
            raise StructureError(f"Unbalanced {self.name} stack: pop without push")
        return self._items.pop()

    def peek(self) -> T:
        if not self._items:
            raise StructureError(f"Unbalanced {self.name} stack: peek on empty stack")
        return self._items[-1]

    def top_or_none(self) -> T | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()
