"""Hidden-scope depth counter for ``display:none`` groups and unsupported elements."""

from __future__ import annotations


class VisibilityTracker:
    """Counts nested hidden scopes.

    Once hidden, every nested group deepens the count regardless of its own
    ``display``; the document is visible again only when the count is back
    to zero.
    """

    def __init__(self) -> None:
        self.depth = 0

    @property
    def hidden(self) -> bool:
        return self.depth > 0

    def enter_group(self, display_none: bool) -> None:
        if self.hidden or display_none:
            self.depth += 1

    def hide(self) -> None:
        """Enter an unsupported construct (e.g. ``clipPath``)."""
        self.depth += 1

    def leave(self) -> None:
        if self.depth > 0:
            self.depth -= 1
