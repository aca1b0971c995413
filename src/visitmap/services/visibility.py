"""Legend-driven filtering of pins by color category."""

from __future__ import annotations

from typing import Any, Iterable

from ..models.domain import ALL_COLORS, ColorCategory
from .classifier import classify


class VisibilityFilter:
    """Set of enabled colors; an empty selection is never kept, it means "show all"."""

    def __init__(self) -> None:
        self._enabled: set[ColorCategory] = set(ALL_COLORS)

    @property
    def enabled(self) -> frozenset[ColorCategory]:
        return frozenset(self._enabled)

    @property
    def is_filtering(self) -> bool:
        return len(self._enabled) < len(ALL_COLORS)

    def is_enabled(self, color: ColorCategory | str) -> bool:
        return ColorCategory(color) in self._enabled

    def toggle(self, color: ColorCategory | str) -> frozenset[ColorCategory]:
        """Flip one legend entry.

        Disabling the last enabled color re-enables everything. Enabling a
        color while nothing is filtered isolates that color instead.
        """
        color = ColorCategory(color)
        if color in self._enabled:
            self._enabled.discard(color)
            if not self._enabled:
                self._enabled.update(ALL_COLORS)
        else:
            if len(self._enabled) == len(ALL_COLORS):
                self._enabled.clear()
            self._enabled.add(color)
        return self.enabled

    def reset(self) -> frozenset[ColorCategory]:
        self._enabled = set(ALL_COLORS)
        return self.enabled

    def is_visible(self, outcomes: Iterable[Any]) -> bool:
        return classify(outcomes) in self._enabled
