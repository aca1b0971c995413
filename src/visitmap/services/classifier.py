"""Outcome classification into pin colors and the shared color style table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..models.domain import ColorCategory, OutcomeTag, normalize_outcomes


@dataclass(frozen=True, slots=True)
class ColorStyle:
    hex: str
    background: str
    text: str


COLOR_STYLES: dict[ColorCategory, ColorStyle] = {
    ColorCategory.RED: ColorStyle(hex="#FF4040", background="#FFE5E5", text="#000000"),
    ColorCategory.ORANGE: ColorStyle(hex="#FFA500", background="#FFE9CC", text="#000000"),
    ColorCategory.YELLOW: ColorStyle(hex="#FFD700", background="#FFFAE5", text="#000000"),
    ColorCategory.GREEN: ColorStyle(hex="#40FF40", background="#E5FFE5", text="#000000"),
    ColorCategory.GREY: ColorStyle(hex="#808080", background="#F2F2F2", text="#000000"),
    ColorCategory.BLUE: ColorStyle(hex="#4040FF", background="#E5E5FF", text="#000000"),
}

# First matching rule wins.
_RULES: tuple[tuple[frozenset[str], ColorCategory], ...] = (
    (frozenset({OutcomeTag.REQUESTED_NO_CONTACT.value}), ColorCategory.RED),
    (frozenset({OutcomeTag.LIMITED_ENGLISH.value}), ColorCategory.ORANGE),
    (frozenset({OutcomeTag.NO_ANSWER.value}), ColorCategory.GREY),
    (
        frozenset({
            OutcomeTag.BUSY.value,
            OutcomeTag.ATTENDS_ANOTHER_CHURCH.value,
            OutcomeTag.BELIEVER.value,
        }),
        ColorCategory.YELLOW,
    ),
    (
        frozenset({OutcomeTag.SHARED_GOSPEL.value, OutcomeTag.INVITED_TO_CHURCH.value}),
        ColorCategory.GREEN,
    ),
)

DEFAULT_COLOR = ColorCategory.BLUE


def classify(outcomes: Iterable[Any]) -> ColorCategory:
    """Map a set of outcome tags to the highest-priority matching color."""
    tags = set(normalize_outcomes(outcomes))
    for triggers, color in _RULES:
        if tags & triggers:
            return color
    return DEFAULT_COLOR


def style_for(color: ColorCategory | str) -> ColorStyle:
    try:
        return COLOR_STYLES[ColorCategory(color)]
    except ValueError:
        return COLOR_STYLES[DEFAULT_COLOR]


def entry_style(outcomes: Iterable[Any]) -> ColorStyle:
    """Light background/text pair used to highlight one history entry."""
    return COLOR_STYLES[classify(outcomes)]
