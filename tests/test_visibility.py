from visitmap.models.domain import ALL_COLORS, ColorCategory
from visitmap.services.visibility import VisibilityFilter

RED = ColorCategory.RED
ORANGE = ColorCategory.ORANGE
BLUE = ColorCategory.BLUE


def test_starts_with_everything_enabled():
    visibility = VisibilityFilter()
    assert visibility.enabled == frozenset(ALL_COLORS)
    assert not visibility.is_filtering


def test_disabling_colors_from_full_set():
    visibility = VisibilityFilter()

    visibility.toggle(RED)
    assert visibility.enabled == frozenset(ALL_COLORS) - {RED}

    visibility.toggle(ORANGE)
    assert len(visibility.enabled) == 4
    assert ORANGE not in visibility.enabled


def test_disabling_last_color_resets_to_all():
    visibility = VisibilityFilter()
    for color in ALL_COLORS[:-1]:
        visibility.toggle(color)
    assert visibility.enabled == {ALL_COLORS[-1]}

    visibility.toggle(ALL_COLORS[-1])
    assert visibility.enabled == frozenset(ALL_COLORS)


def test_enabling_into_partial_set_just_adds():
    visibility = VisibilityFilter()
    for color in ALL_COLORS:
        if color is not RED:
            visibility.toggle(color)
    assert visibility.enabled == {RED}

    visibility.toggle(BLUE)
    assert visibility.enabled == {RED, BLUE}


def test_round_trip_from_full_set():
    for color in ALL_COLORS:
        visibility = VisibilityFilter()
        visibility.toggle(color)
        visibility.toggle(color)
        assert visibility.enabled == frozenset(ALL_COLORS)


def test_toggle_accepts_color_names():
    visibility = VisibilityFilter()
    assert visibility.toggle("grey") == frozenset(ALL_COLORS) - {ColorCategory.GREY}


def test_is_visible_uses_classification():
    visibility = VisibilityFilter()
    visibility.toggle(RED)
    assert not visibility.is_visible({"Requested No Contact", "Shared Gospel"})
    assert visibility.is_visible({"Shared Gospel"})
    assert visibility.is_visible(set())


def test_reset():
    visibility = VisibilityFilter()
    visibility.toggle(RED)
    visibility.toggle(BLUE)
    assert visibility.reset() == frozenset(ALL_COLORS)
