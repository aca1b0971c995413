"""Pins, legend filter and map defaults."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...config import settings
from ...models.domain import ALL_COLORS, ColorCategory, OutcomeTag
from ...schemas.map import (
    FilterStateModel,
    LegendColorModel,
    LegendResponse,
    MapDefaultsModel,
    PinModel,
)
from ...services.classifier import style_for
from ...services.pins import build_pin
from ...services.registry import AddressRegistry
from ...services.visibility import VisibilityFilter
from ..dependencies import get_registry, get_visibility_filter

router = APIRouter(tags=["map"])


def _filter_state(visibility: VisibilityFilter) -> FilterStateModel:
    return FilterStateModel(
        enabled=[color.value for color in ALL_COLORS if color in visibility.enabled],
        filtering=visibility.is_filtering,
    )


@router.get("/pins", response_model=List[PinModel], status_code=status.HTTP_200_OK)
def list_pins(
    include_hidden: bool = Query(default=False, description="Also return pins filtered out by the legend"),
    registry: AddressRegistry = Depends(get_registry),
    visibility: VisibilityFilter = Depends(get_visibility_filter),
) -> List[PinModel]:
    pins = []
    for record in registry.list_all():
        pin = build_pin(record, visibility)
        if pin is None or (not pin["visible"] and not include_hidden):
            continue
        pins.append(PinModel(**pin))
    return pins


@router.get("/filter", response_model=FilterStateModel, status_code=status.HTTP_200_OK)
def get_filter(visibility: VisibilityFilter = Depends(get_visibility_filter)) -> FilterStateModel:
    return _filter_state(visibility)


@router.post("/filter/toggle/{color}", response_model=FilterStateModel, status_code=status.HTTP_200_OK)
def toggle_filter(
    color: str,
    visibility: VisibilityFilter = Depends(get_visibility_filter),
) -> FilterStateModel:
    try:
        category = ColorCategory(color.lower())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown color '{color}'. Expected one of: {', '.join(c.value for c in ALL_COLORS)}",
        ) from exc
    visibility.toggle(category)
    return _filter_state(visibility)


@router.post("/filter/reset", response_model=FilterStateModel, status_code=status.HTTP_200_OK)
def reset_filter(visibility: VisibilityFilter = Depends(get_visibility_filter)) -> FilterStateModel:
    visibility.reset()
    return _filter_state(visibility)


@router.get("/legend", response_model=LegendResponse, status_code=status.HTTP_200_OK)
def get_legend(visibility: VisibilityFilter = Depends(get_visibility_filter)) -> LegendResponse:
    colors = []
    for color in ALL_COLORS:
        style = style_for(color)
        colors.append(
            LegendColorModel(
                color=color.value,
                hex=style.hex,
                background=style.background,
                text=style.text,
                enabled=visibility.is_enabled(color),
            )
        )
    return LegendResponse(colors=colors, outcomes=[tag.value for tag in OutcomeTag])


@router.get("/map/defaults", response_model=MapDefaultsModel, status_code=status.HTTP_200_OK)
def get_map_defaults() -> MapDefaultsModel:
    return MapDefaultsModel(
        lat=settings.default_latitude,
        lon=settings.default_longitude,
        zoom=settings.default_zoom,
    )
