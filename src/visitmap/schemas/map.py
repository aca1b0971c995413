"""Map, pin and legend API schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class PinHoverModel(BaseModel):
    name: str
    line1: str
    line2: str
    lastResult: str


class PinHistoryEntryModel(BaseModel):
    timestamp: int
    visitedAt: str
    spokeWith: str
    results: List[str]
    visitedBy: str
    comment: str
    background: str
    text: str


class PinModel(BaseModel):
    id: str
    lat: float
    lon: float
    color: str
    hex: str
    visible: bool
    hover: PinHoverModel
    history: List[PinHistoryEntryModel]


class FilterStateModel(BaseModel):
    enabled: List[str]
    filtering: bool


class LegendColorModel(BaseModel):
    color: str
    hex: str
    background: str
    text: str
    enabled: bool


class LegendResponse(BaseModel):
    colors: List[LegendColorModel]
    outcomes: List[str]


class MapDefaultsModel(BaseModel):
    lat: float
    lon: float
    zoom: int
