"""Geocoding endpoints used by the map's click-to-add form."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import GeocodeError
from ...schemas.addresses import AddressFieldsModel, CoordinatesModel
from ...services.geocoding import NominatimGeocoder
from ..dependencies import get_geocoder

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.get("/reverse", response_model=AddressFieldsModel, status_code=status.HTTP_200_OK)
def reverse_geocode(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
) -> AddressFieldsModel:
    try:
        fields = geocoder.reverse(lat, lon)
    except GeocodeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if fields is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    return AddressFieldsModel(**fields.to_document())


@router.get("/forward", response_model=CoordinatesModel, status_code=status.HTTP_200_OK)
def forward_geocode(
    q: str = Query(..., min_length=1, description="Formatted address"),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
) -> CoordinatesModel:
    try:
        coordinates = geocoder.forward(q)
    except GeocodeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    if coordinates is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    return CoordinatesModel(lat=coordinates.lat, lon=coordinates.lon)
