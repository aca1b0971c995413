"""Address and visit-history endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...errors import GeocodeError, NotFoundError, StoreError, ValidationError
from ...models.domain import AddressFields, Coordinates
from ...schemas.addresses import (
    AddressCreateRequest,
    AddressModel,
    CurrentVisitModel,
    LoadSummaryModel,
    SuggestionsResponse,
    VisitEntryRequest,
)
from ...services.classifier import classify
from ...services.registry import AddressRegistry
from ..dependencies import get_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/addresses", tags=["addresses"])


def _store_unavailable(exc: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Could not save to the database: {exc}. Please try again.",
    )


@router.get("", response_model=List[AddressModel], status_code=status.HTTP_200_OK)
def list_addresses(registry: AddressRegistry = Depends(get_registry)) -> List[AddressModel]:
    return [AddressModel.from_record(record) for record in registry.list_all()]


@router.get("/suggestions", response_model=SuggestionsResponse, status_code=status.HTTP_200_OK)
def get_suggestions(
    field: str = Query(..., description="streetName, city, state or zip"),
    q: str = Query(default="", description="Text typed so far"),
    limit: int | None = Query(default=None, ge=1, le=100),
    registry: AddressRegistry = Depends(get_registry),
) -> SuggestionsResponse:
    try:
        suggestions = registry.suggest(field, q, limit=limit)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SuggestionsResponse(field=field, query=q, suggestions=suggestions)


@router.post("/reload", response_model=LoadSummaryModel, status_code=status.HTTP_200_OK)
def reload_addresses(
    backfill: bool | None = Query(default=None, description="Geocode records missing coordinates"),
    registry: AddressRegistry = Depends(get_registry),
) -> LoadSummaryModel:
    try:
        summary = registry.load(backfill=backfill)
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    return LoadSummaryModel(
        total=summary.total,
        migrated=summary.migrated,
        backfilled=summary.backfilled,
        backfillFailed=summary.backfill_failed,
    )


@router.get("/{address_id}", response_model=AddressModel, status_code=status.HTTP_200_OK)
def get_address(address_id: str, registry: AddressRegistry = Depends(get_registry)) -> AddressModel:
    record = registry.find_by_id(address_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Address '{address_id}' not found.")
    return AddressModel.from_record(record)


@router.post("", response_model=AddressModel, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreateRequest,
    registry: AddressRegistry = Depends(get_registry),
) -> AddressModel:
    fields = AddressFields(
        house_number=payload.houseNumber,
        street_name=payload.streetName,
        city=payload.city,
        state=payload.state,
        zip=payload.zip,
    )
    coordinates = (
        Coordinates(lat=payload.coordinates.lat, lon=payload.coordinates.lon)
        if payload.coordinates
        else None
    )
    try:
        record = registry.add(fields, payload.to_entry(), coordinates=coordinates)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except GeocodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Could not find address. {exc}",
        ) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    except Exception as exc:
        logger.exception(f"Error saving address: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save address: {str(exc)}",
        ) from exc
    return AddressModel.from_record(record)


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_address(address_id: str, registry: AddressRegistry = Depends(get_registry)) -> Response:
    try:
        registry.remove(address_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{address_id}/history", response_model=CurrentVisitModel, status_code=status.HTTP_200_OK)
def add_history_entry(
    address_id: str,
    payload: VisitEntryRequest,
    registry: AddressRegistry = Depends(get_registry),
) -> CurrentVisitModel:
    try:
        current = registry.add_history_entry(address_id, payload.to_entry())
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    return CurrentVisitModel(
        results=list(current.outcomes),
        firstName=current.first_name or "",
        lastName=current.last_name or "",
        visitedBy=current.visited_by,
        comment=current.comment or "",
        color=classify(current.outcomes).value,
    )
