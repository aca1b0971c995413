"""Process-wide collaborators shared by the API routes.

Each getter is cached so the registry, filter and geocoder are built once per
process; tests replace them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from ..errors import StoreError
from ..persistence.store import get_document_store
from ..services.geocoding import NominatimGeocoder
from ..services.registry import AddressRegistry
from ..services.visibility import VisibilityFilter

logger = logging.getLogger(__name__)


@lru_cache()
def get_geocoder() -> NominatimGeocoder:
    return NominatimGeocoder()


@lru_cache()
def get_registry() -> AddressRegistry:
    registry = AddressRegistry(store=get_document_store(), geocoder=get_geocoder())
    try:
        registry.load()
    except StoreError as exc:
        logger.error(f"Error loading address data: {exc}")
    return registry


@lru_cache()
def get_visibility_filter() -> VisibilityFilter:
    return VisibilityFilter()
