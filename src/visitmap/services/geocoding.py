"""HTTP client for forward and reverse geocoding against Nominatim."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Protocol

import httpx

from ..config import settings
from ..errors import GeocodeError
from ..models.domain import AddressFields, Coordinates

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def forward(self, address_text: str) -> Coordinates | None: ...

    def reverse(self, lat: float, lon: float) -> AddressFields | None: ...


class NominatimGeocoder:
    """Nominatim client. ``None`` means the service answered but found nothing."""

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        min_interval_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("Geocoder base URL is not configured.")
        self.user_agent = user_agent or settings.geocoder_user_agent
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.geocoder_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.geocoder_backoff_seconds
        self.min_interval_seconds = (
            min_interval_seconds if min_interval_seconds is not None else settings.geocoder_min_interval_seconds
        )
        self._transport = transport
        self._throttle_lock = threading.Lock()
        self._last_request_at = 0.0

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    def _throttle(self) -> None:
        with self._throttle_lock:
            elapsed = time.monotonic() - self._last_request_at
            if elapsed < self.min_interval_seconds:
                time.sleep(self.min_interval_seconds - elapsed)
            self._last_request_at = time.monotonic()

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}/{path}"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                self._throttle()
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    # Client errors will not improve on retry
                    if e.response.status_code < 500 and e.response.status_code != 429:
                        raise GeocodeError(
                            f"Geocoder rejected request ({e.response.status_code}): {url}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise GeocodeError(
                            f"Geocoder failed after {self.max_retries} retries ({e.response.status_code})"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Geocoder request timed out after {self.max_retries} attempts: {e}")
                        raise GeocodeError(f"Geocoder timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Geocoder timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise GeocodeError(f"Failed to connect to geocoder at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Geocoder network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise GeocodeError(f"Geocoder returned invalid JSON: {e}") from e
        finally:
            client.close()

    def forward(self, address_text: str) -> Coordinates | None:
        """Look up coordinates for a formatted address string."""
        data = self._get_json("search", {"q": address_text, "format": "json", "limit": 1})
        if not isinstance(data, list) or not data:
            logger.info(f"Address not found: {address_text}")
            return None
        try:
            return Coordinates(lat=float(data[0]["lat"]), lon=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeError(f"Unexpected geocoder payload for '{address_text}': {e}") from e

    def reverse(self, lat: float, lon: float) -> AddressFields | None:
        """Look up the postal address nearest to a point. Missing parts are empty strings."""
        data = self._get_json("reverse", {"lat": lat, "lon": lon, "format": "json"})
        if not isinstance(data, dict) or data.get("error") or not data.get("address"):
            logger.info(f"No address found at ({lat}, {lon})")
            return None
        address = data["address"]
        return AddressFields(
            house_number=address.get("house_number", ""),
            street_name=address.get("road", ""),
            city=address.get("city") or address.get("town") or address.get("village", ""),
            state=address.get("state", ""),
            zip=address.get("postcode", ""),
        )


def check_health(geocoder: NominatimGeocoder | None = None) -> bool:
    """Check geocoder reachability with a cheap reverse lookup."""
    try:
        client = geocoder or NominatimGeocoder(max_retries=0)
        client.reverse(settings.default_latitude, settings.default_longitude)
        return True
    except (GeocodeError, ValueError):
        return False
