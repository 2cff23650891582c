"""
Reverse-geocoding client.

Turns a chit's (latitude, longitude) into a human-readable place name using
a Google Geocoding-compatible JSON endpoint:

  GET {geocoding_url}?latlng={lat},{lon}&key={api_key}
  → { "status": "OK", "results": [{ "formatted_address": "..." }, ...] }

The place name is cosmetic: nothing stored depends on it, so any failure
degrades to "Location unavailable" instead of failing the request.
"""
import logging
from typing import Optional

import httpx

from chitter.config import settings
from chitter.telemetry import GEOCODING_ERRORS_TOTAL

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown location"
LOCATION_UNAVAILABLE = "Location unavailable"


class GeocodingClient:
    def __init__(self) -> None:
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._http = httpx.AsyncClient(
            timeout=settings.geocoding_timeout, transport=transport
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def reverse_geocode(self, latitude: float, longitude: float) -> str:
        if self._http is None:
            logger.warning("Geocoding client not started")
            GEOCODING_ERRORS_TOTAL.inc()
            return LOCATION_UNAVAILABLE

        params = {"latlng": f"{latitude},{longitude}"}
        if settings.geocoding_api_key:
            params["key"] = settings.geocoding_api_key

        try:
            resp = await self._http.get(settings.geocoding_url, params=params)
            resp.raise_for_status()
            results = resp.json().get("results") or []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Reverse geocoding failed for (%s, %s): %s", latitude, longitude, exc
            )
            GEOCODING_ERRORS_TOTAL.inc()
            return LOCATION_UNAVAILABLE

        if not results:
            return UNKNOWN_LOCATION
        return results[0].get("formatted_address") or UNKNOWN_LOCATION


# Singleton
geocoding_client = GeocodingClient()
