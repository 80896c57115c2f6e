"""Clients HTTP externes (géocodage inverse).

Objectif du module
------------------
- Encapsuler les appels réseau vers des services tiers.
- `GeoClient` interroge un service compatible Nominatim pour obtenir un libellé de zone
  ("Durham area") à partir de coordonnées.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import structlog

from workoutsync.app.metrics import GEOCODE_LATENCY, GEOCODE_REQUESTS
from workoutsync.domain.validation import validate_coordinates

UNKNOWN_LOCATION = "Unknown location"
INVALID_LOCATION = "Invalid location"

# Ordre de préférence des composantes d'adresse Nominatim
ADDRESS_FIELDS = (
    "city",
    "town",
    "village",
    "municipality",
    "county",
    "state",
    "country",
    "postcode",
)


def format_location_name(address: dict[str, Any]) -> str:
    """Retourne `"<zone> area"` pour la première composante non vide, sinon "Unknown location"."""
    for field in ADDRESS_FIELDS:
        value = address.get(field)
        if value is not None and str(value).strip():
            return f"{str(value).strip()} area"
    return UNKNOWN_LOCATION


class GeoClient:
    """Client de géocodage inverse.

    Le client n'échoue jamais: toute erreur réseau, HTTP ou de format renvoie "Unknown location"
    (journalisé), des coordonnées hors bornes renvoient "Invalid location" sans appel réseau.
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = httpx.Timeout(timeout_s)
        self._transport = transport
        self._log = structlog.get_logger(__name__).bind(component="geo_client")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def reverse_geocode(self, lat: float, lon: float) -> str:
        """Retourne le libellé de zone pour des coordonnées données."""
        if not validate_coordinates(lat, lon).valid:
            return INVALID_LOCATION

        params = {
            "lat": str(lat),
            "lon": str(lon),
            "format": "json",
            "zoom": "10",
            "addressdetails": "1",
        }
        start = time.perf_counter()
        try:
            async with self._client() as client:
                resp = await client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            GEOCODE_REQUESTS.labels(outcome="error").inc()
            self._log.warning("reverse_geocode_failed", error=str(exc), lat=lat, lon=lon)
            return UNKNOWN_LOCATION
        finally:
            GEOCODE_LATENCY.observe(time.perf_counter() - start)

        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, dict):
            GEOCODE_REQUESTS.labels(outcome="empty").inc()
            return UNKNOWN_LOCATION

        GEOCODE_REQUESTS.labels(outcome="ok").inc()
        return format_location_name(address)
