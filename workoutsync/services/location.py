"""Service de localisation: position de l'appareil, géocodage inverse et cache expirant.

Flux de `get_location_with_fallback` (une tentative):
1. capacité de géolocalisation absente -> erreur "not available";
2. permission explicitement refusée -> erreur "access denied" (`prompt` est tenté quand même);
3. cache valide (moins de 24h, coordonnées dans les bornes) -> résultat `source="cache"`, sans réseau;
4. sinon position fraîche (timeout 10 s, ancienneté max 5 min), géocodage inverse, écriture du
   cache (écrasement) -> résultat `source="gps"`.

Le résultat est toujours une enveloppe `LocationResult` (succès ou erreur), jamais une exception.

`LocationDetector` porte la machine d'état IDLE -> LOADING -> SUCCESS | ERROR côté appelant et
attribue à chaque détection un jeton croissant: une résolution tardive d'une tentative dépassée est
ignorée.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal, Protocol

import structlog
from pydantic import ValidationError

from workoutsync.app.metrics import LOCATION_LOOKUPS, LOCATION_STALE_DISCARDED
from workoutsync.domain.entities import CachedLocation, LocationCoordinates, LocationSource
from workoutsync.domain.errors import ErrorInfo, handle_location_error
from workoutsync.domain.validation import validate_coordinates
from workoutsync.infra.kv_store import KeyValueStore

LOCATION_CACHE_KEY = "workoutsync_cached_location"
CACHE_DURATION_S = 24 * 60 * 60
GEOLOCATION_TIMEOUT_S = 10.0
GEOLOCATION_MAX_AGE_S = 5 * 60
EARTH_RADIUS_KM = 6371.0

MSG_NOT_AVAILABLE = "Location services are not available on this device"
MSG_ACCESS_DENIED = (
    "Location access has been denied. Please enable location services in your browser settings."
)
MSG_UNEXPECTED = "An unexpected error occurred while getting your location."

PermissionState = Literal["granted", "denied", "prompt"]

log = structlog.get_logger(__name__)


class GeolocationErrorKind(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


# Noms d'erreur exposés par les navigateurs, reconnus par handle_location_error
_ERROR_NAMES = {
    GeolocationErrorKind.PERMISSION_DENIED: "NotAllowedError",
    GeolocationErrorKind.POSITION_UNAVAILABLE: "PositionUnavailableError",
    GeolocationErrorKind.TIMEOUT: "TimeoutError",
    GeolocationErrorKind.UNKNOWN: "GeolocationError",
}


class GeolocationError(Exception):
    """Échec d'obtention de la position de l'appareil."""

    def __init__(self, kind: GeolocationErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value.replace("_", " ").lower())
        self.kind = kind
        self.name = _ERROR_NAMES[kind]
        self.message = str(self)


class DeviceLocator(Protocol):
    """Accès à la géolocalisation de l'appareil."""

    def is_available(self) -> bool: ...

    async def permission_state(self) -> PermissionState: ...

    async def current_position(
        self, *, timeout_s: float, maximum_age_s: float, high_accuracy: bool
    ) -> LocationCoordinates: ...


class Geocoder(Protocol):
    async def reverse_geocode(self, lat: float, lon: float) -> str: ...


class ReportedPositionLocator:
    """Locator alimenté par la position que le navigateur a transmise avec la requête.

    `reported_at` (epoch ms) permet d'appliquer l'ancienneté maximale; un rapport sans position
    équivaut à "position indisponible", sauf si le navigateur a transmis une erreur explicite.
    """

    def __init__(
        self,
        coordinates: LocationCoordinates | None = None,
        permission: PermissionState = "prompt",
        error: GeolocationErrorKind | None = None,
        reported_at: int | None = None,
        available: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.coordinates = coordinates
        self.permission = permission
        self.error = error
        self.reported_at = reported_at
        self.available = available
        self._clock = clock

    def is_available(self) -> bool:
        return self.available

    async def permission_state(self) -> PermissionState:
        return self.permission

    async def current_position(
        self, *, timeout_s: float, maximum_age_s: float, high_accuracy: bool
    ) -> LocationCoordinates:
        if self.error is not None:
            raise GeolocationError(self.error)
        if self.coordinates is None:
            raise GeolocationError(
                GeolocationErrorKind.POSITION_UNAVAILABLE, "No position reported by the device"
            )
        if self.reported_at is not None:
            age_s = self._clock() - self.reported_at / 1000
            if age_s > maximum_age_s:
                raise GeolocationError(
                    GeolocationErrorKind.POSITION_UNAVAILABLE, "Reported position is too old"
                )
        return self.coordinates


@dataclass(frozen=True)
class LocationFix:
    coordinates: LocationCoordinates
    name: str
    source: LocationSource


@dataclass(frozen=True)
class LocationResult:
    """Enveloppe uniforme succès/erreur d'une détection."""

    success: bool
    data: LocationFix | None = None
    error: str | None = None
    error_info: ErrorInfo | None = None
    attempt: int = 0


def get_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance orthodromique en kilomètres (haversine, rayon terrestre 6371 km)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


class LocationService:
    """Détection de position avec cache transparent.

    Dépendances:
    - store: stockage clé-valeur (une clé, une entrée `CachedLocation` au plus);
    - geocoder: géocodage inverse (`GeoClient`);
    - locator: accès à la position de l'appareil.
    """

    def __init__(
        self,
        store: KeyValueStore,
        geocoder: Geocoder,
        locator: DeviceLocator,
        cache_key: str = LOCATION_CACHE_KEY,
        cache_ttl_s: float = CACHE_DURATION_S,
        timeout_s: float = GEOLOCATION_TIMEOUT_S,
        max_age_s: float = GEOLOCATION_MAX_AGE_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.geocoder = geocoder
        self.locator = locator
        self.cache_key = cache_key
        self.cache_ttl_ms = int(cache_ttl_s * 1000)
        self.timeout_s = timeout_s
        self.max_age_s = max_age_s
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def is_location_available(self) -> bool:
        return self.locator.is_available()

    def get_cached_location(self) -> CachedLocation | None:
        """Position en cache si fraîche et valide; une entrée expirée ou corrompue est supprimée."""
        raw = self.store.get(self.cache_key)
        if not raw:
            return None

        try:
            cached = CachedLocation.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            log.warning("location_cache_corrupted", key=self.cache_key)
            self.store.delete(self.cache_key)
            return None

        if self._now_ms() - cached.timestamp > self.cache_ttl_ms:
            self.store.delete(self.cache_key)
            return None

        return cached

    def cache_location(self, lat: float, lng: float, name: str) -> None:
        """Écrit (en écrasant) la position courante dans le cache."""
        if not validate_coordinates(lat, lng).valid or not name or not name.strip():
            log.warning("location_cache_skipped", reason="invalid coordinates or name")
            return

        entry = {
            "latitude": lat,
            "longitude": lng,
            "name": name.strip(),
            "timestamp": self._now_ms(),
        }
        self.store.set(self.cache_key, json.dumps(entry))

    def clear_cache(self) -> None:
        self.store.delete(self.cache_key)

    async def request_location_permission(self) -> PermissionState:
        """État de la permission; en cas d'échec de la requête, `prompt`."""
        try:
            return await self.locator.permission_state()
        except Exception as exc:
            log.warning("location_permission_check_failed", error=str(exc))
            return "prompt"

    async def detect_location(self) -> LocationCoordinates:
        """Position fraîche de l'appareil, bornée par le timeout de géolocalisation."""
        try:
            return await asyncio.wait_for(
                self.locator.current_position(
                    timeout_s=self.timeout_s,
                    maximum_age_s=self.max_age_s,
                    high_accuracy=True,
                ),
                timeout=self.timeout_s,
            )
        except TimeoutError as err:
            raise GeolocationError(
                GeolocationErrorKind.TIMEOUT, "Location request timed out"
            ) from err

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        return await self.geocoder.reverse_geocode(lat, lng)

    async def get_user_location(self) -> LocationFix:
        """Cache d'abord, puis position fraîche + géocodage; lève `GeolocationError`."""
        cached = self.get_cached_location()
        if cached:
            return LocationFix(
                coordinates=LocationCoordinates(
                    latitude=cached.latitude, longitude=cached.longitude
                ),
                name=cached.name,
                source="cache",
            )

        coordinates = await self.detect_location()
        name = await self.reverse_geocode(coordinates.latitude, coordinates.longitude)
        self.cache_location(coordinates.latitude, coordinates.longitude, name)
        return LocationFix(coordinates=coordinates, name=name, source="gps")

    async def get_location_with_fallback(self) -> LocationResult:
        """Détecte la position et renvoie toujours une enveloppe succès/erreur."""
        if not self.is_location_available():
            LOCATION_LOOKUPS.labels(source="none", outcome="unavailable").inc()
            return LocationResult(success=False, error=MSG_NOT_AVAILABLE)

        try:
            permission = await self.request_location_permission()
            if permission == "denied":
                LOCATION_LOOKUPS.labels(source="none", outcome="denied").inc()
                return LocationResult(success=False, error=MSG_ACCESS_DENIED)

            fix = await self.get_user_location()
        except GeolocationError as err:
            info = handle_location_error(err)
            LOCATION_LOOKUPS.labels(source="gps", outcome=err.kind.value.lower()).inc()
            return LocationResult(success=False, error=info.user_message, error_info=info)
        except Exception:
            log.exception("location_service_error")
            LOCATION_LOOKUPS.labels(source="none", outcome="error").inc()
            return LocationResult(success=False, error=MSG_UNEXPECTED)

        LOCATION_LOOKUPS.labels(source=fix.source, outcome="ok").inc()
        return LocationResult(success=True, data=fix)


class DetectionState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class LocationDetector:
    """État d'une détection côté appelant, protégé contre les résolutions périmées."""

    def __init__(self, service: LocationService) -> None:
        self._service = service
        self._tokens = itertools.count(1)
        self._latest = 0
        self.state = DetectionState.IDLE
        self.result: LocationResult | None = None

    @property
    def latest_attempt(self) -> int:
        return self._latest

    async def detect(self) -> LocationResult | None:
        """Lance une détection; renvoie None si une détection plus récente a été lancée entre-temps."""
        attempt = next(self._tokens)
        self._latest = attempt
        self.state = DetectionState.LOADING

        result = replace(await self._service.get_location_with_fallback(), attempt=attempt)
        if attempt != self._latest:
            LOCATION_STALE_DISCARDED.inc()
            log.info("location_result_discarded", attempt=attempt, latest=self._latest)
            return None

        self.result = result
        self.state = DetectionState.SUCCESS if result.success else DetectionState.ERROR
        return result
