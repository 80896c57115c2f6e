"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus de WorkoutSync (HTTP, classification des erreurs,
localisation, géocodage, garde de session) et expose `/metrics`.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Classification des erreurs (apigw)
ERRORS_CLASSIFIED = Counter(
    "errors_classified_total",
    "Errors classified into the user-facing taxonomy",
    ["type"],
)

# Localisation
LOCATION_LOOKUPS = Counter(
    "location_lookups_total",
    "Location detection attempts",
    ["source", "outcome"],
)
LOCATION_STALE_DISCARDED = Counter(
    "location_stale_discarded_total",
    "Location detection results discarded because a newer attempt was started",
)
GEOCODE_REQUESTS = Counter(
    "geocode_requests_total",
    "Reverse geocoding calls",
    ["outcome"],
)
GEOCODE_LATENCY = Histogram(
    "geocode_latency_seconds",
    "Latency of reverse geocoding calls",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

# Garde de session
SESSION_REDIRECTS = Counter(
    "session_redirects_total",
    "Redirects issued by the session gate",
    ["reason"],
)


# Routes à faible cardinalité: on ne garde que le premier segment du chemin
def normalize_route(path: str) -> str:
    """Réduit un chemin à son préfixe (`/api/profile/location` -> `/api/profile`)."""
    parts = [p for p in path.split("/") if p]
    if not parts:
        return "/"
    if parts[0] == "api" and len(parts) > 1:
        return f"/api/{parts[1]}"
    return f"/{parts[0]}"


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte le comptage des requêtes et la latence par route normalisée.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Traite une requête HTTP et collecte les métriques.

        Args:
            request: Requête HTTP entrante.
            call_next: Fonction pour appeler le middleware suivant.

        Returns:
            Response: Réponse HTTP avec métriques collectées.
        """
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = normalize_route(request.url.path)
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
