"""Tests pour les routes de profil et de localisation."""

from __future__ import annotations

from workoutsync.core.container import container
from workoutsync.core.http_constants import HTTP_BAD_REQUEST, HTTP_OK, HTTP_UNAUTHORIZED
from workoutsync.services.location import LOCATION_CACHE_KEY


def test_profile_requires_session(client):
    """Teste que le profil d'un visiteur anonyme renvoie 401 avec l'enveloppe."""
    r = client.get("/api/profile")
    assert r.status_code == HTTP_UNAUTHORIZED
    assert r.json()["code"] == "NOT_AUTHENTICATED"
    assert r.json()["details"]["error_type"] == "AUTHENTICATION"


def test_get_profile(registered):
    """Teste la lecture du profil de l'utilisateur connecté."""
    r = registered.get("/api/profile")
    assert r.status_code == HTTP_OK
    assert r.json()["name"] == "Jane Runner"
    assert r.json()["activity_preferences"] == []


def test_partial_update(registered):
    """Teste la mise à jour partielle des préférences et de l'allure."""
    r = registered.patch(
        "/api/profile",
        json={"activity_preferences": ["run", "walk"], "pace_range_min": 8, "pace_range_max": 10.5},
    )
    assert r.status_code == HTTP_OK
    body = r.json()
    assert body["activity_preferences"] == ["run", "walk"]
    assert (body["pace_range_min"], body["pace_range_max"]) == (8, 10.5)
    assert body["name"] == "Jane Runner"

    # une seule borne fournie: contrôlée contre la borne enregistrée
    r = registered.patch("/api/profile", json={"pace_range_min": 11})
    assert r.status_code == HTTP_BAD_REQUEST
    assert r.json()["details"]["fields"]["pace_range"] == (
        "Minimum pace must be less than maximum pace"
    )


def test_invalid_update_writes_nothing(registered):
    """Teste qu'aucun champ n'est écrit si l'un d'eux est invalide."""
    r = registered.patch("/api/profile", json={"name": "Janet", "activity_preferences": ["swim"]})
    assert r.status_code == HTTP_BAD_REQUEST
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert registered.get("/api/profile").json()["name"] == "Jane Runner"


def test_email_can_be_cleared(registered):
    """Teste qu'un email vide supprime l'email enregistré."""
    registered.patch("/api/profile", json={"email": "jane@example.com"})
    r = registered.patch("/api/profile", json={"email": ""})
    assert r.status_code == HTTP_OK
    assert r.json()["email"] is None


def test_home_location(registered):
    """Teste l'enregistrement de la position de référence et le rejet des bornes."""
    r = registered.patch(
        "/api/profile/location",
        json={"latitude": 35.99, "longitude": -78.9, "location_name": "Durham area"},
    )
    assert r.status_code == HTTP_OK
    assert r.json()["home_location_coords"] == {"latitude": 35.99, "longitude": -78.9}
    assert r.json()["home_location_name"] == "Durham area"

    bad = registered.patch(
        "/api/profile/location",
        json={"latitude": 100, "longitude": 0, "location_name": "Nowhere"},
    )
    assert bad.status_code == HTTP_BAD_REQUEST
    assert bad.json()["code"] == "INVALID_COORDINATES"

    unnamed = registered.patch(
        "/api/profile/location", json={"latitude": 1, "longitude": 1, "location_name": " "}
    )
    assert unnamed.status_code == HTTP_BAD_REQUEST


def test_detect_location_uses_reported_position_then_cache(registered):
    """Teste la détection via la position rapportée puis le cache propre à l'utilisateur."""
    payload = {"permission": "granted", "coordinates": {"latitude": 35.99, "longitude": -78.9}}
    first = registered.post("/api/location/detect", json=payload)
    assert first.status_code == HTTP_OK
    assert first.json()["success"] is True
    assert first.json()["source"] == "gps"
    assert first.json()["name"] == "Durham area"

    second = registered.post("/api/location/detect", json={"permission": "granted"})
    assert second.json()["source"] == "cache"
    assert container.geo_client.calls == [(35.99, -78.9)]

    user_id = registered.get("/api/profile").json()["id"]
    assert container.location_store.get(f"{LOCATION_CACHE_KEY}:{user_id}") is not None

    assert registered.delete("/api/location/cache").status_code == HTTP_OK
    third = registered.post("/api/location/detect", json={"permission": "granted"})
    assert third.json()["success"] is False


def test_detect_location_reports_errors(registered):
    """Teste l'enveloppe d'erreur pour un refus et une erreur rapportée par le navigateur."""
    denied = registered.post("/api/location/detect", json={"permission": "denied"})
    assert denied.status_code == HTTP_OK
    assert denied.json()["success"] is False
    assert "denied" in denied.json()["error"]

    timeout = registered.post(
        "/api/location/detect", json={"permission": "prompt", "error": "TIMEOUT"}
    )
    assert timeout.json()["error"] == "Location request timed out."
    assert timeout.json()["retryable"] is True


def test_distance(client):
    """Teste le calcul de distance et le rejet des coordonnées hors bornes."""
    r = client.get("/api/location/distance", params={"lat1": 0, "lng1": 0, "lat2": 0, "lng2": 0})
    assert r.status_code == HTTP_OK
    assert r.json()["distance_km"] == 0

    bad = client.get("/api/location/distance", params={"lat1": 91, "lng1": 0, "lat2": 0, "lng2": 0})
    assert bad.status_code == HTTP_BAD_REQUEST
