"""Tests pour l'endpoint de santé et l'exposition des métriques."""

from fastapi.testclient import TestClient

from workoutsync.app.main import app
from workoutsync.core.http_constants import HTTP_OK


def test_health():
    """Teste que l'endpoint de santé retourne un statut OK."""
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == HTTP_OK
    assert r.json()["status"] == "ok"
    assert r.json()["storage"] == "memory"


def test_health_propagates_request_id():
    """Teste que l'identifiant de requête reçu est renvoyé dans la réponse."""
    client = TestClient(app)
    r = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert r.headers["X-Request-ID"] == "req-42"


def test_metrics_endpoint_exposes_prometheus_text():
    """Teste que /metrics expose les compteurs HTTP au format Prometheus."""
    client = TestClient(app)
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == HTTP_OK
    assert "http_requests_total" in r.text
