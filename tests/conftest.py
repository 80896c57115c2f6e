"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `workoutsync` en ajoutant la racine du projet au
sys.path, et remet le conteneur global sur des dépôts mémoire vierges avant chaque test.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from workoutsync...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tests.fakes import FakeGeocoder  # noqa: E402
from workoutsync.core.container import container  # noqa: E402
from workoutsync.infra.kv_store import InMemoryKeyValueStore  # noqa: E402
from workoutsync.infra.repositories import (  # noqa: E402
    InMemorySubscriptionRepo,
    InMemoryUserRepo,
)


@pytest.fixture(autouse=True)
def memory_container(monkeypatch):
    """Remplace les dépendances du conteneur par des implémentations mémoire isolées."""
    monkeypatch.setattr(container, "user_repo", InMemoryUserRepo())
    monkeypatch.setattr(container, "subscription_repo", InMemorySubscriptionRepo())
    monkeypatch.setattr(container, "location_store", InMemoryKeyValueStore())
    monkeypatch.setattr(container, "geo_client", FakeGeocoder("Durham area"))
    monkeypatch.setattr(container, "storage_backend", "memory")
    yield container


@pytest.fixture
def client():
    """Client de test sur l'application complète (middlewares compris)."""
    from fastapi.testclient import TestClient

    from workoutsync.app.main import app

    return TestClient(app, follow_redirects=False)


@pytest.fixture
def registered(client):
    """Inscrit un utilisateur et renvoie le client connecté (cookie de session posé)."""
    r = client.post(
        "/api/auth/register",
        json={
            "phone_number": "(919) 555-1234",
            "password": "secret123",
            "name": "Jane Runner",
        },
    )
    assert r.status_code == 201, r.text
    return client
