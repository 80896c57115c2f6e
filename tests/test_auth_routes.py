"""Tests pour les routes d'authentification.

Ce module teste l'inscription (validation, normalisation du téléphone, doublons), la connexion et la
déconnexion, ainsi que l'enveloppe d'erreur renvoyée.
"""

from __future__ import annotations

from workoutsync.core.container import container
from workoutsync.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_CREATED,
    HTTP_OK,
    HTTP_UNAUTHORIZED,
    HTTP_UNPROCESSABLE_ENTITY,
)
from workoutsync.domain.auth import verify_password

PAYLOAD = {"phone_number": "(919) 555-1234", "password": "secret123", "name": "Jane Runner"}


def test_register_normalizes_phone_and_hashes_password(client):
    """Teste que l'inscription stocke un numéro E.164 et un hash salé."""
    r = client.post("/api/auth/register", json={**PAYLOAD, "email": "jane@example.com"})
    assert r.status_code == HTTP_CREATED
    user = r.json()["user"]
    assert user["phone_number"] == "+19195551234"
    assert "password_hash" not in user

    stored = container.user_repo.get_by_phone("+19195551234")
    assert stored["password_hash"] != "secret123"
    assert verify_password("secret123", stored["password_hash"])
    assert container.settings.SESSION_COOKIE_NAME in r.cookies


def test_register_duplicate_phone_409(client):
    """Teste que l'inscription en double retourne une erreur 409."""
    assert client.post("/api/auth/register", json=PAYLOAD).status_code == HTTP_CREATED
    r = client.post("/api/auth/register", json={**PAYLOAD, "phone_number": "+19195551234"})
    assert r.status_code == HTTP_CONFLICT
    body = r.json()
    assert body["code"] == "PHONE_ALREADY_EXISTS"
    assert body["message"] == "Phone number already registered"
    assert body["details"]["error_type"] == "PHONE"
    assert body["details"]["retryable"] is False


def test_register_validation_errors_are_listed(client):
    """Teste que chaque champ invalide est listé avec son message."""
    r = client.post(
        "/api/auth/register",
        json={"phone_number": "919", "password": "abc", "name": "J", "email": "bad"},
    )
    assert r.status_code == HTTP_BAD_REQUEST
    body = r.json()
    assert body["code"] == "INVALID_PHONE"
    assert set(body["details"]["fields"]) == {"phone_number", "password", "name", "email"}
    assert body["trace_id"]


def test_malformed_body_uses_envelope(client):
    """Teste qu'un corps non conforme renvoie l'enveloppe standard (422)."""
    r = client.post("/api/auth/register", json={"phone_number": 123})
    assert r.status_code == HTTP_UNPROCESSABLE_ENTITY
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert "phone_number" in r.json()["details"]["fields"]


def test_login_and_logout(client):
    """Teste la connexion avec la saisie affichée puis la déconnexion."""
    client.post("/api/auth/register", json=PAYLOAD)
    client.cookies.clear()

    r = client.post("/api/auth/login", json={"phone_number": "919-555-1234", "password": "secret123"})
    assert r.status_code == HTTP_OK
    assert r.json()["user"]["name"] == "Jane Runner"
    assert client.get("/api/profile").status_code == HTTP_OK

    assert client.post("/api/auth/logout").status_code == HTTP_OK
    assert client.get("/api/profile").status_code == HTTP_UNAUTHORIZED


def test_invalid_login_401(client):
    """Teste qu'un mauvais mot de passe ou un numéro inconnu donnent le même 401."""
    client.post("/api/auth/register", json=PAYLOAD)
    wrong = client.post(
        "/api/auth/login", json={"phone_number": "+19195551234", "password": "wrong123"}
    )
    unknown = client.post(
        "/api/auth/login", json={"phone_number": "+18005550000", "password": "secret123"}
    )
    for r in (wrong, unknown):
        assert r.status_code == HTTP_UNAUTHORIZED
        assert r.json()["message"] == "Invalid phone number or password"
        assert r.json()["details"]["error_type"] == "AUTHENTICATION"
