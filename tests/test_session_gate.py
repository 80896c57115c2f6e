"""Tests pour la garde de session (table de routage et redirections)."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from workoutsync.core.container import container
from workoutsync.core.http_constants import HTTP_OK, HTTP_TEMPORARY_REDIRECT
from workoutsync.domain.auth import create_access_token
from workoutsync.domain.entities import SessionContext, UserProfile
from workoutsync.middlewares.session_gate import (
    SessionGateMiddleware,
    SessionResolver,
    gate_decision,
    is_excluded,
    is_protected,
    is_public_only,
    login_redirect_url,
)

ANON = SessionContext()
USER = SessionContext(user=UserProfile(id="u1", phone_number="+19195551234", name="Jane"))


class StubResolver:
    def __init__(self, session: SessionContext) -> None:
        self.session = session
        self.calls = 0

    async def resolve(self, request: Request) -> SessionContext:
        self.calls += 1
        return self.session


def make_app(session: SessionContext) -> tuple[TestClient, StubResolver]:
    resolver = StubResolver(session)
    app = FastAPI()
    app.add_middleware(SessionGateMiddleware, resolver=resolver)

    @app.get("/{path:path}")
    def echo(path: str, request: Request):
        return {"path": path, "authenticated": request.state.session.is_authenticated}

    return TestClient(app, follow_redirects=False), resolver


def test_route_matching_is_segment_bounded():
    """Teste qu'un préfixe ne correspond qu'à lui-même ou à ses sous-chemins."""
    assert is_protected("/profile")
    assert is_protected("/profile/edit")
    assert not is_protected("/profile-setup")
    assert is_public_only("/profile-setup")
    assert not is_protected("/feedback")
    assert is_excluded("/api/profile")
    assert is_excluded("/favicon.ico")
    assert not is_excluded("/apiary")


@pytest.mark.parametrize(
    ("path", "session", "expected"),
    [
        ("/", ANON, "/login"),
        ("/", USER, "/feed"),
        ("/profile", ANON, "/login?redirect=%2Fprofile"),
        ("/workout/42", ANON, "/login?redirect=%2Fworkout%2F42"),
        ("/profile", USER, None),
        ("/login", USER, "/feed"),
        ("/register", USER, "/feed"),
        ("/login", ANON, None),
        ("/about", ANON, None),
    ],
)
def test_gate_decision(path, session, expected):
    """Teste la cible de redirection pour chaque groupe de routes."""
    assert gate_decision(path, session) == expected


def test_login_redirect_url_encodes_path():
    """Teste l'encodage du chemin d'origine dans le paramètre redirect."""
    assert login_redirect_url("/profile") == "/login?redirect=%2Fprofile"


def test_anonymous_protected_request_redirects_to_login():
    """Teste qu'un visiteur anonyme sur /profile est redirigé vers la connexion."""
    client, resolver = make_app(ANON)
    r = client.get("/profile")
    assert r.status_code == HTTP_TEMPORARY_REDIRECT
    assert r.headers["location"] == "/login?redirect=%2Fprofile"
    assert resolver.calls == 1


def test_authenticated_login_request_redirects_to_feed():
    """Teste qu'un utilisateur connecté sur /login est renvoyé vers /feed."""
    client, _ = make_app(USER)
    r = client.get("/login")
    assert r.status_code == HTTP_TEMPORARY_REDIRECT
    assert r.headers["location"] == "/feed"


def test_pass_through_exposes_session_to_handlers():
    """Teste que la session résolue est posée sur la requête pour les handlers."""
    client, _ = make_app(USER)
    r = client.get("/profile")
    assert r.status_code == HTTP_OK
    assert r.json() == {"path": "profile", "authenticated": True}


def test_session_is_resolved_on_every_request():
    """Teste que la session n'est jamais mise en cache entre deux requêtes."""
    client, resolver = make_app(ANON)
    client.get("/about")
    client.get("/about")
    assert resolver.calls == 2


def test_api_paths_are_not_redirected():
    """Teste que les chemins d'API passent même pour un visiteur anonyme."""
    client, _ = make_app(ANON)
    r = client.get("/api/profile")
    assert r.status_code == HTTP_OK


@pytest.mark.asyncio
async def test_resolver_reads_signed_cookie():
    """Teste la résolution d'un cookie valide, invalide ou d'un utilisateur inconnu."""
    settings = container.settings
    container.user_repo.save({"id": "u1", "phone_number": "+19195551234", "name": "Jane"})
    token = create_access_token(
        settings.JWT_SECRET, settings.JWT_ALG, 5, {"sub": "u1", "phone_number": "+19195551234"}
    )
    resolver = SessionResolver()

    def request_with(cookie: str | None) -> Request:
        headers = []
        if cookie is not None:
            headers.append((b"cookie", f"{settings.SESSION_COOKIE_NAME}={cookie}".encode()))
        return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})

    session = await resolver.resolve(request_with(token))
    assert session.is_authenticated
    assert session.user.name == "Jane"

    assert not (await resolver.resolve(request_with("garbage"))).is_authenticated
    assert not (await resolver.resolve(request_with(None))).is_authenticated

    ghost = create_access_token(
        settings.JWT_SECRET, settings.JWT_ALG, 5, {"sub": "ghost", "phone_number": "+1"}
    )
    assert not (await resolver.resolve(request_with(ghost))).is_authenticated


def test_full_app_root_redirect(client):
    """Teste la redirection de la racine sur l'application complète."""
    r = client.get("/")
    assert r.status_code == HTTP_TEMPORARY_REDIRECT
    assert r.headers["location"] == "/login"


def test_full_app_authenticated_flow(registered):
    """Teste les redirections d'un utilisateur connecté sur l'application complète."""
    assert registered.get("/").headers["location"] == "/feed"
    assert registered.get("/login").headers["location"] == "/feed"
    r = registered.get("/profile")
    assert r.status_code == HTTP_OK
    assert r.json()["page"] == "profile"
    assert r.json()["user"]["name"] == "Jane Runner"
