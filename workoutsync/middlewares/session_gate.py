"""Garde de session: résolution de l'utilisateur et redirections de navigation.

Table de routage statique:
- protégées (`/feed`, `/workout`, `/profile`, `/friends`): un visiteur anonyme est redirigé vers
  `/login?redirect=<chemin encodé>`;
- publiques seulement (`/login`, `/register`, `/profile-setup`): un utilisateur connecté est
  redirigé vers `/feed`;
- racine `/`: vers `/feed` ou `/login` selon la session;
- tout le reste passe.

Une route correspond à un préfixe si le chemin est égal au préfixe ou le prolonge d'un segment
(`/profile/edit` est protégé, `/profile-setup` ne l'est pas). Les chemins d'API, de métriques, de
santé et les ressources statiques ne sont pas filtrés.

La session est résolue une fois par requête (jamais mise en cache entre requêtes) et posée sur
`request.state.session` pour les handlers en aval.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import urlencode

import structlog
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp

from workoutsync.app.metrics import SESSION_REDIRECTS
from workoutsync.core.container import container
from workoutsync.core.http_constants import HTTP_TEMPORARY_REDIRECT
from workoutsync.domain.auth import decode_token
from workoutsync.domain.entities import SessionContext, UserProfile

PROTECTED_ROUTES = ("/feed", "/workout", "/profile", "/friends")
PUBLIC_ONLY_ROUTES = ("/login", "/register", "/profile-setup")
ROOT = "/"
LOGIN_PATH = "/login"
HOME_PATH = "/feed"

# Chemins jamais filtrés
EXCLUDED_PREFIXES = ("/api", "/metrics", "/health", "/static", "/icons", "/docs", "/openapi.json")
EXCLUDED_PATHS = ("/favicon.ico",)

log = structlog.get_logger(__name__)


def matches_route(path: str, prefix: str) -> bool:
    """Vrai si `path` est `prefix` ou un sous-chemin de `prefix`."""
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_excluded(path: str) -> bool:
    return path in EXCLUDED_PATHS or any(matches_route(path, p) for p in EXCLUDED_PREFIXES)


def is_protected(path: str) -> bool:
    return any(matches_route(path, r) for r in PROTECTED_ROUTES)


def is_public_only(path: str) -> bool:
    return any(matches_route(path, r) for r in PUBLIC_ONLY_ROUTES)


def login_redirect_url(path: str) -> str:
    """URL de connexion portant le chemin d'origine (`/login?redirect=%2Fprofile`)."""
    return f"{LOGIN_PATH}?{urlencode({'redirect': path})}"


def gate_decision(path: str, session: SessionContext) -> str | None:
    """Cible de redirection pour `path`, ou None si la requête doit passer."""
    if path == ROOT:
        return HOME_PATH if session.is_authenticated else LOGIN_PATH
    if is_protected(path) and not session.is_authenticated:
        return login_redirect_url(path)
    if is_public_only(path) and session.is_authenticated:
        return HOME_PATH
    return None


class SessionResolver:
    """Résout la session à partir du cookie signé et du dépôt utilisateurs.

    Les dépendances non fournies sont lues sur le conteneur au moment de l'appel.
    """

    def __init__(self, user_repo=None, settings=None) -> None:
        self._user_repo = user_repo
        self._settings = settings

    @property
    def user_repo(self):
        return self._user_repo or container.user_repo

    @property
    def settings(self):
        return self._settings or container.settings

    async def resolve(self, request: Request) -> SessionContext:
        token = request.cookies.get(self.settings.SESSION_COOKIE_NAME)
        if not token:
            return SessionContext()

        data = decode_token(token, self.settings.JWT_SECRET, self.settings.JWT_ALG)
        if data is None:
            log.info("session_token_rejected")
            return SessionContext()

        user = self.user_repo.get(data.sub)
        if not user:
            return SessionContext()
        try:
            return SessionContext(user=UserProfile.model_validate(user))
        except ValidationError:
            log.warning("session_user_invalid", user_id=data.sub)
            return SessionContext()


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Applique la table de routage selon la session courante."""

    def __init__(self, app: ASGIApp, resolver: SessionResolver | None = None) -> None:
        super().__init__(app)
        self.resolver = resolver or SessionResolver()

    async def dispatch(self, request: Request, call_next: Callable):
        session = await self.resolver.resolve(request)
        request.state.session = session

        path = request.url.path
        if is_excluded(path):
            return await call_next(request)

        target = gate_decision(path, session)
        if target is None:
            return await call_next(request)

        if path == ROOT:
            reason = "root"
        else:
            reason = "authenticated" if session.is_authenticated else "anonymous"
        SESSION_REDIRECTS.labels(reason=reason).inc()
        log.info("session_redirect", path=path, target=target, reason=reason)
        return RedirectResponse(url=target, status_code=HTTP_TEMPORARY_REDIRECT)
