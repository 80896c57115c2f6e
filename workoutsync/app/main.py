"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares,
routes, gestion des erreurs, métriques et configuration de WorkoutSync.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques, garde de session)
- Installer les gestionnaires d'erreurs à enveloppe standard
- Monter les routers (santé, auth, profil, localisation, notifications, pages)
"""

from __future__ import annotations

from fastapi import FastAPI

from workoutsync.api.routes_auth import router as auth_router
from workoutsync.api.routes_health import router as health_router
from workoutsync.api.routes_location import router as location_router
from workoutsync.api.routes_notifications import router as notifications_router
from workoutsync.api.routes_pages import router as pages_router
from workoutsync.api.routes_profile import router as profile_router
from workoutsync.apigw.errors import register_error_handlers
from workoutsync.app.metrics import PrometheusMiddleware, metrics_router
from workoutsync.core.container import container
from workoutsync.core.logging import setup_logging
from workoutsync.middlewares.request_id import RequestIDMiddleware
from workoutsync.middlewares.session_gate import SessionGateMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares (le dernier ajouté est le plus externe: request id, puis
      métriques, puis garde de session)
    - Publie les routes
    """
    setup_logging()
    settings = container.settings
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(SessionGateMiddleware)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(location_router)
    app.include_router(notifications_router)
    app.include_router(pages_router)
    app.include_router(metrics_router)
    return app


app = create_app()
