"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Exposer le contexte de session résolu par `SessionGateMiddleware` (`request.state.session`).
- Centraliser la création des services utilisés par les endpoints à partir du conteneur.

Les routes ne lisent jamais d'état de session global: le contexte est passé explicitement.
"""

from fastapi import Depends, Request

from workoutsync.apigw.errors import ErrorCodes, unauthorized
from workoutsync.core.container import container
from workoutsync.domain.entities import SessionContext, UserProfile
from workoutsync.services.location import LOCATION_CACHE_KEY, DeviceLocator, LocationService
from workoutsync.services.notifications import NotificationService


def get_session(request: Request) -> SessionContext:
    """Contexte de session de la requête (anonyme si le middleware ne l'a pas posé)."""
    return getattr(request.state, "session", None) or SessionContext()


def get_current_user(session: SessionContext = Depends(get_session)) -> UserProfile:
    """Utilisateur connecté; 401 pour un visiteur anonyme."""
    if not session.is_authenticated:
        raise unauthorized("Not authenticated", code=ErrorCodes.NOT_AUTHENTICATED)
    return session.user


def get_notification_service() -> NotificationService:
    return NotificationService(
        container.subscription_repo, vapid_public_key=container.settings.VAPID_PUBLIC_KEY
    )


current_user_dep = Depends(get_current_user)
session_dep = Depends(get_session)


def get_location_service(user_id: str, locator: DeviceLocator) -> LocationService:
    """Service de localisation d'un utilisateur: la clé de cache est propre à chaque utilisateur."""
    settings = container.settings
    return LocationService(
        store=container.location_store,
        geocoder=container.geo_client,
        locator=locator,
        cache_key=f"{LOCATION_CACHE_KEY}:{user_id}",
        cache_ttl_s=settings.LOCATION_CACHE_TTL_S,
        timeout_s=settings.GEOLOCATION_TIMEOUT_S,
        max_age_s=settings.GEOLOCATION_MAX_AGE_S,
    )
