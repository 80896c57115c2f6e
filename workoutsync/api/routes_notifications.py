"""
Routes des notifications push: clé VAPID publique et abonnements de l'utilisateur connecté.
"""

from fastapi import APIRouter, Depends

from workoutsync.api.deps import current_user_dep, get_notification_service
from workoutsync.api.schemas import UnsubscribePayload, VapidKeyResponse
from workoutsync.apigw.errors import service_unavailable
from workoutsync.domain.entities import UserProfile
from workoutsync.domain.errors import handle_notification_error
from workoutsync.services.notifications import (
    NotificationService,
    NotificationsNotSupportedError,
    PushSubscription,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])
service_dep = Depends(get_notification_service)


@router.get("/vapid-key", response_model=VapidKeyResponse)
def vapid_key(service: NotificationService = service_dep):
    """Clé serveur à passer à `pushManager.subscribe` (absente si non configurée)."""
    return VapidKeyResponse(supported=service.is_supported(), public_key=service.vapid_public_key)


@router.post("/subscription", response_model=PushSubscription)
def subscribe(
    subscription: PushSubscription,
    user: UserProfile = current_user_dep,
    service: NotificationService = service_dep,
):
    """Enregistre l'abonnement push du navigateur."""
    try:
        return service.subscribe(user.id, subscription)
    except NotificationsNotSupportedError as err:
        raise service_unavailable(handle_notification_error(err).user_message) from err


@router.delete("/subscription")
def unsubscribe(
    p: UnsubscribePayload,
    user: UserProfile = current_user_dep,
    service: NotificationService = service_dep,
):
    """Supprime un abonnement; `removed` est faux s'il n'existait pas."""
    return {"removed": service.unsubscribe(user.id, p.endpoint)}


@router.get("/subscriptions", response_model=list[PushSubscription])
def list_subscriptions(
    user: UserProfile = current_user_dep, service: NotificationService = service_dep
):
    return service.subscriptions_for(user.id)
