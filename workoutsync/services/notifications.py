"""Service de notifications push (API unique sur la capacité de notification).

Service sans état ni instance partagée: chaque appelant construit le sien à partir de la clé VAPID
publique et du dépôt d'abonnements.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

import structlog
from pydantic import BaseModel, Field

DEFAULT_ICON = "/icons/icon-192x192.svg"
DEFAULT_BADGE = "/icons/icon-72x72.svg"
DEFAULT_VIBRATE = [200, 100, 200]

log = structlog.get_logger(__name__)


class NotificationAction(BaseModel):
    action: str
    title: str
    icon: str | None = None


class NotificationPayload(BaseModel):
    """Contenu d'une notification affichée par le service worker."""

    title: str
    body: str
    icon: str | None = None
    badge: str | None = None
    tag: str | None = None
    data: dict[str, Any] | None = None
    actions: list[NotificationAction] | None = None


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscription(BaseModel):
    """Abonnement push tel que renvoyé par `PushManager.subscribe()`."""

    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys
    expiration_time: int | None = None


class NotificationsNotSupportedError(RuntimeError):
    """Aucune clé VAPID configurée: les notifications push sont indisponibles."""


def url_base64_to_bytes(value: str) -> bytes:
    """Décode une clé VAPID encodée en base64 URL-safe (padding optionnel)."""
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(value + padding)
    except (binascii.Error, ValueError) as err:
        raise ValueError("Invalid base64url value") from err


class NotificationService:
    """Construction des notifications et gestion des abonnements d'un utilisateur."""

    def __init__(self, subscription_repo, vapid_public_key: str | None = None):
        self.subscriptions = subscription_repo
        self.vapid_public_key = vapid_public_key

    def is_supported(self) -> bool:
        return bool(self.vapid_public_key)

    def application_server_key(self) -> bytes:
        """Clé serveur décodée, telle que passée à `pushManager.subscribe`."""
        if not self.vapid_public_key:
            raise NotificationsNotSupportedError("VAPID public key is not configured")
        return url_base64_to_bytes(self.vapid_public_key)

    def build_notification(self, payload: NotificationPayload) -> dict[str, Any]:
        """Options `showNotification` avec icône, badge et vibration par défaut."""
        options: dict[str, Any] = {
            "title": payload.title,
            "body": payload.body,
            "icon": payload.icon or DEFAULT_ICON,
            "badge": payload.badge or DEFAULT_BADGE,
            "tag": payload.tag,
            "data": payload.data,
            "vibrate": list(DEFAULT_VIBRATE),
            "requireInteraction": False,
        }
        if payload.actions:
            options["actions"] = [a.model_dump(exclude_none=True) for a in payload.actions]
        return options

    def subscribe(self, user_id: str, subscription: PushSubscription) -> PushSubscription:
        """Enregistre l'abonnement; un endpoint déjà connu est simplement écrasé."""
        if not self.is_supported():
            raise NotificationsNotSupportedError("Push notifications are not supported")
        self.subscriptions.save(user_id, subscription.model_dump())
        log.info("push_subscribed", user_id=user_id)
        return subscription

    def unsubscribe(self, user_id: str, endpoint: str) -> bool:
        """Supprime l'abonnement; vrai s'il existait."""
        removed = self.subscriptions.delete(user_id, endpoint)
        log.info("push_unsubscribed", user_id=user_id, removed=removed)
        return removed

    def subscriptions_for(self, user_id: str) -> list[PushSubscription]:
        return [PushSubscription(**s) for s in self.subscriptions.list_for_user(user_id)]
