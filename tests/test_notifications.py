"""Tests pour le service et les routes de notifications push."""

from __future__ import annotations

import base64

import pytest

from workoutsync.core.container import container
from workoutsync.core.http_constants import HTTP_OK, HTTP_SERVICE_UNAVAILABLE, HTTP_UNAUTHORIZED
from workoutsync.infra.repositories import InMemorySubscriptionRepo
from workoutsync.services.notifications import (
    DEFAULT_BADGE,
    DEFAULT_ICON,
    NotificationAction,
    NotificationPayload,
    NotificationService,
    NotificationsNotSupportedError,
    PushSubscription,
    url_base64_to_bytes,
)

RAW_KEY = bytes(range(65))
VAPID_KEY = base64.urlsafe_b64encode(RAW_KEY).decode().rstrip("=")
SUBSCRIPTION = {
    "endpoint": "https://push.test/abc",
    "keys": {"p256dh": "p256", "auth": "secret"},
}


def test_url_base64_to_bytes_restores_padding():
    """Teste le décodage d'une clé base64 URL-safe sans padding."""
    assert url_base64_to_bytes(VAPID_KEY) == RAW_KEY
    with pytest.raises(ValueError):
        url_base64_to_bytes("a")


def test_build_notification_defaults():
    """Teste les valeurs par défaut et l'omission des actions absentes."""
    service = NotificationService(InMemorySubscriptionRepo(), VAPID_KEY)
    options = service.build_notification(NotificationPayload(title="Run at 7", body="Join Jane"))
    assert options["icon"] == DEFAULT_ICON
    assert options["badge"] == DEFAULT_BADGE
    assert options["vibrate"] == [200, 100, 200]
    assert "actions" not in options

    with_actions = service.build_notification(
        NotificationPayload(
            title="t", body="b", actions=[NotificationAction(action="join", title="Join")]
        )
    )
    assert with_actions["actions"] == [{"action": "join", "title": "Join"}]


def test_service_instances_share_no_state():
    """Teste que deux services indépendants ne partagent aucun abonnement."""
    a = NotificationService(InMemorySubscriptionRepo(), VAPID_KEY)
    b = NotificationService(InMemorySubscriptionRepo(), VAPID_KEY)
    a.subscribe("u1", PushSubscription(**SUBSCRIPTION))
    assert len(a.subscriptions_for("u1")) == 1
    assert b.subscriptions_for("u1") == []


def test_unsupported_without_vapid_key():
    """Teste qu'aucune clé VAPID rend le service indisponible."""
    service = NotificationService(InMemorySubscriptionRepo())
    assert service.is_supported() is False
    with pytest.raises(NotificationsNotSupportedError):
        service.application_server_key()
    with pytest.raises(NotificationsNotSupportedError):
        service.subscribe("u1", PushSubscription(**SUBSCRIPTION))


def test_subscription_routes(registered, monkeypatch):
    """Teste l'abonnement, la liste puis le désabonnement via l'API."""
    monkeypatch.setattr(container.settings, "VAPID_PUBLIC_KEY", VAPID_KEY)

    key = registered.get("/api/notifications/vapid-key").json()
    assert key == {"supported": True, "public_key": VAPID_KEY}

    r = registered.post("/api/notifications/subscription", json=SUBSCRIPTION)
    assert r.status_code == HTTP_OK
    assert len(registered.get("/api/notifications/subscriptions").json()) == 1

    r = registered.request(
        "DELETE", "/api/notifications/subscription", json={"endpoint": SUBSCRIPTION["endpoint"]}
    )
    assert r.json() == {"removed": True}
    assert registered.get("/api/notifications/subscriptions").json() == []


def test_subscribe_without_vapid_key_is_503(registered, monkeypatch):
    """Teste qu'un abonnement sans clé configurée renvoie 503."""
    monkeypatch.setattr(container.settings, "VAPID_PUBLIC_KEY", None)
    r = registered.post("/api/notifications/subscription", json=SUBSCRIPTION)
    assert r.status_code == HTTP_SERVICE_UNAVAILABLE
    assert r.json()["code"] == "SERVICE_UNAVAILABLE"


def test_subscribe_requires_session(client):
    """Teste qu'un visiteur anonyme ne peut pas s'abonner."""
    r = client.post("/api/notifications/subscription", json=SUBSCRIPTION)
    assert r.status_code == HTTP_UNAUTHORIZED
