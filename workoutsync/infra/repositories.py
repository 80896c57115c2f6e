"""
Repositories pour la gestion des données.

Ce module fournit les dépôts d'utilisateurs et d'abonnements push, avec des versions en mémoire
(dev/tests) et Redis. La base hébergée du fournisseur reste la source de vérité en production; ces
dépôts en exposent le strict nécessaire au backend.
"""

import json
from typing import Any

import redis


class InMemoryUserRepo:
    """Dépôt utilisateurs en mémoire (téléphone indexé par scan simple)."""

    def __init__(self):
        """Initialise une base mémoire vide."""
        self._db: dict[str, dict[str, Any]] = {}

    def get(self, user_id: str) -> dict[str, Any] | None:
        """Retourne un utilisateur par id, ou None s'il est absent."""
        return self._db.get(user_id)

    def get_by_phone(self, phone_number: str) -> dict[str, Any] | None:
        """Recherche un utilisateur par numéro canonique (E.164)."""
        return next(
            (u for u in self._db.values() if u.get("phone_number") == phone_number), None
        )

    def save(self, user: dict[str, Any]) -> dict[str, Any]:
        """Sauvegarde (ou écrase) un utilisateur."""
        self._db[user["id"]] = user
        return user


class RedisUserRepo:
    """Dépôt utilisateurs via Redis avec index téléphone->id (hash)."""

    def __init__(self, url: str):
        """Crée un client Redis à partir de l'URL fournie."""
        self.client = redis.Redis.from_url(url, decode_responses=True)
        self.idx_key = "user:idx:phone"

    def get(self, user_id: str) -> dict[str, Any] | None:
        """Charge et désérialise `user:{id}`, si présent."""
        raw = self.client.get(f"user:{user_id}")
        return json.loads(raw) if raw else None

    def get_by_phone(self, phone_number: str) -> dict[str, Any] | None:
        """Recherche un utilisateur par téléphone via l'index Redis."""
        user_id = self.client.hget(self.idx_key, phone_number)
        if not user_id:
            return None
        return self.get(user_id)

    def save(self, user: dict[str, Any]) -> dict[str, Any]:
        """Sauvegarde un utilisateur et met à jour l'index téléphone."""
        key = f"user:{user['id']}"
        pipe = self.client.pipeline()
        pipe.set(key, json.dumps(user))
        pipe.hset(self.idx_key, user["phone_number"], user["id"])
        pipe.execute()
        return user


class InMemorySubscriptionRepo:
    """Abonnements push en mémoire, indexés par utilisateur puis par endpoint."""

    def __init__(self):
        self._db: dict[str, dict[str, dict[str, Any]]] = {}

    def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        return list(self._db.get(user_id, {}).values())

    def save(self, user_id: str, subscription: dict[str, Any]) -> dict[str, Any]:
        self._db.setdefault(user_id, {})[subscription["endpoint"]] = subscription
        return subscription

    def delete(self, user_id: str, endpoint: str) -> bool:
        return self._db.get(user_id, {}).pop(endpoint, None) is not None


class RedisSubscriptionRepo:
    """Abonnements push via Redis (hash `push:{user_id}` endpoint -> JSON)."""

    def __init__(self, url: str):
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def list_for_user(self, user_id: str) -> list[dict[str, Any]]:
        raw = self.client.hgetall(f"push:{user_id}") or {}
        return [json.loads(v) for v in raw.values()]

    def save(self, user_id: str, subscription: dict[str, Any]) -> dict[str, Any]:
        self.client.hset(f"push:{user_id}", subscription["endpoint"], json.dumps(subscription))
        return subscription

    def delete(self, user_id: str, endpoint: str) -> bool:
        return bool(self.client.hdel(f"push:{user_id}", endpoint))
