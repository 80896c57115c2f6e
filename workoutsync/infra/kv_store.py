"""Stockage clé-valeur persistant (équivalent serveur du localStorage du navigateur).

Une clé contient au plus une valeur texte (JSON sérialisé par l'appelant), écrasée à chaque écriture.
Aucun verrou: lecture puis écriture, la dernière écriture l'emporte.
"""

from typing import Protocol

import redis


class KeyValueStore(Protocol):
    """Interface minimale attendue par le service de localisation."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Store en mémoire (dev/tests), non persistant."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisKeyValueStore:
    """Store adossé à Redis; `ttl_s` borne la durée de vie des clés côté serveur."""

    def __init__(self, url: str, ttl_s: int | None = None):
        self.client = redis.Redis.from_url(url, decode_responses=True)
        self.ttl_s = ttl_s

    def get(self, key: str) -> str | None:
        return self.client.get(key)

    def set(self, key: str, value: str) -> None:
        if self.ttl_s:
            self.client.setex(key, self.ttl_s, value)
        else:
            self.client.set(key, value)

    def delete(self, key: str) -> None:
        self.client.delete(key)
