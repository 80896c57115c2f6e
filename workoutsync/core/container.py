"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, dépôts, stockage clé-valeur, client de géocodage)
et expose un singleton `container` utilisé par le reste de l'application. Sans Redis (ou Redis
injoignable), les implémentations mémoire prennent le relais sauf si `REQUIRE_REDIS` est actif.
"""

import structlog

from workoutsync.core.settings import Settings, get_settings
from workoutsync.infra.http_clients import GeoClient
from workoutsync.infra.kv_store import InMemoryKeyValueStore, RedisKeyValueStore
from workoutsync.infra.repositories import (
    InMemorySubscriptionRepo,
    InMemoryUserRepo,
    RedisSubscriptionRepo,
    RedisUserRepo,
)

log = structlog.get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.geo_client = GeoClient(
            base_url=self.settings.GEOCODER_URL,
            user_agent=self.settings.GEOCODER_USER_AGENT,
            timeout_s=self.settings.GEOCODER_TIMEOUT_S,
        )
        if self.settings.REDIS_URL:
            try:
                self._use_redis(self.settings.REDIS_URL)
            except Exception as err:
                if self.settings.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                log.warning("redis_unavailable_memory_fallback", error=str(err))
                self._use_memory()
                self.storage_backend = "memory-fallback"
        else:
            if self.settings.REQUIRE_REDIS:
                raise RuntimeError("Redis required but REDIS_URL not set")
            self._use_memory()

    def _use_redis(self, url: str) -> None:
        self.user_repo = RedisUserRepo(url)
        self.user_repo.client.ping()
        self.subscription_repo = RedisSubscriptionRepo(url)
        self.location_store = RedisKeyValueStore(url, ttl_s=self.settings.LOCATION_CACHE_TTL_S)
        self.storage_backend = "redis"

    def _use_memory(self) -> None:
        self.user_repo = InMemoryUserRepo()
        self.subscription_repo = InMemorySubscriptionRepo()
        self.location_store = InMemoryKeyValueStore()
        self.storage_backend = "memory"


container = Container()
