"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "workoutsync"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    REDIS_URL: str | None = None
    REQUIRE_REDIS: bool = False

    # Session (cookie signé JWT)
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALG: str = "HS256"
    SESSION_EXPIRES_MIN: int = 60 * 24 * 7
    SESSION_COOKIE_NAME: str = "ws-session"
    SESSION_COOKIE_SECURE: bool = False

    # Géocodage inverse (Nominatim)
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/reverse"
    GEOCODER_USER_AGENT: str = "WorkoutSync/1.0 (PWA)"
    GEOCODER_TIMEOUT_S: float = 5.0

    # Géolocalisation et cache de position
    LOCATION_CACHE_TTL_S: int = 24 * 60 * 60
    GEOLOCATION_TIMEOUT_S: float = 10.0
    GEOLOCATION_MAX_AGE_S: float = 5 * 60

    # Notifications push
    VAPID_PUBLIC_KEY: str | None = None


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
