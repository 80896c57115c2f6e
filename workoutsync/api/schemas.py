# Schémas Pydantic exposés par l'API (requêtes et réponses).
# Les champs de formulaire restent permissifs (Any/str): la validation métier est faite par
# `domain.validation`, qui fournit les messages affichés à côté des champs.

from typing import Any, Literal

from pydantic import BaseModel, Field

from workoutsync.domain.entities import LocationCoordinates, UserProfile
from workoutsync.services.location import GeolocationErrorKind


class RegisterPayload(BaseModel):
    """Formulaire d'inscription.

    Champs:
    - phone_number: saisie libre, normalisée en E.164 par le serveur
    - password: mot de passe en clair (haché avant stockage)
    - name: nom affiché
    - email: optionnel
    """

    phone_number: str = ""
    password: str = ""
    name: str = ""
    email: str | None = None


class LoginPayload(BaseModel):
    """Formulaire de connexion (téléphone + mot de passe)."""

    phone_number: str = ""
    password: str = ""


class SessionResponse(BaseModel):
    user: UserProfile


class ProfileUpdatePayload(BaseModel):
    """Mise à jour partielle du profil: seuls les champs fournis sont validés et appliqués."""

    name: Any = None
    email: Any = None
    activity_preferences: Any = None
    pace_range_min: Any = None
    pace_range_max: Any = None


class LocationUpdatePayload(BaseModel):
    latitude: Any = None
    longitude: Any = None
    location_name: Any = None


class LocationDetectRequest(BaseModel):
    """État de géolocalisation rapporté par le navigateur.

    Champs:
    - available: l'API de géolocalisation existe sur l'appareil
    - permission: état de la permission (`prompt` tente quand même la détection)
    - coordinates: dernière position obtenue, si le navigateur en a une
    - reported_at: horodatage de cette position (epoch ms), pour l'ancienneté maximale
    - error: erreur de géolocalisation remontée par le navigateur
    """

    available: bool = True
    permission: Literal["granted", "denied", "prompt"] = "prompt"
    coordinates: LocationCoordinates | None = None
    reported_at: int | None = None
    error: GeolocationErrorKind | None = None


class LocationDetectResponse(BaseModel):
    success: bool
    latitude: float | None = None
    longitude: float | None = None
    name: str | None = None
    source: Literal["gps", "cache"] | None = None
    error: str | None = None
    retryable: bool | None = None


class DistanceResponse(BaseModel):
    distance_km: float


class VapidKeyResponse(BaseModel):
    supported: bool
    public_key: str | None = None


class UnsubscribePayload(BaseModel):
    endpoint: str = Field(min_length=1)


class PageResponse(BaseModel):
    """Descripteur de page minimal avec le contexte de session."""

    page: str
    authenticated: bool
    user: UserProfile | None = None
