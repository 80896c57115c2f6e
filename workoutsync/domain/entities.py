"""
Entités du domaine métier.

Ce module définit les modèles de données principaux de WorkoutSync: profil utilisateur, coordonnées,
position mise en cache et contexte de session.
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

ActivityType = Literal["run", "bike", "walk"]
ACTIVITY_TYPES: tuple[str, ...] = ("run", "bike", "walk")

LocationSource = Literal["gps", "cache"]


class LocationCoordinates(BaseModel):
    """Coordonnées géographiques en degrés décimaux."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CachedLocation(LocationCoordinates):
    """Position mise en cache: coordonnées, libellé et horodatage (epoch ms)."""

    name: str
    timestamp: int


class UserProfile(BaseModel):
    """Profil utilisateur tel qu'exposé par l'API (sans hash de mot de passe)."""

    id: str
    phone_number: str
    email: str | None = None
    name: str
    activity_preferences: list[str] = Field(default_factory=list)
    pace_range_min: float | None = None
    pace_range_max: float | None = None
    home_location_coords: LocationCoordinates | None = None
    home_location_name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class SessionContext:
    """Contexte de session explicite, attaché à chaque requête.

    `user` vaut None pour un visiteur anonyme.
    """

    user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
