"""
Routes du profil utilisateur.

`GET /api/profile` renvoie le profil de l'utilisateur connecté, `PATCH /api/profile` en applique une
mise à jour partielle et `PATCH /api/profile/location` fixe la position de référence. Chaque champ
fourni est validé par `domain.validation`; les messages renvoyés sont ceux affichés dans le
formulaire.
"""

from typing import Any

import structlog
from fastapi import APIRouter

from workoutsync.api.deps import current_user_dep
from workoutsync.api.routes_auth import now_iso, public_profile
from workoutsync.api.schemas import LocationUpdatePayload, ProfileUpdatePayload
from workoutsync.apigw.errors import ErrorCodes, bad_request, not_found
from workoutsync.core.container import container
from workoutsync.domain.entities import UserProfile
from workoutsync.domain.validation import (
    ValidationResult,
    validate_activity_preferences,
    validate_coordinates,
    validate_email,
    validate_name,
    validate_pace_range,
)

router = APIRouter(prefix="/api/profile", tags=["profile"])
log = structlog.get_logger(__name__)


def _load_user(user_id: str) -> dict[str, Any]:
    user = container.user_repo.get(user_id)
    if not user:
        raise not_found("Profile not found", code=ErrorCodes.PROFILE_NOT_FOUND)
    return user


def _raise_on_errors(results: dict[str, ValidationResult | None]) -> None:
    errors = {
        field: r.message or "Invalid value"
        for field, r in results.items()
        if r is not None and not r.valid
    }
    if errors:
        raise bad_request(
            next(iter(errors.values())),
            code=ErrorCodes.VALIDATION_ERROR,
            details={"fields": errors},
        )


@router.get("", response_model=UserProfile)
def get_profile(user: UserProfile = current_user_dep):
    """Profil complet de l'utilisateur connecté."""
    return public_profile(_load_user(user.id))


@router.patch("", response_model=UserProfile)
def update_profile(p: ProfileUpdatePayload, user: UserProfile = current_user_dep):
    """Met à jour les champs fournis; rien n'est écrit si l'un d'eux est invalide."""
    stored = _load_user(user.id)
    fields = p.model_fields_set
    results: dict[str, ValidationResult | None] = {}
    changes: dict[str, Any] = {}

    if "name" in fields:
        results["name"] = validate_name(p.name)
        changes["name"] = p.name.strip() if isinstance(p.name, str) else p.name
    if "email" in fields:
        # chaîne vide: suppression de l'email
        results["email"] = validate_email(p.email)
        changes["email"] = p.email.strip() if isinstance(p.email, str) and p.email.strip() else None
    if "activity_preferences" in fields:
        results["activity_preferences"] = validate_activity_preferences(p.activity_preferences)
        changes["activity_preferences"] = p.activity_preferences
    if fields & {"pace_range_min", "pace_range_max"}:
        pace_min = p.pace_range_min if "pace_range_min" in fields else stored.get("pace_range_min")
        pace_max = p.pace_range_max if "pace_range_max" in fields else stored.get("pace_range_max")
        results["pace_range"] = validate_pace_range(pace_min, pace_max)
        changes["pace_range_min"] = pace_min
        changes["pace_range_max"] = pace_max

    _raise_on_errors(results)

    if changes:
        stored = {**stored, **changes, "updated_at": now_iso()}
        container.user_repo.save(stored)
        log.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return public_profile(stored)


@router.patch("/location", response_model=UserProfile)
def update_home_location(p: LocationUpdatePayload, user: UserProfile = current_user_dep):
    """Fixe la position de référence (coordonnées dans les bornes, libellé non vide)."""
    stored = _load_user(user.id)
    coords = validate_coordinates(p.latitude, p.longitude)
    if not coords.valid:
        raise bad_request(
            coords.message,
            code=ErrorCodes.INVALID_COORDINATES,
            details={"fields": {"coordinates": coords.message}},
        )
    name = p.location_name.strip() if isinstance(p.location_name, str) else ""
    if not name:
        _raise_on_errors(
            {"location_name": ValidationResult(valid=False, message="Location name is required")}
        )

    stored = {
        **stored,
        "home_location_coords": {"latitude": p.latitude, "longitude": p.longitude},
        "home_location_name": name,
        "updated_at": now_iso(),
    }
    container.user_repo.save(stored)
    log.info("home_location_updated", user_id=user.id)
    return public_profile(stored)
