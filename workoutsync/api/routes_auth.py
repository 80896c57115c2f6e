"""
Routes d'authentification pour l'API.

Ce module fournit les endpoints d'inscription, de connexion et de déconnexion. La session est portée
par un cookie HTTP-only contenant un jeton JWT signé; le mot de passe n'est jamais stocké en clair.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Response

from workoutsync.api.schemas import LoginPayload, RegisterPayload, SessionResponse
from workoutsync.apigw.errors import ErrorCodes, bad_request, conflict, unauthorized
from workoutsync.core.container import container
from workoutsync.core.http_constants import HTTP_CREATED
from workoutsync.domain.auth import create_access_token, hash_password, verify_password
from workoutsync.domain.entities import UserProfile
from workoutsync.domain.phone import parse_phone_to_e164
from workoutsync.domain.validation import validate_registration

router = APIRouter(prefix="/api/auth", tags=["auth"])
log = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid phone number or password"


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def public_profile(user: dict[str, Any]) -> UserProfile:
    """Profil exposable (le hash du mot de passe est ignoré par le modèle)."""
    return UserProfile.model_validate(user)


def set_session_cookie(response: Response, user: dict[str, Any]) -> None:
    """Émet le jeton de session et le pose en cookie HTTP-only."""
    settings = container.settings
    token = create_access_token(
        secret=settings.JWT_SECRET,
        alg=settings.JWT_ALG,
        expires_min=settings.SESSION_EXPIRES_MIN,
        payload={"sub": user["id"], "phone_number": user["phone_number"]},
    )
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRES_MIN * 60,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


@router.post("/register", response_model=SessionResponse, status_code=HTTP_CREATED)
def register(p: RegisterPayload, response: Response):
    """Inscrit un nouvel utilisateur et ouvre sa session."""
    phone_number = parse_phone_to_e164(p.phone_number)
    email = p.email.strip() if p.email and p.email.strip() else None

    errors = validate_registration(phone_number, p.password, p.name, email)
    if errors:
        code = ErrorCodes.INVALID_PHONE if "phone_number" in errors else ErrorCodes.VALIDATION_ERROR
        raise bad_request(next(iter(errors.values())), code=code, details={"fields": errors})

    if container.user_repo.get_by_phone(phone_number):
        raise conflict("Phone number already registered", code=ErrorCodes.PHONE_ALREADY_EXISTS)

    created_at = now_iso()
    user = {
        "id": uuid.uuid4().hex,
        "phone_number": phone_number,
        "email": email,
        "name": p.name.strip(),
        "password_hash": hash_password(p.password),
        "activity_preferences": [],
        "pace_range_min": None,
        "pace_range_max": None,
        "home_location_coords": None,
        "home_location_name": None,
        "created_at": created_at,
        "updated_at": created_at,
    }
    container.user_repo.save(user)
    set_session_cookie(response, user)
    log.info("user_registered", user_id=user["id"])
    return {"user": public_profile(user)}


@router.post("/login", response_model=SessionResponse)
def login(p: LoginPayload, response: Response):
    """Authentifie un utilisateur et ouvre sa session."""
    phone_number = parse_phone_to_e164(p.phone_number)
    user = container.user_repo.get_by_phone(phone_number) if phone_number else None
    # même message pour un téléphone inconnu ou un mauvais mot de passe
    if not user or not verify_password(p.password, user.get("password_hash", "")):
        raise unauthorized(INVALID_CREDENTIALS)
    set_session_cookie(response, user)
    log.info("user_logged_in", user_id=user["id"])
    return {"user": public_profile(user)}


@router.post("/logout")
def logout(response: Response):
    """Ferme la session en supprimant le cookie."""
    response.delete_cookie(container.settings.SESSION_COOKIE_NAME)
    return {"ok": True}
