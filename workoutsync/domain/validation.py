"""Validation des champs de formulaire (inscription, connexion, profil).

Chaque fonction est pure et sans état: elle renvoie un `ValidationResult` décrivant la validité du
champ et, le cas échéant, le message à afficher à côté du champ. Aucune ne lève d'exception.

Les champs optionnels vides (email) renvoient `None` ("pas d'avis"), ce que l'appelant traite
comme valide.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from workoutsync.domain.entities import ACTIVITY_TYPES

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
EMAIL_MAX_LEN = 254
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128
NAME_MIN_LEN = 2
NAME_MAX_LEN = 50
PACE_MIN = 4
PACE_MAX = 20

_DIGITS_RE = re.compile(r"\d+", re.ASCII)
_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
_LETTER_RE = re.compile(r"[a-zA-Z]")
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class ValidationResult:
    """Résultat d'une validation de champ."""

    valid: bool
    message: str | None = None


VALID = ValidationResult(valid=True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(valid=False, message=message)


def validate_phone_number(phone: Any) -> ValidationResult:
    """Valide un numéro au format canonique `+` suivi de 10 à 15 chiffres."""
    if not phone or not isinstance(phone, str):
        return _invalid("Phone number is required")

    trimmed = phone.strip()
    if not trimmed.startswith("+"):
        return _invalid("Phone number must include country code (e.g., +1)")

    digits = trimmed[1:]
    if not _DIGITS_RE.fullmatch(digits):
        return _invalid("Phone number can only contain digits after the country code")

    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        return _invalid("Phone number must be 10-15 digits long")

    return VALID


def validate_email(email: Any) -> ValidationResult | None:
    """Valide un email optionnel; `None` si le champ est vide."""
    if not email or not isinstance(email, str) or not email.strip():
        return None

    trimmed = email.strip()
    if not _EMAIL_RE.match(trimmed):
        return _invalid("Please enter a valid email address")

    if len(trimmed) > EMAIL_MAX_LEN:
        return _invalid("Email address is too long")

    return VALID


def validate_password(password: Any) -> ValidationResult:
    """Valide un mot de passe: 8 à 128 caractères, au moins une lettre et un chiffre."""
    if not password or not isinstance(password, str):
        return _invalid("Password is required")

    if len(password) < PASSWORD_MIN_LEN:
        return _invalid("Password must be at least 8 characters long")

    if len(password) > PASSWORD_MAX_LEN:
        return _invalid("Password is too long")

    if not _LETTER_RE.search(password):
        return _invalid("Password must contain at least one letter")

    if not _DIGIT_RE.search(password):
        return _invalid("Password must contain at least one number")

    return VALID


def validate_name(name: Any) -> ValidationResult:
    """Valide un nom affiché (lettres, espaces, tirets, apostrophes)."""
    if not name or not isinstance(name, str):
        return _invalid("Name is required")

    trimmed = name.strip()
    if len(trimmed) < NAME_MIN_LEN:
        return _invalid("Name must be at least 2 characters long")

    if len(trimmed) > NAME_MAX_LEN:
        return _invalid("Name must be less than 50 characters")

    if not _NAME_RE.match(trimmed):
        return _invalid("Name can only contain letters, spaces, hyphens, and apostrophes")

    return VALID


def _check_pace(value: Any) -> ValidationResult | None:
    is_number = isinstance(value, int | float) and not isinstance(value, bool)
    if not is_number or math.isnan(value) or value <= 0:
        return _invalid("Pace must be a positive number")
    if not PACE_MIN <= value <= PACE_MAX:
        return _invalid("Pace must be between 4 and 20 minutes per mile")
    return None


def validate_pace_range(pace_min: Any = None, pace_max: Any = None) -> ValidationResult:
    """Valide une plage d'allure (minutes par mile), bornes optionnelles."""
    if pace_min is None and pace_max is None:
        return VALID

    for value in (pace_min, pace_max):
        if value is not None:
            failure = _check_pace(value)
            if failure:
                return failure

    if pace_min is not None and pace_max is not None and pace_min >= pace_max:
        return _invalid("Minimum pace must be less than maximum pace")

    return VALID


def validate_activity_preferences(prefs: Any) -> ValidationResult:
    """Valide une liste de préférences d'activité (ensemble fermé, liste vide acceptée)."""
    if not isinstance(prefs, list):
        return _invalid("Activity preferences must be an array")

    allowed = ", ".join(ACTIVITY_TYPES)
    for pref in prefs:
        if not isinstance(pref, str) or pref not in ACTIVITY_TYPES:
            return _invalid(f"Activity preferences can only include: {allowed}")

    return VALID


def validate_coordinates(latitude: Any, longitude: Any) -> ValidationResult:
    """Valide un couple latitude/longitude (nombres finis dans les bornes WGS84)."""
    for value in (latitude, longitude):
        if (
            not isinstance(value, int | float)
            or isinstance(value, bool)
            or not math.isfinite(value)
        ):
            return _invalid("Latitude and longitude must be numbers")
    if not -90 <= latitude <= 90:
        return _invalid("Latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        return _invalid("Longitude must be between -180 and 180")
    return VALID


def validate_registration(
    phone_number: Any, password: Any, name: Any, email: Any = None
) -> dict[str, str]:
    """Valide le formulaire d'inscription.

    Retourne un dict `champ -> message` ne contenant que les champs invalides (vide si tout est
    valide).
    """
    results = {
        "phone_number": validate_phone_number(phone_number),
        "password": validate_password(password),
        "name": validate_name(name),
        "email": validate_email(email),
    }
    return {
        field: result.message or "Invalid value"
        for field, result in results.items()
        if result is not None and not result.valid
    }
