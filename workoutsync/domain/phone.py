"""Mise en forme des numéros de téléphone (couche présentation uniquement).

Deux représentations coexistent:
- "display": format local lisible, ex. `(555) 123-4567`;
- "canonical" (E.164): `+` suivi des chiffres, sans séparateur, ex. `+15551234567`.

Ces fonctions ne valident rien: la validité relève de `domain.validation.validate_phone_number`.
La conversion est "best effort" et ne couvre que les numéros nord-américains (+1).
"""

from __future__ import annotations

import re

DOMESTIC_COUNTRY_CODE = "+1"
DOMESTIC_DIGITS = 10
PHONE_PLACEHOLDER = "(919) 555-1234"

_NON_DIGIT_RE = re.compile(r"\D")


def _digits(value: str) -> str:
    return _NON_DIGIT_RE.sub("", value)


def _clean(value: str) -> str:
    """Ne garde que les chiffres, plus un éventuel `+` initial."""
    prefix = "+" if value.lstrip().startswith("+") else ""
    return prefix + _digits(value)


def _format_domestic(digits: str) -> str:
    """Formate progressivement jusqu'à 10 chiffres: `(AAA`, `(AAA) EEE`, `(AAA) EEE-NNNN`."""
    if not digits:
        return ""
    if len(digits) <= 3:
        return f"({digits}"
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:10]}"


def format_phone_as_user_types(value: str) -> str:
    """Masque de saisie appliqué à chaque frappe.

    - `+1...` (au plus 11 chiffres) ou 11 chiffres commençant par 1: format domestique sans le 1;
    - autres numéros préfixés par `+`: renvoyés nettoyés, sans autre mise en forme;
    - sinon: format domestique progressif (tronqué à 10 chiffres).
    """
    if not value or not isinstance(value, str):
        return ""

    cleaned = _clean(value)
    if cleaned.startswith("+"):
        digits = cleaned[1:]
        if digits.startswith("1") and len(digits) <= DOMESTIC_DIGITS + 1:
            return _format_domestic(digits[1:])
        return cleaned

    if len(cleaned) == DOMESTIC_DIGITS + 1 and cleaned.startswith("1"):
        return _format_domestic(cleaned[1:])
    return _format_domestic(cleaned)


def format_phone_for_display(phone: str) -> str:
    """Convertit un numéro canonique en format d'affichage; ne lève jamais."""
    if not phone or not isinstance(phone, str):
        return ""

    digits = _digits(phone)
    if len(digits) == DOMESTIC_DIGITS + 1 and digits.startswith("1"):
        return _format_domestic(digits[1:])
    if len(digits) == DOMESTIC_DIGITS:
        return _format_domestic(digits)
    return phone


def parse_phone_to_e164(value: str) -> str:
    """Normalise une saisie vers E.164.

    Déjà préfixé par `+`: renvoyé nettoyé. 10 chiffres: `+1` ajouté. 11 chiffres commençant par 1:
    `+` ajouté. Sinon la saisie d'origine est renvoyée telle quelle (possiblement incomplète).
    """
    if not value or not isinstance(value, str):
        return ""

    cleaned = _clean(value)
    if cleaned.startswith("+"):
        return cleaned

    if len(cleaned) == DOMESTIC_DIGITS:
        return f"{DOMESTIC_COUNTRY_CODE}{cleaned}"
    if len(cleaned) == DOMESTIC_DIGITS + 1 and cleaned.startswith("1"):
        return f"+{cleaned}"
    return value


def is_phone_complete(value: str) -> bool:
    """Vrai si la forme E.164 compte exactement 11 chiffres commençant par 1 (domestique)."""
    digits = _digits(parse_phone_to_e164(value))
    return len(digits) == DOMESTIC_DIGITS + 1 and digits.startswith("1")


def is_valid_phone_length(value: str) -> bool:
    """Vrai si la saisie compte exactement 10 chiffres."""
    if not value or not isinstance(value, str):
        return False
    return len(_digits(value)) == DOMESTIC_DIGITS


def get_phone_placeholder() -> str:
    return PHONE_PLACEHOLDER


def extract_country_code(phone: str) -> str:
    """Indicatif d'un numéro canonique; seul `+1` est reconnu (défaut), `""` hors E.164."""
    if not phone or not phone.startswith("+"):
        return ""
    # TODO: reconnaître les indicatifs hors zone +1 (ex. +44, +33) quand l'inscription internationale sera ouverte.
    return DOMESTIC_COUNTRY_CODE
