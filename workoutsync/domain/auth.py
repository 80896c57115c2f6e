"""
Module d'authentification et de gestion des jetons de session.

Ce module fournit le hachage salé des mots de passe (vérification à temps constant via passlib), la
création et la validation des jetons JWT portés par le cookie de session.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenData(BaseModel):
    """Données contenues dans un jeton de session."""

    sub: str
    phone_number: str


def hash_password(p: str) -> str:
    """Hache un mot de passe (PBKDF2-SHA256, sel aléatoire)."""
    return pwd_context.hash(p)


def verify_password(p: str, h: str) -> bool:
    """Vérifie un mot de passe contre son hash; un hash absent ou illisible ne valide jamais."""
    if not h:
        return False
    try:
        return pwd_context.verify(p, h)
    except ValueError:
        return False


def create_access_token(
    secret: str, alg: str, expires_min: int, payload: dict[str, Any]
) -> str:
    """Crée un jeton JWT avec expiration."""
    to_encode = payload.copy()
    expire = datetime.now(UTC) + timedelta(minutes=expires_min)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=alg)


def decode_token(token: str, secret: str, alg: str) -> TokenData | None:
    """Décode et valide un jeton JWT; None s'il est invalide ou expiré."""
    try:
        data = jwt.decode(token, secret, algorithms=[alg])
        return TokenData(**data)
    except (InvalidTokenError, ValidationError):
        return None
