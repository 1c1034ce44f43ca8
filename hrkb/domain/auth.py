"""
Module d'authentification et de gestion des tokens.

Les jetons sont émis par le service d'identité; ce module les valide et fournit un utilitaire de
création pour les scripts et les tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


class TokenData(BaseModel):
    """Données contenues dans un token JWT."""

    sub: str
    email: str
    role: str


def create_access_token(
    secret: str, alg: str, expires_min: int, payload: dict[str, Any]
) -> str:
    """Crée un token JWT d'accès avec expiration."""
    to_encode = payload.copy()
    expire = datetime.now(UTC) + timedelta(minutes=expires_min)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=alg)


def decode_token(token: str, secret: str, alg: str) -> TokenData | None:
    """Décode et valide un token JWT; None si invalide, expiré ou incomplet."""
    try:
        data = jwt.decode(token, secret, algorithms=[alg])
        return TokenData(**data)
    except (InvalidTokenError, PydanticValidationError):
        return None
