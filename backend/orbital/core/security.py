"""
Jetons JWT
Projet : Orbital (Facturation)

L'authentification (comptes, mots de passe, login) est assurée par un service
externe. Ce module ne fait que signer et décoder les jetons d'accès dont le
`sub` est l'identifiant de l'utilisateur propriétaire des données.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from orbital.core.config import Settings, get_settings
from orbital.core.exceptions import AuthenticationError
from orbital.schemas.token import TokenPayload


def create_access_token(
    user_id: str,
    settings: Optional[Settings] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Crée un jeton d'accès JWT.

    Args:
        user_id: identifiant de l'utilisateur (claim `sub`)
        settings: paramètres (défaut : `get_settings()`)
        expires_delta: durée de validité (défaut : `access_token_expire_minutes`)

    Returns:
        Jeton JWT encodé
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": "access",
    }

    return jwt.encode(
        payload,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str, settings: Optional[Settings] = None) -> TokenPayload:
    """
    Décode et valide un jeton JWT.

    Raises:
        AuthenticationError: jeton invalide, expiré, sans sujet ou d'un autre type
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError(f"Jeton invalide ou expiré : {e}")

    if not payload.get("sub"):
        raise AuthenticationError("Jeton invalide : sujet manquant")

    token_data = TokenPayload(
        sub=str(payload["sub"]),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        type=payload.get("type", "access"),
    )

    if token_data.type != "access":
        raise AuthenticationError("Jeton non valide pour cette opération")

    return token_data


__all__ = [
    "create_access_token",
    "decode_token",
]
