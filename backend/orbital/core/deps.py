"""
Dépendances d'authentification
Projet : Orbital (Facturation)

Résout l'identifiant de l'utilisateur courant depuis le jeton Bearer.
Toutes les requêtes métier sont ensuite filtrées sur cet identifiant.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from orbital.core.config import Settings, get_settings
from orbital.core.exceptions import AuthenticationError
from orbital.core.security import decode_token

# Le jeton est émis par le service d'authentification externe
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Retourne l'identifiant de l'utilisateur authentifié.

    Raises:
        AuthenticationError: jeton absent ou invalide (401)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Non authentifié")

    return decode_token(credentials.credentials, settings).sub


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


__all__ = [
    "get_current_user_id",
    "bearer_scheme",
    "CurrentUserId",
]
