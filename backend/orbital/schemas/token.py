"""
Schemas Pydantic pour les jetons JWT
Projet : Orbital (Facturation)
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """
    Contenu d'un jeton d'accès.

    Attributes:
        sub: identifiant de l'utilisateur propriétaire
        exp: date/heure d'expiration
        type: type de jeton ("access")
    """

    sub: str = Field(..., description="Identifiant utilisateur")
    exp: datetime = Field(..., description="Date/heure d'expiration")
    type: str = Field(..., description="Type de jeton")


__all__ = [
    "TokenPayload",
]
