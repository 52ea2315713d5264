"""
Exceptions métier de l'application.
Projet : Orbital (Facturation)

Chaque exception porte le code HTTP et le code d'erreur renvoyés au client.
Les gestionnaires FastAPI (voir `orbital.main`) les traduisent en `{"error": ...}`.

NOTE : BusinessValidationError est distincte de pydantic.ValidationError.
- pydantic.ValidationError : format/type des données d'entrée (traduit en 400)
- BusinessValidationError : violation d'une règle métier (400)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "BusinessValidationError",
    "ValidationError",       # alias de BusinessValidationError
    "AuthenticationError",
    "ImmutabilityError",
    "NotFoundError",
    "InternalError",
]


class AppException(Exception):
    """
    Exception de base de l'application.

    Attributes:
        status_code: code HTTP renvoyé au client
        error_code: identifiant stable de l'erreur pour le frontend
        detail: message lisible par l'utilisateur
        extra: données complémentaires (optionnel)
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class BusinessValidationError(ValueError, AppException):
    """
    Violation d'une règle métier.

    Exemples :
        - "Client et lignes requis"
        - "Le montant dépasse le reste à payer (120.00 €)"
        - "Envoyez la facture avant de la finaliser"
    """

    status_code: int = 400
    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Données invalides",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # AppException.__init__ directement pour ne pas passer par ValueError
        AppException.__init__(self, detail, error_code, extra)


ValidationError = BusinessValidationError


class AuthenticationError(AppException):
    """Aucune identité utilisateur n'a pu être résolue."""

    status_code: int = 401
    error_code: str = "NOT_AUTHENTICATED"

    def __init__(
        self,
        detail: str = "Non authentifié",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ImmutabilityError(AppException):
    """
    Modification refusée sur un document verrouillé.

    Levée pour une facture finalisée ou payée, et pour un devis
    déjà converti en facture.
    """

    status_code: int = 403
    error_code: str = "IMMUTABLE_DOCUMENT"

    def __init__(
        self,
        detail: str = "Document verrouillé",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class NotFoundError(AppException):
    """
    Ressource introuvable.

    Une ressource appartenant à un autre utilisateur est aussi
    signalée comme introuvable.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Ressource non trouvée",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class InternalError(AppException):
    """Échec inattendu de la persistance."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        detail: str = "Erreur serveur",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
