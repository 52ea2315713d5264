"""
Service de numérotation des documents
Projet : Orbital (Facturation)

Numéros séquentiels annuels, par utilisateur et par nature de document :

    FAC-2025-0001   facture
    AV-2025-0001    avoir
    DEV-2025-0001   devis

Le prochain numéro est `MAX(sequence_number) + 1` pour (utilisateur, nature,
année). Un numéro supprimé n'est donc jamais réattribué tant qu'un numéro
supérieur existe. La concurrence est traitée en deux temps :
- sur PostgreSQL, verrou consultatif de transaction par (utilisateur, nature, année)
- partout, contrainte d'unicité en base + nouvel essai (`run_with_retry`)
"""

import logging
from typing import Awaitable, Callable, NamedTuple, TypeVar

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.exceptions import BusinessValidationError, InternalError
from orbital.models import Invoice, Quote

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCUMENT_PREFIXES = {
    "invoice": "FAC",
    "credit_note": "AV",
    "quote": "DEV",
}

MAX_SEQUENCE = 9999


class DocumentNumber(NamedTuple):
    """Numéro attribué et ses composantes persistées."""

    number: str
    year: int
    sequence: int


def format_document_number(kind: str, year: int, sequence: int) -> str:
    """`{PREFIX}-{année}-{séquence sur 4 chiffres}`."""
    return f"{DOCUMENT_PREFIXES[kind]}-{year}-{sequence:04d}"


class NumberingService:
    """
    Attribution des numéros de factures, d'avoirs et de devis.

    Doit être appelé à l'intérieur de l'unité de travail qui insère le
    document, afin que la lecture du maximum et l'insertion partagent la
    même transaction.
    """

    async def next_number(
        self,
        db: AsyncSession,
        user_id: str,
        kind: str,
        year: int,
    ) -> DocumentNumber:
        """
        Calcule le prochain numéro libre.

        Args:
            db: Session de base de données
            user_id: Propriétaire
            kind: 'invoice', 'credit_note' ou 'quote'
            year: Année de numérotation

        Returns:
            DocumentNumber: numéro formaté, année, séquence

        Raises:
            BusinessValidationError: plus de 9999 documents pour l'année
        """
        if kind not in DOCUMENT_PREFIXES:
            raise ValueError(f"Nature de document inconnue : {kind}")

        await self._acquire_lock(db, user_id, kind, year)

        if kind == "quote":
            stmt = select(func.max(Quote.sequence_number)).where(
                Quote.user_id == user_id,
                Quote.sequence_year == year,
            )
        else:
            stmt = select(func.max(Invoice.sequence_number)).where(
                Invoice.user_id == user_id,
                Invoice.invoice_type == kind,
                Invoice.sequence_year == year,
            )

        current = (await db.execute(stmt)).scalar()
        next_sequence = (current or 0) + 1

        if next_sequence > MAX_SEQUENCE:
            raise BusinessValidationError(
                f"Limite de numérotation atteinte pour l'année {year}"
            )

        return DocumentNumber(
            number=format_document_number(kind, year, next_sequence),
            year=year,
            sequence=next_sequence,
        )

    async def _acquire_lock(
        self,
        db: AsyncSession,
        user_id: str,
        kind: str,
        year: int,
    ) -> None:
        """Verrou consultatif libéré au commit/rollback (PostgreSQL seulement)."""
        if db.get_bind().dialect.name != "postgresql":
            return
        await db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
            {"lock_key": f"{user_id}:{kind}:{year}"},
        )


async def run_with_retry(
    db: AsyncSession,
    unit_of_work: Callable[[], Awaitable[T]],
    max_retries: int,
    operation: str,
) -> T:
    """
    Exécute puis valide une unité de travail, en la rejouant en cas de conflit.

    `unit_of_work` doit relire ses préconditions à chaque appel : après un
    rollback, les objets de la session sont expirés et les objets en
    attente sont détachés.

    Raises:
        InternalError: conflit persistant après `max_retries` tentatives
    """
    for attempt in range(1, max_retries + 1):
        try:
            result = await unit_of_work()
            await db.commit()
            return result
        except IntegrityError as e:
            await db.rollback()
            logger.warning(
                "Conflit d'intégrité pendant %s (tentative %d/%d) : %s",
                operation, attempt, max_retries, e.orig,
            )
        except Exception:
            await db.rollback()
            raise

    logger.error("Abandon de %s après %d tentatives", operation, max_retries)
    raise InternalError(f"Impossible de finaliser l'opération : {operation}")
