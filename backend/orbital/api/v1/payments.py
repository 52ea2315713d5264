"""
Router FastAPI pour les paiements
Projet : Orbital (Facturation)

Enregistrement et suppression des paiements, solde d'une facture et
statistiques de trésorerie.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import get_db
from orbital.core.deps import CurrentUserId
from orbital.schemas.common import DeleteResponse
from orbital.schemas.payment import (
    InvoicePayments,
    PaymentCreate,
    PaymentRead,
    PaymentStats,
)
from orbital.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["Paiements"],
)


def get_payment_service() -> PaymentService:
    """Dependency fournissant le PaymentService."""
    return PaymentService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="paiements_liste",
    summary="Liste des paiements",
    description="Liste les paiements, les plus récents d'abord.",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    user_id: CurrentUserId,
    invoice_id: Optional[uuid.UUID] = Query(None, alias="invoiceId", description="Filtre par facture"),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> list[PaymentRead]:
    payments = await service.get_all(db=db, user_id=user_id, invoice_id=invoice_id)
    return [PaymentRead.model_validate(p) for p in payments]


@router.get(
    "/stats",
    name="paiements_statistiques",
    summary="Statistiques de trésorerie",
    description=(
        "Encaissé et facturé du mois, total en attente, factures en retard "
        "et derniers paiements."
    ),
    response_model=PaymentStats,
    status_code=status.HTTP_200_OK,
)
async def get_payment_stats(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentStats:
    return await service.get_stats(db=db, user_id=user_id)


@router.get(
    "/invoice/{invoice_id}",
    name="paiements_facture",
    summary="Paiements d'une facture",
    description="Paiements d'une facture avec total, déjà payé et reste à payer.",
    response_model=InvoicePayments,
    status_code=status.HTTP_200_OK,
)
async def get_invoice_payments(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> InvoicePayments:
    return await service.get_invoice_payments(db=db, user_id=user_id, invoice_id=invoice_id)


@router.post(
    "",
    name="paiement_enregistrer",
    summary="Enregistrer un paiement",
    description="Enregistre un paiement et recalcule l'état de la facture.",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payment_data: PaymentCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """
    Enregistre un paiement.

    Raises:
        BusinessValidationError: montant nul, négatif ou supérieur au reste à payer (400)
        NotFoundError: facture inconnue (404)
    """
    payment = await service.record_payment(db=db, user_id=user_id, data=payment_data)
    return PaymentRead.model_validate(payment)


@router.delete(
    "/{payment_id}",
    name="paiement_supprimer",
    summary="Supprimer un paiement",
    description="Supprime un paiement ; la facture peut revenir à partiel ou impayé.",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_payment(
    payment_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> DeleteResponse:
    deleted_id = await service.delete_payment(db=db, user_id=user_id, payment_id=payment_id)
    return DeleteResponse(id=deleted_id)
