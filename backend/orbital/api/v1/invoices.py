"""
Router FastAPI pour la facturation
Projet : Orbital (Facturation)

Endpoints des factures et des avoirs : CRUD, finalisation, avoirs,
état de paiement direct et conversion en devis.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.api.v1.payments import get_payment_service
from orbital.api.v1.quotes import get_quote_service
from orbital.core.config import Settings, get_settings
from orbital.core.database import get_db
from orbital.core.deps import CurrentUserId
from orbital.schemas.common import DeleteResponse
from orbital.schemas.invoice import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceStatus,
    InvoiceSummary,
    InvoiceUpdate,
    PaymentStatus,
    PaymentStatusUpdate,
)
from orbital.schemas.quote import ConvertToQuoteResponse, QuoteRead
from orbital.services.invoice_service import InvoiceService
from orbital.services.payment_service import PaymentService
from orbital.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Factures"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_invoice_service(settings: Settings = Depends(get_settings)) -> InvoiceService:
    """Dependency fournissant l'InvoiceService configuré."""
    return InvoiceService(settings=settings)


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="factures_liste",
    summary="Liste des factures",
    description=(
        "Liste les factures et avoirs, les plus récents d'abord. "
        "Les factures échues sont passées en retard avant la lecture."
    ),
    response_model=list[InvoiceSummary],
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    user_id: CurrentUserId,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Filtre par statut"),
    payment_status: Optional[PaymentStatus] = Query(
        None,
        alias="paymentStatus",
        description="Filtre par état de paiement",
    ),
    client_id: Optional[uuid.UUID] = Query(None, alias="clientId", description="Filtre par client"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[InvoiceSummary]:
    invoices = await service.get_all(
        db=db,
        user_id=user_id,
        status=status_filter.value if status_filter else None,
        payment_status=payment_status.value if payment_status else None,
        client_id=client_id,
    )
    return [InvoiceSummary.model_validate(i) for i in invoices]


@router.get(
    "/{invoice_id}",
    name="facture_detail",
    summary="Détail d'une facture",
    description="Récupère une facture avec ses lignes.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_by_id(db=db, user_id=user_id, invoice_id=invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "",
    name="facture_creer",
    summary="Créer une facture",
    description="Crée une facture brouillon numérotée FAC-AAAA-NNNN.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    invoice_data: InvoiceCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Crée une facture brouillon.

    Valeurs par défaut : TVA 20 %, émission aujourd'hui, échéance à 30 jours.

    Raises:
        BusinessValidationError: client ou lignes absents (400)
        NotFoundError: client inconnu (404)
    """
    invoice = await service.create(db=db, user_id=user_id, data=invoice_data)
    return InvoiceRead.model_validate(invoice)


@router.put(
    "/{invoice_id}",
    name="facture_modifier",
    summary="Modifier une facture",
    description="Mise à jour partielle d'une facture ni finalisée ni payée.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def update_invoice(
    invoice_id: uuid.UUID,
    invoice_data: InvoiceUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Met à jour une facture.

    Raises:
        ImmutabilityError: facture finalisée ou payée (403)
        BusinessValidationError: transition de statut invalide (400)
    """
    invoice = await service.update(db=db, user_id=user_id, invoice_id=invoice_id, data=invoice_data)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/finalize",
    name="facture_finaliser",
    summary="Finaliser une facture",
    description="Verrouille définitivement une facture envoyée.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def finalize_invoice(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.finalize(db=db, user_id=user_id, invoice_id=invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/credit-note",
    name="facture_avoir",
    summary="Émettre un avoir",
    description="Crée un avoir (AV-AAAA-NNNN) aux montants négatifs de la facture.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def issue_credit_note(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    credit_note = await service.issue_credit_note(db=db, user_id=user_id, invoice_id=invoice_id)
    return InvoiceRead.model_validate(credit_note)


@router.put(
    "/{invoice_id}/payment",
    name="facture_etat_paiement",
    summary="Modifier l'état de paiement",
    description=(
        "Change directement l'état de paiement. Si des paiements sont "
        "enregistrés, l'état doit correspondre à leur somme."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def update_payment_status(
    invoice_id: uuid.UUID,
    payment_data: PaymentStatusUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> InvoiceRead:
    """
    `paidAmount` est accepté mais ignoré : le montant payé dérive
    toujours des paiements enregistrés.
    """
    invoice = await service.update_payment_status(
        db=db,
        user_id=user_id,
        invoice_id=invoice_id,
        target=payment_data.payment_status,
    )
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/convert-to-quote",
    name="facture_vers_devis",
    summary="Convertir en devis",
    description="Crée un devis brouillon à partir de la facture.",
    response_model=ConvertToQuoteResponse,
    status_code=status.HTTP_200_OK,
)
async def convert_to_quote(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> ConvertToQuoteResponse:
    quote = await service.create_from_invoice(db=db, user_id=user_id, invoice_id=invoice_id)
    return ConvertToQuoteResponse(quote=QuoteRead.model_validate(quote))


@router.delete(
    "/{invoice_id}",
    name="facture_supprimer",
    summary="Supprimer une facture",
    description="Supprime une facture non finalisée, non payée et sans historique.",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_invoice(
    invoice_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> DeleteResponse:
    deleted_id = await service.delete(db=db, user_id=user_id, invoice_id=invoice_id)
    return DeleteResponse(id=deleted_id)
