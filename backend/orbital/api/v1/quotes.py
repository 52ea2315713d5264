"""
Router FastAPI pour les devis
Projet : Orbital (Facturation)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.config import Settings, get_settings
from orbital.core.database import get_db
from orbital.core.deps import CurrentUserId
from orbital.schemas.common import DeleteResponse
from orbital.schemas.invoice import InvoiceRead
from orbital.schemas.quote import (
    QuoteConversionResponse,
    QuoteCreate,
    QuoteRead,
    QuoteStatus,
    QuoteSummary,
    QuoteUpdate,
)
from orbital.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/quotes",
    tags=["Devis"],
)


def get_quote_service(settings: Settings = Depends(get_settings)) -> QuoteService:
    """Dependency fournissant le QuoteService configuré."""
    return QuoteService(settings=settings)


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="devis_liste",
    summary="Liste des devis",
    description="Liste les devis, les plus récents d'abord.",
    response_model=list[QuoteSummary],
    status_code=status.HTTP_200_OK,
)
async def get_quotes(
    user_id: CurrentUserId,
    status_filter: Optional[QuoteStatus] = Query(None, alias="status", description="Filtre par statut"),
    client_id: Optional[uuid.UUID] = Query(None, alias="clientId", description="Filtre par client"),
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> list[QuoteSummary]:
    quotes = await service.get_all(
        db=db,
        user_id=user_id,
        status=status_filter.value if status_filter else None,
        client_id=client_id,
    )
    return [QuoteSummary.model_validate(q) for q in quotes]


@router.get(
    "/{quote_id}",
    name="devis_detail",
    summary="Détail d'un devis",
    description="Récupère un devis avec ses lignes.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_quote(
    quote_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.get_by_id(db=db, user_id=user_id, quote_id=quote_id)
    return QuoteRead.model_validate(quote)


@router.post(
    "",
    name="devis_creer",
    summary="Créer un devis",
    description="Crée un devis brouillon numéroté DEV-AAAA-NNNN.",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    quote_data: QuoteCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.create(db=db, user_id=user_id, data=quote_data)
    return QuoteRead.model_validate(quote)


@router.put(
    "/{quote_id}",
    name="devis_modifier",
    summary="Modifier un devis",
    description="Mise à jour partielle ; les lignes fournies remplacent les existantes.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def update_quote(
    quote_id: uuid.UUID,
    quote_data: QuoteUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.update(db=db, user_id=user_id, quote_id=quote_id, data=quote_data)
    return QuoteRead.model_validate(quote)


@router.delete(
    "/{quote_id}",
    name="devis_supprimer",
    summary="Supprimer un devis",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_quote(
    quote_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> DeleteResponse:
    deleted_id = await service.delete(db=db, user_id=user_id, quote_id=quote_id)
    return DeleteResponse(id=deleted_id)


@router.post(
    "/{quote_id}/sign",
    name="devis_signer",
    summary="Signer un devis",
    description="Marque le devis comme accepté par le client.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def sign_quote(
    quote_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.sign(db=db, user_id=user_id, quote_id=quote_id)
    return QuoteRead.model_validate(quote)


@router.post(
    "/{quote_id}/convert",
    name="devis_convertir",
    summary="Convertir en facture",
    description="Crée une facture brouillon à partir du devis. Une seule conversion par devis.",
    response_model=QuoteConversionResponse,
    status_code=status.HTTP_200_OK,
)
async def convert_quote(
    quote_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteConversionResponse:
    """
    Convertit un devis en facture.

    Raises:
        ImmutabilityError: devis déjà converti (403)
    """
    quote, invoice = await service.convert_to_invoice(db=db, user_id=user_id, quote_id=quote_id)
    return QuoteConversionResponse(
        quote=QuoteRead.model_validate(quote),
        invoice=InvoiceRead.model_validate(invoice),
    )


@router.post(
    "/{quote_id}/duplicate",
    name="devis_dupliquer",
    summary="Dupliquer un devis",
    description="Copie un devis sous un nouveau numéro, en brouillon.",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_quote(
    quote_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.duplicate(db=db, user_id=user_id, quote_id=quote_id)
    return QuoteRead.model_validate(quote)
