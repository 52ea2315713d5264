"""
Router FastAPI pour les paramètres de documents
Projet : Orbital (Facturation)

`PUT /settings` accepte toutes les sections ; les routes de section
n'acceptent que leurs propres champs.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import get_db
from orbital.core.deps import CurrentUserId
from orbital.schemas.settings import (
    CompanySettingsUpdate,
    DocumentSettingsRead,
    DocumentSettingsUpdate,
    InvoiceThemeUpdate,
    LegalMentionsUpdate,
    QuoteThemeUpdate,
)
from orbital.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings",
    tags=["Paramètres"],
)


def get_settings_service() -> SettingsService:
    return SettingsService()


@router.get(
    "",
    name="parametres_lire",
    summary="Paramètres de documents",
    description="Retourne les paramètres de l'utilisateur, créés avec les valeurs par défaut si besoin.",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def get_document_settings(
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.get_or_create(db=db, user_id=user_id)
    return DocumentSettingsRead.model_validate(document_settings)


@router.put(
    "",
    name="parametres_modifier",
    summary="Modifier les paramètres",
    description="Mise à jour partielle de toutes les sections.",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def update_document_settings(
    settings_data: DocumentSettingsUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.update(db=db, user_id=user_id, data=settings_data)
    return DocumentSettingsRead.model_validate(document_settings)


@router.put(
    "/company",
    name="parametres_entreprise",
    summary="Identité de l'entreprise",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def update_company_settings(
    settings_data: CompanySettingsUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.update(db=db, user_id=user_id, data=settings_data)
    return DocumentSettingsRead.model_validate(document_settings)


@router.put(
    "/legal",
    name="parametres_mentions",
    summary="Mentions légales",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def update_legal_mentions(
    settings_data: LegalMentionsUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.update(db=db, user_id=user_id, data=settings_data)
    return DocumentSettingsRead.model_validate(document_settings)


@router.put(
    "/theme/invoice",
    name="parametres_theme_facture",
    summary="Thème des factures",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def update_invoice_theme(
    settings_data: InvoiceThemeUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.update(db=db, user_id=user_id, data=settings_data)
    return DocumentSettingsRead.model_validate(document_settings)


@router.put(
    "/theme/quote",
    name="parametres_theme_devis",
    summary="Thème des devis",
    response_model=DocumentSettingsRead,
    status_code=status.HTTP_200_OK,
)
async def update_quote_theme(
    settings_data: QuoteThemeUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: SettingsService = Depends(get_settings_service),
) -> DocumentSettingsRead:
    document_settings = await service.update(db=db, user_id=user_id, data=settings_data)
    return DocumentSettingsRead.model_validate(document_settings)
