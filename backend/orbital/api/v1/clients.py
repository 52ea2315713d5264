"""
Router FastAPI pour l'entité Client
Projet : Orbital (Facturation)

Endpoints de gestion du fichier clients.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import get_db
from orbital.core.deps import CurrentUserId
from orbital.schemas.client import ClientCreate, ClientRead, ClientUpdate
from orbital.schemas.common import DeleteResponse
from orbital.services.client_service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """Dependency fournissant le ClientService."""
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="clients_liste",
    summary="Liste des clients",
    description="Liste les clients de l'utilisateur, avec recherche optionnelle sur le nom.",
    response_model=list[ClientRead],
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    user_id: CurrentUserId,
    search: Optional[str] = Query(None, description="Recherche sur le nom"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> list[ClientRead]:
    clients = await service.get_all(db=db, user_id=user_id, search=search)
    return [ClientRead.model_validate(c) for c in clients]


@router.get(
    "/{client_id}",
    name="client_detail",
    summary="Détail d'un client",
    description="Récupère un client de l'utilisateur.",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def get_client(
    client_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.get_by_id(db=db, user_id=user_id, client_id=client_id)
    return ClientRead.model_validate(client)


@router.post(
    "",
    name="client_creer",
    summary="Créer un client",
    description="Crée un client ; seul le nom est obligatoire.",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Crée un client.

    Raises:
        BusinessValidationError: nom absent ou société mère invalide
    """
    client = await service.create(db=db, user_id=user_id, data=client_data)
    return ClientRead.model_validate(client)


@router.put(
    "/{client_id}",
    name="client_modifier",
    summary="Modifier un client",
    description="Met à jour les champs fournis d'un client.",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update(db=db, user_id=user_id, client_id=client_id, data=client_data)
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="client_supprimer",
    summary="Supprimer un client",
    description="Supprime un client sans facture ni devis.",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
)
async def delete_client(
    client_id: uuid.UUID,
    user_id: CurrentUserId,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> DeleteResponse:
    """
    Supprime un client.

    Refusé (400) si le client a des factures ou des devis.
    """
    deleted_id = await service.delete(db=db, user_id=user_id, client_id=client_id)
    return DeleteResponse(id=deleted_id)
