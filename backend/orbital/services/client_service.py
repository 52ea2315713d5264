"""
Service Layer pour l'entité Client
Projet : Orbital (Facturation)

Logique métier du fichier clients :
- CRUD filtré par utilisateur propriétaire
- Rattachement d'un contact à une société mère du même utilisateur
- Suppression restreinte (refusée si des factures ou devis existent)
- Rafraîchissement des compteurs dénormalisés (CA encaissé, nombre de factures)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import commit_or_raise
from orbital.core.exceptions import BusinessValidationError, NotFoundError
from orbital.models import Client, Invoice, Payment, Quote
from orbital.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """
    Service des opérations sur les clients.

    Toutes les méthodes reçoivent l'identifiant de l'utilisateur courant ;
    un client d'un autre utilisateur est traité comme inexistant.
    """

    async def get_all(
        self,
        db: AsyncSession,
        user_id: str,
        search: Optional[str] = None,
    ) -> list[Client]:
        """Liste les clients de l'utilisateur, les plus récents d'abord."""
        stmt = select(Client).where(Client.user_id == user_id)
        if search:
            stmt = stmt.where(Client.name.ilike(f"%{search}%"))
        result = await db.execute(stmt.order_by(Client.created_at.desc()))
        return list(result.scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: str,
        client_id: uuid.UUID,
    ) -> Client:
        """
        Récupère un client.

        Raises:
            NotFoundError: client inexistant ou appartenant à un autre utilisateur
        """
        stmt = (
            select(Client)
            .where(Client.id == client_id, Client.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        client = (await db.execute(stmt)).scalar_one_or_none()
        if client is None:
            logger.warning("Client non trouvé : %s (utilisateur %s)", client_id, user_id)
            raise NotFoundError("Client non trouvé")
        return client

    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        data: ClientCreate,
    ) -> Client:
        """
        Crée un client.

        Raises:
            BusinessValidationError: nom absent ou société mère invalide
        """
        if not data.name or not data.name.strip():
            raise BusinessValidationError("Le nom est requis")

        if data.parent_company_id is not None:
            await self._check_parent_company(db, user_id, data.parent_company_id)

        client = Client(user_id=user_id, **data.model_dump())
        client.name = client.name.strip()
        db.add(client)
        await commit_or_raise(db, "la création du client")

        logger.info("Client créé : %s - %s (%s)", client.id, client.name, client.client_type)
        return await self.get_by_id(db, user_id, client.id)

    async def update(
        self,
        db: AsyncSession,
        user_id: str,
        client_id: uuid.UUID,
        data: ClientUpdate,
    ) -> Client:
        """
        Met à jour les champs fournis d'un client.

        Les compteurs dénormalisés ne sont pas modifiables ici.
        """
        client = await self.get_by_id(db, user_id, client_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes:
            if not changes["name"] or not changes["name"].strip():
                raise BusinessValidationError("Le nom est requis")
            changes["name"] = changes["name"].strip()

        if changes.get("parent_company_id") is not None:
            await self._check_parent_company(
                db, user_id, changes["parent_company_id"], client_id=client.id
            )

        for field, value in changes.items():
            setattr(client, field, value)

        await commit_or_raise(db, "la mise à jour du client")
        logger.info("Client mis à jour : %s (%s)", client.id, ", ".join(changes) or "aucun champ")
        return await self.get_by_id(db, user_id, client.id)

    async def delete(
        self,
        db: AsyncSession,
        user_id: str,
        client_id: uuid.UUID,
    ) -> uuid.UUID:
        """
        Supprime un client sans document.

        Les contacts rattachés sont détachés (société mère remise à vide).

        Raises:
            NotFoundError: client inexistant
            BusinessValidationError: le client a des factures ou des devis
        """
        client = await self.get_by_id(db, user_id, client_id)

        invoice_count = await db.scalar(
            select(func.count(Invoice.id)).where(Invoice.client_id == client.id)
        )
        quote_count = await db.scalar(
            select(func.count(Quote.id)).where(Quote.client_id == client.id)
        )
        if invoice_count or quote_count:
            logger.warning(
                "Suppression refusée pour le client %s : %d facture(s), %d devis",
                client.id, invoice_count, quote_count,
            )
            raise BusinessValidationError(
                "Impossible de supprimer un client ayant des factures ou des devis"
            )

        await db.execute(
            update(Client)
            .where(Client.user_id == user_id, Client.parent_company_id == client.id)
            .values(parent_company_id=None)
        )
        await db.delete(client)
        await commit_or_raise(db, "la suppression du client")

        logger.info("Client supprimé : %s - %s", client_id, client.name)
        return client_id

    async def refresh_totals(
        self,
        db: AsyncSession,
        user_id: str,
        client_id: uuid.UUID,
    ) -> None:
        """
        Recalcule `total_revenue_cents` et `invoice_count` d'un client.

        N'effectue pas de commit : appelé dans l'unité de travail qui modifie
        les factures ou les paiements, après un flush.
        """
        revenue = await db.scalar(
            select(func.coalesce(func.sum(Payment.amount_cents), 0))
            .join(Invoice, Payment.invoice_id == Invoice.id)
            .where(Invoice.user_id == user_id, Invoice.client_id == client_id)
        )
        count = await db.scalar(
            select(func.count(Invoice.id)).where(
                Invoice.user_id == user_id,
                Invoice.client_id == client_id,
                Invoice.invoice_type == "invoice",
            )
        )
        await db.execute(
            update(Client)
            .where(Client.id == client_id, Client.user_id == user_id)
            .values(total_revenue_cents=int(revenue or 0), invoice_count=int(count or 0))
        )

    async def _check_parent_company(
        self,
        db: AsyncSession,
        user_id: str,
        parent_id: uuid.UUID,
        client_id: Optional[uuid.UUID] = None,
    ) -> None:
        """La société mère doit être une société du même utilisateur, autre que le client."""
        if client_id is not None and parent_id == client_id:
            raise BusinessValidationError("Un client ne peut pas être sa propre société mère")

        parent = await db.scalar(
            select(Client).where(Client.id == parent_id, Client.user_id == user_id)
        )
        if parent is None or parent.client_type != "company":
            raise BusinessValidationError("Société mère invalide")
