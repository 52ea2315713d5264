"""
Service des paramètres de documents
Projet : Orbital (Facturation)

Une ligne par utilisateur, créée avec les valeurs par défaut à la
première lecture.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import commit_or_raise
from orbital.core.exceptions import InternalError
from orbital.models import DocumentSettings
from orbital.schemas.common import ApiModel

logger = logging.getLogger(__name__)


class SettingsService:

    async def get_or_create(self, db: AsyncSession, user_id: str) -> DocumentSettings:
        """Retourne les paramètres de l'utilisateur, créés s'ils n'existent pas."""
        document_settings = await self._get(db, user_id)
        if document_settings is not None:
            return document_settings

        db.add(DocumentSettings(user_id=user_id))
        try:
            await db.commit()
        except IntegrityError:
            # création concurrente : la ligne existe désormais
            await db.rollback()
            logger.warning("Paramètres déjà créés pour %s", user_id)
        else:
            logger.info("Paramètres par défaut créés pour %s", user_id)

        document_settings = await self._get(db, user_id)
        if document_settings is None:
            raise InternalError("Erreur lors de la création des paramètres")
        return document_settings

    async def update(
        self,
        db: AsyncSession,
        user_id: str,
        data: ApiModel,
    ) -> DocumentSettings:
        """
        Mise à jour partielle.

        `data` est `DocumentSettingsUpdate` ou l'un des schémas de section
        (entreprise, mentions, thème facture, thème devis) ; seuls les
        champs envoyés sont modifiés.
        """
        document_settings = await self.get_or_create(db, user_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(document_settings, field, value)

        await commit_or_raise(db, "la mise à jour des paramètres")

        logger.info("Paramètres mis à jour pour %s (%s)", user_id, ", ".join(changes) or "aucun champ")
        return await self._get(db, user_id)

    async def _get(self, db: AsyncSession, user_id: str):
        stmt = (
            select(DocumentSettings)
            .where(DocumentSettings.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return (await db.execute(stmt)).scalar_one_or_none()
