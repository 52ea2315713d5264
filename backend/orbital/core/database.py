"""
Configuration base de données - SQLAlchemy 2.0 Async
Projet : Orbital (Facturation)

Définit l'objet `Database` (engine + fabrique de sessions) et la dépendance
FastAPI qui fournit une session par requête.

L'instance `Database` est créée au démarrage de l'application (ou injectée
par les tests) et rangée dans `app.state.database` ; elle est fermée à l'arrêt.
"""

import logging
from typing import Any, AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orbital.core.config import Settings
from orbital.core.exceptions import InternalError

logger = logging.getLogger(__name__)


class Database:
    """
    Stockage relationnel de l'application.

    Encapsule l'engine async et la fabrique de sessions. Le cycle de vie
    est explicite : `init()` au démarrage, `dispose()` à l'arrêt.
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Construit la base à partir des paramètres applicatifs."""
        engine_kwargs: dict[str, Any] = {
            "echo": settings.debug,
            "pool_pre_ping": True,
        }
        # Les options de pool ne s'appliquent qu'aux serveurs (pas à SQLite)
        if settings.database_url.startswith("postgresql"):
            engine_kwargs["pool_size"] = settings.db_pool_size
            engine_kwargs["max_overflow"] = settings.db_max_overflow
        return cls(settings.database_url, **engine_kwargs)

    async def init(self) -> None:
        """Vérifie que la base est joignable."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Connexion à la base de données établie")
        except Exception as e:
            logger.error("Erreur de connexion à la base de données : %s", e)
            raise

    async def create_all(self) -> None:
        """Crée toutes les tables déclarées (dev et tests)."""
        from orbital.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        """Supprime toutes les tables déclarées."""
        from orbital.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Ferme les connexions du pool."""
        await self.engine.dispose()
        logger.info("Connexions à la base de données fermées")


def get_database(request: Request) -> Database:
    """Retourne la base attachée à l'application courante."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Base de données non initialisée")
    return database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dépendance FastAPI : une session par requête.

    Example:
        @router.get("/invoices")
        async def list_invoices(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_database(request).session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def commit_or_raise(db: AsyncSession, operation: str) -> None:
    """
    Valide la transaction d'un service.

    Une violation de contrainte annule la transaction et devient une
    `InternalError` (500).
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.error("Erreur d'intégrité pendant %s : %s", operation, e.orig)
        raise InternalError(f"Erreur lors de {operation}")
