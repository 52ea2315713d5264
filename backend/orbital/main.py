"""
Main Entry Point - FastAPI Application
Projet : Orbital (Facturation)

Configure l'application FastAPI : middleware, routers, gestion des erreurs
et cycle de vie de la base de données.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from orbital.api.v1 import api_v1_router
from orbital.core.config import Settings, get_settings
from orbital.core.database import Database
from orbital.core.exceptions import AppException

# ------------------------------------------------------------
# Configuration Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestionnaire des exceptions métier.

    Traduit l'exception en `{"error": ..., "code": ...}` avec son code HTTP.
    """
    content = {"error": exc.detail, "code": exc.error_code}
    if exc.extra:
        content.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Données d'entrée mal formées : 400 avec le premier message pydantic."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location} : {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Données invalides"
    logger.warning("Requête invalide sur %s : %s", request.url.path, message)
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": "VALIDATION_ERROR"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestionnaire des exceptions non prévues.

    Journalise la trace complète et renvoie un 500 générique.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Erreur serveur", "code": "INTERNAL_ERROR"},
    )


# ------------------------------------------------------------
# Application Factory
# ------------------------------------------------------------
def create_app(
    app_settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Construit l'application.

    Args:
        app_settings: Paramètres (défaut : `get_settings()`)
        database: Base déjà construite (tests) ; sinon créée au démarrage
            depuis `database_url` et fermée à l'arrêt
    """
    app_settings = app_settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Cycle de vie de l'application.

        - Startup : connexion à la base
        - Shutdown : fermeture des connexions (si la base a été créée ici)
        """
        logger.info("Démarrage de %s v%s", app_settings.app_name, app_settings.app_version)
        owns_database = getattr(app.state, "database", None) is None
        if owns_database:
            app.state.database = Database.from_settings(app_settings)
        await app.state.database.init()
        logger.info("Application démarrée")

        yield

        logger.info("Arrêt de l'application...")
        if owns_database:
            await app.state.database.dispose()
        logger.info("Application arrêtée")

    app = FastAPI(
        title=app_settings.app_name,
        description="Facturation et devis - Backend API",
        version=app_settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
    )
    if database is not None:
        app.state.database = database

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(
        "/health",
        name="Health Check",
        summary="État de l'application",
        tags=["System"],
    )
    async def health_check() -> dict[str, str]:
        return {
            "status": "healthy",
            "app": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.app_env,
        }

    app.include_router(api_v1_router)
    return app


app = create_app()
