"""
API v1 Routes
Projet : Orbital (Facturation)

Router version 1 de l'API.
"""

from fastapi import APIRouter

from orbital.api.v1 import clients, invoices, payments, quotes, settings

# Router agrégé pour v1
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(clients.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(payments.router)
api_v1_router.include_router(quotes.router)
api_v1_router.include_router(settings.router)

__all__ = ["api_v1_router"]
