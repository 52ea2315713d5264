"""
API Routes
Projet : Orbital (Facturation)

Module d'agrégation des routers versionnés.
"""

from orbital.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
