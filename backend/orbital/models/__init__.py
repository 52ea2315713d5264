"""
Modèles SQLAlchemy
Projet : Orbital (Facturation)

Import centralisé de tous les modèles (création du schéma, `reset_db.py`).

- Client : fichier clients
- Quote / QuoteItem : devis et lignes
- Invoice / InvoiceItem : factures, avoirs et lignes
- Payment : paiements reçus
- DocumentSettings : paramètres d'édition par utilisateur
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base de tous les modèles SQLAlchemy."""
    pass


from orbital.models.client import Client
from orbital.models.invoice import Invoice, InvoiceItem, Payment
from orbital.models.quote import Quote, QuoteItem
from orbital.models.document_settings import DocumentSettings

__all__ = [
    "Base",
    "Client",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "Quote",
    "QuoteItem",
    "DocumentSettings",
]
