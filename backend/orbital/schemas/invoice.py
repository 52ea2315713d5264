"""
Schemas Pydantic pour la facturation
Projet : Orbital (Facturation)

Contient :
- Enums : InvoiceType, InvoiceStatus, PaymentStatus
- Schemas d'entrée : InvoiceCreate, InvoiceUpdate, PaymentStatusUpdate
- Schemas de sortie : InvoiceSummary, InvoiceRead
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from orbital.schemas.common import ApiModel, LineItemInput, LineItemRead


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceType(str, Enum):
    """Nature du document."""
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"


class InvoiceStatus(str, Enum):
    """Cycle de vie du document."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """État de l'encaissement."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


# -------------------------------------------------------------------
# Entrée
# -------------------------------------------------------------------

class InvoiceCreate(ApiModel):
    """
    Création d'une facture brouillon.

    `clientId` et `items` sont vérifiés par le service afin de renvoyer
    le message métier « Client et lignes requis ».
    """

    client_id: Optional[uuid.UUID] = Field(None, description="Client facturé")
    items: list[LineItemInput] = Field(default_factory=list, description="Lignes")
    vat_rate: Optional[Decimal] = Field(
        None, ge=0, le=100, decimal_places=2, description="Taux de TVA (défaut 20)"
    )
    issue_date: Optional[datetime.date] = Field(None, description="Date d'émission (défaut : aujourd'hui)")
    due_date: Optional[datetime.date] = Field(None, description="Échéance (défaut : émission + 30 jours)")
    description: Optional[str] = None
    notes: Optional[str] = None


class InvoiceUpdate(ApiModel):
    """Mise à jour partielle ; `items` remplace toutes les lignes."""

    client_id: Optional[uuid.UUID] = None
    items: Optional[list[LineItemInput]] = None
    vat_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    issue_date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[InvoiceStatus] = Field(None, description="Transition de statut")


class PaymentStatusUpdate(ApiModel):
    """Ancien chemin de mise à jour directe de l'état de paiement."""

    payment_status: PaymentStatus
    paid_amount: Optional[Decimal] = Field(
        None,
        description="Accepté pour compatibilité, ignoré (l'état dérive des paiements)",
    )


# -------------------------------------------------------------------
# Sortie
# -------------------------------------------------------------------

class InvoiceSummary(ApiModel):
    """Facture sans ses lignes (listes)."""

    id: uuid.UUID
    invoice_number: str
    invoice_type: InvoiceType
    related_invoice_id: Optional[uuid.UUID] = None
    client_id: uuid.UUID
    client_name: Optional[str] = None
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal
    status: InvoiceStatus
    payment_status: PaymentStatus
    is_finalized: bool
    finalized_at: Optional[datetime.datetime] = None
    issue_date: datetime.date
    due_date: Optional[datetime.date] = None
    paid_at: Optional[datetime.datetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class InvoiceRead(InvoiceSummary):
    """Facture complète avec ses lignes triées par `sortOrder`."""

    items: list[LineItemRead] = Field(default_factory=list)

