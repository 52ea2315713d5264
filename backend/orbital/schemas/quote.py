"""
Schemas Pydantic pour les devis
Projet : Orbital (Facturation)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from orbital.schemas.common import ApiModel, LineItemInput, LineItemRead
from orbital.schemas.invoice import InvoiceRead


class QuoteStatus(str, Enum):
    """États d'un devis."""
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class QuoteCreate(ApiModel):
    """Création d'un devis brouillon."""

    client_id: Optional[uuid.UUID] = Field(None, description="Client destinataire")
    items: list[LineItemInput] = Field(default_factory=list)
    vat_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    issue_date: Optional[datetime.date] = None
    valid_until: Optional[datetime.date] = Field(
        None,
        description="Fin de validité (défaut : émission + 30 jours)",
    )
    description: Optional[str] = None
    notes: Optional[str] = None


class QuoteUpdate(ApiModel):
    """Mise à jour partielle ; `items` remplace toutes les lignes."""

    client_id: Optional[uuid.UUID] = None
    items: Optional[list[LineItemInput]] = None
    vat_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    issue_date: Optional[datetime.date] = None
    valid_until: Optional[datetime.date] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[QuoteStatus] = None


class QuoteSummary(ApiModel):
    id: uuid.UUID
    quote_number: str
    client_id: uuid.UUID
    client_name: Optional[str] = None
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal
    status: QuoteStatus
    issue_date: datetime.date
    valid_until: Optional[datetime.date] = None
    accepted_at: Optional[datetime.datetime] = None
    converted_to_invoice_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class QuoteRead(QuoteSummary):
    items: list[LineItemRead] = Field(default_factory=list)


class QuoteConversionResponse(ApiModel):
    """Réponse de `POST /quotes/{id}/convert`."""

    quote: QuoteRead
    invoice: InvoiceRead


class ConvertToQuoteResponse(ApiModel):
    """Réponse de `POST /invoices/{id}/convert-to-quote`."""

    success: bool = True
    quote: QuoteRead
