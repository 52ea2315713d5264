"""
Schemas Pydantic pour les paiements et la trésorerie
Projet : Orbital (Facturation)

Contient :
- PaymentCreate / PaymentRead
- BalanceSummary / InvoicePayments : solde d'une facture
- PaymentStats : agrégat mensuel de trésorerie
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from orbital.schemas.common import ApiModel


class PaymentMethod(str, Enum):
    """Moyens de paiement acceptés."""
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CASH = "cash"
    CHECK = "check"
    OTHER = "other"


class PaymentCreate(ApiModel):
    """
    Enregistrement d'un paiement.

    `invoiceId`, `amount` et `method` sont vérifiés par le service
    (« Facture, montant et méthode requis »).
    """

    invoice_id: Optional[uuid.UUID] = None
    amount: Optional[Decimal] = Field(None, description="Montant TTC reçu")
    method: Optional[PaymentMethod] = None
    reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    payment_date: Optional[datetime.date] = Field(None, description="Défaut : aujourd'hui")


class PaymentRead(ApiModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: datetime.date
    created_at: datetime.datetime
    invoice_number: Optional[str] = None
    client_name: Optional[str] = None


class BalanceSummary(ApiModel):
    """Solde d'une facture : total, déjà payé, reste à payer."""

    invoice_total: Decimal
    total_paid: Decimal
    balance_due: Decimal


class InvoicePayments(ApiModel):
    """Réponse de `GET /payments/invoice/{invoiceId}`."""

    payments: list[PaymentRead]
    summary: BalanceSummary


# -------------------------------------------------------------------
# Statistiques de trésorerie
# -------------------------------------------------------------------

class MonthStats(ApiModel):
    encaisse: Decimal = Field(..., description="Paiements reçus ce mois-ci")
    facture: Decimal = Field(..., description="Factures émises ce mois-ci")


class OverdueStats(ApiModel):
    count: int
    total: Decimal


class RecentPayment(ApiModel):
    id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    payment_date: datetime.date
    invoice_number: Optional[str] = None
    client_name: Optional[str] = None


class PaymentStats(ApiModel):
    """Réponse de `GET /payments/stats`."""

    month: MonthStats
    en_attente: Decimal = Field(..., description="Total des factures impayées ou partiellement payées")
    overdue: OverdueStats
    recent_payments: list[RecentPayment]
