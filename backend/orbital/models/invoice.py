"""
Modèles SQLAlchemy pour la facturation
Projet : Orbital (Facturation)

Contient :
- Invoice : facture ou avoir (credit_note)
- InvoiceItem : lignes de la facture
- Payment : paiements enregistrés sur une facture

Tous les montants sont stockés en centimes entiers (colonnes `*_cents`)
et exposés en `Decimal` via des propriétés.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orbital.core.money import from_cents
from orbital.models import Base
from orbital.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from orbital.models.client import Client

INVOICE_TYPES = ("invoice", "credit_note")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")
PAYMENT_STATUSES = ("unpaid", "partial", "paid", "overdue")
PAYMENT_METHODS = ("bank_transfer", "card", "cash", "check", "other")


class Invoice(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Modèle des factures et des avoirs.

    Deux axes d'état indépendants mais synchronisés :
    - status : cycle du document (draft, sent, paid, overdue, cancelled)
    - payment_status : état de l'encaissement (unpaid, partial, paid, overdue)

    Une fois `is_finalized` vrai ou `status == 'paid'`, les montants et les
    lignes ne changent plus ; la correction passe par un avoir
    (`invoice_type == 'credit_note'`, `related_invoice_id` renseigné,
    montants négatifs).

    Attributes:
        invoice_number: numéro lisible, `FAC-{année}-{seq}` ou `AV-{année}-{seq}`
        sequence_year / sequence_number: composantes du numéro, uniques par
            (user_id, invoice_type)
        subtotal_cents / vat_amount_cents / total_cents: totaux en centimes
        vat_rate: taux de TVA en pourcentage
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="Client facturé",
    )

    related_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=True,
        doc="Facture d'origine (avoirs uniquement)",
    )

    # ------------------------------------------------------------
    # Numérotation
    # ------------------------------------------------------------
    invoice_number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        doc="Numéro séquentiel annuel (FAC-2025-0001, AV-2025-0001)",
    )

    invoice_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="invoice",
        doc="invoice | credit_note",
    )

    sequence_year: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # ------------------------------------------------------------
    # Montants
    # ------------------------------------------------------------
    subtotal_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    vat_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("20.00"),
        doc="Taux de TVA (défaut 20 %)",
    )

    vat_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # ------------------------------------------------------------
    # États
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="unpaid")

    is_finalized: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Verrou irréversible posé par la finalisation",
    )

    finalized_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ------------------------------------------------------------
    # Dates et textes
    # ------------------------------------------------------------
    issue_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)
    paid_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        lazy="selectin",
        doc="Client facturé",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.sort_order",
        doc="Lignes de la facture",
    )

    # ------------------------------------------------------------
    # Propriétés calculées
    # ------------------------------------------------------------
    @property
    def subtotal(self) -> Decimal:
        return from_cents(self.subtotal_cents)

    @property
    def vat_amount(self) -> Decimal:
        return from_cents(self.vat_amount_cents)

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)

    @property
    def client_name(self) -> Optional[str]:
        return self.client.name if self.client is not None else None

    @property
    def is_locked(self) -> bool:
        """Vrai si les montants et les lignes ne peuvent plus changer."""
        return self.is_finalized or self.status == "paid"

    # ------------------------------------------------------------
    # Index et contraintes
    # ------------------------------------------------------------
    __table_args__ = (
        UniqueConstraint(
            "user_id", "invoice_type", "sequence_year", "sequence_number",
            name="uq_invoices_user_type_sequence",
        ),
        UniqueConstraint("user_id", "invoice_number", name="uq_invoices_user_number"),
        Index("ix_invoices_user_client", "user_id", "client_id"),
        Index("ix_invoices_user_issue_date", "user_id", "issue_date"),
        Index("ix_invoices_related_invoice_id", "related_invoice_id"),
        CheckConstraint(
            "invoice_type IN ('invoice', 'credit_note')",
            name="ck_invoices_invoice_type",
        ),
        CheckConstraint(
            "status IN ('draft', 'sent', 'paid', 'overdue', 'cancelled')",
            name="ck_invoices_status",
        ),
        CheckConstraint(
            "payment_status IN ('unpaid', 'partial', 'paid', 'overdue')",
            name="ck_invoices_payment_status",
        ),
        CheckConstraint("vat_rate >= 0", name="ck_invoices_vat_rate_positive"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total})>"


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Ligne de facture.

    `total_cents = quantity * unit_price_cents * (1 - discount / 100)`,
    arrondi au centime. La remise n'est jamais intégrée au prix unitaire.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 3),
        nullable=False,
        default=Decimal("1"),
    )

    unit_price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Remise de ligne en pourcentage (0-100)",
    )

    vat_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Ordre d'affichage, stable entre deux éditions",
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    @property
    def unit_price(self) -> Decimal:
        return from_cents(self.unit_price_cents)

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)

    __table_args__ = (
        Index("ix_invoice_items_invoice_sort", "invoice_id", "sort_order"),
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint(
            "discount >= 0 AND discount <= 100",
            name="ck_invoice_items_discount",
        ),
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, description={self.description[:30]}, total={self.total})>"


class Payment(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Paiement enregistré sur une facture.

    Les paiements sont ajoutés ou supprimés, jamais modifiés ; chaque
    écriture déclenche le recalcul de l'état de paiement de la facture.
    """

    __tablename__ = "payments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="bank_transfer | card | cash | check | other",
    )

    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", lazy="selectin")

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def invoice_number(self) -> Optional[str]:
        return self.invoice.invoice_number if self.invoice is not None else None

    @property
    def client_name(self) -> Optional[str]:
        return self.invoice.client_name if self.invoice is not None else None

    __table_args__ = (
        Index("ix_payments_user_payment_date", "user_id", "payment_date"),
        CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "method IN ('bank_transfer', 'card', 'cash', 'check', 'other')",
            name="ck_payments_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount})>"
