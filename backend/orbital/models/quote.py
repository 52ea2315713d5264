"""
Modèles SQLAlchemy pour les devis
Projet : Orbital (Facturation)

Contient :
- Quote : devis (DEV-{année}-{seq})
- QuoteItem : lignes du devis
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
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

QUOTE_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")


class Quote(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Modèle des devis.

    `converted_to_invoice_id` est posé une seule fois, lors de la conversion
    en facture, et n'est jamais remis à zéro : un devis converti ne peut
    plus l'être à nouveau.
    """

    __tablename__ = "quotes"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quote_number: Mapped[str] = mapped_column(String(30), nullable=False)
    sequence_year: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    subtotal_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    vat_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("20.00"))
    vat_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    issue_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[Optional[datetime.date]] = mapped_column(Date, nullable=True)
    accepted_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    converted_to_invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=True,
        doc="Facture issue de la conversion (posée une seule fois)",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    client: Mapped["Client"] = relationship("Client", lazy="selectin")

    items: Mapped[List["QuoteItem"]] = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuoteItem.sort_order",
    )

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

    __table_args__ = (
        UniqueConstraint(
            "user_id", "sequence_year", "sequence_number",
            name="uq_quotes_user_sequence",
        ),
        UniqueConstraint("user_id", "quote_number", name="uq_quotes_user_number"),
        Index("ix_quotes_user_client", "user_id", "client_id"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'accepted', 'rejected', 'expired')",
            name="ck_quotes_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, number={self.quote_number}, total={self.total})>"


class QuoteItem(Base, UUIDMixin, TimestampMixin):
    """Ligne de devis ; même calcul que `InvoiceItem`."""

    __tablename__ = "quote_items"

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("1"))
    unit_price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    vat_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    total_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    quote: Mapped["Quote"] = relationship("Quote", back_populates="items")

    @property
    def unit_price(self) -> Decimal:
        return from_cents(self.unit_price_cents)

    @property
    def total(self) -> Decimal:
        return from_cents(self.total_cents)

    __table_args__ = (
        Index("ix_quote_items_quote_sort", "quote_id", "sort_order"),
        CheckConstraint("quantity > 0", name="ck_quote_items_quantity_positive"),
        CheckConstraint(
            "discount >= 0 AND discount <= 100",
            name="ck_quote_items_discount",
        ),
    )

    def __repr__(self) -> str:
        return f"<QuoteItem(id={self.id}, description={self.description[:30]})>"
