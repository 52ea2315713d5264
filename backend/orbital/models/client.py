"""
Modèle SQLAlchemy pour l'entité Client
Projet : Orbital (Facturation)

Fichier clients : sociétés et particuliers, avec rattachement optionnel
d'un contact à sa société mère.
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orbital.core.money import from_cents
from orbital.models import Base
from orbital.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin

CLIENT_TYPES = ("company", "individual")
CLIENT_STATUSES = ("active", "pending", "inactive")


class Client(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Modèle du fichier clients.

    Attributes:
        name: nom ou raison sociale (obligatoire)
        client_type: 'company' ou 'individual'
        parent_company_id: société mère (contact rattaché à une société)
        status: 'active', 'pending' ou 'inactive'
        total_revenue_cents: encaissements cumulés sur les factures du client
        invoice_count: nombre de factures (hors avoirs)

    `total_revenue_cents` et `invoice_count` sont dénormalisés et rafraîchis
    par `ClientService.refresh_totals` à chaque écriture qui les affecte.
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Identité
    # ------------------------------------------------------------
    client_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="company",
        doc="Type de client : company | individual",
    )

    parent_company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        doc="Société mère pour un contact",
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, doc="Nom ou raison sociale")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ------------------------------------------------------------
    # Adresse
    # ------------------------------------------------------------
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="France")

    # ------------------------------------------------------------
    # Informations légales
    # ------------------------------------------------------------
    siret: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, doc="SIRET (14 chiffres)")
    vat_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, doc="N° TVA intracommunautaire")
    legal_form: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, doc="SARL, SAS, EI...")
    capital: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rcs: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ------------------------------------------------------------
    # Suivi
    # ------------------------------------------------------------
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    total_revenue_cents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Somme des paiements reçus sur les factures du client (centimes)",
    )

    invoice_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Nombre de factures émises (avoirs exclus)",
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def total_revenue(self) -> Decimal:
        return from_cents(self.total_revenue_cents or 0)

    __table_args__ = (
        Index("ix_clients_user_name", "user_id", "name"),
        CheckConstraint(
            "client_type IN ('company', 'individual')",
            name="ck_clients_client_type",
        ),
        CheckConstraint(
            "status IN ('active', 'pending', 'inactive')",
            name="ck_clients_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, type={self.client_type})>"
