"""
Modèle SQLAlchemy des paramètres de documents
Projet : Orbital (Facturation)

Une ligne par utilisateur, créée à la première lecture : identité de
l'entreprise, mentions légales et réglages de présentation des factures
et devis. Aucune règle financière ne dépend de ces valeurs.
"""

from typing import Optional

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from orbital.models import Base
from orbital.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin


class DocumentSettings(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """Paramètres d'édition des documents d'un utilisateur."""

    __tablename__ = "document_settings"

    # ------------------------------------------------------------
    # Entreprise
    # ------------------------------------------------------------
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    company_logo: Mapped[Optional[str]] = mapped_column(Text, nullable=True, doc="URL ou base64")
    company_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    company_postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    company_country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default="France")
    company_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    company_website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ------------------------------------------------------------
    # Informations légales
    # ------------------------------------------------------------
    siret: Mapped[Optional[str]] = mapped_column(String(14), nullable=True)
    vat_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    legal_form: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    capital: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rcs: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ape_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # ------------------------------------------------------------
    # Mentions
    # ------------------------------------------------------------
    invoice_mentions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quote_mentions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    late_payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Thème factures
    # ------------------------------------------------------------
    invoice_theme: Mapped[str] = mapped_column(String(20), nullable=False, default="modern")
    invoice_primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#0ea5e9")
    invoice_secondary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#64748b")
    invoice_accent_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#10b981")
    invoice_font_family: Mapped[str] = mapped_column(String(100), nullable=False, default="Inter")
    invoice_logo_position: Mapped[str] = mapped_column(String(20), nullable=False, default="left")
    invoice_show_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_watermark_text: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    invoice_header_style: Mapped[str] = mapped_column(String(20), nullable=False, default="full")
    invoice_table_style: Mapped[str] = mapped_column(String(20), nullable=False, default="striped")

    # ------------------------------------------------------------
    # Thème devis
    # ------------------------------------------------------------
    quote_theme: Mapped[str] = mapped_column(String(20), nullable=False, default="modern")
    quote_primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#8b5cf6")
    quote_secondary_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#64748b")
    quote_accent_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#f59e0b")
    quote_font_family: Mapped[str] = mapped_column(String(100), nullable=False, default="Inter")
    quote_logo_position: Mapped[str] = mapped_column(String(20), nullable=False, default="left")
    quote_show_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quote_watermark_text: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    quote_header_style: Mapped[str] = mapped_column(String(20), nullable=False, default="full")
    quote_table_style: Mapped[str] = mapped_column(String(20), nullable=False, default="striped")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_document_settings_user"),
    )

    def __repr__(self) -> str:
        return f"<DocumentSettings(user_id={self.user_id}, company={self.company_name})>"
