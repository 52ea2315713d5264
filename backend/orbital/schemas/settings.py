"""
Schemas Pydantic des paramètres de documents
Projet : Orbital (Facturation)

Les sections (entreprise, mentions, thèmes) ont chacune leur schéma de
mise à jour ; `DocumentSettingsUpdate` les regroupe toutes.
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import Field

from orbital.schemas.common import ApiModel

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class DocumentTheme(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    MINIMAL = "minimal"
    BOLD = "bold"


class LogoPosition(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class HeaderStyle(str, Enum):
    FULL = "full"
    MINIMAL = "minimal"
    NONE = "none"


class TableStyle(str, Enum):
    STRIPED = "striped"
    BORDERED = "bordered"
    MINIMAL = "minimal"


class CompanySettingsUpdate(ApiModel):
    company_name: Optional[str] = Field(None, max_length=255)
    company_logo: Optional[str] = None
    company_address: Optional[str] = None
    company_city: Optional[str] = Field(None, max_length=100)
    company_postal_code: Optional[str] = Field(None, max_length=20)
    company_country: Optional[str] = Field(None, max_length=100)
    company_phone: Optional[str] = Field(None, max_length=50)
    company_email: Optional[str] = Field(None, max_length=255)
    company_website: Optional[str] = Field(None, max_length=255)
    siret: Optional[str] = Field(None, max_length=14)
    vat_number: Optional[str] = Field(None, max_length=20)
    legal_form: Optional[str] = Field(None, max_length=50)
    capital: Optional[str] = Field(None, max_length=50)
    rcs: Optional[str] = Field(None, max_length=100)
    ape_code: Optional[str] = Field(None, max_length=10)


class LegalMentionsUpdate(ApiModel):
    invoice_mentions: Optional[str] = None
    quote_mentions: Optional[str] = None
    payment_terms: Optional[str] = None
    late_payment_terms: Optional[str] = None


class InvoiceThemeUpdate(ApiModel):
    invoice_theme: Optional[DocumentTheme] = None
    invoice_primary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    invoice_secondary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    invoice_accent_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    invoice_font_family: Optional[str] = Field(None, max_length=100)
    invoice_logo_position: Optional[LogoPosition] = None
    invoice_show_watermark: Optional[bool] = None
    invoice_watermark_text: Optional[str] = Field(None, max_length=100)
    invoice_header_style: Optional[HeaderStyle] = None
    invoice_table_style: Optional[TableStyle] = None


class QuoteThemeUpdate(ApiModel):
    quote_theme: Optional[DocumentTheme] = None
    quote_primary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    quote_secondary_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    quote_accent_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    quote_font_family: Optional[str] = Field(None, max_length=100)
    quote_logo_position: Optional[LogoPosition] = None
    quote_show_watermark: Optional[bool] = None
    quote_watermark_text: Optional[str] = Field(None, max_length=100)
    quote_header_style: Optional[HeaderStyle] = None
    quote_table_style: Optional[TableStyle] = None


class DocumentSettingsUpdate(
    CompanySettingsUpdate,
    LegalMentionsUpdate,
    InvoiceThemeUpdate,
    QuoteThemeUpdate,
):
    """Mise à jour partielle de toutes les sections."""


class DocumentSettingsRead(DocumentSettingsUpdate):
    id: uuid.UUID
    created_at: datetime.datetime
    updated_at: datetime.datetime
