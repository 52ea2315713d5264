"""
Schemas Pydantic du projet Orbital

Validation des requêtes et sérialisation des réponses de l'API.
"""

from orbital.schemas.common import ApiModel, DeleteResponse, LineItemInput, LineItemRead
from orbital.schemas.token import TokenPayload
from orbital.schemas.client import (
    ClientCreate,
    ClientRead,
    ClientStatus,
    ClientType,
    ClientUpdate,
)
from orbital.schemas.invoice import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceStatus,
    InvoiceSummary,
    InvoiceType,
    InvoiceUpdate,
    PaymentStatus,
    PaymentStatusUpdate,
)
from orbital.schemas.quote import (
    ConvertToQuoteResponse,
    QuoteConversionResponse,
    QuoteCreate,
    QuoteRead,
    QuoteStatus,
    QuoteSummary,
    QuoteUpdate,
)
from orbital.schemas.payment import (
    BalanceSummary,
    InvoicePayments,
    PaymentCreate,
    PaymentMethod,
    PaymentRead,
    PaymentStats,
)
from orbital.schemas.settings import (
    CompanySettingsUpdate,
    DocumentSettingsRead,
    DocumentSettingsUpdate,
    InvoiceThemeUpdate,
    LegalMentionsUpdate,
    QuoteThemeUpdate,
)

__all__ = [
    "ApiModel",
    "DeleteResponse",
    "LineItemInput",
    "LineItemRead",
    "TokenPayload",
    "ClientCreate",
    "ClientRead",
    "ClientStatus",
    "ClientType",
    "ClientUpdate",
    "InvoiceCreate",
    "InvoiceRead",
    "InvoiceStatus",
    "InvoiceSummary",
    "InvoiceType",
    "InvoiceUpdate",
    "PaymentStatus",
    "PaymentStatusUpdate",
    "ConvertToQuoteResponse",
    "QuoteConversionResponse",
    "QuoteCreate",
    "QuoteRead",
    "QuoteStatus",
    "QuoteSummary",
    "QuoteUpdate",
    "BalanceSummary",
    "InvoicePayments",
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    "PaymentStats",
    "CompanySettingsUpdate",
    "DocumentSettingsRead",
    "DocumentSettingsUpdate",
    "InvoiceThemeUpdate",
    "LegalMentionsUpdate",
    "QuoteThemeUpdate",
]
