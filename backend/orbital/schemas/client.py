"""
Schemas Pydantic pour l'entité Client
Projet : Orbital (Facturation)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from orbital.schemas.common import ApiModel


class ClientType(str, Enum):
    COMPANY = "company"
    INDIVIDUAL = "individual"


class ClientStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


def empty_to_none(v):
    """Les formulaires envoient "" pour un champ vide."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ClientFields(ApiModel):
    """Champs éditables communs à la création et à la mise à jour."""

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    siret: Optional[str] = Field(None, max_length=20)
    vat_number: Optional[str] = Field(None, max_length=30)
    legal_form: Optional[str] = Field(None, max_length=50)
    capital: Optional[str] = Field(None, max_length=50)
    rcs: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    parent_company_id: Optional[uuid.UUID] = None

    @field_validator(
        "email",
        "phone",
        "siret",
        "vat_number",
        "parent_company_id",
        mode="before",
    )
    @classmethod
    def normalize_empty(cls, v):
        return empty_to_none(v)

    @field_validator("siret", mode="after")
    @classmethod
    def validate_siret(cls, v: Optional[str]) -> Optional[str]:
        """SIRET : 14 chiffres, espaces tolérés en saisie."""
        if v is None:
            return v
        digits = v.replace(" ", "")
        if not digits.isdigit() or len(digits) != 14:
            raise ValueError("Le SIRET doit contenir 14 chiffres")
        return digits


class ClientCreate(ClientFields):
    """Création : seul `name` est obligatoire (contrôlé par le service)."""

    name: Optional[str] = Field(None, max_length=255)
    client_type: ClientType = ClientType.COMPANY
    country: str = Field("France", max_length=100)
    status: ClientStatus = ClientStatus.ACTIVE


class ClientUpdate(ClientFields):
    name: Optional[str] = Field(None, max_length=255)
    client_type: Optional[ClientType] = None
    country: Optional[str] = Field(None, max_length=100)
    status: Optional[ClientStatus] = None


class ClientRead(ApiModel):
    id: uuid.UUID
    name: str
    client_type: ClientType
    parent_company_id: Optional[uuid.UUID] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: str
    siret: Optional[str] = None
    vat_number: Optional[str] = None
    legal_form: Optional[str] = None
    capital: Optional[str] = None
    rcs: Optional[str] = None
    status: ClientStatus
    total_revenue: Decimal
    invoice_count: int
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
