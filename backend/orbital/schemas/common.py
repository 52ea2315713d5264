"""
Schemas Pydantic communs
Projet : Orbital (Facturation)

Les champs sont nommés en snake_case côté Python et exposés en camelCase
côté API (`clientId`, `unitPrice`, ...). Les deux formes sont acceptées
en entrée.
"""

import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base des schémas exposés par l'API (alias camelCase, lecture ORM)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )


class LineItemInput(ApiModel):
    """Ligne saisie pour une facture ou un devis."""

    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Libellé de la ligne",
    )
    quantity: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        max_digits=12,
        decimal_places=3,
        description="Quantité",
    )
    unit_price: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Prix unitaire HT",
    )
    discount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        decimal_places=2,
        description="Remise en pourcentage",
    )
    vat_rate: Optional[Decimal] = Field(
        None,
        ge=0,
        le=100,
        decimal_places=2,
        description="Taux de TVA informatif de la ligne",
    )


class LineItemRead(ApiModel):
    """Ligne telle que stockée."""

    id: uuid.UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal
    vat_rate: Optional[Decimal] = None
    total: Decimal
    sort_order: int


class DeleteResponse(ApiModel):
    """Réponse des suppressions : `{success, id}`."""

    success: bool = True
    id: uuid.UUID
