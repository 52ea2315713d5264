"""
Calculs monétaires en centimes entiers.
Projet : Orbital (Facturation)

Tous les montants sont stockés en centimes (`int`). L'arrondi (au demi
supérieur) n'intervient qu'aux frontières : remise de ligne, TVA, et
conversion depuis un `Decimal` saisi par l'utilisateur.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

HUNDRED = Decimal("100")
CENT = Decimal("0.01")

Number = Union[Decimal, int, str]


def round_half_up(value: Decimal) -> int:
    """Arrondit un nombre de centimes fractionnaire à l'entier (0.5 -> 1)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(amount: Number) -> int:
    """
    Convertit un montant en euros vers des centimes.

    >>> to_cents(Decimal("12.345"))
    1235
    """
    return round_half_up(Decimal(str(amount)) * HUNDRED)


def from_cents(cents: int) -> Decimal:
    """Convertit des centimes en `Decimal` à deux décimales."""
    return Decimal(cents).scaleb(-2).quantize(CENT)


def line_total_cents(quantity: Number, unit_price_cents: int, discount: Number = 0) -> int:
    """
    Total HT d'une ligne : quantité x prix unitaire x (1 - remise/100).

    Le prix unitaire est en centimes ; la remise est un pourcentage (0-100).
    """
    gross = Decimal(str(quantity)) * Decimal(unit_price_cents)
    factor = (HUNDRED - Decimal(str(discount))) / HUNDRED
    return round_half_up(gross * factor)


def vat_cents(subtotal_cents: int, vat_rate: Number) -> int:
    """Montant de TVA sur un sous-total HT."""
    return round_half_up(Decimal(subtotal_cents) * Decimal(str(vat_rate)) / HUNDRED)


def document_totals(line_totals: Iterable[int], vat_rate: Number) -> tuple[int, int, int]:
    """
    Totaux d'un document à partir des totaux de ligne.

    Returns:
        (sous-total HT, TVA, total TTC) en centimes
    """
    subtotal = sum(line_totals)
    vat = vat_cents(subtotal, vat_rate)
    return subtotal, vat, subtotal + vat


def format_euros(cents: int) -> str:
    """Affichage utilisateur : `1234.50 €`."""
    return f"{from_cents(cents)} €"
