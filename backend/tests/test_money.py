"""
Tests des calculs monétaires en centimes.
"""

from decimal import Decimal

import pytest

from orbital.core.money import (
    document_totals,
    format_euros,
    from_cents,
    line_total_cents,
    round_half_up,
    to_cents,
    vat_cents,
)


# ============================================================
# Conversions
# ============================================================


class TestConversions:

    def test_to_cents_rounds_half_up(self):
        assert to_cents(Decimal("12.345")) == 1235
        assert to_cents(Decimal("12.344")) == 1234

    def test_to_cents_accepts_strings_and_ints(self):
        assert to_cents("450") == 45000
        assert to_cents(3) == 300

    def test_to_cents_negative(self):
        assert to_cents(Decimal("-2700.00")) == -270000

    def test_from_cents_two_decimals(self):
        assert from_cents(270000) == Decimal("2700.00")
        assert str(from_cents(5)) == "0.05"
        assert from_cents(-270000) == Decimal("-2700.00")

    def test_round_half_up(self):
        assert round_half_up(Decimal("0.5")) == 1
        assert round_half_up(Decimal("1.49")) == 1
        assert round_half_up(Decimal("2.5")) == 3

    def test_format_euros(self):
        assert format_euros(123450) == "1234.50 €"


# ============================================================
# Lignes et totaux
# ============================================================


class TestLineTotals:

    def test_line_total_without_discount(self):
        assert line_total_cents(Decimal("5"), 45000) == 225000

    def test_line_total_with_discount(self):
        """10 % de remise sur 3 x 19.99 = 53.973 -> 53.97"""
        assert line_total_cents(Decimal("3"), 1999, Decimal("10")) == 5397

    def test_line_total_full_discount(self):
        assert line_total_cents(Decimal("2"), 1000, Decimal("100")) == 0

    def test_line_total_fractional_quantity(self):
        assert line_total_cents(Decimal("1.5"), 333) == 500


class TestDocumentTotals:

    def test_scenario_standard_vat(self):
        subtotal, vat, total = document_totals([225000], Decimal("20"))
        assert (subtotal, vat, total) == (225000, 45000, 270000)

    def test_vat_rounded_once_on_subtotal(self):
        # 3 x 0.33 à 20 % : TVA sur 99 centimes = 19.8 -> 20
        subtotal, vat, total = document_totals([33, 33, 33], Decimal("20"))
        assert subtotal == 99
        assert vat == 20
        assert total == 119

    def test_zero_vat(self):
        assert document_totals([1000], Decimal("0")) == (1000, 0, 1000)

    def test_reduced_rate(self):
        assert vat_cents(10000, Decimal("5.5")) == 550

    def test_empty_document(self):
        assert document_totals([], Decimal("20")) == (0, 0, 0)

    @pytest.mark.parametrize(
        "subtotal, rate, expected",
        [
            (1, Decimal("20"), 0),
            (3, Decimal("20"), 1),
            (12345, Decimal("10"), 1235),
        ],
    )
    def test_vat_rounding_boundaries(self, subtotal, rate, expected):
        assert vat_cents(subtotal, rate) == expected
