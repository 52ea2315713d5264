"""
Tests des règles pures de l'état de paiement.
"""

import datetime

import pytest

from orbital.models import Invoice
from orbital.services.payment_service import derive_payment_status, transition_payment_state


def make_invoice(**kwargs) -> Invoice:
    values = {"status": "sent", "payment_status": "unpaid", "paid_at": None}
    values.update(kwargs)
    return Invoice(**values)


# ============================================================
# État déduit des paiements
# ============================================================


class TestDerivePaymentStatus:

    @pytest.mark.parametrize(
        "total, paid, expected",
        [
            (270000, 0, "unpaid"),
            (270000, 1, "partial"),
            (270000, 269999, "partial"),
            (270000, 270000, "paid"),
        ],
    )
    def test_status_from_sum(self, total, paid, expected):
        assert derive_payment_status(total, paid) == expected

    def test_same_input_same_output(self):
        first = derive_payment_status(270000, 100000)
        assert derive_payment_status(270000, 100000) == first


# ============================================================
# Couplage status / payment_status
# ============================================================


class TestTransitionPaymentState:

    def test_paid_forces_status_and_stamps_paid_at(self):
        invoice = make_invoice()
        transition_payment_state(invoice, "paid")
        assert invoice.payment_status == "paid"
        assert invoice.status == "paid"
        assert invoice.paid_at is not None

    def test_paid_keeps_existing_paid_at(self):
        stamped = datetime.datetime(2025, 1, 15, tzinfo=datetime.timezone.utc)
        invoice = make_invoice(status="paid", payment_status="paid", paid_at=stamped)
        transition_payment_state(invoice, "paid")
        assert invoice.paid_at == stamped

    def test_overdue_forces_status(self):
        invoice = make_invoice()
        transition_payment_state(invoice, "overdue")
        assert invoice.status == "overdue"
        assert invoice.payment_status == "overdue"
        assert invoice.paid_at is None

    def test_unpaid_reverts_paid_status_to_sent(self):
        invoice = make_invoice(
            status="paid",
            payment_status="paid",
            paid_at=datetime.datetime.now(datetime.timezone.utc),
        )
        transition_payment_state(invoice, "unpaid")
        assert invoice.status == "sent"
        assert invoice.payment_status == "unpaid"
        assert invoice.paid_at is None

    def test_partial_keeps_workflow_status(self):
        invoice = make_invoice(status="overdue", payment_status="overdue")
        transition_payment_state(invoice, "partial")
        assert invoice.status == "overdue"
        assert invoice.payment_status == "partial"

    def test_transition_is_idempotent(self):
        invoice = make_invoice()
        transition_payment_state(invoice, "paid")
        snapshot = (invoice.status, invoice.payment_status, invoice.paid_at)
        transition_payment_state(invoice, "paid")
        assert (invoice.status, invoice.payment_status, invoice.paid_at) == snapshot

    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            transition_payment_state(make_invoice(), "refunded")
