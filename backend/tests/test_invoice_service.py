"""
Tests de l'InvoiceService contre une base SQLite en mémoire.
"""

import datetime
import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from orbital.core.exceptions import BusinessValidationError, ImmutabilityError, NotFoundError
from orbital.schemas.common import LineItemInput
from orbital.schemas.invoice import InvoiceCreate, InvoiceUpdate
from orbital.schemas.payment import PaymentCreate

from conftest import USER_A, USER_B, dev_items


async def send(db, invoice_service, invoice):
    return await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="sent"))


# ============================================================
# Création
# ============================================================


class TestCreateInvoice:

    async def test_totals_and_number(self, make_invoice, current_year):
        """Test 5 x 450 à 20 % : 2250 HT, 450 TVA, 2700 TTC."""
        invoice = await make_invoice()

        assert invoice.subtotal == Decimal("2250.00")
        assert invoice.vat_amount == Decimal("450.00")
        assert invoice.total == Decimal("2700.00")
        assert invoice.invoice_number == f"FAC-{current_year}-0001"
        assert invoice.status == "draft"
        assert invoice.payment_status == "unpaid"
        assert invoice.is_finalized is False

    async def test_defaults(self, db, invoice_service, acme):
        invoice = await invoice_service.create(
            db, USER_A, InvoiceCreate(client_id=acme.id, items=dev_items("1", "100"))
        )
        today = datetime.date.today()
        assert invoice.vat_rate == Decimal("20.00")
        assert invoice.issue_date == today
        assert invoice.due_date == today + datetime.timedelta(days=30)

    async def test_items_keep_order_and_discount(self, make_invoice):
        invoice = await make_invoice(
            items=[
                LineItemInput(description="Audit", quantity=Decimal("1"), unit_price=Decimal("1000")),
                LineItemInput(
                    description="Formation",
                    quantity=Decimal("2"),
                    unit_price=Decimal("500"),
                    discount=Decimal("10"),
                ),
            ]
        )
        assert [i.description for i in invoice.items] == ["Audit", "Formation"]
        assert [i.sort_order for i in invoice.items] == [0, 1]
        assert invoice.items[1].unit_price == Decimal("500.00")
        assert invoice.items[1].total == Decimal("900.00")
        assert invoice.subtotal == Decimal("1900.00")

    async def test_client_and_items_required(self, db, invoice_service, acme):
        with pytest.raises(BusinessValidationError, match="Client et lignes requis"):
            await invoice_service.create(db, USER_A, InvoiceCreate(client_id=acme.id, items=[]))
        with pytest.raises(BusinessValidationError):
            await invoice_service.create(db, USER_A, InvoiceCreate(items=dev_items()))

    async def test_client_of_other_user(self, db, invoice_service, acme):
        with pytest.raises(NotFoundError):
            await invoice_service.create(
                db, USER_B, InvoiceCreate(client_id=acme.id, items=dev_items())
            )

    async def test_client_counters_refreshed(self, db, client_service, make_invoice, acme):
        await make_invoice()
        await make_invoice()
        client = await client_service.get_by_id(db, USER_A, acme.id)
        assert client.invoice_count == 2


# ============================================================
# Lecture
# ============================================================


class TestReadInvoices:

    async def test_other_user_gets_not_found(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        with pytest.raises(NotFoundError):
            await invoice_service.get_by_id(db, USER_B, invoice.id)

    async def test_list_filters(self, db, invoice_service, make_invoice):
        draft = await make_invoice()
        sent = await send(db, invoice_service, await make_invoice())

        drafts = await invoice_service.get_all(db, USER_A, status="draft")
        assert [i.id for i in drafts] == [draft.id]

        all_invoices = await invoice_service.get_all(db, USER_A)
        assert {i.id for i in all_invoices} == {draft.id, sent.id}
        assert await invoice_service.get_all(db, USER_B) == []


# ============================================================
# Mise à jour et transitions
# ============================================================


class TestUpdateInvoice:

    async def test_items_fully_replaced(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        updated = await invoice_service.update(
            db,
            USER_A,
            invoice.id,
            InvoiceUpdate(items=[LineItemInput(description="Maintenance", unit_price=Decimal("100"))]),
        )
        assert [i.description for i in updated.items] == ["Maintenance"]
        assert updated.total == Decimal("120.00")

    async def test_vat_rate_change_recomputes(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        updated = await invoice_service.update(
            db, USER_A, invoice.id, InvoiceUpdate(vat_rate=Decimal("10"))
        )
        assert updated.vat_amount == Decimal("225.00")
        assert updated.total == Decimal("2475.00")

    async def test_finalized_invoice_is_immutable(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        await invoice_service.finalize(db, USER_A, invoice.id)

        with pytest.raises(ImmutabilityError, match="Facture finalisée"):
            await invoice_service.update(
                db, USER_A, invoice.id, InvoiceUpdate(items=dev_items("1", "1"))
            )
        unchanged = await invoice_service.get_by_id(db, USER_A, invoice.id)
        assert unchanged.total == Decimal("2700.00")

    async def test_paid_invoice_is_immutable(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="paid"))

        with pytest.raises(ImmutabilityError, match="Facture payée"):
            await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(notes="x"))

    async def test_status_paid_sets_payment_state(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        paid = await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="paid"))
        assert paid.status == "paid"
        assert paid.payment_status == "paid"
        assert paid.paid_at is not None

    async def test_invalid_transition(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        with pytest.raises(BusinessValidationError, match="Transition"):
            await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="overdue"))

    async def test_cancelled_is_terminal(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="cancelled"))
        with pytest.raises(BusinessValidationError):
            await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="sent"))

    async def test_paid_status_refused_when_payments_disagree(
        self, db, invoice_service, payment_service, make_invoice
    ):
        invoice = await send(db, invoice_service, await make_invoice())
        await payment_service.record_payment(
            db,
            USER_A,
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("100"), method="card"),
        )
        with pytest.raises(BusinessValidationError):
            await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="paid"))


# ============================================================
# Finalisation
# ============================================================


class TestFinalize:

    async def test_draft_cannot_be_finalized(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        with pytest.raises(BusinessValidationError, match="Envoyez la facture"):
            await invoice_service.finalize(db, USER_A, invoice.id)

    async def test_finalize_sent_invoice(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        finalized = await invoice_service.finalize(db, USER_A, invoice.id)
        assert finalized.is_finalized is True
        assert finalized.finalized_at is not None
        assert finalized.status == "sent"

    async def test_finalize_overdue_invoice(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        await invoice_service.update(db, USER_A, invoice.id, InvoiceUpdate(status="overdue"))

        finalized = await invoice_service.finalize(db, USER_A, invoice.id)
        assert finalized.is_finalized is True
        assert finalized.status == "overdue"

    async def test_double_finalization_is_an_error(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        await invoice_service.finalize(db, USER_A, invoice.id)
        with pytest.raises(BusinessValidationError, match="déjà finalisée"):
            await invoice_service.finalize(db, USER_A, invoice.id)

    async def test_unknown_invoice(self, db, invoice_service):
        with pytest.raises(NotFoundError):
            await invoice_service.finalize(db, USER_A, uuid.uuid4())


# ============================================================
# Avoirs
# ============================================================


class TestCreditNote:

    async def test_credit_note_negates_source(self, db, invoice_service, make_invoice, current_year):
        source = await send(db, invoice_service, await make_invoice())
        await invoice_service.finalize(db, USER_A, source.id)

        credit_note = await invoice_service.issue_credit_note(db, USER_A, source.id)

        assert credit_note.invoice_type == "credit_note"
        assert credit_note.invoice_number == f"AV-{current_year}-0001"
        assert credit_note.related_invoice_id == source.id
        assert credit_note.total == Decimal("-2700.00")
        assert credit_note.subtotal == Decimal("-2250.00")
        assert credit_note.vat_amount == Decimal("-450.00")
        assert credit_note.is_finalized is True
        assert credit_note.status == "sent"
        assert credit_note.payment_status == "paid"
        assert credit_note.description == f"Avoir sur facture {source.invoice_number}"

        assert len(credit_note.items) == len(source.items)
        item = credit_note.items[0]
        assert item.quantity == Decimal("5")
        assert item.unit_price == Decimal("-450.00")
        assert item.total == Decimal("-2250.00")

    async def test_source_unchanged(self, db, invoice_service, make_invoice):
        source = await make_invoice()
        await invoice_service.issue_credit_note(db, USER_A, source.id)
        reloaded = await invoice_service.get_by_id(db, USER_A, source.id)
        assert reloaded.total == Decimal("2700.00")
        assert reloaded.is_finalized is False

    async def test_no_credit_note_on_credit_note(self, db, invoice_service, make_invoice):
        credit_note = await invoice_service.issue_credit_note(db, USER_A, (await make_invoice()).id)
        with pytest.raises(BusinessValidationError):
            await invoice_service.issue_credit_note(db, USER_A, credit_note.id)

    async def test_credit_note_is_immutable(self, db, invoice_service, make_invoice):
        credit_note = await invoice_service.issue_credit_note(db, USER_A, (await make_invoice()).id)
        with pytest.raises(ImmutabilityError):
            await invoice_service.update(db, USER_A, credit_note.id, InvoiceUpdate(notes="x"))

    async def test_source_not_found(self, db, invoice_service):
        with pytest.raises(NotFoundError):
            await invoice_service.issue_credit_note(db, USER_A, uuid.uuid4())


# ============================================================
# Suppression
# ============================================================


class TestDeleteInvoice:

    async def test_delete_draft(self, db, invoice_service, client_service, make_invoice, acme):
        invoice = await make_invoice()
        assert await invoice_service.delete(db, USER_A, invoice.id) == invoice.id

        with pytest.raises(NotFoundError):
            await invoice_service.get_by_id(db, USER_A, invoice.id)
        client = await client_service.get_by_id(db, USER_A, acme.id)
        assert client.invoice_count == 0

    async def test_finalized_cannot_be_deleted(self, db, invoice_service, make_invoice):
        invoice = await send(db, invoice_service, await make_invoice())
        await invoice_service.finalize(db, USER_A, invoice.id)
        with pytest.raises(ImmutabilityError):
            await invoice_service.delete(db, USER_A, invoice.id)

    async def test_invoice_with_credit_note_cannot_be_deleted(self, db, invoice_service, make_invoice):
        invoice = await make_invoice()
        await invoice_service.issue_credit_note(db, USER_A, invoice.id)
        with pytest.raises(BusinessValidationError, match="avoirs"):
            await invoice_service.delete(db, USER_A, invoice.id)

    async def test_invoice_with_payments_cannot_be_deleted(
        self, db, invoice_service, payment_service, make_invoice
    ):
        invoice = await make_invoice()
        await payment_service.record_payment(
            db,
            USER_A,
            PaymentCreate(invoice_id=invoice.id, amount=Decimal("10"), method="cash"),
        )
        with pytest.raises(BusinessValidationError, match="paiements"):
            await invoice_service.delete(db, USER_A, invoice.id)


# ============================================================
# Précision des montants
# ============================================================


class TestAmountPrecision:

    async def test_resaving_same_items_keeps_totals(self, db, invoice_service, make_invoice):
        items = dev_items("1.235", "1000")
        invoice = await make_invoice(items=items, vat_rate=Decimal("5.5"))
        before = (invoice.subtotal_cents, invoice.vat_amount_cents, invoice.total_cents)

        assert invoice.items[0].quantity == Decimal("1.235")
        assert invoice.items[0].total_cents == 123500

        updated = await invoice_service.update(
            db, USER_A, invoice.id, InvoiceUpdate(items=items, vat_rate=Decimal("5.5"))
        )
        assert (updated.subtotal_cents, updated.vat_amount_cents, updated.total_cents) == before
        assert updated.vat_rate == Decimal("5.50")

    @pytest.mark.parametrize(
        "field, value",
        [("quantity", "1.23456"), ("quantity", "0.0001"), ("unit_price", "10.005"), ("discount", "2.555")],
    )
    def test_line_precision_beyond_storage_rejected(self, field, value):
        data = {"description": "Dev", "quantity": Decimal("1"), "unit_price": Decimal("10")}
        data[field] = Decimal(value)
        with pytest.raises(ValidationError):
            LineItemInput(**data)

    def test_vat_rate_precision_beyond_storage_rejected(self):
        with pytest.raises(ValidationError):
            InvoiceCreate(items=dev_items(), vat_rate=Decimal("5.555"))
        with pytest.raises(ValidationError):
            InvoiceUpdate(vat_rate=Decimal("5.555"))
