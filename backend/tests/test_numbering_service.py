"""
Tests de la numérotation des documents.
"""

import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from orbital.core.database import commit_or_raise
from orbital.core.exceptions import BusinessValidationError, InternalError
from orbital.models import Invoice
from orbital.services.numbering_service import (
    NumberingService,
    format_document_number,
    run_with_retry,
)

from conftest import USER_A, USER_B


class TestFormatDocumentNumber:

    def test_prefixes(self):
        assert format_document_number("invoice", 2025, 1) == "FAC-2025-0001"
        assert format_document_number("credit_note", 2025, 12) == "AV-2025-0012"
        assert format_document_number("quote", 2026, 345) == "DEV-2026-0345"


class TestNextNumber:

    async def test_first_number_for_fresh_user(self, db):
        number = await NumberingService().next_number(db, USER_A, "invoice", 2025)
        assert number.number == "FAC-2025-0001"
        assert number.sequence == 1

    async def test_numbers_increase_in_creation_order(self, make_invoice, current_year):
        first = await make_invoice()
        second = await make_invoice()
        third = await make_invoice()
        assert [i.invoice_number for i in (first, second, third)] == [
            f"FAC-{current_year}-0001",
            f"FAC-{current_year}-0002",
            f"FAC-{current_year}-0003",
        ]

    async def test_sequence_is_per_user(self, db, make_invoice):
        await make_invoice()
        number = await NumberingService().next_number(
            db, USER_B, "invoice", datetime.date.today().year
        )
        assert number.sequence == 1

    async def test_sequence_is_per_kind(self, db, make_invoice):
        await make_invoice()
        number = await NumberingService().next_number(
            db, USER_A, "credit_note", datetime.date.today().year
        )
        assert number.number.startswith("AV-")
        assert number.sequence == 1

    async def test_sequence_is_per_year(self, db, make_invoice):
        await make_invoice(issue_date=datetime.date(2024, 6, 1))
        number = await NumberingService().next_number(db, USER_A, "invoice", 2025)
        assert number.number == "FAC-2025-0001"

    async def test_deleted_number_not_reused_below_max(self, db, invoice_service, make_invoice, current_year):
        first = await make_invoice()
        await make_invoice()
        await invoice_service.delete(db, USER_A, first.id)

        third = await make_invoice()
        assert third.invoice_number == f"FAC-{current_year}-0003"

    async def test_unknown_kind(self, db):
        with pytest.raises(ValueError):
            await NumberingService().next_number(db, USER_A, "receipt", 2025)

    async def test_yearly_limit(self, db, monkeypatch):
        monkeypatch.setattr("orbital.services.numbering_service.MAX_SEQUENCE", 0)
        with pytest.raises(BusinessValidationError):
            await NumberingService().next_number(db, USER_A, "quote", 2025)


class TestRunWithRetry:

    async def test_retries_on_integrity_error(self, db):
        attempts = []

        async def unit_of_work():
            attempts.append(1)
            if len(attempts) < 3:
                raise IntegrityError("INSERT", {}, Exception("duplicate"))
            return "ok"

        result = await run_with_retry(db, unit_of_work, max_retries=3, operation="test")
        assert result == "ok"
        assert len(attempts) == 3

    async def test_gives_up_after_max_retries(self, db):
        async def unit_of_work():
            raise IntegrityError("INSERT", {}, Exception("duplicate"))

        with pytest.raises(InternalError):
            await run_with_retry(db, unit_of_work, max_retries=2, operation="test")

    async def test_business_errors_are_not_retried(self, db):
        attempts = []

        async def unit_of_work():
            attempts.append(1)
            raise BusinessValidationError("refus")

        with pytest.raises(BusinessValidationError):
            await run_with_retry(db, unit_of_work, max_retries=3, operation="test")
        assert len(attempts) == 1

    async def test_duplicate_sequence_hits_unique_constraint(self, db, make_invoice):
        existing = await make_invoice()
        # le rollback expire les objets chargés
        existing_id = existing.id
        duplicate = dict(
            user_id=USER_A,
            client_id=existing.client_id,
            invoice_type="invoice",
            sequence_year=existing.sequence_year,
            sequence_number=existing.sequence_number,
            issue_date=existing.issue_date,
        )
        attempts = []

        async def unit_of_work():
            attempts.append(1)
            # même (utilisateur, nature, année, séquence), numéro affiché différent
            db.add(Invoice(invoice_number=f"FAC-DOUBLON-{len(attempts)}", **duplicate))
            await db.flush()

        with pytest.raises(InternalError):
            await run_with_retry(db, unit_of_work, max_retries=2, operation="test")
        assert len(attempts) == 2

        ids = (
            await db.execute(select(Invoice.id).where(Invoice.user_id == USER_A))
        ).scalars().all()
        assert ids == [existing_id]


class TestCommitOrRaise:

    async def test_constraint_violation_becomes_internal_error(self, db, make_invoice):
        existing = await make_invoice()
        db.add(
            Invoice(
                user_id=USER_A,
                client_id=existing.client_id,
                invoice_number=existing.invoice_number,
                invoice_type="invoice",
                sequence_year=existing.sequence_year,
                sequence_number=existing.sequence_number + 1,
                issue_date=existing.issue_date,
            )
        )
        with pytest.raises(InternalError, match="Erreur lors de la création"):
            await commit_or_raise(db, "la création de la facture")
