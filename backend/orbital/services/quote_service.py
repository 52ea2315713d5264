"""
Service Layer pour les devis
Projet : Orbital (Facturation)

- CRUD des devis (numérotation DEV-AAAA-NNNN)
- signature (acceptation)
- duplication
- conversions devis -> facture (une seule fois) et facture -> devis
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.config import Settings, get_settings
from orbital.core.database import commit_or_raise
from orbital.core.exceptions import (
    BusinessValidationError,
    ImmutabilityError,
    NotFoundError,
)
from orbital.models import Invoice, InvoiceItem, Quote, QuoteItem
from orbital.schemas.quote import QuoteCreate, QuoteUpdate
from orbital.services.client_service import ClientService
from orbital.services.invoice_service import (
    InvoiceService,
    apply_totals,
    build_line_items,
    copy_line_items,
)
from orbital.services.numbering_service import NumberingService, run_with_retry

logger = logging.getLogger(__name__)


class QuoteService:
    """Service des opérations sur les devis."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        numbering: Optional[NumberingService] = None,
        client_service: Optional[ClientService] = None,
        invoice_service: Optional[InvoiceService] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.numbering = numbering or NumberingService()
        self.client_service = client_service or ClientService()
        self.invoice_service = invoice_service or InvoiceService(
            settings=self.settings,
            numbering=self.numbering,
            client_service=self.client_service,
        )

    async def get_all(
        self,
        db: AsyncSession,
        user_id: str,
        status: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[Quote]:
        stmt = select(Quote).where(Quote.user_id == user_id)
        if status:
            stmt = stmt.where(Quote.status == status)
        if client_id:
            stmt = stmt.where(Quote.client_id == client_id)
        stmt = stmt.order_by(Quote.created_at.desc(), Quote.quote_number.desc())
        return list((await db.execute(stmt)).scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
        for_update: bool = False,
    ) -> Quote:
        """
        Récupère un devis avec ses lignes.

        Raises:
            NotFoundError: devis inexistant ou d'un autre utilisateur
        """
        stmt = (
            select(Quote)
            .where(Quote.id == quote_id, Quote.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        quote = (await db.execute(stmt)).scalar_one_or_none()
        if quote is None:
            logger.warning("Devis non trouvé : %s (utilisateur %s)", quote_id, user_id)
            raise NotFoundError("Devis non trouvé")
        return quote

    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        data: QuoteCreate,
    ) -> Quote:
        """
        Crée un devis brouillon.

        Raises:
            BusinessValidationError: client ou lignes absents
        """
        if data.client_id is None or not data.items:
            raise BusinessValidationError("Client et lignes requis")

        await self.client_service.get_by_id(db, user_id, data.client_id)

        vat_rate = data.vat_rate if data.vat_rate is not None else self.settings.default_vat_rate
        issue_date = data.issue_date or datetime.date.today()
        valid_until = data.valid_until or issue_date + datetime.timedelta(
            days=self.settings.quote_validity_days
        )

        async def unit_of_work() -> uuid.UUID:
            number = await self.numbering.next_number(db, user_id, "quote", issue_date.year)
            quote = Quote(
                user_id=user_id,
                client_id=data.client_id,
                quote_number=number.number,
                sequence_year=number.year,
                sequence_number=number.sequence,
                status="draft",
                issue_date=issue_date,
                valid_until=valid_until,
                description=data.description,
                notes=data.notes,
                items=build_line_items(QuoteItem, data.items),
            )
            apply_totals(quote, vat_rate)
            db.add(quote)
            await db.flush()
            return quote.id

        quote_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "la création du devis"
        )
        quote = await self.get_by_id(db, user_id, quote_id)
        logger.info("Devis créé : %s (total %s)", quote.quote_number, quote.total)
        return quote

    async def update(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
        data: QuoteUpdate,
    ) -> Quote:
        """
        Met à jour un devis ; les lignes fournies remplacent les existantes.

        Le passage au statut 'accepted' date l'acceptation.
        """
        quote = await self.get_by_id(db, user_id, quote_id, for_update=True)
        changes = data.model_dump(exclude_unset=True, exclude={"items"})

        if "client_id" in changes:
            if changes["client_id"] is None:
                raise BusinessValidationError("Le client est requis")
            await self.client_service.get_by_id(db, user_id, changes["client_id"])
            quote.client_id = changes["client_id"]

        for field in ("issue_date", "valid_until", "description", "notes"):
            if field in changes:
                setattr(quote, field, changes[field])
        if quote.issue_date is None:
            raise BusinessValidationError("La date d'émission est requise")

        recompute = False
        if "items" in data.model_fields_set:
            if not data.items:
                raise BusinessValidationError("Au moins une ligne est requise")
            quote.items = build_line_items(QuoteItem, data.items)
            recompute = True

        vat_rate = quote.vat_rate
        if changes.get("vat_rate") is not None:
            vat_rate = changes["vat_rate"]
            recompute = True
        if recompute:
            apply_totals(quote, vat_rate)

        if changes.get("status") is not None:
            quote.status = changes["status"]
            if quote.status == "accepted" and quote.accepted_at is None:
                quote.accepted_at = datetime.datetime.now(datetime.timezone.utc)

        await commit_or_raise(db, "la mise à jour du devis")
        logger.info("Devis mis à jour : %s (statut %s)", quote.quote_number, quote.status)
        return await self.get_by_id(db, user_id, quote.id)

    async def delete(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
    ) -> uuid.UUID:
        quote = await self.get_by_id(db, user_id, quote_id)
        number = quote.quote_number
        await db.delete(quote)
        await commit_or_raise(db, "la suppression du devis")
        logger.info("Devis supprimé : %s", number)
        return quote_id

    async def sign(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
    ) -> Quote:
        """Acceptation du devis par le client."""
        quote = await self.get_by_id(db, user_id, quote_id, for_update=True)
        quote.status = "accepted"
        quote.accepted_at = datetime.datetime.now(datetime.timezone.utc)
        await commit_or_raise(db, "la signature du devis")
        logger.info("Devis signé : %s", quote.quote_number)
        return await self.get_by_id(db, user_id, quote.id)

    async def duplicate(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
    ) -> Quote:
        """
        Copie un devis : nouveau numéro, brouillon, dates du jour.

        Les lignes sont reprises avec leurs remises.
        """

        async def unit_of_work() -> uuid.UUID:
            source = await self.get_by_id(db, user_id, quote_id)
            today = datetime.date.today()
            number = await self.numbering.next_number(db, user_id, "quote", today.year)
            copy = Quote(
                user_id=user_id,
                client_id=source.client_id,
                quote_number=number.number,
                sequence_year=number.year,
                sequence_number=number.sequence,
                subtotal_cents=source.subtotal_cents,
                vat_rate=source.vat_rate,
                vat_amount_cents=source.vat_amount_cents,
                total_cents=source.total_cents,
                status="draft",
                issue_date=today,
                valid_until=today + datetime.timedelta(days=self.settings.quote_validity_days),
                description=(
                    f"Copie de {source.description}"
                    if source.description
                    else f"Copie du devis {source.quote_number}"
                ),
                notes=source.notes,
                items=copy_line_items(QuoteItem, source.items),
            )
            db.add(copy)
            await db.flush()
            return copy.id

        copy_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "la duplication du devis"
        )
        copy = await self.get_by_id(db, user_id, copy_id)
        logger.info("Devis dupliqué : %s -> %s", quote_id, copy.quote_number)
        return copy

    async def convert_to_invoice(
        self,
        db: AsyncSession,
        user_id: str,
        quote_id: uuid.UUID,
    ) -> tuple[Quote, Invoice]:
        """
        Convertit un devis en facture brouillon, une seule fois.

        La création de la facture et le marquage du devis (accepté,
        `converted_to_invoice_id`) sont validés dans la même transaction.

        Raises:
            ImmutabilityError: devis déjà converti
        """

        async def unit_of_work() -> uuid.UUID:
            quote = await self.get_by_id(db, user_id, quote_id, for_update=True)
            if quote.converted_to_invoice_id is not None:
                logger.warning("Conversion refusée : %s déjà converti", quote.quote_number)
                raise ImmutabilityError("Devis déjà converti en facture")

            now = datetime.datetime.now(datetime.timezone.utc)
            today = datetime.date.today()
            number = await self.numbering.next_number(db, user_id, "invoice", today.year)
            invoice = Invoice(
                user_id=user_id,
                client_id=quote.client_id,
                invoice_number=number.number,
                invoice_type="invoice",
                sequence_year=number.year,
                sequence_number=number.sequence,
                subtotal_cents=quote.subtotal_cents,
                vat_rate=quote.vat_rate,
                vat_amount_cents=quote.vat_amount_cents,
                total_cents=quote.total_cents,
                status="draft",
                payment_status="unpaid",
                is_finalized=False,
                issue_date=today,
                due_date=today + datetime.timedelta(days=self.settings.default_payment_terms_days),
                description=quote.description,
                notes=quote.notes,
                items=copy_line_items(InvoiceItem, quote.items),
            )
            db.add(invoice)
            await db.flush()

            quote.status = "accepted"
            quote.accepted_at = quote.accepted_at or now
            quote.converted_to_invoice_id = invoice.id
            await db.flush()
            await self.client_service.refresh_totals(db, user_id, quote.client_id)
            return invoice.id

        invoice_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "la conversion du devis"
        )
        quote = await self.get_by_id(db, user_id, quote_id)
        invoice = await self.invoice_service.get_by_id(db, user_id, invoice_id)
        logger.info("Devis %s converti en facture %s", quote.quote_number, invoice.invoice_number)
        return quote, invoice

    async def create_from_invoice(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> Quote:
        """
        Crée un devis brouillon à partir d'une facture.

        La facture n'est pas marquée ; la même facture peut être convertie
        plusieurs fois.

        Raises:
            NotFoundError: facture inexistante
            BusinessValidationError: la facture est un avoir
        """

        async def unit_of_work() -> uuid.UUID:
            invoice = await self.invoice_service.get_by_id(db, user_id, invoice_id)
            if invoice.invoice_type == "credit_note":
                raise BusinessValidationError("Un avoir ne peut pas être converti en devis")

            today = datetime.date.today()
            number = await self.numbering.next_number(db, user_id, "quote", today.year)
            items = copy_line_items(QuoteItem, invoice.items)
            for item in items:
                item.vat_rate = invoice.vat_rate
            quote = Quote(
                user_id=user_id,
                client_id=invoice.client_id,
                quote_number=number.number,
                sequence_year=number.year,
                sequence_number=number.sequence,
                subtotal_cents=invoice.subtotal_cents,
                vat_rate=invoice.vat_rate,
                vat_amount_cents=invoice.vat_amount_cents,
                total_cents=invoice.total_cents,
                status="draft",
                issue_date=today,
                valid_until=today + datetime.timedelta(days=self.settings.quote_validity_days),
                description=(
                    f"[Converti] {invoice.description}"
                    if invoice.description
                    else f"Converti depuis facture {invoice.invoice_number}"
                ),
                notes=invoice.notes,
                items=items,
            )
            db.add(quote)
            await db.flush()
            return quote.id

        quote_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "la conversion de la facture"
        )
        quote = await self.get_by_id(db, user_id, quote_id)
        logger.info("Facture %s convertie en devis %s", invoice_id, quote.quote_number)
        return quote
