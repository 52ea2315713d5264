"""
Service Layer pour la facturation
Projet : Orbital (Facturation)

Cycle de vie des factures et des avoirs :
- création en brouillon avec numérotation annuelle (FAC-AAAA-NNNN)
- mise à jour tant que la facture n'est ni finalisée ni payée
- finalisation (verrou irréversible)
- émission d'avoirs (AV-AAAA-NNNN), montants négatifs
- suppression restreinte
"""

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.config import Settings, get_settings
from orbital.core.database import commit_or_raise
from orbital.core.exceptions import (
    BusinessValidationError,
    ImmutabilityError,
    NotFoundError,
)
from orbital.core.money import document_totals, line_total_cents, to_cents
from orbital.models import Invoice, InvoiceItem, Payment, Quote
from orbital.schemas.common import LineItemInput
from orbital.schemas.invoice import InvoiceCreate, InvoiceUpdate
from orbital.services.client_service import ClientService
from orbital.services.numbering_service import NumberingService, run_with_retry
from orbital.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

# Transitions de `status` acceptées par `PUT /invoices/{id}`
STATUS_TRANSITIONS = {
    "draft": {"sent", "cancelled", "paid"},
    "sent": {"paid", "overdue", "cancelled"},
    "overdue": {"sent", "paid", "cancelled"},
}


def build_line_items(item_cls, items: Iterable[LineItemInput]) -> list:
    """
    Construit les lignes persistées (InvoiceItem ou QuoteItem).

    Le prix est converti en centimes avant application de la remise ;
    `sort_order` suit l'ordre de saisie.
    """
    lines = []
    for index, item in enumerate(items):
        unit_price_cents = to_cents(item.unit_price)
        lines.append(
            item_cls(
                description=item.description.strip(),
                quantity=item.quantity,
                unit_price_cents=unit_price_cents,
                discount=item.discount,
                vat_rate=item.vat_rate,
                total_cents=line_total_cents(item.quantity, unit_price_cents, item.discount),
                sort_order=index,
            )
        )
    return lines


def copy_line_items(item_cls, source_items: Iterable, sign: int = 1) -> list:
    """Copie des lignes d'un document vers un autre (signe -1 pour un avoir)."""
    return [
        item_cls(
            description=item.description,
            quantity=item.quantity,
            unit_price_cents=sign * item.unit_price_cents,
            discount=item.discount,
            vat_rate=item.vat_rate,
            total_cents=sign * item.total_cents,
            sort_order=index,
        )
        for index, item in enumerate(source_items)
    ]


def apply_totals(document, vat_rate: Decimal) -> None:
    """Recalcule les totaux d'un document depuis ses lignes."""
    subtotal, vat, total = document_totals((i.total_cents for i in document.items), vat_rate)
    document.vat_rate = vat_rate
    document.subtotal_cents = subtotal
    document.vat_amount_cents = vat
    document.total_cents = total


class InvoiceService:
    """
    Service des opérations sur les factures.

    Chaque opération relit la facture dans sa propre transaction avant
    de vérifier ses préconditions (propriétaire, verrou, statut).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        numbering: Optional[NumberingService] = None,
        client_service: Optional[ClientService] = None,
        payment_service: Optional[PaymentService] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.numbering = numbering or NumberingService()
        self.client_service = client_service or ClientService()
        self.payment_service = payment_service or PaymentService(self.client_service)

    # ------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        user_id: str,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[Invoice]:
        """
        Liste les factures et avoirs, les plus récents d'abord.

        Les factures échues sont passées en retard avant la lecture.
        """
        await self.payment_service.refresh_overdue(db, user_id)

        stmt = select(Invoice).where(Invoice.user_id == user_id)
        if status:
            stmt = stmt.where(Invoice.status == status)
        if payment_status:
            stmt = stmt.where(Invoice.payment_status == payment_status)
        if client_id:
            stmt = stmt.where(Invoice.client_id == client_id)
        stmt = stmt.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc())

        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
        for_update: bool = False,
    ) -> Invoice:
        """
        Récupère une facture avec ses lignes.

        Raises:
            NotFoundError: facture inexistante ou d'un autre utilisateur
        """
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        invoice = (await db.execute(stmt)).scalar_one_or_none()
        if invoice is None:
            logger.warning("Facture non trouvée : %s (utilisateur %s)", invoice_id, user_id)
            raise NotFoundError("Facture non trouvée")
        return invoice

    # ------------------------------------------------------------
    # Création
    # ------------------------------------------------------------

    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        data: InvoiceCreate,
    ) -> Invoice:
        """
        Crée une facture brouillon.

        Steps:
        1. Vérifie le client (appartenant à l'utilisateur) et les lignes
        2. Applique les valeurs par défaut (TVA, émission, échéance)
        3. Attribue le numéro FAC dans la transaction d'insertion
        4. Calcule les totaux en centimes et met à jour les compteurs client

        Raises:
            BusinessValidationError: client ou lignes absents
            NotFoundError: client d'un autre utilisateur
        """
        if data.client_id is None or not data.items:
            raise BusinessValidationError("Client et lignes requis")

        await self.client_service.get_by_id(db, user_id, data.client_id)

        vat_rate = data.vat_rate if data.vat_rate is not None else self.settings.default_vat_rate
        issue_date = data.issue_date or datetime.date.today()
        due_date = data.due_date or issue_date + datetime.timedelta(
            days=self.settings.default_payment_terms_days
        )

        async def unit_of_work() -> uuid.UUID:
            number = await self.numbering.next_number(db, user_id, "invoice", issue_date.year)
            invoice = Invoice(
                user_id=user_id,
                client_id=data.client_id,
                invoice_number=number.number,
                invoice_type="invoice",
                sequence_year=number.year,
                sequence_number=number.sequence,
                status="draft",
                payment_status="unpaid",
                is_finalized=False,
                issue_date=issue_date,
                due_date=due_date,
                description=data.description,
                notes=data.notes,
                items=build_line_items(InvoiceItem, data.items),
            )
            apply_totals(invoice, vat_rate)
            db.add(invoice)
            await db.flush()
            await self.client_service.refresh_totals(db, user_id, invoice.client_id)
            return invoice.id

        invoice_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "la création de la facture"
        )
        invoice = await self.get_by_id(db, user_id, invoice_id)
        logger.info(
            "Facture créée : %s (%d ligne(s), total %s)",
            invoice.invoice_number, len(invoice.items), invoice.total,
        )
        return invoice

    # ------------------------------------------------------------
    # Mise à jour
    # ------------------------------------------------------------

    async def update(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
        data: InvoiceUpdate,
    ) -> Invoice:
        """
        Met à jour une facture non verrouillée.

        Les lignes fournies remplacent toutes les lignes existantes. Un
        changement de `status` suit `STATUS_TRANSITIONS` ; 'paid' et
        'overdue' passent par le moteur de paiement.

        Raises:
            ImmutabilityError: facture finalisée ou payée
            BusinessValidationError: données ou transition invalides
        """
        invoice = await self.get_by_id(db, user_id, invoice_id, for_update=True)

        if invoice.is_finalized:
            raise ImmutabilityError("Facture finalisée - Créez un avoir pour corriger")
        if invoice.status == "paid":
            raise ImmutabilityError("Facture payée - Créez un avoir pour corriger")

        changes = data.model_dump(exclude_unset=True, exclude={"items", "status"})
        previous_client_id = invoice.client_id

        if "client_id" in changes:
            if changes["client_id"] is None:
                raise BusinessValidationError("Le client est requis")
            await self.client_service.get_by_id(db, user_id, changes["client_id"])
            invoice.client_id = changes["client_id"]

        for field in ("issue_date", "due_date", "description", "notes"):
            if field in changes:
                setattr(invoice, field, changes[field])
        if invoice.issue_date is None:
            raise BusinessValidationError("La date d'émission est requise")

        recompute = False
        if "items" in data.model_fields_set:
            if not data.items:
                raise BusinessValidationError("Au moins une ligne est requise")
            invoice.items = build_line_items(InvoiceItem, data.items)
            recompute = True

        vat_rate = invoice.vat_rate
        if changes.get("vat_rate") is not None:
            vat_rate = changes["vat_rate"]
            recompute = True

        if recompute:
            apply_totals(invoice, vat_rate)
            paid = await self.payment_service.total_paid_cents(db, invoice.id)
            if paid > invoice.total_cents:
                raise BusinessValidationError(
                    "Le total ne peut pas être inférieur aux paiements enregistrés"
                )
            if paid:
                await self.payment_service.reconcile(db, invoice)

        if data.status is not None and data.status != invoice.status:
            await self._change_status(db, invoice, data.status)

        await db.flush()
        await self.client_service.refresh_totals(db, user_id, invoice.client_id)
        if previous_client_id != invoice.client_id:
            await self.client_service.refresh_totals(db, user_id, previous_client_id)
        await commit_or_raise(db, "la mise à jour de la facture")

        logger.info("Facture mise à jour : %s (statut %s)", invoice.invoice_number, invoice.status)
        return await self.get_by_id(db, user_id, invoice.id)

    async def _change_status(self, db: AsyncSession, invoice: Invoice, target: str) -> None:
        allowed = STATUS_TRANSITIONS.get(invoice.status, set())
        if target not in allowed:
            logger.warning(
                "Transition refusée pour %s : %s -> %s",
                invoice.invoice_number, invoice.status, target,
            )
            raise BusinessValidationError(
                f"Transition de statut invalide : {invoice.status} -> {target}"
            )

        if target in ("paid", "overdue"):
            await self.payment_service.set_payment_state(db, invoice, target)
        elif target == "sent" and invoice.status == "overdue":
            invoice.status = "sent"
            await self.payment_service.reconcile(db, invoice)
        else:
            invoice.status = target

    # ------------------------------------------------------------
    # Finalisation et avoirs
    # ------------------------------------------------------------

    async def finalize(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Finalise une facture envoyée. Irréversible.

        Une facture en retard a été envoyée : elle peut aussi être
        finalisée. Le retard ne change que son état de paiement.

        Raises:
            BusinessValidationError: déjà finalisée, brouillon ou statut incompatible
        """
        invoice = await self.get_by_id(db, user_id, invoice_id, for_update=True)

        if invoice.is_finalized:
            raise BusinessValidationError("Facture déjà finalisée")
        if invoice.status == "draft":
            raise BusinessValidationError("Envoyez la facture avant de la finaliser")
        if invoice.status not in ("sent", "overdue"):
            raise BusinessValidationError(
                f"Impossible de finaliser une facture au statut {invoice.status}"
            )

        invoice.is_finalized = True
        invoice.finalized_at = datetime.datetime.now(datetime.timezone.utc)
        await commit_or_raise(db, "la finalisation de la facture")

        logger.info("Facture finalisée : %s", invoice.invoice_number)
        return await self.get_by_id(db, user_id, invoice.id)

    async def issue_credit_note(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Émet un avoir total sur une facture.

        L'avoir reprend les lignes avec prix et totaux négatifs, naît
        finalisé et soldé. La facture d'origine n'est pas modifiée.

        Raises:
            NotFoundError: facture d'origine inexistante
            BusinessValidationError: la facture d'origine est déjà un avoir
        """

        async def unit_of_work() -> uuid.UUID:
            source = await self.get_by_id(db, user_id, invoice_id)
            if source.invoice_type == "credit_note":
                raise BusinessValidationError("Impossible d'émettre un avoir sur un avoir")

            now = datetime.datetime.now(datetime.timezone.utc)
            today = datetime.date.today()
            number = await self.numbering.next_number(db, user_id, "credit_note", today.year)

            credit_note = Invoice(
                user_id=user_id,
                client_id=source.client_id,
                related_invoice_id=source.id,
                invoice_number=number.number,
                invoice_type="credit_note",
                sequence_year=number.year,
                sequence_number=number.sequence,
                subtotal_cents=-source.subtotal_cents,
                vat_rate=source.vat_rate,
                vat_amount_cents=-source.vat_amount_cents,
                total_cents=-source.total_cents,
                status="sent",
                payment_status="paid",
                is_finalized=True,
                finalized_at=now,
                paid_at=now,
                issue_date=today,
                due_date=today,
                description=f"Avoir sur facture {source.invoice_number}",
                notes=source.notes,
                items=copy_line_items(InvoiceItem, source.items, sign=-1),
            )
            db.add(credit_note)
            await db.flush()
            return credit_note.id

        credit_note_id = await run_with_retry(
            db, unit_of_work, self.settings.numbering_max_retries, "l'émission de l'avoir"
        )
        credit_note = await self.get_by_id(db, user_id, credit_note_id)
        logger.info(
            "Avoir émis : %s sur %s (total %s)",
            credit_note.invoice_number, credit_note.description, credit_note.total,
        )
        return credit_note

    # ------------------------------------------------------------
    # Suppression
    # ------------------------------------------------------------

    async def delete(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> uuid.UUID:
        """
        Supprime une facture brouillon ou envoyée sans historique.

        Raises:
            ImmutabilityError: facture finalisée ou payée
            BusinessValidationError: avoir, paiements, avoirs liés ou devis d'origine
        """
        invoice = await self.get_by_id(db, user_id, invoice_id, for_update=True)

        if invoice.is_locked:
            raise ImmutabilityError("Facture finalisée ou payée - suppression impossible")
        if invoice.invoice_type == "credit_note":
            raise BusinessValidationError("Un avoir ne peut pas être supprimé")

        payment_count = await db.scalar(
            select(func.count(Payment.id)).where(Payment.invoice_id == invoice.id)
        )
        if payment_count:
            raise BusinessValidationError("Impossible de supprimer une facture ayant des paiements")

        credit_note_count = await db.scalar(
            select(func.count(Invoice.id)).where(Invoice.related_invoice_id == invoice.id)
        )
        if credit_note_count:
            raise BusinessValidationError("Impossible de supprimer une facture ayant des avoirs")

        quote_count = await db.scalar(
            select(func.count(Quote.id)).where(Quote.converted_to_invoice_id == invoice.id)
        )
        if quote_count:
            raise BusinessValidationError("Impossible de supprimer une facture issue d'un devis")

        client_id = invoice.client_id
        number = invoice.invoice_number
        await db.delete(invoice)
        await db.flush()
        await self.client_service.refresh_totals(db, user_id, client_id)
        await commit_or_raise(db, "la suppression de la facture")

        logger.info("Facture supprimée : %s", number)
        return invoice_id
