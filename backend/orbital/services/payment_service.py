"""
Service Layer des paiements et de la trésorerie
Projet : Orbital (Facturation)

Rapprochement des paiements avec les factures :
- enregistrement d'un paiement (jamais au-delà du reste à payer)
- suppression d'un paiement (l'état de la facture peut revenir en arrière)
- recalcul de l'état de paiement à partir de la somme des paiements
- passage automatique en retard des factures échues
- agrégat mensuel de trésorerie

Les deux axes `status` et `payment_status` d'une facture ne sont modifiés
que par `transition_payment_state`, quel que soit le chemin d'appel.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orbital.core.database import commit_or_raise
from orbital.core.exceptions import BusinessValidationError, NotFoundError
from orbital.core.money import format_euros, from_cents, to_cents
from orbital.models import Invoice, Payment
from orbital.schemas.payment import (
    BalanceSummary,
    InvoicePayments,
    MonthStats,
    OverdueStats,
    PaymentCreate,
    PaymentRead,
    PaymentStats,
    RecentPayment,
)
from orbital.services.client_service import ClientService

logger = logging.getLogger(__name__)

OPEN_PAYMENT_STATUSES = ("unpaid", "partial")


# ------------------------------------------------------------
# Règles pures
# ------------------------------------------------------------

def derive_payment_status(total_cents: int, paid_cents: int) -> str:
    """
    État de paiement déduit de la somme des paiements.

    - payé >= total : 'paid'
    - 0 < payé < total : 'partial'
    - rien payé : 'unpaid'
    """
    if paid_cents <= 0:
        return "unpaid"
    if paid_cents >= total_cents:
        return "paid"
    return "partial"


def transition_payment_state(
    invoice: Invoice,
    target: str,
    now: Optional[datetime.datetime] = None,
) -> None:
    """
    Applique un état de paiement en gardant `status` synchronisé.

    - paid : status 'paid', `paid_at` posé (conservé s'il l'était déjà)
    - overdue : status 'overdue', `paid_at` effacé
    - partial : status inchangé, sauf 'paid' qui redevient 'sent'
    - unpaid : idem, `paid_at` effacé

    Appliquer deux fois le même état ne change rien.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)

    if target == "paid":
        invoice.payment_status = "paid"
        invoice.status = "paid"
        if invoice.paid_at is None:
            invoice.paid_at = now
    elif target == "overdue":
        invoice.payment_status = "overdue"
        invoice.status = "overdue"
        invoice.paid_at = None
    elif target in OPEN_PAYMENT_STATUSES:
        invoice.payment_status = target
        invoice.paid_at = None
        if invoice.status == "paid":
            invoice.status = "sent"
    else:
        raise ValueError(f"État de paiement inconnu : {target}")


class PaymentService:
    """
    Service du moteur de rapprochement des paiements.

    Chaque opération s'exécute dans une seule transaction : l'insertion ou
    la suppression du paiement, le recalcul de la facture et la mise à jour
    des compteurs client sont validés ensemble ou pas du tout.
    """

    def __init__(self, client_service: Optional[ClientService] = None) -> None:
        self.client_service = client_service or ClientService()

    # ------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: Optional[uuid.UUID] = None,
    ) -> list[Payment]:
        """Liste les paiements, les plus récents d'abord."""
        stmt = select(Payment).where(Payment.user_id == user_id)
        if invoice_id is not None:
            stmt = stmt.where(Payment.invoice_id == invoice_id)
        stmt = stmt.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        return list((await db.execute(stmt)).scalars().all())

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: str,
        payment_id: uuid.UUID,
    ) -> Payment:
        stmt = (
            select(Payment)
            .where(Payment.id == payment_id, Payment.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        payment = (await db.execute(stmt)).scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Paiement non trouvé")
        return payment

    async def total_paid_cents(self, db: AsyncSession, invoice_id: uuid.UUID) -> int:
        """Somme des paiements enregistrés sur une facture."""
        total = await db.scalar(
            select(func.coalesce(func.sum(Payment.amount_cents), 0)).where(
                Payment.invoice_id == invoice_id
            )
        )
        return int(total or 0)

    async def get_balance(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> BalanceSummary:
        """Total, déjà payé et reste à payer d'une facture."""
        invoice = await self._get_invoice(db, user_id, invoice_id)
        paid = await self.total_paid_cents(db, invoice.id)
        return BalanceSummary(
            invoice_total=from_cents(invoice.total_cents),
            total_paid=from_cents(paid),
            balance_due=from_cents(invoice.total_cents - paid),
        )

    async def get_invoice_payments(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
    ) -> InvoicePayments:
        """Paiements d'une facture et son solde."""
        summary = await self.get_balance(db, user_id, invoice_id)
        payments = await self.get_all(db, user_id, invoice_id=invoice_id)
        return InvoicePayments(
            payments=[PaymentRead.model_validate(p) for p in payments],
            summary=summary,
        )

    # ------------------------------------------------------------
    # Écriture
    # ------------------------------------------------------------

    async def record_payment(
        self,
        db: AsyncSession,
        user_id: str,
        data: PaymentCreate,
    ) -> Payment:
        """
        Enregistre un paiement puis recalcule l'état de la facture.

        Steps:
        1. Vérifie la présence de la facture, du montant et du moyen de paiement
        2. Convertit le montant en centimes ; refuse un montant nul ou négatif
        3. Relit la facture (verrouillée) et la somme des paiements existants
        4. Refuse les avoirs, les factures annulées et tout dépassement du reste à payer
        5. Insère le paiement, recalcule la facture et les compteurs du client

        Raises:
            BusinessValidationError: données manquantes, montant invalide ou trop élevé
            NotFoundError: facture inexistante ou d'un autre utilisateur
        """
        if data.invoice_id is None or data.amount is None or data.method is None:
            raise BusinessValidationError("Facture, montant et méthode requis")

        amount_cents = to_cents(data.amount)
        if amount_cents <= 0:
            raise BusinessValidationError("Le montant doit être positif")

        invoice = await self._get_invoice(db, user_id, data.invoice_id, for_update=True)

        if invoice.invoice_type == "credit_note":
            raise BusinessValidationError("Un avoir ne peut pas recevoir de paiement")
        if invoice.status == "cancelled":
            raise BusinessValidationError("Impossible d'encaisser une facture annulée")

        paid = await self.total_paid_cents(db, invoice.id)
        balance = invoice.total_cents - paid
        if amount_cents > balance:
            logger.warning(
                "Paiement refusé sur %s : %s demandé, reste %s",
                invoice.invoice_number, format_euros(amount_cents), format_euros(balance),
            )
            raise BusinessValidationError(
                f"Le montant dépasse le reste à payer ({format_euros(balance)})"
            )

        payment = Payment(
            user_id=user_id,
            invoice_id=invoice.id,
            amount_cents=amount_cents,
            method=data.method,
            reference=data.reference,
            notes=data.notes,
            payment_date=data.payment_date or datetime.date.today(),
        )
        db.add(payment)
        await db.flush()

        await self.reconcile(db, invoice)
        await self.client_service.refresh_totals(db, user_id, invoice.client_id)
        await commit_or_raise(db, "l'enregistrement du paiement")

        logger.info(
            "Paiement %s enregistré sur %s : %s (état %s)",
            payment.id, invoice.invoice_number, format_euros(amount_cents), invoice.payment_status,
        )
        return await self.get_by_id(db, user_id, payment.id)

    async def delete_payment(
        self,
        db: AsyncSession,
        user_id: str,
        payment_id: uuid.UUID,
    ) -> uuid.UUID:
        """
        Supprime un paiement puis recalcule la facture.

        La facture peut repasser de 'paid' à 'partial' ou 'unpaid'.
        """
        payment = await self.get_by_id(db, user_id, payment_id)
        invoice = await self._get_invoice(db, user_id, payment.invoice_id, for_update=True)

        await db.delete(payment)
        await db.flush()

        await self.reconcile(db, invoice)
        await self.client_service.refresh_totals(db, user_id, invoice.client_id)
        await commit_or_raise(db, "la suppression du paiement")

        logger.info(
            "Paiement %s supprimé de %s (état %s)",
            payment_id, invoice.invoice_number, invoice.payment_status,
        )
        return payment_id

    async def reconcile(self, db: AsyncSession, invoice: Invoice) -> str:
        """
        Recalcule l'état de paiement d'une facture depuis ses paiements.

        N'effectue pas de commit. Un recalcul répété sur les mêmes paiements
        donne le même résultat.
        """
        paid = await self.total_paid_cents(db, invoice.id)
        derived = derive_payment_status(invoice.total_cents, paid)
        transition_payment_state(invoice, derived)
        return derived

    async def set_payment_state(
        self,
        db: AsyncSession,
        invoice: Invoice,
        target: str,
    ) -> None:
        """
        Changement manuel de l'état de paiement (sans commit).

        Sans paiement enregistré, l'état demandé est appliqué tel quel
        (règlement constaté hors application). Avec des paiements, il doit
        correspondre à l'état qu'ils impliquent ; seul le passage en retard
        d'une facture non soldée est accepté en plus.
        """
        if invoice.invoice_type == "credit_note":
            raise BusinessValidationError("L'état de paiement d'un avoir ne peut pas être modifié")

        paid = await self.total_paid_cents(db, invoice.id)
        if paid > 0:
            derived = derive_payment_status(invoice.total_cents, paid)
            allowed = {derived}
            if derived in OPEN_PAYMENT_STATUSES:
                allowed.add("overdue")
            if target not in allowed:
                logger.warning(
                    "État %s refusé pour %s : les paiements impliquent %s",
                    target, invoice.invoice_number, derived,
                )
                raise BusinessValidationError(
                    f"L'état de paiement doit refléter les paiements enregistrés ({derived})"
                )

        transition_payment_state(invoice, target)

    async def update_payment_status(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
        target: str,
    ) -> Invoice:
        """Chemin `PUT /invoices/{id}/payment` ; autorisé après finalisation."""
        invoice = await self._get_invoice(db, user_id, invoice_id, for_update=True)
        await self.set_payment_state(db, invoice, target)
        await commit_or_raise(db, "la mise à jour de l'état de paiement")
        logger.info("État de paiement de %s : %s", invoice.invoice_number, target)
        return await self._get_invoice(db, user_id, invoice.id)

    async def refresh_overdue(
        self,
        db: AsyncSession,
        user_id: str,
        today: Optional[datetime.date] = None,
    ) -> int:
        """
        Passe en retard les factures échues non soldées.

        Concerne les factures envoyées (ou déjà en retard mais
        partiellement réglées) dont l'échéance est dépassée.

        Returns:
            Nombre de factures modifiées
        """
        today = today or datetime.date.today()
        stmt = select(Invoice).where(
            Invoice.user_id == user_id,
            Invoice.invoice_type == "invoice",
            Invoice.status.in_(("sent", "overdue")),
            Invoice.payment_status.in_(OPEN_PAYMENT_STATUSES),
            Invoice.due_date.is_not(None),
            Invoice.due_date < today,
        )
        invoices = list((await db.execute(stmt)).scalars().all())
        if not invoices:
            return 0

        for invoice in invoices:
            transition_payment_state(invoice, "overdue")
        await commit_or_raise(db, "la mise à jour des retards")

        logger.info("%d facture(s) passée(s) en retard pour %s", len(invoices), user_id)
        return len(invoices)

    # ------------------------------------------------------------
    # Trésorerie
    # ------------------------------------------------------------

    async def get_stats(
        self,
        db: AsyncSession,
        user_id: str,
        today: Optional[datetime.date] = None,
    ) -> PaymentStats:
        """
        Agrégat de trésorerie.

        - encaissé : paiements datés du mois courant
        - facturé : factures (hors avoirs) émises dans le mois courant
        - en attente : factures impayées ou partiellement payées
        - en retard : nombre et total des factures en retard
        - les 5 derniers paiements
        """
        today = today or datetime.date.today()
        await self.refresh_overdue(db, user_id, today)

        month_start = today.replace(day=1)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)

        collected = await db.scalar(
            select(func.coalesce(func.sum(Payment.amount_cents), 0)).where(
                Payment.user_id == user_id,
                Payment.payment_date >= month_start,
                Payment.payment_date < next_month,
            )
        )

        is_invoice = and_(Invoice.user_id == user_id, Invoice.invoice_type == "invoice")

        invoiced = await db.scalar(
            select(func.coalesce(func.sum(Invoice.total_cents), 0)).where(
                is_invoice,
                Invoice.issue_date >= month_start,
                Invoice.issue_date < next_month,
            )
        )
        outstanding = await db.scalar(
            select(func.coalesce(func.sum(Invoice.total_cents), 0)).where(
                is_invoice,
                Invoice.payment_status.in_(OPEN_PAYMENT_STATUSES),
            )
        )
        overdue_count, overdue_total = (
            await db.execute(
                select(
                    func.count(Invoice.id),
                    func.coalesce(func.sum(Invoice.total_cents), 0),
                ).where(is_invoice, Invoice.payment_status == "overdue")
            )
        ).one()

        recent = await db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .limit(5)
        )

        return PaymentStats(
            month=MonthStats(
                encaisse=from_cents(int(collected or 0)),
                facture=from_cents(int(invoiced or 0)),
            ),
            en_attente=from_cents(int(outstanding or 0)),
            overdue=OverdueStats(
                count=int(overdue_count or 0),
                total=from_cents(int(overdue_total or 0)),
            ),
            recent_payments=[RecentPayment.model_validate(p) for p in recent.scalars().all()],
        )

    # ------------------------------------------------------------
    # Utilitaires
    # ------------------------------------------------------------

    async def _get_invoice(
        self,
        db: AsyncSession,
        user_id: str,
        invoice_id: uuid.UUID,
        for_update: bool = False,
    ) -> Invoice:
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        invoice = (await db.execute(stmt)).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Facture non trouvée")
        return invoice
