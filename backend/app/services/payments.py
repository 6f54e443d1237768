from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app import models
from app.config import settings
from app.database import unit_of_work
from app.models.domain import ActorType, DealStatus, PaymentMethod, PaymentStatus
from app.services.actors import Actor, ensure_actor, ensure_can_view, ensure_guarantor
from app.services.commission import (
    CommissionBreakdown,
    calculate_commissions,
    employee_rate_for,
    load_commission_settings,
    money,
    to_decimal,
)
from app.services.amount_resolver import display_amount
from app.services.deal_lifecycle import load_deal
from app.services.deal_transitions import atomic_transition_payment_status, transition_deal
from app.services.errors import InvalidAmount, InvalidState, NotFound
from app.services.invoicing import InvoiceRenderer, generate_invoice
from app.services.settlement_ledger import write_settlement
from app.services.side_effects import SideEffectOutbox

logger = logging.getLogger("mediation.payments")


@dataclass(frozen=True)
class PaymentVerification:
    payment: models.Payment
    deal: models.Deal
    transaction: models.FinancialTransaction | None
    invoice: models.Invoice | None
    breakdown: CommissionBreakdown | None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def deal_amount_for_commission(deal: models.Deal, fallback: Any = None) -> Decimal | None:
    stored = to_decimal(deal.negotiated_amount)
    if stored is not None and stored > 0:
        return money(stored)
    fb = to_decimal(fallback)
    if fb is not None and fb > 0:
        return money(fb)
    return None


def quote_for_deal(db: Session, deal: models.Deal) -> CommissionBreakdown:
    """The breakdown a client must pay, with rates read fresh from the database."""

    amount = deal_amount_for_commission(deal)
    if amount is None:
        amount = display_amount(
            items=deal.items, stored_amount=deal.negotiated_amount, messages=deal.messages
        )
    if amount is None:
        raise InvalidAmount("Deal has no agreed amount yet; a payment quote cannot be computed")
    return calculate_commissions(
        amount,
        deal.total_cbm,
        load_commission_settings(db),
        employee_rate_for(deal.employee),
    )


def payment_quote(db: Session, deal_id: str, actor: Actor) -> tuple[models.Deal, CommissionBreakdown]:
    deal = load_deal(db, deal_id)
    ensure_can_view(deal, actor)
    return deal, quote_for_deal(db, deal)


def submit_payment(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    amount: Any,
    method: PaymentMethod,
    transaction_ref: str | None = None,
    receipt_url: str | None = None,
    notes: str | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Payment:
    outbox = outbox if outbox is not None else SideEffectOutbox()
    paid = to_decimal(amount)
    if paid is None or paid <= 0:
        raise InvalidAmount(f"Payment amount must be greater than 0. Received: {amount!r}")

    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.CLIENT, admin=False)
        if deal.status != DealStatus.APPROVED:
            raise InvalidState("Payments can only be submitted for approved deals")

        expected = quote_for_deal(db, deal).total_buyer_paid
        tolerance = to_decimal(settings.payment_amount_tolerance, Decimal("0.02"))
        if abs(money(paid) - expected) > tolerance:
            raise InvalidAmount(
                f"Payment amount {money(paid)} does not match the expected total {expected} "
                "(deal amount plus platform, shipping and employee commissions)"
            )

        payment = models.Payment(
            deal_id=deal.id,
            amount=money(paid),
            method=method,
            status=PaymentStatus.PENDING,
            transaction_ref=transaction_ref,
            receipt_url=receipt_url,
            notes=notes,
        )
        db.add(payment)
        db.flush()

        outbox.notify(
            deal.employee_id,
            ActorType.EMPLOYEE,
            "PAYMENT_SUBMITTED",
            "Payment Submitted",
            f"A payment of {money(paid)} was submitted for deal {deal.deal_number}",
            "PAYMENT",
            payment.id,
        )
        outbox.record(
            actor.actor_type,
            actor.id,
            "PAYMENT_SUBMITTED",
            "PAYMENT",
            payment.id,
            f"Payment submitted for deal {deal.deal_number}",
            {"amount": str(money(paid)), "expected": str(expected)},
        )

    outbox.flush(db)
    db.refresh(payment)
    return payment


def verify_payment(
    db: Session,
    payment_id: str,
    actor: Actor,
    *,
    verified: bool,
    notes: str | None = None,
    renderer: InvoiceRenderer | None = None,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> PaymentVerification:
    """Settle or reject a PENDING payment.

    On success the payment, the deal status, its history row, the financial
    transaction and its five ledger entries commit together. The invoice and
    notifications follow after the commit and cannot undo it.
    """

    outbox = outbox if outbox is not None else SideEffectOutbox()
    now = now or _utc_now()

    payment = db.get(models.Payment, str(payment_id))
    if payment is None:
        raise NotFound("Payment not found")
    deal = load_deal(db, payment.deal_id)
    ensure_guarantor(deal, actor, "Not authorized to verify this payment")

    breakdown: CommissionBreakdown | None = None
    transaction: models.FinancialTransaction | None = None

    with unit_of_work(db):
        # Serializes concurrent verifications of payments on the same deal.
        deal = load_deal(db, deal.id, for_update=True)

        result = atomic_transition_payment_status(
            db=db,
            payment_id=payment.id,
            to_status=PaymentStatus.COMPLETED if verified else PaymentStatus.FAILED,
            updates={"verified_at": now, "verified_by": actor.id, "notes": notes or payment.notes},
        )
        if not result.updated:
            raise InvalidState("Payment already processed")
        db.refresh(payment)

        if verified:
            transition_deal(
                db,
                deal,
                to_status=DealStatus.PAID,
                description="Payment verified and received",
                changed_by=actor.id,
                changed_by_type=actor.actor_type,
                allowed_from={DealStatus.APPROVED},
                conflict_message="Deal must be approved before its payment can be verified",
                now=now,
            )

            # Rates are re-read on every verification; admins may change them anytime.
            commission_settings = load_commission_settings(db)
            deal_amount = deal_amount_for_commission(deal, fallback=payment.amount)
            breakdown = calculate_commissions(
                deal_amount,
                deal.total_cbm,
                commission_settings,
                employee_rate_for(deal.employee),
            )
            transaction = write_settlement(db, deal=deal, payment=payment, breakdown=breakdown)

            outbox.notify_many(
                [
                    (deal.client_id, ActorType.CLIENT),
                    (deal.trader_id, ActorType.TRADER),
                    (deal.employee_id, ActorType.EMPLOYEE),
                ],
                kind="PAYMENT_VERIFIED",
                title="Payment Verified",
                message=(
                    f"Payment of {payment.amount} for deal {deal.deal_number} has been verified"
                ),
                related_entity_id=deal.id,
            )
            outbox.record(
                actor.actor_type,
                actor.id,
                "PAYMENT_VERIFIED",
                "PAYMENT",
                payment.id,
                f"Payment verified for deal {deal.deal_number}; {breakdown.describe()}",
                {
                    "transaction_id": transaction.id,
                    "total": str(breakdown.total_buyer_paid),
                    "platform_commission": str(breakdown.platform_commission),
                    "shipping_commission": str(breakdown.shipping_commission),
                    "employee_commission": str(breakdown.employee_commission),
                    "trader_amount": str(breakdown.trader_payout),
                    "method": breakdown.applied_method.value,
                },
            )
        else:
            outbox.record(
                actor.actor_type,
                actor.id,
                "PAYMENT_REJECTED",
                "PAYMENT",
                payment.id,
                f"Payment rejected for deal {deal.deal_number}",
                {"notes": notes},
            )

    logger.info(
        "payment_verified" if verified else "payment_rejected",
        extra={
            "payment_id": payment.id,
            "deal_id": deal.id,
            "transaction_id": getattr(transaction, "id", None),
        },
    )

    invoice = None
    if transaction is not None:
        invoice = generate_invoice(
            db, deal_id=deal.id, transaction_id=transaction.id, renderer=renderer
        )
    outbox.flush(db)

    db.refresh(payment)
    db.refresh(deal)
    return PaymentVerification(
        payment=payment,
        deal=deal,
        transaction=transaction,
        invoice=invoice,
        breakdown=breakdown,
    )


def list_payments(db: Session, deal_id: str, actor: Actor) -> list[models.Payment]:
    deal = load_deal(db, deal_id)
    ensure_can_view(deal, actor)
    return (
        db.query(models.Payment)
        .filter(models.Payment.deal_id == deal.id)
        .order_by(models.Payment.created_at.asc())
        .all()
    )
