"""Deal state machine operations.

Every mutating operation runs inside one `unit_of_work`; the guarded status
UPDATE, the history row and any derived fields commit together or not at all.
Notifications and the activity trail are queued on a `SideEffectOutbox` and
flushed after the commit.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from app import models
from app.database import supports_row_locks, unit_of_work
from app.models.domain import (
    ActorType,
    DealStatus,
    OfferStatus,
    SenderType,
    ShippingCompanyStatus,
    ShippingType,
)
from app.services.actors import (
    Actor,
    ensure_actor,
    ensure_can_view,
    ensure_guarantor,
    sender_type_for,
)
from app.services.amount_resolver import (
    AmountHint,
    display_amount,
    require_amount_for_acceptance,
    require_amount_for_approval,
    resolve_amount,
)
from app.services.commission import money, to_decimal
from app.services.deal_transitions import append_status_history, transition_deal
from app.services.document_numbering import next_deal_number
from app.services.errors import Forbidden, InvalidState, NotFound, ValidationFailed
from app.services.invoicing import InvoiceRenderer, get_invoice_renderer, mint_invoice_number
from app.services.quote_expiry import EXPIRY_REASON, expire_if_stale, is_quote_expired
from app.services.side_effects import SideEffectOutbox

logger = logging.getLogger("mediation.deals")

REJECT_REASON = "Client rejected the price quote."
CANCEL_REASON = "Client cancelled the deal."
QUOTE_EXPIRED_MESSAGE = (
    "Deal cannot be accepted: the quote has expired (more than 72 hours since it was sent). "
    "The deal has been cancelled."
)


@dataclass(frozen=True)
class DealItemInput:
    offer_item_id: str
    quantity: Optional[int] = None
    cartons: Optional[int] = None
    negotiated_price: Any = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class DealView:
    deal: models.Deal
    resolved_amount: Decimal | None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _outbox(outbox: SideEffectOutbox | None) -> SideEffectOutbox:
    return outbox if outbox is not None else SideEffectOutbox()


def load_deal(db: Session, deal_id: str, *, for_update: bool = False) -> models.Deal:
    q = db.query(models.Deal).filter(models.Deal.id == str(deal_id))
    if for_update:
        q = q.populate_existing()
        if supports_row_locks(db):
            q = q.with_for_update()
    deal = q.first()
    if deal is None:
        raise NotFound("Deal not found")
    return deal


def party_recipients(deal: models.Deal) -> list[tuple[int | None, ActorType]]:
    return [
        (deal.client_id, ActorType.CLIENT),
        (deal.trader_id, ActorType.TRADER),
        (deal.employee_id, ActorType.EMPLOYEE),
    ]


def queue_status_change(
    outbox: SideEffectOutbox,
    deal: models.Deal,
    actor: Actor,
    action: str,
    description: str,
) -> None:
    status = deal.status.value
    outbox.notify_many(
        party_recipients(deal),
        kind="DEAL_STATUS_CHANGED",
        title=f"Deal {deal.deal_number} Status Updated",
        message=f"Deal status changed to {status}",
        related_entity_id=deal.id,
    )
    outbox.record(
        actor.actor_type,
        actor.id,
        action,
        "DEAL",
        deal.id,
        description,
        {"deal_number": deal.deal_number, "status": status},
    )


def _queue_expiry(outbox: SideEffectOutbox, deal: models.Deal) -> None:
    outbox.notify_many(
        party_recipients(deal),
        kind="DEAL_STATUS_CHANGED",
        title=f"Deal {deal.deal_number} Status Updated",
        message=EXPIRY_REASON,
        related_entity_id=deal.id,
    )
    outbox.record(
        ActorType.SYSTEM,
        None,
        "DEAL_EXPIRED",
        "DEAL",
        deal.id,
        EXPIRY_REASON,
        {"deal_number": deal.deal_number},
    )


def _build_items(
    db: Session, deal: models.Deal, items: Iterable[DealItemInput]
) -> list[models.DealItem]:
    built: list[models.DealItem] = []
    for item in items:
        offer_item = (
            db.query(models.OfferItem)
            .filter(models.OfferItem.id == str(item.offer_item_id))
            .filter(models.OfferItem.offer_id == deal.offer_id)
            .first()
        )
        if offer_item is None:
            raise NotFound(f"Offer item {item.offer_item_id} not found in this offer")

        quantity = item.quantity if item.quantity is not None else offer_item.quantity
        if quantity is None or int(quantity) <= 0:
            raise ValidationFailed(f"Quantity for offer item {offer_item.id} must be greater than 0")
        cartons = item.cartons if item.cartons is not None else offer_item.cartons

        negotiated_price = None
        if item.negotiated_price not in (None, ""):
            negotiated_price = to_decimal(item.negotiated_price)
            if negotiated_price is None or negotiated_price < 0:
                raise ValidationFailed("negotiatedPrice must be a non-negative number")
            negotiated_price = money(negotiated_price)

        unit_cbm = to_decimal(offer_item.cbm, Decimal("0"))
        built.append(
            models.DealItem(
                deal_id=deal.id,
                offer_item_id=offer_item.id,
                offer_item=offer_item,
                quantity=int(quantity),
                cartons=int(cartons or 0),
                cbm=unit_cbm * int(quantity),
                negotiated_price=negotiated_price,
                notes=item.notes,
            )
        )
    return built


def item_totals(items: Iterable[models.DealItem]) -> tuple[int, Decimal]:
    cartons = 0
    cbm = Decimal("0")
    for item in items:
        cartons += int(item.cartons or 0)
        cbm += to_decimal(item.cbm, Decimal("0"))
    return cartons, cbm


def create_deal(
    db: Session,
    *,
    offer_id: str,
    actor: Actor,
    items: Iterable[DealItemInput] | None = None,
    notes: str | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    outbox = _outbox(outbox)
    if actor.actor_type != ActorType.CLIENT:
        raise Forbidden("Only clients can request deals")

    with unit_of_work(db):
        offer = db.get(models.Offer, str(offer_id))
        if offer is None:
            raise NotFound("Offer not found")
        if offer.status != OfferStatus.ACTIVE:
            raise InvalidState("Offer is not available for deals")
        client = db.get(models.Client, actor.id)
        if client is None:
            raise NotFound("Client not found")
        trader = offer.trader
        if trader is None or trader.employee_id is None:
            raise NotFound("Trader has no assigned employee")

        deal = models.Deal(
            deal_number=next_deal_number(db),
            offer_id=offer.id,
            trader_id=trader.id,
            client_id=client.id,
            employee_id=trader.employee_id,
            status=DealStatus.NEGOTIATION,
            notes=notes,
        )
        db.add(deal)
        db.flush()

        built = _build_items(db, deal, items or [])
        for row in built:
            db.add(row)
        deal.total_cartons, deal.total_cbm = item_totals(built)

        append_status_history(
            db,
            deal_id=deal.id,
            status=DealStatus.NEGOTIATION,
            description="Deal created - negotiation started",
            changed_by=actor.id,
            changed_by_type=ActorType.CLIENT,
        )

        outbox.notify_many(
            [(deal.trader_id, ActorType.TRADER), (deal.employee_id, ActorType.EMPLOYEE)],
            kind="DEAL_REQUEST",
            title="New Deal Request",
            message=f"New deal request {deal.deal_number} from {client.name}",
            related_entity_id=deal.id,
        )
        outbox.record(
            actor.actor_type,
            actor.id,
            "DEAL_CREATED",
            "DEAL",
            deal.id,
            f"Deal {deal.deal_number} created",
            {"offer_id": offer.id, "items": len(built)},
        )

    logger.info(
        "deal_created",
        extra={"deal_id": deal.id, "deal_number": deal.deal_number, "client_id": actor.id},
    )
    outbox.flush(db)
    db.refresh(deal)
    return deal


def get_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> DealView:
    """Read a deal, cancelling it first if its quote went stale."""

    outbox = _outbox(outbox)
    with unit_of_work(db):
        deal = load_deal(db, deal_id)
        ensure_can_view(deal, actor)
        if is_quote_expired(deal, now):
            deal = load_deal(db, deal_id, for_update=True)
            if expire_if_stale(db, deal, now):
                _queue_expiry(outbox, deal)

    outbox.flush(db)
    db.refresh(deal)
    return DealView(deal=deal, resolved_amount=_display_amount(deal))


def _display_amount(deal: models.Deal) -> Decimal | None:
    return display_amount(
        items=deal.items, stored_amount=deal.negotiated_amount, messages=deal.messages
    )


def list_deals(
    db: Session,
    actor: Actor,
    *,
    status: DealStatus | None = None,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> list[DealView]:
    outbox = _outbox(outbox)
    q = db.query(models.Deal)
    if actor.actor_type == ActorType.CLIENT:
        q = q.filter(models.Deal.client_id == actor.id)
    elif actor.actor_type == ActorType.TRADER:
        q = q.filter(models.Deal.trader_id == actor.id)
    elif actor.actor_type == ActorType.EMPLOYEE:
        q = q.filter(models.Deal.employee_id == actor.id)
    elif not actor.is_admin:
        raise Forbidden("Not authorized to list deals")

    with unit_of_work(db):
        stale = (
            q.filter(models.Deal.status == DealStatus.NEGOTIATION)
            .filter(models.Deal.quote_sent_at.isnot(None))
            .all()
        )
        for deal in stale:
            if expire_if_stale(db, deal, now):
                _queue_expiry(outbox, deal)
    outbox.flush(db)

    if status is not None:
        q = q.filter(models.Deal.status == status)
    deals = q.order_by(models.Deal.created_at.desc()).offset(offset).limit(limit).all()
    return [DealView(deal=d, resolved_amount=_display_amount(d)) for d in deals]


def replace_items(
    db: Session,
    deal_id: str,
    actor: Actor,
    items: Iterable[DealItemInput],
    *,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    """Swap the deal's line items wholesale. Only while in NEGOTIATION."""

    outbox = _outbox(outbox)
    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.CLIENT, ActorType.TRADER)
        if deal.status != DealStatus.NEGOTIATION:
            raise InvalidState("Items can only be changed while the deal is in negotiation")

        for existing in list(deal.items):
            deal.items.remove(existing)
        db.flush()

        built = _build_items(db, deal, items)
        deal.items.extend(built)
        deal.total_cartons, deal.total_cbm = item_totals(built)
        db.flush()

        outbox.record(
            actor.actor_type,
            actor.id,
            "DEAL_ITEMS_REPLACED",
            "DEAL",
            deal.id,
            f"Items of deal {deal.deal_number} replaced",
            {"items": len(built)},
        )

    outbox.flush(db)
    db.refresh(deal)
    return deal


def _mint_barcode() -> str:
    return f"{int(time.time() * 1000)}{secrets.randbelow(1000)}"


def approve_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    hint: AmountHint | None = None,
    shipping_type: ShippingType | None = None,
    notes: str | None = None,
    renderer: InvoiceRenderer | None = None,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    """Trader/employee approval; mints the invoice number, barcode and QR link."""

    outbox = _outbox(outbox)
    renderer = renderer or get_invoice_renderer()
    now = now or _utc_now()

    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.TRADER, ActorType.EMPLOYEE)
        if deal.status != DealStatus.NEGOTIATION:
            raise InvalidState("Deal is not in negotiation status")

        resolved = require_amount_for_approval(
            items=deal.items, stored_amount=deal.negotiated_amount, hint=hint
        )
        cartons, cbm = item_totals(deal.items)
        if not deal.items:
            cartons, cbm = deal.total_cartons or 0, to_decimal(deal.total_cbm, Decimal("0"))

        deal.invoice_number = deal.invoice_number or mint_invoice_number(deal, now)
        deal.barcode = _mint_barcode()
        qr_code_url = None
        try:
            qr_code_url = renderer.render_deal_code(deal)
        except Exception:
            logger.exception(
                "side_effect_failed", extra={"kind": "deal_qr_code", "deal_id": deal.id}
            )

        updates: dict[str, Any] = {
            "negotiated_amount": resolved.amount,
            "total_cartons": cartons,
            "total_cbm": cbm,
            "qr_code_url": qr_code_url,
        }
        if shipping_type is not None:
            updates["shipping_type"] = shipping_type
        if notes:
            updates["notes"] = notes

        by = "trader" if actor.actor_type == ActorType.TRADER else actor.actor_type.value.lower()
        transition_deal(
            db,
            deal,
            to_status=DealStatus.APPROVED,
            description=f"Deal approved by {by}",
            changed_by=actor.id,
            changed_by_type=actor.actor_type,
            allowed_from={DealStatus.NEGOTIATION},
            updates=updates,
            conflict_message="Deal is not in negotiation status",
            now=now,
        )
        queue_status_change(
            outbox, deal, actor, "DEAL_APPROVED", f"Deal {deal.deal_number} approved"
        )

    logger.info(
        "deal_approved",
        extra={
            "deal_id": deal.id,
            "deal_number": deal.deal_number,
            "amount": str(resolved.amount),
            "amount_source": resolved.source,
        },
    )
    outbox.flush(db)
    db.refresh(deal)
    return deal


def send_quote(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    hint: AmountHint | None = None,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    """Stamp quote_sent_at, which (re)starts the acceptance window."""

    outbox = _outbox(outbox)
    now = now or _utc_now()

    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.TRADER, ActorType.EMPLOYEE)
        if deal.status != DealStatus.NEGOTIATION:
            raise InvalidState("A quote can only be sent while the deal is in negotiation")

        resolved = resolve_amount(items=deal.items, stored_amount=deal.negotiated_amount, hint=hint)
        deal.quote_sent_at = now
        if resolved is not None:
            deal.negotiated_amount = resolved.amount
        db.flush()

        amount_text = f" for {resolved.amount}" if resolved is not None else ""
        outbox.notify(
            deal.client_id,
            ActorType.CLIENT,
            "DEAL_QUOTE",
            "Price Quote Received",
            f"You received a price quote{amount_text} for deal {deal.deal_number}",
            "DEAL",
            deal.id,
        )
        outbox.record(
            actor.actor_type,
            actor.id,
            "DEAL_QUOTE_SENT",
            "DEAL",
            deal.id,
            f"Quote sent for deal {deal.deal_number}",
            {"amount": str(resolved.amount) if resolved else None},
        )

    outbox.flush(db)
    db.refresh(deal)
    return deal


def accept_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    """Client confirmation of a sent quote.

    The expiry check runs under the same row lock as the status flip. An
    expired quote is cancelled and committed before InvalidState is raised.
    """

    outbox = _outbox(outbox)
    now = now or _utc_now()
    expired = False

    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.CLIENT, admin=False)
        if deal.status != DealStatus.NEGOTIATION:
            raise InvalidState("Deal is not in negotiation status")
        if deal.quote_sent_at is None:
            raise InvalidState("No price quote has been sent for this deal yet")

        if is_quote_expired(deal, now):
            expired = expire_if_stale(db, deal, now)
            if expired:
                _queue_expiry(outbox, deal)
        else:
            resolved = require_amount_for_acceptance(
                items=deal.items, stored_amount=deal.negotiated_amount, messages=deal.messages
            )
            cartons, cbm = item_totals(deal.items)
            updates: dict[str, Any] = {"negotiated_amount": resolved.amount}
            if deal.items:
                updates.update({"total_cartons": cartons, "total_cbm": cbm})
            transition_deal(
                db,
                deal,
                to_status=DealStatus.APPROVED,
                description="Deal accepted by client",
                changed_by=actor.id,
                changed_by_type=ActorType.CLIENT,
                allowed_from={DealStatus.NEGOTIATION},
                updates=updates,
                conflict_message="Deal is not in negotiation status",
                now=now,
            )
            queue_status_change(
                outbox, deal, actor, "DEAL_ACCEPTED", f"Deal {deal.deal_number} accepted"
            )

    outbox.flush(db)
    if expired:
        raise InvalidState(QUOTE_EXPIRED_MESSAGE)
    db.refresh(deal)
    return deal


def _client_cancel(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    reason: str,
    action: str,
    conflict_message: str,
    outbox: SideEffectOutbox | None,
) -> models.Deal:
    outbox = _outbox(outbox)
    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.CLIENT, admin=False)
        transition_deal(
            db,
            deal,
            to_status=DealStatus.CANCELLED,
            description=reason,
            changed_by=actor.id,
            changed_by_type=ActorType.CLIENT,
            allowed_from={DealStatus.NEGOTIATION},
            updates={"cancellation_reason": reason},
            conflict_message=conflict_message,
        )
        queue_status_change(outbox, deal, actor, action, reason)

    outbox.flush(db)
    db.refresh(deal)
    return deal


def reject_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    reason: str | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    return _client_cancel(
        db,
        deal_id,
        actor,
        reason=(reason or "").strip() or REJECT_REASON,
        action="DEAL_REJECTED",
        conflict_message="Only deals in negotiation can be rejected",
        outbox=outbox,
    )


def cancel_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    reason: str | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    return _client_cancel(
        db,
        deal_id,
        actor,
        reason=(reason or "").strip() or CANCEL_REASON,
        action="DEAL_CANCELLED",
        conflict_message="Only deals in negotiation can be cancelled",
        outbox=outbox,
    )


def assign_shipping_company(
    db: Session,
    deal_id: str,
    actor: Actor,
    shipping_company_id: int | None,
    *,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    outbox = _outbox(outbox)
    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_actor(deal, actor, ActorType.EMPLOYEE)
        if deal.status in (DealStatus.SETTLED, DealStatus.CANCELLED):
            raise InvalidState("Shipping cannot be changed on a closed deal")

        if shipping_company_id is not None:
            company = db.get(models.ShippingCompany, int(shipping_company_id))
            if company is None:
                raise NotFound("Shipping company not found")
            if company.status != ShippingCompanyStatus.ACTIVE:
                raise InvalidState("Shipping company is not active")

        deal.shipping_company_id = shipping_company_id
        db.flush()
        outbox.record(
            actor.actor_type,
            actor.id,
            "DEAL_SHIPPING_ASSIGNED",
            "DEAL",
            deal.id,
            f"Shipping company for deal {deal.deal_number} set to {shipping_company_id}",
            {"shipping_company_id": shipping_company_id},
        )

    outbox.flush(db)
    db.refresh(deal)
    return deal


def settle_deal(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    now: datetime | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.Deal:
    outbox = _outbox(outbox)
    with unit_of_work(db):
        deal = load_deal(db, deal_id, for_update=True)
        ensure_guarantor(deal, actor, "Only the deal's guarantor can settle it")
        if deal.status != DealStatus.PAID:
            raise InvalidState("Deal must be paid before settlement")

        completed = (
            db.query(models.Payment)
            .filter(models.Payment.deal_id == deal.id)
            .filter(models.Payment.status == models.PaymentStatus.COMPLETED)
            .count()
        )
        if not completed:
            raise InvalidState("No completed payments found")

        transition_deal(
            db,
            deal,
            to_status=DealStatus.SETTLED,
            description="Deal settled and completed",
            changed_by=actor.id,
            changed_by_type=actor.actor_type,
            allowed_from={DealStatus.PAID},
            conflict_message="Deal must be paid before settlement",
            now=now,
        )
        queue_status_change(outbox, deal, actor, "DEAL_SETTLED", f"Deal {deal.deal_number} settled")

    logger.info("deal_settled", extra={"deal_id": deal.id, "deal_number": deal.deal_number})
    outbox.flush(db)
    db.refresh(deal)
    return deal


def post_negotiation_message(
    db: Session,
    deal_id: str,
    actor: Actor,
    *,
    message: str | None = None,
    proposed_price: Any = None,
    proposed_quantity: int | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.DealNegotiationMessage:
    outbox = _outbox(outbox)
    text = (message or "").strip() or None
    price = None
    if proposed_price not in (None, ""):
        price = to_decimal(proposed_price)
        if price is None or price <= 0:
            raise ValidationFailed("proposedPrice must be greater than 0")
        price = money(price)
    if proposed_quantity is not None and int(proposed_quantity) <= 0:
        raise ValidationFailed("proposedQuantity must be greater than 0")
    if text is None and price is None and proposed_quantity is None:
        raise ValidationFailed("A message, proposed price or proposed quantity is required")

    with unit_of_work(db):
        deal = load_deal(db, deal_id)
        sender_type = sender_type_for(actor)
        ensure_actor(deal, actor, ActorType.CLIENT, ActorType.TRADER, ActorType.EMPLOYEE, admin=False)
        if deal.status not in (DealStatus.NEGOTIATION, DealStatus.APPROVED):
            raise InvalidState("Negotiation is closed for this deal")

        row = models.DealNegotiationMessage(
            deal_id=deal.id,
            sender_type=sender_type,
            sender_id=actor.id,
            message=text,
            proposed_price=price,
            proposed_quantity=int(proposed_quantity) if proposed_quantity is not None else None,
        )
        db.add(row)
        db.flush()

        if sender_type == SenderType.CLIENT:
            recipients = [(deal.trader_id, ActorType.TRADER), (deal.employee_id, ActorType.EMPLOYEE)]
        elif sender_type == SenderType.TRADER:
            recipients = [(deal.client_id, ActorType.CLIENT), (deal.employee_id, ActorType.EMPLOYEE)]
        else:
            recipients = [(deal.client_id, ActorType.CLIENT), (deal.trader_id, ActorType.TRADER)]
        outbox.notify_many(
            recipients,
            kind="NEGOTIATION_MESSAGE",
            title="New Negotiation Message",
            message=f"New message on deal {deal.deal_number}",
            related_entity_id=deal.id,
        )

    outbox.flush(db)
    db.refresh(row)
    return row


def list_negotiation_messages(
    db: Session, deal_id: str, actor: Actor
) -> list[models.DealNegotiationMessage]:
    deal = load_deal(db, deal_id)
    ensure_can_view(deal, actor)
    return (
        db.query(models.DealNegotiationMessage)
        .filter(models.DealNegotiationMessage.deal_id == deal.id)
        .order_by(models.DealNegotiationMessage.created_at.asc())
        .all()
    )


def mark_messages_read(
    db: Session, deal_id: str, actor: Actor, *, now: datetime | None = None
) -> int:
    """Mark messages sent by the other parties as read. Returns how many changed."""

    now = now or _utc_now()
    with unit_of_work(db):
        deal = load_deal(db, deal_id)
        ensure_can_view(deal, actor)
        q = (
            db.query(models.DealNegotiationMessage)
            .filter(models.DealNegotiationMessage.deal_id == deal.id)
            .filter(models.DealNegotiationMessage.is_read.is_(False))
        )
        if not actor.is_admin:
            q = q.filter(models.DealNegotiationMessage.sender_type != sender_type_for(actor))
        unread = q.all()
        for msg in unread:
            msg.is_read = True
            msg.read_at = now
        db.flush()
    return len(unread)
