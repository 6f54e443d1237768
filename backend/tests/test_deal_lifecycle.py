from decimal import Decimal

import pytest

from app import models
from app.models.domain import ActorType, DealStatus, ShippingType
from app.services import deal_lifecycle
from app.services.actors import Actor
from app.services.amount_resolver import AmountHint
from app.services.deal_lifecycle import DealItemInput
from app.services.deal_transitions import ALLOWED_TRANSITIONS, atomic_transition_deal_status
from app.services.errors import Forbidden, InvalidAmount, InvalidState, NotFound, ValidationFailed


def _actors(world):
    return (
        Actor(world.client_id, ActorType.CLIENT),
        Actor(world.trader_id, ActorType.TRADER),
        Actor(world.guarantor_id, ActorType.EMPLOYEE),
    )


def _create_deal(db, world, *, with_items=True):
    client, _, _ = _actors(world)
    items = (
        [DealItemInput(offer_item_id=world.profiles_id), DealItemInput(offer_item_id=world.sheets_id)]
        if with_items
        else []
    )
    return deal_lifecycle.create_deal(db, offer_id=world.offer_id, actor=client, items=items)


def test_create_deal_assigns_number_guarantor_and_history(db_session, world):
    deal = _create_deal(db_session, world)

    assert deal.deal_number.startswith("DEAL-")
    assert deal.deal_number.endswith("-000001")
    assert deal.status == DealStatus.NEGOTIATION
    assert deal.employee_id == world.guarantor_id
    assert deal.total_cartons == 6
    assert Decimal(deal.total_cbm) == Decimal("10")
    assert [h.description for h in deal.history] == ["Deal created - negotiation started"]

    second = _create_deal(db_session, world)
    assert second.deal_number.endswith("-000002")

    kinds = {
        (n.user_type, n.kind)
        for n in db_session.query(models.Notification).filter_by(related_entity_id=deal.id)
    }
    assert (ActorType.TRADER, "DEAL_REQUEST") in kinds
    assert (ActorType.EMPLOYEE, "DEAL_REQUEST") in kinds


def test_only_clients_create_deals(db_session, world):
    _, trader, _ = _actors(world)

    with pytest.raises(Forbidden):
        deal_lifecycle.create_deal(db_session, offer_id=world.offer_id, actor=trader)


def test_inactive_offer_rejects_new_deals(db_session, world):
    offer = db_session.get(models.Offer, world.offer_id)
    offer.status = models.OfferStatus.INACTIVE
    db_session.commit()

    with pytest.raises(InvalidState):
        _create_deal(db_session, world)


def test_approve_prefers_item_total_over_stored_amount(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world)
    deal.negotiated_amount = Decimal("5000.00")
    db_session.commit()

    approved = deal_lifecycle.approve_deal(
        db_session,
        deal.id,
        trader,
        hint=AmountHint(body=Decimal("9999")),
        shipping_type=ShippingType.SEA,
    )

    assert approved.status == DealStatus.APPROVED
    assert approved.negotiated_amount == Decimal("1000.00")
    assert approved.shipping_type == ShippingType.SEA
    assert approved.approved_at is not None
    assert approved.invoice_number.startswith("INV-")
    assert approved.barcode
    assert approved.qr_code_url.endswith(f"?code={approved.barcode}")
    assert approved.history[-1].description == "Deal approved by trader"
    assert approved.history[-1].changed_by_type == ActorType.TRADER


def test_approve_without_any_amount_is_rejected(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world, with_items=False)

    with pytest.raises(InvalidAmount) as exc:
        deal_lifecycle.approve_deal(db_session, deal.id, trader, hint=AmountHint())

    assert "Received: body=None, query=None, header=None" in exc.value.message
    db_session.expire_all()
    assert db_session.get(models.Deal, deal.id).status == DealStatus.NEGOTIATION


def test_approve_twice_is_invalid_state(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world)
    deal_lifecycle.approve_deal(db_session, deal.id, trader)

    with pytest.raises(InvalidState) as exc:
        deal_lifecycle.approve_deal(db_session, deal.id, trader)

    assert exc.value.message == "Deal is not in negotiation status"


def test_foreign_trader_cannot_approve(db_session, world):
    deal = _create_deal(db_session, world)
    intruder = Actor(world.trader_id + 100, ActorType.TRADER)

    with pytest.raises(Forbidden):
        deal_lifecycle.approve_deal(db_session, deal.id, intruder)


def test_settle_requires_paid_deal(db_session, world):
    _, trader, guarantor = _actors(world)
    deal = _create_deal(db_session, world)
    deal_lifecycle.approve_deal(db_session, deal.id, trader)

    with pytest.raises(InvalidState) as exc:
        deal_lifecycle.settle_deal(db_session, deal.id, guarantor)

    assert exc.value.message == "Deal must be paid before settlement"


def test_settle_requires_guarantor(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world)
    deal_lifecycle.approve_deal(db_session, deal.id, trader)

    with pytest.raises(Forbidden):
        deal_lifecycle.settle_deal(
            db_session, deal.id, Actor(world.other_employee_id, ActorType.EMPLOYEE)
        )


def test_reject_and_cancel_only_from_negotiation(db_session, world):
    client, trader, _ = _actors(world)
    rejected = _create_deal(db_session, world)

    out = deal_lifecycle.reject_deal(db_session, rejected.id, client)
    assert out.status == DealStatus.CANCELLED
    assert out.cancellation_reason == deal_lifecycle.REJECT_REASON

    approved = _create_deal(db_session, world)
    deal_lifecycle.approve_deal(db_session, approved.id, trader)
    with pytest.raises(InvalidState):
        deal_lifecycle.cancel_deal(db_session, approved.id, client, reason="changed my mind")


def test_accept_requires_a_sent_quote(db_session, world):
    client, _, _ = _actors(world)
    deal = _create_deal(db_session, world)

    with pytest.raises(InvalidState):
        deal_lifecycle.accept_deal(db_session, deal.id, client)


def test_send_quote_then_accept(db_session, world):
    client, trader, _ = _actors(world)
    deal = _create_deal(db_session, world)

    quoted = deal_lifecycle.send_quote(db_session, deal.id, trader)
    assert quoted.quote_sent_at is not None
    assert quoted.negotiated_amount == Decimal("1000.00")

    accepted = deal_lifecycle.accept_deal(db_session, deal.id, client)
    assert accepted.status == DealStatus.APPROVED
    assert accepted.history[-1].description == "Deal accepted by client"
    assert accepted.history[-1].changed_by_type == ActorType.CLIENT


def test_replace_items_recomputes_totals(db_session, world):
    client, _, _ = _actors(world)
    deal = _create_deal(db_session, world)

    updated = deal_lifecycle.replace_items(
        db_session,
        deal.id,
        client,
        [DealItemInput(offer_item_id=world.sheets_id, quantity=4, negotiated_price="18.50")],
    )

    assert len(updated.items) == 1
    assert updated.total_cartons == 4
    assert Decimal(updated.total_cbm) == Decimal("1")
    view = deal_lifecycle.get_deal(db_session, deal.id, client)
    assert view.resolved_amount == Decimal("74.00")


def test_replace_items_rejects_foreign_offer_item(db_session, world):
    client, _, _ = _actors(world)
    deal = _create_deal(db_session, world)

    with pytest.raises(NotFound):
        deal_lifecycle.replace_items(
            db_session, deal.id, client, [DealItemInput(offer_item_id="missing")]
        )


def test_assign_shipping_company(db_session, world):
    _, _, guarantor = _actors(world)
    deal = _create_deal(db_session, world)

    out = deal_lifecycle.assign_shipping_company(db_session, deal.id, guarantor, world.shipper_id)
    assert out.shipping_company_id == world.shipper_id

    with pytest.raises(InvalidState):
        deal_lifecycle.assign_shipping_company(
            db_session, deal.id, guarantor, world.idle_shipper_id
        )
    with pytest.raises(NotFound):
        deal_lifecycle.assign_shipping_company(db_session, deal.id, guarantor, 9999)

    cleared = deal_lifecycle.assign_shipping_company(db_session, deal.id, guarantor, None)
    assert cleared.shipping_company_id is None


def test_negotiation_messages_and_read_receipts(db_session, world):
    client, trader, _ = _actors(world)
    deal = _create_deal(db_session, world, with_items=False)

    deal_lifecycle.post_negotiation_message(
        db_session, deal.id, client, message="Can you do 900?", proposed_price="900"
    )
    deal_lifecycle.post_negotiation_message(
        db_session, deal.id, trader, message="950 is my best", proposed_price="950"
    )

    with pytest.raises(ValidationFailed):
        deal_lifecycle.post_negotiation_message(db_session, deal.id, client, message="  ")
    with pytest.raises(ValidationFailed):
        deal_lifecycle.post_negotiation_message(db_session, deal.id, client, proposed_price="-1")

    messages = deal_lifecycle.list_negotiation_messages(db_session, deal.id, client)
    assert [m.proposed_price for m in messages] == [Decimal("900.00"), Decimal("950.00")]

    # Display amount falls back to the newest proposal.
    assert deal_lifecycle.get_deal(db_session, deal.id, client).resolved_amount == Decimal(
        "950.00"
    )

    assert deal_lifecycle.mark_messages_read(db_session, deal.id, client) == 1
    assert deal_lifecycle.mark_messages_read(db_session, deal.id, client) == 0


def test_list_deals_is_scoped_to_actor(db_session, world):
    client, trader, _ = _actors(world)
    first = _create_deal(db_session, world)
    _create_deal(db_session, world)

    assert len(deal_lifecycle.list_deals(db_session, client)) == 2
    assert len(deal_lifecycle.list_deals(db_session, trader)) == 2
    stranger = Actor(world.stranger_id, ActorType.CLIENT)
    assert deal_lifecycle.list_deals(db_session, stranger) == []
    with pytest.raises(Forbidden):
        deal_lifecycle.get_deal(db_session, first.id, stranger)


def test_transition_table_rejects_unlisted_moves(db_session, world):
    deal = _create_deal(db_session, world)

    assert DealStatus.SETTLED not in ALLOWED_TRANSITIONS[DealStatus.NEGOTIATION]
    result = atomic_transition_deal_status(
        db=db_session, deal_id=deal.id, to_status=DealStatus.SETTLED
    )
    assert result.updated is False

    # Narrowing to a source the table does not allow is a no-op as well.
    result = atomic_transition_deal_status(
        db=db_session,
        deal_id=deal.id,
        to_status=DealStatus.PAID,
        allowed_from={DealStatus.NEGOTIATION},
    )
    assert result.updated is False


def test_approve_stores_notes(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world)

    approved = deal_lifecycle.approve_deal(
        db_session, deal.id, trader, notes="Deliver to Jeddah port"
    )

    assert approved.notes == "Deliver to Jeddah port"


def test_unparseable_body_hint_falls_through_to_query(db_session, world):
    _, trader, _ = _actors(world)
    deal = _create_deal(db_session, world, with_items=False)

    approved = deal_lifecycle.approve_deal(
        db_session, deal.id, trader, hint=AmountHint(body="", query="500")
    )

    assert approved.negotiated_amount == Decimal("500.00")
