from decimal import Decimal

import pytest

from app import models
from app.models.domain import ActorType, AppendOnlyViolation, DealStatus, PaymentMethod
from app.services import deal_lifecycle, payments
from app.services.actors import Actor
from app.services.deal_lifecycle import DealItemInput


def _deal(db, world):
    return deal_lifecycle.create_deal(
        db,
        offer_id=world.offer_id,
        actor=Actor(world.client_id, ActorType.CLIENT),
        items=[DealItemInput(offer_item_id=world.profiles_id)],
    )


def _paid_deal(db, world):
    deal = _deal(db, world)
    deal_lifecycle.approve_deal(db, deal.id, Actor(world.trader_id, ActorType.TRADER))
    # 600.00 + 2.5% + 5% + 1% = 651.00
    payment = payments.submit_payment(
        db,
        deal.id,
        Actor(world.client_id, ActorType.CLIENT),
        amount=Decimal("651.00"),
        method=PaymentMethod.BANK_TRANSFER,
    )
    payments.verify_payment(
        db, payment.id, Actor(world.guarantor_id, ActorType.EMPLOYEE), verified=True
    )
    return deal


def test_status_history_rejects_update_and_delete(db_session, world):
    deal = _deal(db_session, world)
    row = db_session.query(models.DealStatusHistory).filter_by(deal_id=deal.id).one()

    row.description = "rewritten"
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    row = db_session.query(models.DealStatusHistory).filter_by(deal_id=deal.id).one()
    db_session.delete(row)
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    assert db_session.query(models.DealStatusHistory).count() == 1


def test_ledger_entries_reject_update_and_delete(db_session, world):
    _paid_deal(db_session, world)
    entry = db_session.query(models.FinancialLedgerEntry).first()

    entry.amount = Decimal("1.00")
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    entry = db_session.query(models.FinancialLedgerEntry).first()
    db_session.delete(entry)
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    assert db_session.query(models.FinancialLedgerEntry).count() == 5


def test_negotiation_messages_only_allow_read_receipts(db_session, world):
    deal = _deal(db_session, world)
    msg = deal_lifecycle.post_negotiation_message(
        db_session,
        deal.id,
        Actor(world.client_id, ActorType.CLIENT),
        message="first offer",
        proposed_price="500",
    )

    msg.is_read = True
    db_session.commit()

    msg.message = "edited"
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    db_session.delete(db_session.get(models.DealNegotiationMessage, msg.id))
    with pytest.raises(AppendOnlyViolation):
        db_session.flush()
    db_session.rollback()

    stored = db_session.get(models.DealNegotiationMessage, msg.id)
    assert stored.message == "first offer"
    assert stored.is_read is True


def test_approved_deal_requires_positive_amount(db_session, world):
    deal = _deal(db_session, world)

    deal.status = DealStatus.APPROVED
    deal.negotiated_amount = None
    with pytest.raises(ValueError):
        db_session.flush()
    db_session.rollback()


def test_deal_item_quantity_must_be_positive():
    with pytest.raises(ValueError):
        models.DealItem(offer_item_id="x", quantity=0)
