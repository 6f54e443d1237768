from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app import models
from app.models.domain import (
    ActorType,
    CommissionMethod,
    DealStatus,
    InvoiceStatus,
    LedgerAccountType,
    LedgerEntryType,
    PaymentMethod,
    PaymentStatus,
)
from app.services import deal_lifecycle, invoicing, payments, side_effects
from app.services.actors import Actor
from app.services.deal_lifecycle import DealItemInput
from app.services.errors import Forbidden, InvalidAmount, InvalidState
from app.services.invoicing import RenderedInvoice


class RecordingRenderer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rendered: list[str] = []

    def render_deal_code(self, deal) -> str:
        return f"https://verify.test/deals/{deal.deal_number}"

    def render_invoice(self, invoice, deal_snapshot, platform_info) -> RenderedInvoice:
        if self.fail:
            raise RuntimeError("renderer offline")
        self.rendered.append(invoice.invoice_number)
        return RenderedInvoice(
            document_url=f"https://files.test/{invoice.invoice_number}.pdf",
            verification_code_url=f"https://verify.test/invoices/{invoice.invoice_number}",
        )


def _approved_deal(db, world):
    client = Actor(world.client_id, ActorType.CLIENT)
    trader = Actor(world.trader_id, ActorType.TRADER)
    deal = deal_lifecycle.create_deal(
        db,
        offer_id=world.offer_id,
        actor=client,
        items=[
            DealItemInput(offer_item_id=world.profiles_id),
            DealItemInput(offer_item_id=world.sheets_id),
        ],
    )
    return deal_lifecycle.approve_deal(db, deal.id, trader, renderer=RecordingRenderer())


def _submitted_payment(db, world, amount="1085.00"):
    deal = _approved_deal(db, world)
    payment = payments.submit_payment(
        db,
        deal.id,
        Actor(world.client_id, ActorType.CLIENT),
        amount=Decimal(amount),
        method=PaymentMethod.BANK_TRANSFER,
        transaction_ref="TRX-1",
    )
    return deal, payment


def _ledger(db):
    return db.query(models.FinancialLedgerEntry).all()


def test_verify_writes_balanced_ledger_and_marks_deal_paid(db_session, world):
    deal, payment = _submitted_payment(db_session, world)
    guarantor = Actor(world.guarantor_id, ActorType.EMPLOYEE)
    renderer = RecordingRenderer()

    result = payments.verify_payment(
        db_session, payment.id, guarantor, verified=True, renderer=renderer
    )

    assert result.payment.status == PaymentStatus.COMPLETED
    assert result.payment.verified_by == world.guarantor_id
    assert result.deal.status == DealStatus.PAID
    assert result.deal.paid_at is not None
    assert result.deal.history[-1].description == "Payment verified and received"

    tx = result.transaction
    assert tx.amount == Decimal("1085.00")
    assert tx.platform_commission == Decimal("25.00")
    assert tx.shipping_commission == Decimal("50.00")
    assert tx.employee_commission == Decimal("10.00")
    assert tx.trader_amount == Decimal("1000.00")

    entries = _ledger(db_session)
    assert len(entries) == 5
    debits = sum(e.amount for e in entries if e.entry_type == LedgerEntryType.DEBIT)
    credits = sum(e.amount for e in entries if e.entry_type == LedgerEntryType.CREDIT)
    assert debits == credits == Decimal("1085.00")
    assert {e.reference for e in entries} == {deal.deal_number}
    assert all(e.balance_before == 0 and e.balance_after == 0 for e in entries)
    trader_credit = [e for e in entries if e.account_type == LedgerAccountType.TRADER]
    assert trader_credit[0].account_id == world.trader_id

    assert result.invoice.status == InvoiceStatus.SENT
    assert result.invoice.total_amount == Decimal("1085.00")
    assert result.invoice.invoice_number == deal.invoice_number
    assert renderer.rendered == [deal.invoice_number]


def test_second_verification_is_rejected_without_new_ledger_rows(db_session, world):
    _, payment = _submitted_payment(db_session, world)
    guarantor = Actor(world.guarantor_id, ActorType.EMPLOYEE)
    payments.verify_payment(
        db_session, payment.id, guarantor, verified=True, renderer=RecordingRenderer()
    )

    with pytest.raises(InvalidState) as exc:
        payments.verify_payment(
            db_session, payment.id, guarantor, verified=True, renderer=RecordingRenderer()
        )

    assert exc.value.message == "Payment already processed"
    assert len(_ledger(db_session)) == 5
    assert db_session.query(models.FinancialTransaction).count() == 1


def test_non_guarantor_employee_cannot_verify(db_session, world):
    _, payment = _submitted_payment(db_session, world)
    outsider = Actor(world.other_employee_id, ActorType.EMPLOYEE)

    with pytest.raises(Forbidden):
        payments.verify_payment(db_session, payment.id, outsider, verified=True)

    db_session.expire_all()
    assert db_session.get(models.Payment, payment.id).status == PaymentStatus.PENDING


def test_admin_may_verify_any_payment(db_session, world):
    _, payment = _submitted_payment(db_session, world)

    result = payments.verify_payment(
        db_session,
        payment.id,
        Actor(1, ActorType.ADMIN),
        verified=True,
        renderer=RecordingRenderer(),
    )

    assert result.deal.status == DealStatus.PAID


def test_rejected_payment_leaves_deal_approved(db_session, world):
    deal, payment = _submitted_payment(db_session, world)
    guarantor = Actor(world.guarantor_id, ActorType.EMPLOYEE)

    result = payments.verify_payment(
        db_session, payment.id, guarantor, verified=False, notes="bounced"
    )

    assert result.payment.status == PaymentStatus.FAILED
    assert result.payment.notes == "bounced"
    assert result.deal.status == DealStatus.APPROVED
    assert result.transaction is None
    assert _ledger(db_session) == []


def test_render_failure_keeps_financial_write_and_draft_invoice(db_session, world):
    _, payment = _submitted_payment(db_session, world)
    guarantor = Actor(world.guarantor_id, ActorType.EMPLOYEE)

    result = payments.verify_payment(
        db_session, payment.id, guarantor, verified=True, renderer=RecordingRenderer(fail=True)
    )

    assert result.deal.status == DealStatus.PAID
    assert len(_ledger(db_session)) == 5
    assert result.invoice.status == InvoiceStatus.DRAFT
    assert result.invoice.invoice_url is None


def test_cbm_heavy_settings_still_balance(db_session, world):
    db_session.add(
        models.PlatformSettings(
            platform_commission_rate=Decimal("2.5"),
            shipping_commission_rate=Decimal("5.0"),
            cbm_rate=Decimal("200"),
            commission_method=CommissionMethod.BOTH,
        )
    )
    db_session.commit()
    # 10 cbm * 200 = 2000 beats 2.5% of 1000.
    _, payment = _submitted_payment(db_session, world, amount="3060.00")

    result = payments.verify_payment(
        db_session,
        payment.id,
        Actor(world.guarantor_id, ActorType.EMPLOYEE),
        verified=True,
        renderer=RecordingRenderer(),
    )

    assert result.breakdown.applied_method == CommissionMethod.CBM
    entries = _ledger(db_session)
    debits = sum(e.amount for e in entries if e.entry_type == LedgerEntryType.DEBIT)
    credits = sum(e.amount for e in entries if e.entry_type == LedgerEntryType.CREDIT)
    assert debits == credits == Decimal("3060.00")


def test_submit_rejects_amount_outside_tolerance(db_session, world):
    deal = _approved_deal(db_session, world)
    client = Actor(world.client_id, ActorType.CLIENT)

    with pytest.raises(InvalidAmount) as exc:
        payments.submit_payment(
            db_session, deal.id, client, amount=Decimal("1000.00"), method=PaymentMethod.CARD
        )
    assert "does not match the expected total 1085.00" in exc.value.message

    ok = payments.submit_payment(
        db_session, deal.id, client, amount=Decimal("1085.02"), method=PaymentMethod.CARD
    )
    assert ok.status == PaymentStatus.PENDING


def test_submit_requires_approved_deal(db_session, world):
    client = Actor(world.client_id, ActorType.CLIENT)
    deal = deal_lifecycle.create_deal(db_session, offer_id=world.offer_id, actor=client)

    with pytest.raises(InvalidState):
        payments.submit_payment(
            db_session, deal.id, client, amount=Decimal("10"), method=PaymentMethod.CASH
        )


def test_settle_after_verification(db_session, world):
    deal, payment = _submitted_payment(db_session, world)
    guarantor = Actor(world.guarantor_id, ActorType.EMPLOYEE)
    payments.verify_payment(
        db_session, payment.id, guarantor, verified=True, renderer=RecordingRenderer()
    )

    settled = deal_lifecycle.settle_deal(db_session, deal.id, guarantor)

    assert settled.status == DealStatus.SETTLED
    assert settled.settled_at is not None
    assert settled.history[-1].description == "Deal settled and completed"


def test_datastore_failure_rolls_back_the_whole_verification(db_session, world, monkeypatch):
    deal, payment = _submitted_payment(db_session, world)
    history_before = db_session.query(models.DealStatusHistory).count()

    def _broken_settlement(*args, **kwargs):
        raise OperationalError("INSERT INTO financial_transactions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(payments, "write_settlement", _broken_settlement)

    with pytest.raises(OperationalError):
        payments.verify_payment(
            db_session,
            payment.id,
            Actor(world.guarantor_id, ActorType.EMPLOYEE),
            verified=True,
            renderer=RecordingRenderer(),
        )

    db_session.expire_all()
    assert db_session.get(models.Payment, payment.id).status == PaymentStatus.PENDING
    assert db_session.get(models.Deal, deal.id).status == DealStatus.APPROVED
    assert db_session.query(models.DealStatusHistory).count() == history_before
    assert db_session.query(models.FinancialTransaction).count() == 0
    assert _ledger(db_session) == []


def test_notification_failure_does_not_undo_settlement(db_session, world, monkeypatch):
    deal, payment = _submitted_payment(db_session, world)

    def _broken_notify(*args, **kwargs):
        raise RuntimeError("notification sink down")

    monkeypatch.setattr(side_effects, "notify", _broken_notify)

    result = payments.verify_payment(
        db_session,
        payment.id,
        Actor(world.guarantor_id, ActorType.EMPLOYEE),
        verified=True,
        renderer=RecordingRenderer(),
    )

    assert result.deal.status == DealStatus.PAID
    db_session.expire_all()
    assert db_session.get(models.Deal, deal.id).status == DealStatus.PAID
    assert db_session.get(models.Payment, payment.id).status == PaymentStatus.COMPLETED
    assert len(_ledger(db_session)) == 5
    assert db_session.query(models.Notification).filter_by(kind="PAYMENT_VERIFIED").count() == 0


def test_regenerate_renders_a_draft_left_by_failed_render(db_session, world):
    deal, payment = _submitted_payment(db_session, world)
    payments.verify_payment(
        db_session,
        payment.id,
        Actor(world.guarantor_id, ActorType.EMPLOYEE),
        verified=True,
        renderer=RecordingRenderer(fail=True),
    )
    renderer = RecordingRenderer()

    invoice = invoicing.regenerate_invoice(
        db_session, db_session.get(models.Deal, deal.id), renderer
    )

    assert invoice.status == InvoiceStatus.SENT
    assert invoice.invoice_url == f"https://files.test/{deal.invoice_number}.pdf"
    assert renderer.rendered == [deal.invoice_number]
    assert db_session.query(models.Invoice).count() == 1


def test_regenerate_rejects_unpaid_deal(db_session, world):
    deal = _approved_deal(db_session, world)

    with pytest.raises(InvalidState):
        invoicing.regenerate_invoice(db_session, deal, RecordingRenderer())
