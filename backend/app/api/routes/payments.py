from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_outbox, get_renderer, require_actor_types
from app.database import get_db
from app.models.domain import ActorType
from app.schemas.deals import DealRead
from app.schemas.financial import FinancialTransactionRead, InvoiceRead
from app.schemas.payments import (
    CommissionBreakdownRead,
    PaymentCreate,
    PaymentQuoteRead,
    PaymentRead,
    PaymentVerificationRead,
    PaymentVerify,
)
from app.services import payments as payment_service
from app.services.actors import Actor
from app.services.commission import load_commission_settings
from app.services.invoicing import InvoiceRenderer
from app.services.side_effects import SideEffectOutbox

router = APIRouter(tags=["payments"])

_DB_DEP = Depends(get_db)
_ACTOR_DEP = Depends(get_current_actor)
_OUTBOX_DEP = Depends(get_outbox)


@router.get("/deals/{deal_id}/payment-quote", response_model=PaymentQuoteRead)
def payment_quote(deal_id: str, db: Session = _DB_DEP, actor: Actor = _ACTOR_DEP):
    deal, breakdown = payment_service.payment_quote(db, deal_id, actor)
    return PaymentQuoteRead(
        deal_id=deal.id,
        deal_number=deal.deal_number,
        currency=load_commission_settings(db).currency,
        breakdown=CommissionBreakdownRead.model_validate(breakdown),
    )


@router.post("/deals/{deal_id}/payments", response_model=PaymentRead, status_code=201)
def submit_payment(
    deal_id: str,
    payload: PaymentCreate,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    return payment_service.submit_payment(
        db,
        deal_id,
        actor,
        amount=payload.amount,
        method=payload.method,
        transaction_ref=payload.transaction_ref,
        receipt_url=payload.receipt_url,
        notes=payload.notes,
        outbox=outbox,
    )


@router.get("/deals/{deal_id}/payments", response_model=list[PaymentRead])
def list_payments(deal_id: str, db: Session = _DB_DEP, actor: Actor = _ACTOR_DEP):
    return payment_service.list_payments(db, deal_id, actor)


@router.post("/payments/{payment_id}/verify", response_model=PaymentVerificationRead)
def verify_payment(
    payment_id: str,
    payload: PaymentVerify,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.EMPLOYEE)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
    renderer: InvoiceRenderer = Depends(get_renderer),
):
    result = payment_service.verify_payment(
        db,
        payment_id,
        actor,
        verified=payload.verified,
        notes=payload.notes,
        renderer=renderer,
        outbox=outbox,
    )
    return PaymentVerificationRead(
        payment=PaymentRead.model_validate(result.payment),
        deal=DealRead.model_validate(result.deal),
        transaction=(
            FinancialTransactionRead.model_validate(result.transaction)
            if result.transaction is not None
            else None
        ),
        invoice=InvoiceRead.model_validate(result.invoice) if result.invoice is not None else None,
    )
