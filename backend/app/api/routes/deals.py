from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_outbox, get_renderer, require_actor_types
from app.database import get_db
from app.models.domain import ActorType, DealStatus
from app.schemas.deals import (
    DealApprove,
    DealCreate,
    DealDetailRead,
    DealItemsReplace,
    DealRead,
    DealReasonBody,
    DealSendQuote,
    DealShippingAssign,
)
from app.services import deal_lifecycle
from app.services.actors import Actor
from app.services.amount_resolver import AmountHint
from app.services.deal_lifecycle import DealItemInput, DealView
from app.services.invoicing import InvoiceRenderer
from app.services.side_effects import SideEffectOutbox

router = APIRouter(tags=["deals"])

_DB_DEP = Depends(get_db)
_ACTOR_DEP = Depends(get_current_actor)
_OUTBOX_DEP = Depends(get_outbox)
_RENDERER_DEP = Depends(get_renderer)


def _item_inputs(items) -> list[DealItemInput]:
    return [
        DealItemInput(
            offer_item_id=i.offer_item_id,
            quantity=i.quantity,
            cartons=i.cartons,
            negotiated_price=i.negotiated_price,
            notes=i.notes,
        )
        for i in items
    ]


def _read(view: DealView) -> DealRead:
    return DealRead.model_validate(view.deal).model_copy(
        update={"resolved_amount": view.resolved_amount}
    )


def _detail(view: DealView) -> DealDetailRead:
    return DealDetailRead.model_validate(view.deal).model_copy(
        update={"resolved_amount": view.resolved_amount}
    )


def _detail_for(db: Session, deal_id: str, actor: Actor) -> DealDetailRead:
    return _detail(deal_lifecycle.get_deal(db, deal_id, actor))


@router.post("/offers/{offer_id}/deals", response_model=DealDetailRead, status_code=201)
def create_deal(
    offer_id: str,
    payload: DealCreate,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal = deal_lifecycle.create_deal(
        db,
        offer_id=offer_id,
        actor=actor,
        items=_item_inputs(payload.items),
        notes=payload.notes,
        outbox=outbox,
    )
    return _detail_for(db, deal.id, actor)


@router.get("/deals", response_model=list[DealRead])
def list_deals(
    status: Optional[DealStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = _DB_DEP,
    actor: Actor = _ACTOR_DEP,
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    views = deal_lifecycle.list_deals(
        db, actor, status=status, limit=limit, offset=offset, outbox=outbox
    )
    return [_read(v) for v in views]


@router.get("/deals/{deal_id}", response_model=DealDetailRead)
def get_deal(
    deal_id: str,
    db: Session = _DB_DEP,
    actor: Actor = _ACTOR_DEP,
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    return _detail(deal_lifecycle.get_deal(db, deal_id, actor, outbox=outbox))


@router.put("/deals/{deal_id}/items", response_model=DealDetailRead)
def replace_items(
    deal_id: str,
    payload: DealItemsReplace,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT, ActorType.TRADER)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.replace_items(db, deal_id, actor, _item_inputs(payload.items), outbox=outbox)
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/approve", response_model=DealDetailRead)
def approve_deal(
    deal_id: str,
    payload: Optional[DealApprove] = Body(None),
    negotiated_amount_query: Optional[str] = Query(None, alias="negotiatedAmount"),
    negotiated_amount_header: Optional[str] = Header(None, alias="X-Negotiated-Amount"),
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.TRADER, ActorType.EMPLOYEE)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
    renderer: InvoiceRenderer = _RENDERER_DEP,
):
    # Clients send the amount in whichever slot they support; body wins.
    hint = AmountHint(
        body=payload.negotiated_amount if payload else None,
        query=negotiated_amount_query,
        header=negotiated_amount_header,
    )
    deal_lifecycle.approve_deal(
        db,
        deal_id,
        actor,
        hint=hint,
        shipping_type=payload.shipping_type if payload else None,
        notes=payload.notes if payload else None,
        renderer=renderer,
        outbox=outbox,
    )
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/send-quote", response_model=DealDetailRead)
def send_quote(
    deal_id: str,
    payload: Optional[DealSendQuote] = Body(None),
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.TRADER, ActorType.EMPLOYEE)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    hint = AmountHint(body=payload.negotiated_amount) if payload else None
    deal_lifecycle.send_quote(db, deal_id, actor, hint=hint, outbox=outbox)
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/accept", response_model=DealDetailRead)
def accept_deal(
    deal_id: str,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.accept_deal(db, deal_id, actor, outbox=outbox)
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/reject", response_model=DealDetailRead)
def reject_deal(
    deal_id: str,
    payload: Optional[DealReasonBody] = Body(None),
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.reject_deal(
        db, deal_id, actor, reason=payload.reason if payload else None, outbox=outbox
    )
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/cancel", response_model=DealDetailRead)
def cancel_deal(
    deal_id: str,
    payload: Optional[DealReasonBody] = Body(None),
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.CLIENT)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.cancel_deal(
        db, deal_id, actor, reason=payload.reason if payload else None, outbox=outbox
    )
    return _detail_for(db, deal_id, actor)


@router.put("/deals/{deal_id}/shipping-company", response_model=DealDetailRead)
def assign_shipping_company(
    deal_id: str,
    payload: DealShippingAssign,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.EMPLOYEE)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.assign_shipping_company(
        db, deal_id, actor, payload.shipping_company_id, outbox=outbox
    )
    return _detail_for(db, deal_id, actor)


@router.post("/deals/{deal_id}/settle", response_model=DealDetailRead)
def settle_deal(
    deal_id: str,
    db: Session = _DB_DEP,
    actor: Actor = Depends(require_actor_types(ActorType.EMPLOYEE)),
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    deal_lifecycle.settle_deal(db, deal_id, actor, outbox=outbox)
    return _detail_for(db, deal_id, actor)
