from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_outbox
from app.database import get_db
from app.schemas.negotiations import (
    MarkReadResult,
    NegotiationMessageCreate,
    NegotiationMessageRead,
)
from app.services import deal_lifecycle
from app.services.actors import Actor
from app.services.side_effects import SideEffectOutbox

router = APIRouter(prefix="/deals/{deal_id}/negotiations", tags=["negotiations"])

_DB_DEP = Depends(get_db)
_ACTOR_DEP = Depends(get_current_actor)
_OUTBOX_DEP = Depends(get_outbox)


@router.post("", response_model=NegotiationMessageRead, status_code=201)
def post_message(
    deal_id: str,
    payload: NegotiationMessageCreate,
    db: Session = _DB_DEP,
    actor: Actor = _ACTOR_DEP,
    outbox: SideEffectOutbox = _OUTBOX_DEP,
):
    return deal_lifecycle.post_negotiation_message(
        db,
        deal_id,
        actor,
        message=payload.message,
        proposed_price=payload.proposed_price,
        proposed_quantity=payload.proposed_quantity,
        outbox=outbox,
    )


@router.get("", response_model=list[NegotiationMessageRead])
def list_messages(deal_id: str, db: Session = _DB_DEP, actor: Actor = _ACTOR_DEP):
    return deal_lifecycle.list_negotiation_messages(db, deal_id, actor)


@router.post("/read", response_model=MarkReadResult)
def mark_read(deal_id: str, db: Session = _DB_DEP, actor: Actor = _ACTOR_DEP):
    return MarkReadResult(updated=deal_lifecycle.mark_messages_read(db, deal_id, actor))
