from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_renderer, require_actor_types
from app.database import get_db
from app.models.domain import ActorType
from app.schemas.financial import InvoiceRead
from app.services import invoicing
from app.services.actors import Actor, ensure_can_view, ensure_guarantor
from app.services.deal_lifecycle import load_deal
from app.services.invoicing import InvoiceRenderer

router = APIRouter(prefix="/deals/{deal_id}/invoices", tags=["invoices"])

_DB_DEP = Depends(get_db)
_ACTOR_DEP = Depends(get_current_actor)
_EMPLOYEE_DEP = Depends(require_actor_types(ActorType.EMPLOYEE))
_RENDERER_DEP = Depends(get_renderer)


@router.get("", response_model=list[InvoiceRead])
def list_invoices(deal_id: str, db: Session = _DB_DEP, actor: Actor = _ACTOR_DEP):
    deal = load_deal(db, deal_id)
    ensure_can_view(deal, actor)
    return invoicing.list_invoices(db, deal.id)


@router.post("/regenerate", response_model=InvoiceRead)
def regenerate_invoice(
    deal_id: str,
    db: Session = _DB_DEP,
    actor: Actor = _EMPLOYEE_DEP,
    renderer: InvoiceRenderer = _RENDERER_DEP,
):
    deal = load_deal(db, deal_id)
    ensure_guarantor(deal, actor, "Only the deal's guarantor can regenerate invoices")
    return invoicing.regenerate_invoice(db, deal, renderer)
