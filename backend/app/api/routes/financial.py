from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import require_actor_types
from app.database import get_db
from app.models.domain import ActorType, LedgerAccountType
from app.schemas.financial import FinancialTransactionRead, LedgerEntryRead
from app.services import financial
from app.services.actors import Actor

router = APIRouter(prefix="/financial", tags=["financial"])


@router.get("/transactions", response_model=list[FinancialTransactionRead])
def list_transactions(
    deal_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor_types(ActorType.EMPLOYEE)),
):
    return financial.list_transactions(db, actor, deal_id=deal_id, limit=limit, offset=offset)


@router.get("/ledger", response_model=list[LedgerEntryRead])
def list_ledger(
    account_type: Optional[LedgerAccountType] = Query(None),
    account_id: Optional[int] = Query(None),
    transaction_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor_types(ActorType.ADMIN)),
):
    return financial.list_ledger_entries(
        db,
        actor,
        account_type=account_type,
        account_id=account_id,
        transaction_id=transaction_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
