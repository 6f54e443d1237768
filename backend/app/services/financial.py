from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app import models
from app.models.domain import ActorType, LedgerAccountType
from app.services.actors import Actor
from app.services.errors import Forbidden


def list_transactions(
    db: Session,
    actor: Actor,
    *,
    deal_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[models.FinancialTransaction]:
    q = db.query(models.FinancialTransaction)
    if actor.actor_type == ActorType.EMPLOYEE:
        q = q.filter(models.FinancialTransaction.employee_id == actor.id)
    elif not actor.is_admin:
        raise Forbidden("Not authorized to view financial transactions")

    if deal_id:
        q = q.filter(models.FinancialTransaction.deal_id == deal_id)
    return (
        q.order_by(models.FinancialTransaction.created_at.desc()).offset(offset).limit(limit).all()
    )


def list_ledger_entries(
    db: Session,
    actor: Actor,
    *,
    account_type: LedgerAccountType | None = None,
    account_id: int | None = None,
    transaction_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[models.FinancialLedgerEntry]:
    if not actor.is_admin:
        raise Forbidden("Only administrators can view the ledger")

    q = db.query(models.FinancialLedgerEntry)
    if account_type is not None:
        q = q.filter(models.FinancialLedgerEntry.account_type == account_type)
    if account_id is not None:
        q = q.filter(models.FinancialLedgerEntry.account_id == int(account_id))
    if transaction_id:
        q = q.filter(models.FinancialLedgerEntry.transaction_id == transaction_id)
    if start is not None:
        q = q.filter(models.FinancialLedgerEntry.created_at >= start)
    if end is not None:
        q = q.filter(models.FinancialLedgerEntry.created_at <= end)
    return (
        q.order_by(models.FinancialLedgerEntry.created_at.desc()).offset(offset).limit(limit).all()
    )
