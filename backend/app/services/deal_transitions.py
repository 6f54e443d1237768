from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy.orm import Session

from app import models
from app.models.domain import ActorType, DealStatus, PaymentStatus
from app.services.errors import InvalidState

# Every legal deal status change. Anything not listed is rejected.
ALLOWED_TRANSITIONS: dict[DealStatus, frozenset[DealStatus]] = {
    DealStatus.NEGOTIATION: frozenset({DealStatus.APPROVED, DealStatus.CANCELLED}),
    DealStatus.APPROVED: frozenset({DealStatus.PAID}),
    DealStatus.PAID: frozenset({DealStatus.SETTLED}),
    DealStatus.SETTLED: frozenset(),
    DealStatus.CANCELLED: frozenset(),
}

# Column stamped when a deal enters the given status.
_STATUS_TIMESTAMPS: dict[DealStatus, str] = {
    DealStatus.APPROVED: "approved_at",
    DealStatus.PAID: "paid_at",
    DealStatus.SETTLED: "settled_at",
    DealStatus.CANCELLED: "cancelled_at",
}


@dataclass(frozen=True)
class TransitionResult:
    updated: bool
    rowcount: int


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def allowed_sources(to_status: DealStatus) -> set[DealStatus]:
    return {src for src, targets in ALLOWED_TRANSITIONS.items() if to_status in targets}


def atomic_transition_deal_status(
    *,
    db: Session,
    deal_id: str,
    to_status: DealStatus,
    allowed_from: Iterable[DealStatus] | None = None,
    updates: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> TransitionResult:
    """Apply a deal status transition with an atomic DB guard.

    Performs a single conditional UPDATE:

        UPDATE deals
        SET status = :to_status, <stamp>_at = :now, ...
        WHERE id = :deal_id AND status IN (:allowed_from)

    `allowed_from` defaults to every status the transition table permits and
    is always intersected with it, so callers can narrow but never widen.
    Callers control commit/rollback.
    """

    if now is None:
        now = utc_now()

    legal = allowed_sources(to_status)
    sources = legal if allowed_from is None else legal & set(allowed_from)
    if not sources:
        return TransitionResult(updated=False, rowcount=0)

    update_values: dict[str, Any] = {"status": to_status, "updated_at": now}
    stamp = _STATUS_TIMESTAMPS.get(to_status)
    if stamp:
        update_values[stamp] = now
    if updates:
        update_values.update(updates)

    rowcount = (
        db.query(models.Deal)
        .filter(models.Deal.id == str(deal_id))
        .filter(models.Deal.status.in_(sources))
        .update(update_values, synchronize_session=False)
    )

    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))


def append_status_history(
    db: Session,
    *,
    deal_id: str,
    status: DealStatus,
    description: str,
    changed_by: int | None,
    changed_by_type: ActorType,
) -> models.DealStatusHistory:
    row = models.DealStatusHistory(
        deal_id=str(deal_id),
        status=status,
        description=description,
        changed_by=changed_by,
        changed_by_type=changed_by_type,
    )
    db.add(row)
    db.flush()
    return row


def transition_deal(
    db: Session,
    deal: models.Deal,
    *,
    to_status: DealStatus,
    description: str,
    changed_by: int | None,
    changed_by_type: ActorType,
    allowed_from: Iterable[DealStatus] | None = None,
    updates: dict[str, Any] | None = None,
    conflict_message: str | None = None,
    now: datetime | None = None,
) -> models.Deal:
    """Guarded transition plus its history row, refreshed into `deal`.

    Raises InvalidState when the deal is no longer in a permitted status.
    """

    now = now or utc_now()
    # Pending ORM changes would be lost by the refresh below.
    db.flush()
    result = atomic_transition_deal_status(
        db=db,
        deal_id=deal.id,
        to_status=to_status,
        allowed_from=allowed_from,
        updates=updates,
        now=now,
    )
    if not result.updated:
        current = getattr(deal.status, "value", deal.status)
        raise InvalidState(
            conflict_message
            or f"Deal cannot move from {current} to {to_status.value}"
        )

    append_status_history(
        db,
        deal_id=deal.id,
        status=to_status,
        description=description,
        changed_by=changed_by,
        changed_by_type=changed_by_type,
    )
    db.refresh(deal)
    return deal


def atomic_transition_payment_status(
    *,
    db: Session,
    payment_id: str,
    to_status: PaymentStatus,
    updates: dict[str, Any] | None = None,
) -> TransitionResult:
    """PENDING -> COMPLETED|FAILED exactly once; first writer wins."""

    update_values: dict[str, Any] = {"status": to_status}
    if updates:
        update_values.update(updates)

    rowcount = (
        db.query(models.Payment)
        .filter(models.Payment.id == str(payment_id))
        .filter(models.Payment.status == PaymentStatus.PENDING)
        .update(update_values, synchronize_session=False)
    )
    return TransitionResult(updated=rowcount > 0, rowcount=int(rowcount or 0))
