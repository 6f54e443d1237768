from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app import models
from app.config import settings
from app.models.domain import ActorType, DealStatus
from app.services.deal_transitions import atomic_transition_deal_status, append_status_history

logger = logging.getLogger("mediation.deals")

EXPIRY_REASON = "Deal cancelled: 72 hours passed without client approval."


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expiry_window() -> timedelta:
    return timedelta(hours=int(settings.quote_expiry_hours))


def is_quote_expired(deal: models.Deal, now: datetime | None = None) -> bool:
    if deal.status != DealStatus.NEGOTIATION:
        return False
    sent_at = as_utc(deal.quote_sent_at)
    if sent_at is None:
        return False
    now = as_utc(now) or datetime.now(timezone.utc)
    return now - sent_at > expiry_window()


def expire_if_stale(db: Session, deal: models.Deal, now: datetime | None = None) -> bool:
    """Cancel a stale quoted deal in the caller's transaction.

    Returns True when this call performed the cancellation. Losing the race
    to a concurrent transition is not an error; the deal is simply refreshed.
    """

    if not is_quote_expired(deal, now):
        return False

    now = as_utc(now) or datetime.now(timezone.utc)
    result = atomic_transition_deal_status(
        db=db,
        deal_id=deal.id,
        to_status=DealStatus.CANCELLED,
        allowed_from={DealStatus.NEGOTIATION},
        updates={"cancellation_reason": EXPIRY_REASON},
        now=now,
    )
    if result.updated:
        append_status_history(
            db,
            deal_id=deal.id,
            status=DealStatus.CANCELLED,
            description=EXPIRY_REASON,
            changed_by=None,
            changed_by_type=ActorType.SYSTEM,
        )
        logger.info(
            "deal_quote_expired",
            extra={"deal_id": deal.id, "deal_number": deal.deal_number},
        )
    db.refresh(deal)
    return result.updated
