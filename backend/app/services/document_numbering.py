from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import models
from app.database import supports_row_locks


@dataclass(frozen=True)
class YearlyNumber:
    doc_type: str
    year: str  # YYYY
    seq: int
    formatted: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_yearly_number(*, prefix: str, seq: int, now: datetime) -> str:
    """Format: PREFIX-2025-000042 (sequence resets each year, 1-based)."""

    return f"{prefix}-{now.strftime('%Y')}-{seq:06d}"


def next_yearly_number(
    db: Session,
    *,
    doc_type: str,
    prefix: str,
    now: datetime | None = None,
    max_retries: int = 5,
) -> YearlyNumber:
    """Allocate the next number from a row-locked per-year counter.

    The counter row is locked with SELECT ... FOR UPDATE where supported, so
    concurrent allocations serialize on it instead of racing on a row count.
    A first-of-year insert race is resolved by retrying inside a savepoint,
    which keeps the caller's unit of work intact.
    """

    now = now or _utc_now()
    year = now.strftime("%Y")

    for _ in range(max_retries):
        q = db.query(models.DocumentSequence).filter(
            models.DocumentSequence.doc_type == str(doc_type),
            models.DocumentSequence.year == str(year),
        )
        if supports_row_locks(db):
            q = q.with_for_update()

        row = q.first()

        if row is None:
            try:
                with db.begin_nested():
                    row = models.DocumentSequence(doc_type=str(doc_type), year=str(year), last_seq=0)
                    db.add(row)
            except IntegrityError:
                continue

        row.last_seq = int(row.last_seq or 0) + 1
        db.add(row)
        db.flush()

        seq = int(row.last_seq)
        return YearlyNumber(
            doc_type=str(doc_type),
            year=str(year),
            seq=seq,
            formatted=format_yearly_number(prefix=str(prefix), seq=seq, now=now),
        )

    raise RuntimeError(f"Could not allocate yearly number for doc_type={doc_type} year={year}")


def next_deal_number(db: Session, *, now: datetime | None = None) -> str:
    return next_yearly_number(db, doc_type="DEAL", prefix="DEAL", now=now).formatted
