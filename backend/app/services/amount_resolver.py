"""Resolve the authoritative deal amount (price excluding commissions).

Precedence, first strictly positive result wins:

1. sum of deal items, `quantity * (negotiated_price or catalog unit_price)`
2. `negotiated_amount` already stored on the deal
3. explicit hint from the caller (body, then query string, then header)
4. newest negotiation message carrying a positive `proposed_price`

Approval uses 1-3, client accept and read views use 1, 2 and 4. Nothing here
touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

from app.services.commission import money, to_decimal
from app.services.errors import InvalidAmount

SOURCE_ITEMS = "items"
SOURCE_STORED = "stored"
SOURCE_HINT = "hint"
SOURCE_MESSAGES = "messages"


@dataclass(frozen=True)
class AmountHint:
    body: Any = None
    query: Any = None
    header: Any = None

    def candidates(self) -> list[Any]:
        return [self.body, self.query, self.header]

    def describe(self) -> str:
        return f"body={self.body!r}, query={self.query!r}, header={self.header!r}"


@dataclass(frozen=True)
class ResolvedAmount:
    amount: Decimal
    source: str


def _positive(value: Any) -> Optional[Decimal]:
    d = to_decimal(value)
    if d is None or not d.is_finite() or d <= 0:
        return None
    return d


def unit_price_for(item: Any) -> Decimal:
    negotiated = _positive(getattr(item, "negotiated_price", None))
    if negotiated is not None:
        return negotiated
    offer_item = getattr(item, "offer_item", None)
    return to_decimal(getattr(offer_item, "unit_price", None), Decimal("0"))


def items_total(items: Iterable[Any] | None) -> Optional[Decimal]:
    if not items:
        return None
    total = Decimal("0")
    for item in items:
        qty = to_decimal(getattr(item, "quantity", None), Decimal("0"))
        total += qty * unit_price_for(item)
    total = money(total)
    return total if total > 0 else None


def latest_proposed_price(messages: Iterable[Any] | None) -> Optional[Decimal]:
    """`messages` are oldest first, as the negotiation log is stored."""

    if not messages:
        return None
    for msg in reversed(list(messages)):
        price = _positive(getattr(msg, "proposed_price", None))
        if price is not None:
            return money(price)
    return None


def hint_amount(hint: AmountHint | None) -> Optional[Decimal]:
    if hint is None:
        return None
    for candidate in hint.candidates():
        value = _positive(candidate)
        if value is not None:
            return money(value)
    return None


def resolve_amount(
    *,
    items: Iterable[Any] | None,
    stored_amount: Any,
    hint: AmountHint | None = None,
    messages: Iterable[Any] | None = None,
) -> Optional[ResolvedAmount]:
    """Return the first positive amount, or None when nothing resolves.

    Pass `hint` only for the approval flow and `messages` only for flows that
    may fall back to the negotiation log.
    """

    total = items_total(items)
    if total is not None:
        return ResolvedAmount(total, SOURCE_ITEMS)

    stored = _positive(stored_amount)
    if stored is not None:
        return ResolvedAmount(money(stored), SOURCE_STORED)

    from_hint = hint_amount(hint)
    if from_hint is not None:
        return ResolvedAmount(from_hint, SOURCE_HINT)

    from_messages = latest_proposed_price(messages)
    if from_messages is not None:
        return ResolvedAmount(from_messages, SOURCE_MESSAGES)

    return None


def require_amount_for_approval(
    *, items: Iterable[Any] | None, stored_amount: Any, hint: AmountHint | None
) -> ResolvedAmount:
    resolved = resolve_amount(items=items, stored_amount=stored_amount, hint=hint)
    if resolved is None:
        received = (hint or AmountHint()).describe()
        raise InvalidAmount(
            "Negotiated amount is required and must be greater than 0 to approve the deal. "
            "Add items to the deal or provide negotiatedAmount. "
            f"Received: {received}"
        )
    return resolved


def require_amount_for_acceptance(
    *, items: Iterable[Any] | None, stored_amount: Any, messages: Iterable[Any] | None
) -> ResolvedAmount:
    resolved = resolve_amount(items=items, stored_amount=stored_amount, messages=messages)
    if resolved is None:
        raise InvalidAmount(
            "Deal has no agreed amount yet. Add items or propose a price before accepting. "
            f"Received: stored={stored_amount!r}"
        )
    return resolved


def display_amount(
    *, items: Iterable[Any] | None, stored_amount: Any, messages: Iterable[Any] | None
) -> Optional[Decimal]:
    resolved = resolve_amount(items=items, stored_amount=stored_amount, messages=messages)
    return resolved.amount if resolved is not None else None
