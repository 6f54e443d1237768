from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from app import models
from app.models.domain import (
    LedgerAccountType,
    LedgerEntryType,
    TransactionStatus,
    TransactionType,
)
from app.services.commission import CommissionBreakdown, money

ZERO = Decimal("0.00")


def ledger_lines(
    deal: models.Deal, breakdown: CommissionBreakdown
) -> list[tuple[LedgerEntryType, LedgerAccountType, int | None, Decimal, str]]:
    """The five entries every verified payment produces, in write order."""

    n = deal.deal_number
    return [
        (
            LedgerEntryType.DEBIT,
            LedgerAccountType.CLIENT,
            deal.client_id,
            breakdown.total_buyer_paid,
            f"Client payment for deal {n}",
        ),
        (
            LedgerEntryType.CREDIT,
            LedgerAccountType.PLATFORM,
            None,
            breakdown.platform_commission,
            f"Platform commission for deal {n} ({breakdown.describe()})",
        ),
        (
            LedgerEntryType.CREDIT,
            LedgerAccountType.PLATFORM,
            None,
            breakdown.shipping_commission,
            f"Shipping commission for deal {n}",
        ),
        (
            LedgerEntryType.CREDIT,
            LedgerAccountType.EMPLOYEE,
            deal.employee_id,
            breakdown.employee_commission,
            f"Employee commission for deal {n}",
        ),
        (
            LedgerEntryType.CREDIT,
            LedgerAccountType.TRADER,
            deal.trader_id,
            breakdown.trader_payout,
            f"Trader payout for deal {n}",
        ),
    ]


def write_settlement(
    db: Session,
    *,
    deal: models.Deal,
    payment: models.Payment,
    breakdown: CommissionBreakdown,
) -> models.FinancialTransaction:
    """Persist one transaction and its five ledger entries.

    Runs inside the caller's unit of work; nothing is committed here. Raises
    ValueError if the entries would not balance, which rolls the whole
    verification back.
    """

    lines = ledger_lines(deal, breakdown)
    debits = sum((money(a) for t, _, _, a, _ in lines if t == LedgerEntryType.DEBIT), ZERO)
    credits = sum((money(a) for t, _, _, a, _ in lines if t == LedgerEntryType.CREDIT), ZERO)
    if debits != credits or debits != breakdown.total_buyer_paid:
        raise ValueError(
            f"Unbalanced settlement for deal {deal.deal_number}: debits={debits} credits={credits}"
        )

    transaction = models.FinancialTransaction(
        transaction_type=TransactionType.DEPOSIT,
        status=TransactionStatus.COMPLETED,
        amount=breakdown.total_buyer_paid,
        platform_commission=breakdown.platform_commission,
        shipping_commission=breakdown.shipping_commission,
        employee_commission=breakdown.employee_commission,
        trader_amount=breakdown.trader_payout,
        deal_id=deal.id,
        payment_id=payment.id,
        employee_id=deal.employee_id,
        trader_id=deal.trader_id,
        client_id=deal.client_id,
        description=f"Payment for deal {deal.deal_number}; {breakdown.describe()}",
    )
    db.add(transaction)
    db.flush()

    for entry_type, account_type, account_id, amount, description in lines:
        db.add(
            models.FinancialLedgerEntry(
                transaction_id=transaction.id,
                entry_type=entry_type,
                account_type=account_type,
                account_id=account_id,
                amount=money(amount),
                balance_before=ZERO,
                balance_after=ZERO,
                description=description,
                reference=deal.deal_number,
            )
        )
    db.flush()
    return transaction
