from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.domain import (
    InvoiceStatus,
    LedgerAccountType,
    LedgerEntryType,
    TransactionStatus,
    TransactionType,
)


class FinancialTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_type: TransactionType
    status: TransactionStatus
    amount: Decimal
    platform_commission: Decimal
    shipping_commission: Decimal
    employee_commission: Decimal
    trader_amount: Decimal
    deal_id: str
    payment_id: str
    employee_id: int
    trader_id: int
    client_id: int
    description: Optional[str] = None
    created_at: datetime


class LedgerEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    transaction_id: str
    entry_type: LedgerEntryType
    account_type: LedgerAccountType
    account_id: Optional[int] = None
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    reference: Optional[str] = None
    created_at: datetime


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deal_id: str
    transaction_id: str
    invoice_number: str
    subtotal: Decimal
    platform_commission: Decimal
    shipping_commission: Decimal
    employee_commission: Decimal
    total_amount: Decimal
    currency: str
    status: InvoiceStatus
    invoice_url: Optional[str] = None
    verification_url: Optional[str] = None
    rendered_at: Optional[datetime] = None
    created_at: datetime
