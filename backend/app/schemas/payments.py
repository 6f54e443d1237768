from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import CommissionMethod, PaymentMethod, PaymentStatus
from app.schemas.deals import DealRead
from app.schemas.financial import FinancialTransactionRead, InvoiceRead


class PaymentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    transaction_ref: Optional[str] = Field(None, alias="transactionId", max_length=128)
    receipt_url: Optional[str] = Field(None, alias="receiptUrl", max_length=512)
    notes: Optional[str] = None


class PaymentVerify(BaseModel):
    verified: bool
    notes: Optional[str] = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deal_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_ref: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    created_at: datetime


class CommissionBreakdownRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deal_amount: Decimal
    platform_commission: Decimal
    shipping_commission: Decimal
    employee_commission: Decimal
    total_buyer_paid: Decimal
    trader_payout: Decimal
    applied_method: CommissionMethod
    requested_method: CommissionMethod


class PaymentQuoteRead(BaseModel):
    deal_id: str
    deal_number: str
    currency: str
    breakdown: CommissionBreakdownRead


class PaymentVerificationRead(BaseModel):
    payment: PaymentRead
    deal: DealRead
    transaction: Optional[FinancialTransactionRead] = None
    invoice: Optional[InvoiceRead] = None
