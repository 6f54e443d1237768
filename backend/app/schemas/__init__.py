from app.schemas.deals import (
    DealApprove,
    DealCreate,
    DealDetailRead,
    DealItemInput,
    DealItemRead,
    DealItemsReplace,
    DealRead,
    DealReasonBody,
    DealSendQuote,
    DealShippingAssign,
    DealStatusHistoryRead,
)
from app.schemas.financial import FinancialTransactionRead, InvoiceRead, LedgerEntryRead
from app.schemas.negotiations import (
    MarkReadResult,
    NegotiationMessageCreate,
    NegotiationMessageRead,
)
from app.schemas.payments import (
    CommissionBreakdownRead,
    PaymentCreate,
    PaymentQuoteRead,
    PaymentRead,
    PaymentVerificationRead,
    PaymentVerify,
)
from app.schemas.platform_settings import PlatformSettingsRead, PlatformSettingsUpdate

__all__ = [
    "DealApprove",
    "DealCreate",
    "DealDetailRead",
    "DealItemInput",
    "DealItemRead",
    "DealItemsReplace",
    "DealRead",
    "DealReasonBody",
    "DealSendQuote",
    "DealShippingAssign",
    "DealStatusHistoryRead",
    "FinancialTransactionRead",
    "InvoiceRead",
    "LedgerEntryRead",
    "MarkReadResult",
    "NegotiationMessageCreate",
    "NegotiationMessageRead",
    "CommissionBreakdownRead",
    "PaymentCreate",
    "PaymentQuoteRead",
    "PaymentRead",
    "PaymentVerificationRead",
    "PaymentVerify",
    "PlatformSettingsRead",
    "PlatformSettingsUpdate",
]
