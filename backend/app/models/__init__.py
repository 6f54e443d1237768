from app.models.domain import (  # noqa: F401
    ActivityLog,
    ActorType,
    AppendOnlyViolation,
    Client,
    CommissionMethod,
    Deal,
    DealItem,
    DealNegotiationMessage,
    DealStatus,
    DealStatusHistory,
    DocumentSequence,
    Employee,
    FinancialLedgerEntry,
    FinancialTransaction,
    Invoice,
    InvoiceStatus,
    LedgerAccountType,
    LedgerEntryType,
    Notification,
    Offer,
    OfferItem,
    OfferStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PlatformSettings,
    SenderType,
    ShippingCompany,
    ShippingCompanyStatus,
    ShippingType,
    Trader,
    TransactionStatus,
    TransactionType,
)
