# ruff: noqa: E501
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActorType(PyEnum):
    CLIENT = "CLIENT"
    TRADER = "TRADER"
    EMPLOYEE = "EMPLOYEE"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class SenderType(PyEnum):
    CLIENT = "CLIENT"
    TRADER = "TRADER"
    EMPLOYEE = "EMPLOYEE"


class DealStatus(PyEnum):
    NEGOTIATION = "NEGOTIATION"
    APPROVED = "APPROVED"
    PAID = "PAID"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class ShippingType(PyEnum):
    LAND = "LAND"
    SEA = "SEA"


class PaymentStatus(PyEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PaymentMethod(PyEnum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CARD = "CARD"
    CASH = "CASH"
    OTHER = "OTHER"


class CommissionMethod(PyEnum):
    PERCENTAGE = "PERCENTAGE"
    CBM = "CBM"
    BOTH = "BOTH"


class TransactionType(PyEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(PyEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class LedgerEntryType(PyEnum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class LedgerAccountType(PyEnum):
    CLIENT = "CLIENT"
    PLATFORM = "PLATFORM"
    EMPLOYEE = "EMPLOYEE"
    TRADER = "TRADER"


class InvoiceStatus(PyEnum):
    DRAFT = "DRAFT"
    SENT = "SENT"


class OfferStatus(PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ShippingCompanyStatus(PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AppendOnlyViolation(Exception):
    pass


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    employee_code: Mapped[str | None] = mapped_column(String(32), unique=True, index=True)
    # Percent of the deal amount added on top of the buyer's total.
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("1.00"), server_default="1.00"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    traders = relationship("Trader", back_populates="employee")


class Trader(Base):
    __tablename__ = "traders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    trader_code: Mapped[str | None] = mapped_column(String(32), unique=True, index=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", back_populates="traders")


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    country: Mapped[str | None] = mapped_column(String(64))
    city: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ShippingCompany(Base):
    __tablename__ = "shipping_companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[ShippingCompanyStatus] = mapped_column(
        Enum(ShippingCompanyStatus, native_enum=False),
        default=ShippingCompanyStatus.ACTIVE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Offer(Base):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    trader_id: Mapped[int] = mapped_column(ForeignKey("traders.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[OfferStatus] = mapped_column(
        Enum(OfferStatus, native_enum=False), default=OfferStatus.ACTIVE, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    trader = relationship("Trader")
    items = relationship("OfferItem", back_populates="offer", cascade="all, delete-orphan")


class OfferItem(Base):
    """Catalog row a deal item points at. Never edited by the deal flow."""

    __tablename__ = "offer_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    offer_id: Mapped[str] = mapped_column(ForeignKey("offers.id"), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cartons: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Volume of a single unit, in cubic meters.
    cbm: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    offer = relationship("Offer", back_populates="items")


class Deal(Base):
    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    offer_id: Mapped[str] = mapped_column(ForeignKey("offers.id"), nullable=False, index=True)
    trader_id: Mapped[int] = mapped_column(ForeignKey("traders.id"), nullable=False, index=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    # Accountable guarantor; the only non-admin allowed to verify payments.
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)
    shipping_company_id: Mapped[int | None] = mapped_column(
        ForeignKey("shipping_companies.id"), nullable=True
    )
    status: Mapped[DealStatus] = mapped_column(
        Enum(DealStatus, native_enum=False),
        default=DealStatus.NEGOTIATION,
        nullable=False,
        index=True,
    )
    negotiated_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_cartons: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cbm: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    shipping_type: Mapped[ShippingType | None] = mapped_column(
        Enum(ShippingType, native_enum=False), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text)

    # Minted at trader approval only.
    invoice_number: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(64))
    qr_code_url: Mapped[str | None] = mapped_column(String(512))

    quote_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    offer = relationship("Offer")
    trader = relationship("Trader")
    client = relationship("Client")
    employee = relationship("Employee")
    shipping_company = relationship("ShippingCompany")
    items = relationship(
        "DealItem",
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealItem.created_at",
    )
    messages = relationship(
        "DealNegotiationMessage", order_by="DealNegotiationMessage.created_at", viewonly=True
    )
    history = relationship(
        "DealStatusHistory", order_by="DealStatusHistory.created_at", viewonly=True
    )
    payments = relationship("Payment", order_by="Payment.created_at", viewonly=True)

    def _validate_invariants(self) -> None:
        if self.status in (DealStatus.APPROVED, DealStatus.PAID):
            if self.negotiated_amount is None or Decimal(self.negotiated_amount) <= 0:
                raise ValueError(
                    f"Deal.negotiated_amount must be positive when status={self.status.value}"
                )


@event.listens_for(Deal, "before_insert")
def _deal_before_insert(_mapper, _connection, target: Deal):
    target._validate_invariants()


@event.listens_for(Deal, "before_update")
def _deal_before_update(_mapper, _connection, target: Deal):
    target._validate_invariants()


class DealItem(Base):
    __tablename__ = "deal_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_id: Mapped[str] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    offer_item_id: Mapped[str] = mapped_column(ForeignKey("offer_items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    cartons: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cbm: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    # Overrides the catalog unit price when set and positive.
    negotiated_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    deal = relationship("Deal", back_populates="items")
    offer_item = relationship("OfferItem", lazy="joined")

    @validates("quantity")
    def _validate_quantity(self, _key, value):
        if value is None or int(value) <= 0:
            raise ValueError("DealItem.quantity must be > 0")
        return int(value)


class DealNegotiationMessage(Base):
    __tablename__ = "deal_negotiation_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_id: Mapped[str] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    sender_type: Mapped[SenderType] = mapped_column(
        Enum(SenderType, native_enum=False), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    proposed_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    proposed_quantity: Mapped[int | None] = mapped_column(Integer)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True
    )

    deal = relationship("Deal")


_MESSAGE_MUTABLE_FIELDS = {"is_read", "read_at"}


@event.listens_for(DealNegotiationMessage, "before_update")
def _message_before_update(_mapper, _connection, target: DealNegotiationMessage):
    state = inspect(target)
    for attr in state.attrs:
        if attr.key in _MESSAGE_MUTABLE_FIELDS:
            continue
        if attr.history.has_changes():
            raise AppendOnlyViolation(
                f"DealNegotiationMessage.{attr.key} is immutable once written"
            )


@event.listens_for(DealNegotiationMessage, "before_delete")
def _message_before_delete(_mapper, _connection, _target):
    raise AppendOnlyViolation("Negotiation messages cannot be deleted")


class DealStatusHistory(Base):
    __tablename__ = "deal_status_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_id: Mapped[str] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    status: Mapped[DealStatus] = mapped_column(Enum(DealStatus, native_enum=False), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Null for system-driven transitions.
    changed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    changed_by_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, native_enum=False), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    deal = relationship("Deal")


@event.listens_for(DealStatusHistory, "before_update")
def _history_before_update(_mapper, _connection, _target):
    raise AppendOnlyViolation("Deal status history is append-only")


@event.listens_for(DealStatusHistory, "before_delete")
def _history_before_delete(_mapper, _connection, _target):
    raise AppendOnlyViolation("Deal status history is append-only")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_id: Mapped[str] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False), nullable=False
    )
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    transaction_ref: Mapped[str | None] = mapped_column(String(128))
    receipt_url: Mapped[str | None] = mapped_column(String(512))
    notes: Mapped[str | None] = mapped_column(Text)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    deal = relationship("Deal")


class FinancialTransaction(Base):
    __tablename__ = "financial_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False), nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False), nullable=False
    )
    # Total the buyer pays: deal amount plus every commission.
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    platform_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    shipping_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    employee_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    trader_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deal_id: Mapped[str] = mapped_column(ForeignKey("deals.id"), nullable=False, index=True)
    # Second line of defense behind the PENDING guard on the payment row.
    payment_id: Mapped[str] = mapped_column(
        ForeignKey("payments.id"), nullable=False, unique=True, index=True
    )
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    trader_id: Mapped[int] = mapped_column(ForeignKey("traders.id"), nullable=False)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    deal = relationship("Deal", viewonly=True)
    entries = relationship(
        "FinancialLedgerEntry",
        back_populates="transaction",
        order_by="FinancialLedgerEntry.created_at",
    )


class FinancialLedgerEntry(Base):
    __tablename__ = "financial_ledger_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("financial_transactions.id"), nullable=False, index=True
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        Enum(LedgerEntryType, native_enum=False), nullable=False
    )
    account_type: Mapped[LedgerAccountType] = mapped_column(
        Enum(LedgerAccountType, native_enum=False), nullable=False, index=True
    )
    # Null for the platform account.
    account_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    # No running balances are tracked; both columns are always zero.
    balance_before: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    description: Mapped[str | None] = mapped_column(Text)
    reference: Mapped[str | None] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True
    )

    transaction = relationship("FinancialTransaction", back_populates="entries")


@event.listens_for(FinancialLedgerEntry, "before_insert")
def _ledger_before_insert(_mapper, _connection, target: FinancialLedgerEntry):
    if target.amount is None or Decimal(target.amount) < 0:
        raise ValueError("FinancialLedgerEntry.amount must be >= 0")


@event.listens_for(FinancialLedgerEntry, "before_update")
def _ledger_before_update(_mapper, _connection, _target):
    raise AppendOnlyViolation("Ledger entries are append-only")


@event.listens_for(FinancialLedgerEntry, "before_delete")
def _ledger_before_delete(_mapper, _connection, _target):
    raise AppendOnlyViolation("Ledger entries are append-only")


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deal_id: Mapped[str] = mapped_column(
        ForeignKey("deals.id"), nullable=False, unique=True, index=True
    )
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("financial_transactions.id"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    platform_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    shipping_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    employee_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="SAR")
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, native_enum=False), default=InvoiceStatus.DRAFT, nullable=False
    )
    invoice_url: Mapped[str | None] = mapped_column(String(512))
    verification_url: Mapped[str | None] = mapped_column(String(512))
    rendered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    deal = relationship("Deal", viewonly=True)
    transaction = relationship("FinancialTransaction", viewonly=True)


class PlatformSettings(Base):
    """Commission configuration. The most recently updated row wins."""

    __tablename__ = "platform_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform_commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    shipping_commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    cbm_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    commission_method: Mapped[CommissionMethod] = mapped_column(
        Enum(CommissionMethod, native_enum=False),
        default=CommissionMethod.PERCENTAGE,
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="SAR")
    platform_name: Mapped[str] = mapped_column(String(128), nullable=False, default="Stockship")
    updated_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, native_enum=False), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_entity_type: Mapped[str | None] = mapped_column(String(32))
    related_entity_id: Mapped[str | None] = mapped_column(String(64), index=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, native_enum=False), nullable=False
    )
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    metadata_json: Mapped[str | None] = mapped_column(Text)

    # Optional request context.
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class DocumentSequence(Base):
    __tablename__ = "document_sequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    doc_type: Mapped[str] = mapped_column(String(16), nullable=False)
    year: Mapped[str] = mapped_column(String(4), nullable=False)  # YYYY
    last_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (UniqueConstraint("doc_type", "year", name="uq_doc_seq_doc_type_year"),)
