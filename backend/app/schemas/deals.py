from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import ActorType, DealStatus, ShippingType


class DealItemInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    offer_item_id: str = Field(..., alias="offerItemId")
    quantity: Optional[int] = Field(None, gt=0)
    cartons: Optional[int] = Field(None, ge=0)
    negotiated_price: Optional[Decimal] = Field(None, alias="negotiatedPrice", ge=0)
    notes: Optional[str] = None


class DealCreate(BaseModel):
    items: List[DealItemInput] = Field(default_factory=list)
    notes: Optional[str] = None


class DealItemsReplace(BaseModel):
    items: List[DealItemInput]


class DealApprove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Raw value; the amount resolver parses it and falls back to query/header.
    negotiated_amount: Optional[Any] = Field(None, alias="negotiatedAmount")
    shipping_type: Optional[ShippingType] = Field(None, alias="shippingType")
    notes: Optional[str] = Field(None, max_length=2000)


class DealSendQuote(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    negotiated_amount: Optional[Decimal] = Field(None, alias="negotiatedAmount")


class DealReasonBody(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class DealShippingAssign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shipping_company_id: Optional[int] = Field(None, alias="shippingCompanyId")


class DealItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    offer_item_id: str
    quantity: int
    cartons: int
    cbm: Decimal
    negotiated_price: Optional[Decimal] = None
    notes: Optional[str] = None


class DealStatusHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: DealStatus
    description: Optional[str] = None
    changed_by: Optional[int] = None
    changed_by_type: ActorType
    created_at: datetime


class DealRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deal_number: str
    offer_id: str
    trader_id: int
    client_id: int
    employee_id: int
    shipping_company_id: Optional[int] = None
    status: DealStatus
    negotiated_amount: Optional[Decimal] = None
    # Best-guess price for display; may come from the negotiation log.
    resolved_amount: Optional[Decimal] = None
    total_cartons: int
    total_cbm: Decimal
    shipping_type: Optional[ShippingType] = None
    notes: Optional[str] = None
    invoice_number: Optional[str] = None
    barcode: Optional[str] = None
    qr_code_url: Optional[str] = None
    quote_sent_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime


class DealDetailRead(DealRead):
    items: List[DealItemRead] = Field(default_factory=list)
    history: List[DealStatusHistoryRead] = Field(default_factory=list)
