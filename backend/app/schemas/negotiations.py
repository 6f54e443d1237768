from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import SenderType


class NegotiationMessageCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(None, max_length=5000)
    proposed_price: Optional[Decimal] = Field(None, alias="proposedPrice")
    proposed_quantity: Optional[int] = Field(None, alias="proposedQuantity")


class NegotiationMessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    deal_id: str
    sender_type: SenderType
    sender_id: int
    message: Optional[str] = None
    proposed_price: Optional[Decimal] = None
    proposed_quantity: Optional[int] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MarkReadResult(BaseModel):
    updated: int
