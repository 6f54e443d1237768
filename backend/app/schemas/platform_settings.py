from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import CommissionMethod


class PlatformSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform_rate: Decimal
    shipping_rate: Decimal
    cbm_rate: Optional[Decimal] = None
    method: CommissionMethod
    currency: str
    platform_name: str
    # True when no settings row exists and built-in defaults apply.
    is_default: bool = False


class PlatformSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    platform_commission_rate: Optional[Decimal] = Field(None, alias="platformCommissionRate")
    shipping_commission_rate: Optional[Decimal] = Field(None, alias="shippingCommissionRate")
    cbm_rate: Optional[Decimal] = Field(None, alias="cbmRate")
    # Plain string so invalid methods get the service's validation message.
    commission_method: Optional[str] = Field(None, alias="commissionMethod")
    currency: Optional[str] = Field(None, max_length=8)
    platform_name: Optional[str] = Field(None, alias="platformName", max_length=128)
