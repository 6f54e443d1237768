"""Commission split for a single deal.

`calculate_commissions` is pure: it takes the deal amount, the shipment volume
and an explicit `CommissionSettings` value and returns the four-way split.
Each component is rounded to cents (ROUND_HALF_UP) before the buyer total is
summed, so ledger debits and credits always balance to the cent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from app import models
from app.models.domain import CommissionMethod

logger = logging.getLogger("mediation.commission")

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")

DEFAULT_PLATFORM_RATE = Decimal("2.5")
DEFAULT_SHIPPING_RATE = Decimal("5.0")
DEFAULT_EMPLOYEE_RATE = Decimal("1.0")
DEFAULT_CURRENCY = "SAR"
DEFAULT_PLATFORM_NAME = "Stockship"


def to_decimal(value: Any, default: Decimal | None = None) -> Decimal | None:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats keep their printed value, not their binary one.
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default


def money(value: Any) -> Decimal:
    d = to_decimal(value, Decimal("0"))
    return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CommissionSettings:
    platform_rate: Decimal = DEFAULT_PLATFORM_RATE
    shipping_rate: Decimal = DEFAULT_SHIPPING_RATE
    cbm_rate: Decimal | None = None
    method: CommissionMethod = CommissionMethod.PERCENTAGE
    currency: str = DEFAULT_CURRENCY
    platform_name: str = DEFAULT_PLATFORM_NAME
    is_default: bool = False


@dataclass(frozen=True)
class CommissionBreakdown:
    deal_amount: Decimal
    platform_commission: Decimal
    shipping_commission: Decimal
    employee_commission: Decimal
    total_buyer_paid: Decimal
    trader_payout: Decimal
    # Method that produced platform_commission (BOTH resolves to the winner).
    applied_method: CommissionMethod
    requested_method: CommissionMethod
    percentage_commission: Decimal
    cbm_commission: Decimal | None

    def describe(self) -> str:
        if self.requested_method == CommissionMethod.BOTH and self.cbm_commission is not None:
            return (
                f"platform commission via {self.applied_method.value} "
                f"(percentage {self.percentage_commission}, cbm {self.cbm_commission})"
            )
        if self.requested_method != self.applied_method:
            return (
                f"platform commission via {self.applied_method.value} "
                f"(fallback from {self.requested_method.value}: cbm rate not set)"
            )
        return f"platform commission via {self.applied_method.value}"


def _cbm_rate_usable(cbm_rate: Decimal | None) -> bool:
    return cbm_rate is not None and cbm_rate > 0


def calculate_commissions(
    deal_amount: Any,
    total_cbm: Any,
    settings: CommissionSettings,
    employee_rate: Any = DEFAULT_EMPLOYEE_RATE,
) -> CommissionBreakdown:
    amount = money(deal_amount)
    cbm = to_decimal(total_cbm, Decimal("0")) or Decimal("0")
    platform_rate = to_decimal(settings.platform_rate, DEFAULT_PLATFORM_RATE)
    shipping_rate = to_decimal(settings.shipping_rate, DEFAULT_SHIPPING_RATE)
    emp_rate = to_decimal(employee_rate, DEFAULT_EMPLOYEE_RATE)
    cbm_rate = to_decimal(settings.cbm_rate)

    requested = settings.method or CommissionMethod.PERCENTAGE
    percentage_commission = money(amount * platform_rate / HUNDRED)
    cbm_commission: Decimal | None = None

    if requested in (CommissionMethod.CBM, CommissionMethod.BOTH) and _cbm_rate_usable(cbm_rate):
        cbm_commission = money(cbm * cbm_rate)

    if requested == CommissionMethod.CBM and cbm_commission is not None:
        applied = CommissionMethod.CBM
        platform_commission = cbm_commission
    elif requested == CommissionMethod.BOTH and cbm_commission is not None:
        # Ties go to PERCENTAGE.
        if cbm_commission > percentage_commission:
            applied = CommissionMethod.CBM
            platform_commission = cbm_commission
        else:
            applied = CommissionMethod.PERCENTAGE
            platform_commission = percentage_commission
    else:
        applied = CommissionMethod.PERCENTAGE
        platform_commission = percentage_commission

    shipping_commission = money(amount * shipping_rate / HUNDRED)
    employee_commission = money(amount * emp_rate / HUNDRED)
    total = amount + platform_commission + shipping_commission + employee_commission

    return CommissionBreakdown(
        deal_amount=amount,
        platform_commission=platform_commission,
        shipping_commission=shipping_commission,
        employee_commission=employee_commission,
        total_buyer_paid=money(total),
        trader_payout=amount,
        applied_method=applied,
        requested_method=requested,
        percentage_commission=percentage_commission,
        cbm_commission=cbm_commission,
    )


def latest_platform_settings(db: Session) -> models.PlatformSettings | None:
    return (
        db.query(models.PlatformSettings)
        .order_by(models.PlatformSettings.updated_at.desc(), models.PlatformSettings.id.desc())
        .first()
    )


def settings_from_row(row: models.PlatformSettings | None) -> CommissionSettings:
    if row is None:
        return CommissionSettings(is_default=True)
    return CommissionSettings(
        platform_rate=to_decimal(row.platform_commission_rate, DEFAULT_PLATFORM_RATE),
        shipping_rate=to_decimal(row.shipping_commission_rate, DEFAULT_SHIPPING_RATE),
        cbm_rate=to_decimal(row.cbm_rate),
        method=row.commission_method or CommissionMethod.PERCENTAGE,
        currency=row.currency or DEFAULT_CURRENCY,
        platform_name=row.platform_name or DEFAULT_PLATFORM_NAME,
    )


def load_commission_settings(db: Session) -> CommissionSettings:
    """Read the effective rates. Always hits the database; never cached."""

    row = latest_platform_settings(db)
    if row is None:
        logger.warning(
            "platform_settings_missing_using_defaults",
            extra={
                "platform_rate": str(DEFAULT_PLATFORM_RATE),
                "shipping_rate": str(DEFAULT_SHIPPING_RATE),
            },
        )
    return settings_from_row(row)


def employee_rate_for(employee: models.Employee | None) -> Decimal:
    if employee is None:
        return DEFAULT_EMPLOYEE_RATE
    return to_decimal(employee.commission_rate, DEFAULT_EMPLOYEE_RATE)
