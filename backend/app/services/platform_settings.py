from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app import models
from app.database import unit_of_work
from app.models.domain import ActorType, CommissionMethod
from app.services.actors import Actor
from app.services.commission import (
    CommissionSettings,
    load_commission_settings,
    to_decimal,
)
from app.services.errors import Forbidden, ValidationFailed
from app.services.side_effects import SideEffectOutbox

logger = logging.getLogger("mediation.settings")


def _rate(value: Any, field: str) -> Decimal:
    d = to_decimal(value)
    if d is None or d < 0 or d > 100:
        raise ValidationFailed(f"{field} must be a number between 0 and 100")
    return d


def get_effective_settings(db: Session) -> CommissionSettings:
    return load_commission_settings(db)


def update_platform_settings(
    db: Session,
    actor: Actor,
    *,
    platform_commission_rate: Any = None,
    shipping_commission_rate: Any = None,
    cbm_rate: Any = None,
    commission_method: CommissionMethod | str | None = None,
    currency: str | None = None,
    platform_name: str | None = None,
    outbox: SideEffectOutbox | None = None,
) -> models.PlatformSettings:
    """Append a new settings row; unspecified fields carry over from the current one."""

    if not actor.is_admin:
        raise Forbidden("Only administrators can change platform settings")
    outbox = outbox if outbox is not None else SideEffectOutbox()

    current = load_commission_settings(db)

    method = current.method
    if commission_method is not None:
        try:
            method = CommissionMethod(str(getattr(commission_method, "value", commission_method)).upper())
        except ValueError:
            raise ValidationFailed(
                "Commission method must be one of PERCENTAGE, CBM, BOTH"
            ) from None

    platform_rate = (
        _rate(platform_commission_rate, "platformCommissionRate")
        if platform_commission_rate is not None
        else current.platform_rate
    )
    shipping_rate = (
        _rate(shipping_commission_rate, "shippingCommissionRate")
        if shipping_commission_rate is not None
        else current.shipping_rate
    )
    cbm = to_decimal(cbm_rate) if cbm_rate is not None else current.cbm_rate
    if cbm_rate is not None and cbm is None:
        raise ValidationFailed("cbmRate must be a number")

    if method in (CommissionMethod.CBM, CommissionMethod.BOTH) and (cbm is None or cbm <= 0):
        raise ValidationFailed(
            "CBM Rate must be set and greater than 0 when commission method is CBM or BOTH"
        )

    with unit_of_work(db):
        row = models.PlatformSettings(
            platform_commission_rate=platform_rate,
            shipping_commission_rate=shipping_rate,
            cbm_rate=cbm,
            commission_method=method,
            currency=(currency or current.currency).upper(),
            platform_name=platform_name or current.platform_name,
            updated_by=actor.id,
        )
        db.add(row)
        db.flush()
        outbox.record(
            ActorType.ADMIN,
            actor.id,
            "PLATFORM_SETTINGS_UPDATED",
            "PLATFORM_SETTINGS",
            str(row.id),
            "Commission settings updated",
            {
                "platform_commission_rate": str(platform_rate),
                "shipping_commission_rate": str(shipping_rate),
                "cbm_rate": str(cbm) if cbm is not None else None,
                "commission_method": method.value,
            },
        )

    logger.info("platform_settings_updated", extra={"settings_id": row.id, "method": method.value})
    outbox.flush(db)
    db.refresh(row)
    return row
