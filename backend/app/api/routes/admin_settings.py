from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_outbox, require_actor_types
from app.database import get_db
from app.models.domain import ActorType
from app.schemas.platform_settings import PlatformSettingsRead, PlatformSettingsUpdate
from app.services import platform_settings
from app.services.actors import Actor
from app.services.commission import settings_from_row
from app.services.side_effects import SideEffectOutbox

router = APIRouter(prefix="/admin/platform-settings", tags=["admin"])

_ADMIN_DEP = Depends(require_actor_types(ActorType.ADMIN))


@router.get("", response_model=PlatformSettingsRead)
def get_platform_settings(db: Session = Depends(get_db), actor: Actor = _ADMIN_DEP):
    return PlatformSettingsRead.model_validate(platform_settings.get_effective_settings(db))


@router.put("", response_model=PlatformSettingsRead)
def update_platform_settings(
    payload: PlatformSettingsUpdate,
    db: Session = Depends(get_db),
    actor: Actor = _ADMIN_DEP,
    outbox: SideEffectOutbox = Depends(get_outbox),
):
    row = platform_settings.update_platform_settings(
        db,
        actor,
        platform_commission_rate=payload.platform_commission_rate,
        shipping_commission_rate=payload.shipping_commission_rate,
        cbm_rate=payload.cbm_rate,
        commission_method=payload.commission_method,
        currency=payload.currency,
        platform_name=payload.platform_name,
        outbox=outbox,
    )
    return PlatformSettingsRead.model_validate(settings_from_row(row))
