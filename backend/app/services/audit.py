import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import models
from app.models.domain import ActorType

logger = logging.getLogger("mediation.audit")


def record_activity(
    db: Session,
    *,
    actor_type: ActorType,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: str,
    description: str | None = None,
    metadata: Dict[str, Any] | None = None,
    request_id: str | None = None,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Optional[int]:
    """
    Persist an activity-log row in its own commit; if the write fails, log it.

    Returns the created activity log id when available. Never raises: the
    activity trail is best-effort and must not disturb the caller.
    """
    event = {
        "actor_type": getattr(actor_type, "value", actor_type),
        "actor_id": actor_id,
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        log = models.ActivityLog(
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            description=description,
            metadata_json=json.dumps(metadata or {}, default=str),
            request_id=request_id,
            ip=ip,
            user_agent=user_agent,
        )
        db.add(log)
        db.commit()
        return getattr(log, "id", None)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("activity_log_write_failed", extra={"event": event})
        return None
