"""Post-commit side effects: notifications and the activity trail.

Services queue work on a `SideEffectOutbox` while their unit of work runs and
call `flush` once it has committed. Each queued item is written in its own
small transaction; a failure is logged as `side_effect_failed` and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app import models
from app.models.domain import ActorType
from app.services.audit import record_activity

logger = logging.getLogger("mediation.side_effects")


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class PendingNotification:
    user_id: int
    user_type: ActorType
    kind: str
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: str | None = None


@dataclass(frozen=True)
class PendingActivity:
    actor_type: ActorType
    actor_id: Optional[int]
    action: str
    entity_type: str
    entity_id: str
    description: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def notify(
    db: Session,
    *,
    user_id: int,
    user_type: ActorType,
    kind: str,
    title: str,
    message: str,
    related_entity_type: str | None = None,
    related_entity_id: str | None = None,
) -> models.Notification:
    row = models.Notification(
        user_id=int(user_id),
        user_type=user_type,
        kind=kind,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )
    db.add(row)
    db.commit()
    return row


class SideEffectOutbox:
    def __init__(self, context: RequestContext | None = None):
        self.context = context or RequestContext()
        self.notifications: list[PendingNotification] = []
        self.activities: list[PendingActivity] = []

    def notify(
        self,
        user_id: int | None,
        user_type: ActorType,
        kind: str,
        title: str,
        message: str,
        related_entity_type: str | None = "DEAL",
        related_entity_id: str | None = None,
    ) -> None:
        if user_id is None:
            return
        self.notifications.append(
            PendingNotification(
                user_id=int(user_id),
                user_type=user_type,
                kind=kind,
                title=title,
                message=message,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
            )
        )

    def notify_many(
        self,
        recipients: Iterable[tuple[int | None, ActorType]],
        kind: str,
        title: str,
        message: str,
        related_entity_id: str | None = None,
    ) -> None:
        seen: set[tuple[int, ActorType]] = set()
        for user_id, user_type in recipients:
            if user_id is None or (int(user_id), user_type) in seen:
                continue
            seen.add((int(user_id), user_type))
            self.notify(user_id, user_type, kind, title, message, "DEAL", related_entity_id)

    def record(
        self,
        actor_type: ActorType,
        actor_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: str,
        description: str | None = None,
        metadata: Dict[str, Any] | None = None,
    ) -> None:
        self.activities.append(
            PendingActivity(
                actor_type=actor_type,
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                description=description,
                metadata=dict(metadata or {}),
            )
        )

    def discard(self) -> None:
        self.notifications.clear()
        self.activities.clear()

    def flush(self, db: Session) -> int:
        """Deliver everything queued. Returns how many items were written."""

        delivered = 0
        for activity in self.activities:
            activity_id = record_activity(
                db,
                actor_type=activity.actor_type,
                actor_id=activity.actor_id,
                action=activity.action,
                entity_type=activity.entity_type,
                entity_id=activity.entity_id,
                description=activity.description,
                metadata=activity.metadata,
                request_id=self.context.request_id,
                ip=self.context.ip,
                user_agent=self.context.user_agent,
            )
            if activity_id is not None:
                delivered += 1

        for item in self.notifications:
            try:
                notify(
                    db,
                    user_id=item.user_id,
                    user_type=item.user_type,
                    kind=item.kind,
                    title=item.title,
                    message=item.message,
                    related_entity_type=item.related_entity_type,
                    related_entity_id=item.related_entity_id,
                )
                delivered += 1
            except Exception:
                db.rollback()
                logger.exception(
                    "side_effect_failed",
                    extra={
                        "kind": item.kind,
                        "user_id": item.user_id,
                        "user_type": item.user_type.value,
                        "related_entity_id": item.related_entity_id,
                    },
                )

        self.discard()
        return delivered
