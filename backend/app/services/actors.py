from __future__ import annotations

from dataclasses import dataclass

from app import models
from app.models.domain import ActorType, SenderType
from app.services.errors import Forbidden


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as resolved by the identity layer."""

    id: int
    actor_type: ActorType

    @property
    def is_admin(self) -> bool:
        return self.actor_type == ActorType.ADMIN


def is_party(deal: models.Deal, actor: Actor) -> bool:
    if actor.actor_type == ActorType.CLIENT:
        return deal.client_id == actor.id
    if actor.actor_type == ActorType.TRADER:
        return deal.trader_id == actor.id
    if actor.actor_type == ActorType.EMPLOYEE:
        return deal.employee_id == actor.id
    return False


def ensure_can_view(deal: models.Deal, actor: Actor) -> None:
    if actor.is_admin or is_party(deal, actor):
        return
    raise Forbidden("Not authorized to access this deal")


def ensure_actor(deal: models.Deal, actor: Actor, *allowed: ActorType, admin: bool = True) -> None:
    """The actor must be one of `allowed` and a party to the deal (or admin)."""

    if admin and actor.is_admin:
        return
    if actor.actor_type in allowed and is_party(deal, actor):
        return
    raise Forbidden("Not authorized to perform this action on the deal")


def ensure_guarantor(deal: models.Deal, actor: Actor, message: str) -> None:
    if actor.is_admin:
        return
    if actor.actor_type == ActorType.EMPLOYEE and deal.employee_id == actor.id:
        return
    raise Forbidden(message)


def sender_type_for(actor: Actor) -> SenderType:
    try:
        return SenderType(actor.actor_type.value)
    except ValueError:
        raise Forbidden("Only deal parties can post negotiation messages") from None
