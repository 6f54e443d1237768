import uuid
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_access_token
from app.models.domain import ActorType
from app.services.actors import Actor
from app.services.invoicing import InvoiceRenderer, get_invoice_renderer
from app.services.side_effects import RequestContext, SideEffectOutbox

bearer_scheme = HTTPBearer(auto_error=False)

_BEARER_DEP = Depends(bearer_scheme)

# Identity is issued elsewhere; only these actor types may call the API.
_CALLER_TYPES = {ActorType.CLIENT, ActorType.TRADER, ActorType.EMPLOYEE, ActorType.ADMIN}


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = _BEARER_DEP,
) -> Actor:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    subject = payload.get("sub")
    raw_type = str(payload.get("actor_type") or "").strip().upper()
    try:
        actor_id = int(subject)
        actor_type = ActorType(raw_type)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        ) from None

    if actor_type not in _CALLER_TYPES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return Actor(id=actor_id, actor_type=actor_type)


_CURRENT_ACTOR_DEP = Depends(get_current_actor)


def require_actor_types(*actor_types: ActorType) -> Callable:
    """Coarse gate by actor type; admins always pass.

    Ownership (client/trader/guarantor of a specific deal) is checked by the
    services, which know the deal.
    """

    def dependency(actor: Actor = _CURRENT_ACTOR_DEP) -> Actor:
        if actor.is_admin or not actor_types:
            return actor
        if actor.actor_type not in actor_types:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return actor

    return dependency


def get_outbox(request: Request) -> SideEffectOutbox:
    client_host = getattr(getattr(request, "client", None), "host", None)
    return SideEffectOutbox(
        RequestContext(
            request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
            ip=client_host,
            user_agent=(request.headers.get("user-agent") or "")[:256] or None,
        )
    )


def get_renderer() -> InvoiceRenderer:
    return get_invoice_renderer()
