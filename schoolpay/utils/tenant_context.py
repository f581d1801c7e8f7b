"""Request identity carried in context variables.

The auth middleware binds the token claims for the duration of a request;
``get_actor_context`` freezes them into an ``ActorContext`` that endpoints
pass explicitly into every service call. Services never read the context
variables themselves.
"""

import contextvars
import uuid
from dataclasses import dataclass

from schoolpay.exceptions import TenantContextError, UserContextError

_user_id: contextvars.ContextVar[uuid.UUID | None] = contextvars.ContextVar(
    "user_id", default=None
)
_tenant_id: contextvars.ContextVar[uuid.UUID | None] = contextvars.ContextVar(
    "tenant_id", default=None
)
_role: contextvars.ContextVar[str | None] = contextvars.ContextVar("role", default=None)


@dataclass(frozen=True)
class ActorContext:
    """Who is calling, in what role, on behalf of which school."""

    id: uuid.UUID
    role: str
    tenant_id: uuid.UUID

    def has_role(self, *roles: str) -> bool:
        """Check if the actor holds any of the given roles."""
        return self.role in {getattr(r, "value", r) for r in roles}


def bind_identity(user_id: uuid.UUID, tenant_id: uuid.UUID | None, role: str | None) -> None:
    """Attach the caller's identity to the current request."""
    _user_id.set(user_id)
    _tenant_id.set(tenant_id)
    _role.set(role)


def clear_identity() -> None:
    """Forget the caller; run at both ends of every request."""
    _user_id.set(None)
    _tenant_id.set(None)
    _role.set(None)


async def get_actor_context() -> ActorContext:
    """FastAPI dependency returning the immutable actor for this request.

    Raises:
        UserContextError: If no authenticated user is attached
        TenantContextError: If the user is not bound to a school
    """
    user_id, role = _user_id.get(), _role.get()
    if user_id is None or role is None:
        raise UserContextError("User context is not set")

    tenant_id = _tenant_id.get()
    if tenant_id is None:
        raise TenantContextError("Tenant context is not set")

    return ActorContext(id=user_id, role=role, tenant_id=tenant_id)
