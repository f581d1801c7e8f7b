"""Role checks as FastAPI dependencies."""

from typing import Awaitable, Callable

from fastapi import Depends

from schoolpay.exceptions import ForbiddenException
from schoolpay.models.user import Role
from schoolpay.utils.tenant_context import ActorContext, get_actor_context

ActorDependency = Callable[..., Awaitable[ActorContext]]


def require_role(*allowed_roles: Role | str) -> ActorDependency:
    """Build a dependency that admits only the given roles.

    The dependency resolves to the caller's ``ActorContext``, so an endpoint
    gets both the check and the actor from one parameter:

        @router.put("/records/{record_id}/approve")
        async def approve_salary(
            record_id: uuid.UUID,
            actor: ActorContext = Depends(require_role(Role.PRINCIPAL)),
        ):
            ...
    """
    allowed = frozenset(getattr(role, "value", role) for role in allowed_roles)

    async def dependency(actor: ActorContext = Depends(get_actor_context)) -> ActorContext:
        if actor.role not in allowed:
            raise ForbiddenException()
        return actor

    return dependency


def require_principal() -> ActorDependency:
    return require_role(Role.PRINCIPAL)


def require_office_staff() -> ActorDependency:
    """Principal or clerk."""
    return require_role(Role.PRINCIPAL, Role.CLERK)


def require_staff() -> ActorDependency:
    """Any role, teachers included."""
    return require_role(Role.PRINCIPAL, Role.CLERK, Role.TEACHER)
