"""Role-based route guard.

The actor (authenticated caller) is whatever upstream middleware stored
on ``request.state.user``: a mapping or object carrying at least a
``role``. This module never authenticates anyone itself.
"""

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from fastapi import HTTPException, Request

from dmvc.config import auth_disabled
from dmvc.errors import AuthError, Forbidden, Unauthorized

ANONYMOUS = "anonymous"

# Custom authorization check: (actor, allowed_roles) -> bool, sync or async
AuthCheckFn = Callable[[Any, Sequence[str]], bool | Awaitable[bool]]


def actor_field(actor: Any, name: str) -> Any:
    """Read a field from a mapping or attribute-style actor."""
    if actor is None:
        return None
    if isinstance(actor, Mapping):
        return actor.get(name)
    return getattr(actor, name, None)


def get_actor(request: Request) -> Any:
    """Get the actor set by upstream middleware, None if unauthenticated."""
    return getattr(request.state, "user", None)


async def check_access(
    allowed_roles: Sequence[str],
    actor: Any,
    check_fn: AuthCheckFn | None = None,
) -> None:
    """Check an actor against a route's allowed roles.

    Args:
        allowed_roles: Roles allowed on the route. "anonymous" opens the
            route to everyone; an empty list admits any authenticated actor.
        actor: The authenticated actor, or None
        check_fn: Optional replacement for the role-membership test

    Raises:
        Unauthorized: No actor and the route is not open
        Forbidden: The actor's role (or check_fn) does not allow access
    """
    if auth_disabled():
        return
    if ANONYMOUS in allowed_roles:
        return
    if not actor:
        raise Unauthorized()
    if not allowed_roles:
        return

    if check_fn is not None:
        allowed = check_fn(actor, allowed_roles)
        if inspect.isawaitable(allowed):
            allowed = await allowed
    else:
        allowed = actor_field(actor, "role") in allowed_roles

    if not allowed:
        raise Forbidden()


def require_auth(
    allowed_roles: Sequence[str] = (),
    check_fn: AuthCheckFn | None = None,
) -> Callable[[Request], Awaitable[Any]]:
    """Create a FastAPI dependency enforcing ``check_access``.

    Example:
        @app.get("/admin-only", dependencies=[Depends(require_auth(["admin"]))])
        async def admin_endpoint():
            ...
    """
    roles = list(allowed_roles)

    async def dependency(request: Request) -> Any:
        actor = get_actor(request)
        try:
            await check_access(roles, actor, check_fn)
        except AuthError as exc:
            raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
        return actor

    return dependency
