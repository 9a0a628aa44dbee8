"""Starlette route binder. Auth runs inline before the handler."""

from collections.abc import Sequence

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response

from dmvc.auth import AuthCheckFn, check_access, get_actor
from dmvc.errors import DmvcError
from dmvc.web.base import (
    BODY_METHODS,
    RouteBinder,
    RouteCall,
    RouteHandler,
    error_response,
    read_json,
    render,
)


class StarletteBinder(RouteBinder):
    """Binds controller routes onto a plain Starlette app."""

    def __init__(self, app: Starlette):
        self.app = app

    def add_route(
        self,
        method: str,
        path: str,
        handler: RouteHandler,
        roles: Sequence[str] = (),
        auth_check: AuthCheckFn | None = None,
    ) -> None:
        allowed = list(roles)

        async def endpoint(request: Request) -> Response:
            actor = get_actor(request)
            try:
                await check_access(allowed, actor, auth_check)
                body = await read_json(request) if method in BODY_METHODS else None
                call = RouteCall(
                    path_params=dict(request.path_params),
                    query=dict(request.query_params),
                    body=body,
                    actor=actor,
                )
                result = await handler(call)
            except DmvcError as exc:
                return error_response(exc)
            return render(result)

        self.app.router.add_route(path, endpoint, methods=[method])
