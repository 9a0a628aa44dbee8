"""FastAPI route binder. Auth runs as a route dependency."""

from collections.abc import Sequence

from fastapi import APIRouter, Depends, FastAPI, Request, Response

from dmvc.auth import AuthCheckFn, get_actor, require_auth
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


class FastAPIBinder(RouteBinder):
    """Binds controller routes onto a FastAPI app or APIRouter."""

    def __init__(self, app: FastAPI | APIRouter):
        self.app = app

    def add_route(
        self,
        method: str,
        path: str,
        handler: RouteHandler,
        roles: Sequence[str] = (),
        auth_check: AuthCheckFn | None = None,
    ) -> None:
        async def endpoint(request: Request) -> Response:
            body = await read_json(request) if method in BODY_METHODS else None
            call = RouteCall(
                path_params=dict(request.path_params),
                query=dict(request.query_params),
                body=body,
                actor=get_actor(request),
            )
            try:
                result = await handler(call)
            except DmvcError as exc:
                return error_response(exc)
            return render(result)

        self.app.add_api_route(
            path,
            endpoint,
            methods=[method],
            dependencies=[Depends(require_auth(roles, auth_check))],
            name=f"{method.lower()} {path}",
        )
