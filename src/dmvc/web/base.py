"""Framework-neutral route table.

Controllers describe their routes as handlers taking a RouteCall and
returning a ControllerResult. A RouteBinder turns those into routes of a
concrete web framework: it reads path params, query string, JSON body and
actor from the framework request, runs the auth guard, and writes the
result back as JSON.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from dmvc.auth import AuthCheckFn
from dmvc.errors import AuthError, DmvcError

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PATCH", "PUT")


@dataclass
class ControllerResult:
    """Status code plus JSON-serialisable payload."""

    status: int
    data: Any = None


@dataclass
class RouteCall:
    """Everything a controller handler needs from a request."""

    path_params: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    actor: Any = None


RouteHandler = Callable[[RouteCall], Awaitable[ControllerResult]]


async def read_json(request: Request) -> Any:
    """Parse the request body as JSON. Empty or malformed bodies give None."""
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def render(result: ControllerResult) -> JSONResponse:
    if result.status == 404 and result.data is None:
        return JSONResponse({"detail": "Not Found"}, status_code=404)
    return JSONResponse(result.data, status_code=result.status)


def error_response(exc: DmvcError) -> JSONResponse:
    """Map a model/auth error onto its HTTP response."""
    if isinstance(exc, AuthError):
        return JSONResponse({"detail": exc.message}, status_code=exc.status_code)
    logger.info("Request rejected (%s): %s", exc.status_code, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


class RouteBinder(ABC):
    """Registers controller routes on one web framework."""

    @abstractmethod
    def add_route(
        self,
        method: str,
        path: str,
        handler: RouteHandler,
        roles: Sequence[str] = (),
        auth_check: AuthCheckFn | None = None,
    ) -> None:
        """Register ``handler`` for ``method`` on ``path``.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: Route path; parameters use the {name} syntax
            handler: Framework-neutral handler
            roles: Roles allowed on the route (see dmvc.auth.check_access)
            auth_check: Optional custom authorization check
        """
