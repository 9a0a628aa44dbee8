"""Web framework bindings for controllers."""

from typing import Any

from fastapi import APIRouter, FastAPI
from starlette.applications import Starlette

from dmvc.web.base import ControllerResult, RouteBinder, RouteCall, RouteHandler
from dmvc.web.fastapi import FastAPIBinder
from dmvc.web.starlette import StarletteBinder


def binder_for(app: Any) -> RouteBinder:
    """Pick the route binder matching an application object.

    Raises:
        TypeError: For unsupported application types.
    """
    if isinstance(app, RouteBinder):
        return app
    # FastAPI subclasses Starlette, so it is checked first
    if isinstance(app, (FastAPI, APIRouter)):
        return FastAPIBinder(app)
    if isinstance(app, Starlette):
        return StarletteBinder(app)
    raise TypeError(f"Unsupported application type: {type(app).__name__}")


__all__ = [
    "ControllerResult",
    "FastAPIBinder",
    "RouteBinder",
    "RouteCall",
    "RouteHandler",
    "StarletteBinder",
    "binder_for",
]
