"""Base controller - REST routes over a model.

    BaseController.register(app, ControllerOptions(model=TodoModel, base_path="/todos"))

binds:

    GET    /todos          list (query-string filters, search, sort, paging)
    GET    /todos/_count   count
    GET    /todos/{id}     get
    POST   /todos          create
    PATCH  /todos          update
    DELETE /todos/{id}     delete
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from dmvc.auth import AuthCheckFn, actor_field
from dmvc.config import DEFAULT_PAGE_SIZE
from dmvc.model import BaseModel
from dmvc.query import QueryService
from dmvc.web import ControllerResult, RouteBinder, RouteCall, binder_for

logger = logging.getLogger(__name__)

ROUTE_OPERATIONS = ("list", "get", "create", "update", "delete")


@dataclass
class ControllerOptions:
    """Controller configuration.

    Attributes:
        model: The model class (subclass of BaseModel)
        base_path: Base path for routes, e.g. "/items"
        id_param: Path parameter for the primary key (defaults to the first
            key schema field)
        roles: Allowed roles per operation: list, get, create, update, delete
        auth_check: Optional custom authorization check
        page_size: Default page size for list requests
    """

    model: type[BaseModel]
    base_path: str
    id_param: str | None = None
    roles: dict[str, list[str]] = field(default_factory=dict)
    auth_check: AuthCheckFn | None = None
    page_size: int = DEFAULT_PAGE_SIZE


class BaseController:
    """CRUD request handling for one model."""

    def __init__(self, options: ControllerOptions):
        unknown = set(options.roles) - set(ROUTE_OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown operations in roles: {sorted(unknown)}")
        self.options = options
        self.model_class = options.model
        validator = options.model.validator
        self.key_names: list[str] = list(validator.key_names) if validator else []
        self.pk_name = options.id_param or (self.key_names[0] if self.key_names else "id")
        self.query_service = QueryService(options.model, options.page_size)

    @classmethod
    def register(cls, app: Any, options: ControllerOptions) -> BaseController:
        """Create a controller and bind its routes on a FastAPI/Starlette app."""
        controller = cls(options)
        controller.bind(binder_for(app))
        return controller

    def bind(self, binder: RouteBinder) -> None:
        base = self.options.base_path.rstrip("/")
        item_path = f"{base}/{{{self.pk_name}}}"
        roles = self.options.roles
        check = self.options.auth_check

        # _count must precede the {id} route
        binder.add_route("GET", base, self._handle_list, roles.get("list", []), check)
        binder.add_route("GET", f"{base}/_count", self._handle_count, roles.get("list", []), check)
        binder.add_route("GET", item_path, self._handle_get, roles.get("get", []), check)
        binder.add_route("POST", base, self._handle_create, roles.get("create", []), check)
        binder.add_route("PATCH", base, self._handle_update, roles.get("update", []), check)
        binder.add_route("DELETE", item_path, self._handle_delete, roles.get("delete", []), check)
        logger.debug("Registered %s routes at %s", self.model_class.__name__, base)

    @property
    def model(self) -> BaseModel:
        return self.model_class.instance()

    @property
    def is_composite(self) -> bool:
        return len(self.key_names) > 1

    def _id_facet(self, id: Any) -> dict[str, Any]:
        facet = {self.pk_name: id}
        validator = self.model_class.validator
        return validator.coerce_facets(facet) if validator else facet

    async def _lookup(self, facets: dict[str, Any]) -> dict[str, Any] | None:
        page = await self.model.find(facets, None, 1)
        return page.data[0] if page.data else None

    # --- Operations ---

    async def list(self, query: dict[str, Any]) -> ControllerResult:
        page = await self.query_service.list(query)
        return ControllerResult(200, page.to_dict())

    async def count(self, query: dict[str, Any]) -> ControllerResult:
        return ControllerResult(200, await self.query_service.count(query))

    async def get_by_id(self, id: Any) -> ControllerResult:
        if self.is_composite:
            item = await self._lookup(self._id_facet(id))
        else:
            item = await self.model.get(self._id_facet(id))
        if not item:
            return ControllerResult(404)
        return ControllerResult(200, item)

    async def create(self, body: Any, actor: Any = None) -> ControllerResult:
        """Create a record, stamping createdBy from the actor when known.

        A missing or non-object body is treated as an empty record.
        """
        payload = dict(body) if isinstance(body, Mapping) else {}
        if actor:
            created_by = None
            for name in ("id", "user", "sub"):
                created_by = actor_field(actor, name)
                if created_by is not None:
                    break
            if created_by:
                payload["createdBy"] = created_by
        created = await self.model.create(payload)
        return ControllerResult(201, created)

    async def update(self, changes: Any) -> ControllerResult:
        """Update a record.

        For composite keys, missing key fields are filled in from the
        existing record found by the first key field.
        """
        payload = dict(changes) if isinstance(changes, Mapping) else {}
        if self.is_composite:
            missing = [name for name in self.key_names if name not in payload]
            primary = self.key_names[0]
            if missing and isinstance(payload.get(primary), str):
                existing = await self._lookup({primary: payload[primary]})
                if existing:
                    for name in missing:
                        if existing.get(name) is not None:
                            payload[name] = existing[name]
        updated = await self.model.update(payload)
        return ControllerResult(200, updated)

    async def delete_by_id(self, id: Any) -> ControllerResult:
        if self.is_composite:
            existing = await self._lookup(self._id_facet(id))
            if not existing:
                return ControllerResult(404)
            key: Any = {name: existing.get(name) for name in self.key_names}
        else:
            key = self._id_facet(id)[self.pk_name]
        deleted = await self.model.delete(key)
        if not deleted.data:
            return ControllerResult(404)
        return ControllerResult(200, deleted.to_dict())

    # --- Route handlers ---

    async def _handle_list(self, call: RouteCall) -> ControllerResult:
        return await self.list(call.query)

    async def _handle_count(self, call: RouteCall) -> ControllerResult:
        return await self.count(call.query)

    async def _handle_get(self, call: RouteCall) -> ControllerResult:
        return await self.get_by_id(call.path_params[self.pk_name])

    async def _handle_create(self, call: RouteCall) -> ControllerResult:
        return await self.create(call.body, call.actor)

    async def _handle_update(self, call: RouteCall) -> ControllerResult:
        return await self.update(call.body)

    async def _handle_delete(self, call: RouteCall) -> ControllerResult:
        return await self.delete_by_id(call.path_params[self.pk_name])
