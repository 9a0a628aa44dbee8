"""DMVC - schema-validated models and REST controllers over a NoSQL store."""

from dmvc.auth import AuthCheckFn, check_access, require_auth
from dmvc.config import DEFAULT_PAGE_SIZE, StoreConfig
from dmvc.controller import BaseController, ControllerOptions
from dmvc.errors import (
    DmvcError,
    InvalidCursorError,
    Forbidden,
    InvalidKeyError,
    RecordNotFoundError,
    RecordValidationError,
    SchemaDefinitionError,
    Unauthorized,
)
from dmvc.hooks import (
    HookPoint,
    after_create,
    after_delete,
    after_update,
    before_create,
    before_delete,
    before_update,
)
from dmvc.model import BaseModel
from dmvc.query import QueryIntent, QueryService
from dmvc.storage import DynamoDBAdapter, IndexSpec, MemoryAdapter, Page, StorageAdapter
from dmvc.web import ControllerResult

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "AuthCheckFn",
    "BaseController",
    "BaseModel",
    "ControllerOptions",
    "ControllerResult",
    "DmvcError",
    "DynamoDBAdapter",
    "Forbidden",
    "HookPoint",
    "IndexSpec",
    "InvalidCursorError",
    "InvalidKeyError",
    "MemoryAdapter",
    "Page",
    "QueryIntent",
    "QueryService",
    "RecordNotFoundError",
    "RecordValidationError",
    "SchemaDefinitionError",
    "StorageAdapter",
    "StoreConfig",
    "Unauthorized",
    "after_create",
    "after_delete",
    "after_update",
    "before_create",
    "before_delete",
    "before_update",
    "check_access",
    "require_auth",
]
