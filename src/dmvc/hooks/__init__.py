"""Model lifecycle hook system.

Provides extension points around model writes:
- before/after create: receive the validated record / the written record
- before/after update: receive the change-set / the merged record
- before/after delete: receive the key / the deleted record(s)

Usage:
    from dmvc.hooks import before_create

    class ContactModel(BaseModel):
        @before_create
        async def normalise_email(self, record):
            record["email"] = record["email"].lower()
"""

from dmvc.hooks.registry import (
    HookRegistry,
    after_create,
    after_delete,
    after_update,
    before_create,
    before_delete,
    before_update,
)
from dmvc.hooks.service import run_hooks
from dmvc.hooks.types import HookFn, HookPoint

__all__ = [
    "HookFn",
    "HookPoint",
    "HookRegistry",
    "after_create",
    "after_delete",
    "after_update",
    "before_create",
    "before_delete",
    "before_update",
    "run_hooks",
]
