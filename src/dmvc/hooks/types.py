"""Hook system types.

Defines the lifecycle points a model hook can attach to and the
signature hook functions must follow.
"""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any


class HookPoint(Enum):
    """Lifecycle points around model writes."""

    BEFORE_CREATE = "before_create"
    AFTER_CREATE = "after_create"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"


# Hook function signature: (model, payload) -> None, sync or async.
# Payload is the validated record (create), the change-set (before_update),
# the merged record (after_update), the key (before_delete) or the deleted
# record(s) (after_delete).
HookFn = Callable[[Any, Any], Awaitable[None] | None]

HOOK_MARKER = "__dmvc_hook_points__"
