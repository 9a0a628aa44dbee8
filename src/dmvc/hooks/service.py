"""Hook execution.

Hooks at a lifecycle point run sequentially in registration order.
Errors are not caught: a failing before-hook stops the write, a failing
after-hook surfaces after the write has already happened.
"""

import inspect
import logging
from typing import Any

from dmvc.hooks.registry import HookRegistry
from dmvc.hooks.types import HookPoint

logger = logging.getLogger(__name__)


async def run_hooks(
    registry: HookRegistry,
    point: HookPoint,
    model: Any,
    payload: Any,
) -> None:
    """Execute the hooks registered for a point.

    Args:
        registry: The model's hook registry
        point: The lifecycle point being run
        model: Model instance passed as the hook's first argument
        payload: Record, change-set or key for the operation
    """
    for hook_fn in registry.get(point):
        logger.debug(
            "Running %s hook %s on %s",
            point.value,
            getattr(hook_fn, "__name__", hook_fn),
            type(model).__name__,
        )
        result = hook_fn(model, payload)
        if inspect.isawaitable(result):
            await result
