"""Hook registry for models.

Each model class owns one HookRegistry. It is filled from decorated
methods when the class is defined, so registration order is the order
methods appear in the class body.
"""

from __future__ import annotations

from collections.abc import Callable

from dmvc.hooks.types import HOOK_MARKER, HookFn, HookPoint


class HookRegistry:
    """Ordered hook lists keyed by lifecycle point.

    Example:
        class TodoModel(BaseModel):
            @before_create
            async def stamp(self, record):
                record["title"] = record["title"].strip()

        TodoModel.hooks.get(HookPoint.BEFORE_CREATE)  # [stamp]
    """

    def __init__(self, hooks: dict[HookPoint, list[HookFn]] | None = None):
        self._hooks: dict[HookPoint, list[HookFn]] = {point: [] for point in HookPoint}
        for point, fns in (hooks or {}).items():
            self._hooks[point].extend(fns)

    def register(self, point: HookPoint, hook_fn: HookFn) -> None:
        """Append a hook for a lifecycle point.

        Args:
            point: The lifecycle point
            hook_fn: Function called as hook_fn(model, payload)
        """
        self._hooks[point].append(hook_fn)

    def get(self, point: HookPoint) -> list[HookFn]:
        """Hooks for a point, in registration order."""
        return list(self._hooks[point])

    def copy(self) -> HookRegistry:
        return HookRegistry(self._hooks)

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        for fns in self._hooks.values():
            fns.clear()

    def collect(self, namespace: dict[str, object]) -> None:
        """Register every decorated function found in a class namespace."""
        for value in namespace.values():
            for point in getattr(value, HOOK_MARKER, ()):
                self.register(point, value)


def _marker(point: HookPoint) -> Callable[[HookFn], HookFn]:
    def decorator(fn: HookFn) -> HookFn:
        points = list(getattr(fn, HOOK_MARKER, ()))
        points.append(point)
        setattr(fn, HOOK_MARKER, tuple(points))
        return fn

    return decorator


before_create = _marker(HookPoint.BEFORE_CREATE)
after_create = _marker(HookPoint.AFTER_CREATE)
before_update = _marker(HookPoint.BEFORE_UPDATE)
after_update = _marker(HookPoint.AFTER_UPDATE)
before_delete = _marker(HookPoint.BEFORE_DELETE)
after_delete = _marker(HookPoint.AFTER_DELETE)
