"""Action/filter hooks the host fires at its lifecycle points.

Actions run callbacks for their side effects; filters thread a value
through each callback and return the result. Callbacks may be sync or
async and run in ascending priority order.

Usage:
    from sunset.lib.hooks import hooks, PAGE_QUERY_EXCLUDE

    hooks.add_filter(PAGE_QUERY_EXCLUDE, exclude_drafts, priority=5)
    excluded = await hooks.apply_filters(PAGE_QUERY_EXCLUDE, set(), db_session, page_type="post")
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from sunset.lib import observability

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered callback with its priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Registry of action and filter callbacks keyed by hook name."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(self, hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
        """Register an action callback. Lower priorities run first."""
        self._actions[hook_name].append(HookHandler(priority=priority, callback=callback))
        self._actions[hook_name].sort()

    def add_filter(self, hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
        """Register a filter callback. Lower priorities run first."""
        self._filters[hook_name].append(HookHandler(priority=priority, callback=callback))
        self._filters[hook_name].sort()

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        return self._remove(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        return self._remove(self._filters, hook_name, callback)

    @staticmethod
    def _remove(table: dict[str, list[HookHandler]], hook_name: str, callback: Callable) -> bool:
        handlers = table.get(hook_name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Run every action callback registered for ``hook_name``."""
        with observability.span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in list(self._actions.get(hook_name, [])):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every filter callback and return the result.

        Each callback receives the current value followed by ``args`` and
        ``kwargs`` and must return the (possibly replaced) value.
        """
        with observability.span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in list(self._filters.get(hook_name, [])):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        """Clear all registered hooks. Useful for testing."""
        self._actions.clear()
        self._filters.clear()


# Registry shared by the application
hooks = HookRegistry()


# Actions
AFTER_PAGE_SAVE = "after_page_save"
PAGE_EXPIRED = "page_expired"
EXPIRATION_SAVED = "expiration_saved"
PUBLIC_REQUEST = "public_request"

# Filters
PAGE_QUERY_EXCLUDE = "page_query_exclude"
NAV_MENU_ITEMS = "nav_menu_items"
PAGE_ACCESS = "page_access"
