"""Publish/subscribe bus for cross-component notifications."""
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

BOOKMARK_CREATED = "bookmark-created"
BOOKMARK_UPDATED = "bookmark-updated"
SETTINGS_CHANGED = "settings-changed"
VIEW_CHANGED = "view-changed"

Handler = Callable[[Any], Awaitable[None] | None]


class EventBus:
    """
    Named-event bus. Handlers may be plain functions or coroutine functions.

    `publish` runs handlers in subscription order and awaits each one. A handler
    that raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a callable that removes it."""
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    async def publish(self, event: str, payload: Any = None) -> None:  # noqa: ANN401
        # Copy so handlers can unsubscribe while being notified
        for handler in list(self._handlers[event]):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %r failed", event)

    def handler_count(self, event: str) -> int:
        return len(self._handlers[event])
