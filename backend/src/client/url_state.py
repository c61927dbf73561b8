"""
Browser-style location and history for the client.

Holds the query string the list view is synchronized with (`search`, `sort`,
`filter`). `replace_state`/`push_state` never notify; `back`/`forward` move
through history and notify popstate listeners, like a browser does.
"""
import logging
from collections.abc import Awaitable, Callable, Mapping

import httpx

logger = logging.getLogger(__name__)

SEARCH_PARAM = "search"
SORT_PARAM = "sort"
FILTER_PARAM = "filter"

PopstateListener = Callable[[], Awaitable[None]]


def apply_params(url: httpx.URL, updates: Mapping[str, str | None]) -> httpx.URL:
    """Set the given query params; None or empty values remove the param."""
    for name, value in updates.items():
        url = url.copy_set_param(name, value) if value else url.copy_remove_param(name)
    return url


class UrlState:
    """Session history of locations with popstate notification."""

    def __init__(self, location: str = "/") -> None:
        self._entries: list[httpx.URL] = [httpx.URL(location)]
        self._index = 0
        self._listeners: list[PopstateListener] = []

    @property
    def location(self) -> str:
        return str(self._entries[self._index])

    @property
    def params(self) -> httpx.QueryParams:
        return self._entries[self._index].params

    def get(self, name: str) -> str | None:
        """Return a query param, treating an empty value as absent."""
        return self.params.get(name) or None

    def replace_state(self, updates: Mapping[str, str | None]) -> None:
        self._entries[self._index] = apply_params(self._entries[self._index], updates)

    def push_state(self, updates: Mapping[str, str | None]) -> None:
        new_url = apply_params(self._entries[self._index], updates)
        # A new entry discards any forward history
        del self._entries[self._index + 1:]
        self._entries.append(new_url)
        self._index += 1

    def navigate(self, location: str) -> None:
        """Load a new location as a fresh history entry (no popstate)."""
        del self._entries[self._index + 1:]
        self._entries.append(httpx.URL(location))
        self._index += 1

    def add_popstate_listener(self, listener: PopstateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def back(self) -> bool:
        """Go one entry back. Returns False when already at the oldest entry."""
        if self._index == 0:
            return False
        self._index -= 1
        await self._dispatch_popstate()
        return True

    async def forward(self) -> bool:
        """Go one entry forward. Returns False when already at the newest entry."""
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        await self._dispatch_popstate()
        return True

    async def _dispatch_popstate(self) -> None:
        logger.debug("popstate: %s", self.location)
        for listener in list(self._listeners):
            await listener()
