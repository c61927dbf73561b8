"""Grid/list layout preference."""
import logging
from enum import StrEnum

from client.events import VIEW_CHANGED, EventBus
from client.preferences import VIEW_PREFERENCE_KEY, PreferenceStore

logger = logging.getLogger(__name__)


class ViewMode(StrEnum):
    GRID = "grid"
    LIST = "list"


class ViewToggle:
    def __init__(self, preferences: PreferenceStore, bus: EventBus) -> None:
        self._preferences = preferences
        self._bus = bus
        self.current = ViewMode.GRID

    def mount(self) -> None:
        saved = self._preferences.get(VIEW_PREFERENCE_KEY)
        if saved in (ViewMode.GRID, ViewMode.LIST):
            self.current = ViewMode(saved)
        elif saved is not None:
            logger.warning("Ignoring unknown view preference %r", saved)

    async def set_view(self, view: ViewMode | str) -> None:
        view = ViewMode(view)
        if view == self.current:
            return
        self.current = view
        self._preferences.set(VIEW_PREFERENCE_KEY, str(view))
        await self._bus.publish(VIEW_CHANGED, {"view": str(view)})
