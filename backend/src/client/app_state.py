"""Application state holder: authentication status and component lifecycle."""
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

logger = logging.getLogger(__name__)


class AppState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


StateListener = Callable[[AppState, AppState], Awaitable[None] | None]


class AppStateManager:
    """
    Explicitly constructed state holder, passed to whoever owns the top-level view.

    Listeners receive `(new_state, previous_state)` and are only called on an
    actual change.
    """

    def __init__(self) -> None:
        self._state = AppState.UNAUTHENTICATED
        self._listeners: list[StateListener] = []
        self._components_initialized = False

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == AppState.AUTHENTICATED

    @property
    def components_initialized(self) -> bool:
        return self._components_initialized

    async def set_state(self, new_state: AppState) -> None:
        if new_state == self._state:
            return
        previous = self._state
        self._state = new_state
        logger.info("App state %s -> %s", previous, new_state)
        for listener in list(self._listeners):
            result = listener(new_state, previous)
            if inspect.isawaitable(result):
                await result

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def mark_components_initialized(self) -> None:
        self._components_initialized = True

    def reset_components_initialized(self) -> None:
        self._components_initialized = False
