"""Client-side session: holds the bearer token and the signed-in user."""
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from client.api_client import LinkStackClient
from client.api_errors import ApiError, LinkStackError

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, dict[str, Any] | None], Awaitable[None] | None]


class AuthService:
    """
    Session holder for the API client.

    The OAuth flow itself happens elsewhere (the identity provider); this service is
    handed the resulting session token and resolves it to a user via `/users/me`.
    """

    def __init__(self, api: LinkStackClient) -> None:
        self._api = api
        self._user: dict[str, Any] | None = None
        self._listeners: list[AuthListener] = []

    @property
    def user(self) -> dict[str, Any] | None:
        return self._user

    async def sign_in(self, token: str) -> dict[str, Any]:
        """
        Adopt a session token and load its user.

        Raises:
            LinkStackError: The token was rejected or the API is unreachable. The
                previous session is cleared in that case.
        """
        self._api.set_token(token)
        try:
            user = await self._api.get_me()
        except LinkStackError:
            self._api.set_token(None)
            self._user = None
            raise
        self._user = user
        await self._notify(SIGNED_IN, user)
        return user

    async def sign_out(self) -> None:
        self._api.set_token(None)
        self._user = None
        await self._notify(SIGNED_OUT, None)

    async def get_current_user(self) -> dict[str, Any] | None:
        """The signed-in user; an expired or revoked token signs the session out."""
        if not self._api.token:
            return None
        if self._user is not None:
            return self._user
        try:
            self._user = await self._api.get_me()
        except ApiError as e:
            if e.category != "auth":
                raise
            logger.info("Stored session is no longer valid")
            await self.sign_out()
            return None
        return self._user

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, event: str, user: dict[str, Any] | None) -> None:
        for listener in list(self._listeners):
            result = listener(event, user)
            if inspect.isawaitable(result):
                await result
