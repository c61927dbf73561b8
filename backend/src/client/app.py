"""Top-level client coordinator: wires services and mounts components on sign-in."""
import logging
from typing import Any

import httpx

from client.api_client import LinkStackClient, create_http_client
from client.app_state import AppState, AppStateManager
from client.auth import SIGNED_IN, AuthService
from client.bookmark_form import BookmarkForm, FormDrawer
from client.bookmark_list import BookmarkList
from client.config import ClientSettings, get_client_settings
from client.edit_dialog import EditDialog
from client.events import EventBus
from client.preferences import PreferenceStore, SettingsService
from client.rendering import ListView, VirtualListView
from client.toast import ToastQueue
from client.unread_limit import UnreadLimitGuard
from client.url_state import UrlState
from client.view_toggle import ViewToggle

logger = logging.getLogger(__name__)


class LinkStackApp:
    """
    Owns the shared client services and the component lifecycle.

    Components are created and mounted the first time the user is authenticated,
    and unmounted on sign-out.
    """

    def __init__(
        self,
        api: LinkStackClient,
        image_client: httpx.AsyncClient,
        *,
        preferences: PreferenceStore | None = None,
        url_state: UrlState | None = None,
        view: ListView | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.api = api
        self.image_client = image_client
        self.bus = EventBus()
        self.state = AppStateManager()
        self.auth = AuthService(api)
        self.toasts = ToastQueue(default_duration=self.settings.toast_duration_seconds)
        self.preferences = preferences or PreferenceStore()
        self.url_state = url_state or UrlState()
        self.view = view or VirtualListView()
        self.user_settings = SettingsService(self.preferences, self.bus)

        self.bookmark_list: BookmarkList | None = None
        self.form: BookmarkForm | None = None
        self.drawer: FormDrawer | None = None
        self.edit_dialog: EditDialog | None = None
        self.view_toggle: ViewToggle | None = None

        self.auth.on_auth_state_change(self._handle_auth_change)
        self.state.subscribe(self._handle_state_change)

    async def start(self, token: str | None = None) -> None:
        """
        Restore a session if a token is available; otherwise stay signed out.

        Without an explicit token the configured `api_token` is used.
        """
        token = token or self.settings.api_token
        if token:
            await self.auth.sign_in(token)

    async def _handle_auth_change(self, event: str, user: dict[str, Any] | None) -> None:
        signed_in = event == SIGNED_IN and user is not None
        await self.state.set_state(AppState.AUTHENTICATED if signed_in else AppState.UNAUTHENTICATED)

    async def _handle_state_change(self, new_state: AppState, _previous: AppState) -> None:
        if new_state == AppState.AUTHENTICATED and not self.state.components_initialized:
            await self._mount_components()
        elif new_state == AppState.UNAUTHENTICATED and self.state.components_initialized:
            self._unmount_components()

    async def _mount_components(self) -> None:
        self.edit_dialog = EditDialog(self.api, self.bus, self.toasts)
        self.bookmark_list = BookmarkList(
            self.api,
            self.view,
            self.bus,
            self.url_state,
            self.preferences,
            self.toasts,
            search_delay=self.settings.search_debounce_seconds,
            on_edit=self.edit_dialog.open,
        )
        self.drawer = FormDrawer(self.bus)
        guard = UnreadLimitGuard(
            self.user_settings,
            self.api,
            self.toasts,
            highlight_unread=self.bookmark_list.highlight_random_unread,
        )
        self.form = BookmarkForm(
            self.api, self.bus, self.toasts, self.drawer, guard, self.image_client,
        )
        self.view_toggle = ViewToggle(self.preferences, self.bus)

        self.view_toggle.mount()
        self.drawer.mount()
        await self.form.mount()
        await self.bookmark_list.mount()
        self.state.mark_components_initialized()
        logger.info("Components mounted")

    def _unmount_components(self) -> None:
        if self.bookmark_list is not None:
            self.bookmark_list.unmount()
        if self.form is not None:
            self.form.unmount()
        if self.drawer is not None:
            self.drawer.unmount()
        self.bookmark_list = self.form = self.drawer = None
        self.edit_dialog = self.view_toggle = None
        self.toasts.clear()
        self.state.reset_components_initialized()
        logger.info("Components unmounted")

    async def aclose(self) -> None:
        self._unmount_components()
        await self.image_client.aclose()
        await self.api.aclose()


def create_app(settings: ClientSettings | None = None) -> LinkStackApp:
    """Build a LinkStackApp from LINKSTACK_* settings."""
    settings = settings or get_client_settings()
    http = create_http_client(settings.api_url)
    return LinkStackApp(
        LinkStackClient(http),
        httpx.AsyncClient(http2=True),
        preferences=PreferenceStore(settings.preferences_path),
        settings=settings,
    )
