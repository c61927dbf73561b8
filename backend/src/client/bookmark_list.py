"""
Bookmark list component.

Renders the user's top-level bookmarks with their stacks, applying the read-status
filter, the search query and the sort order. Render requests are serialized: each
one waits for the render before it and then runs with the state current at that
moment, so passes never interleave and none is skipped.
"""
import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from uuid import UUID

from client.api_client import BookmarkStore
from client.api_errors import LinkStackError
from client.events import BOOKMARK_CREATED, BOOKMARK_UPDATED, EventBus
from client.preferences import FILTER_KEY, SORT_KEY, PreferenceStore
from client.rendering import (
    DELETE_BUTTON,
    DELETING_LABEL,
    LOAD_ERROR_MESSAGE,
    READ_BUTTON,
    REMOVE_LABEL,
    UPDATING_LABEL,
    BookmarkEntry,
    ControlState,
    ListView,
    read_label,
)
from client.toast import ToastQueue
from client.url_state import FILTER_PARAM, SEARCH_PARAM, SORT_PARAM, UrlState
from schemas.bookmark import BookmarkResponse, BookmarkSort, ReadFilter

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.3

DEFAULT_SORT = BookmarkSort.NEWEST
DEFAULT_FILTER = ReadFilter.UNREAD


class ListState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    RENDERED = "rendered"
    ERROR = "error"


def parse_sort(value: object) -> BookmarkSort | None:
    try:
        return BookmarkSort(value)
    except ValueError:
        return None


def parse_filter(value: object) -> ReadFilter | None:
    try:
        return ReadFilter(value)
    except ValueError:
        return None


def matches_read_filter(bookmark: BookmarkResponse, read_filter: ReadFilter) -> bool:
    if read_filter == ReadFilter.READ:
        return bookmark.is_read
    if read_filter == ReadFilter.UNREAD:
        return not bookmark.is_read
    return True


def matches_search(bookmark: BookmarkResponse, query: str) -> bool:
    """Case-insensitive substring match on title, description, url or notes."""
    needle = query.strip().lower()
    if not needle:
        return True
    fields = (bookmark.page_title, bookmark.meta_description, bookmark.url, bookmark.notes)
    return any(needle in (value or "").lower() for value in fields)


def filter_bookmarks(
    bookmarks: Iterable[BookmarkResponse],
    read_filter: ReadFilter,
    query: str,
) -> list[BookmarkResponse]:
    """Apply the read-status filter, then the search query."""
    by_status = [b for b in bookmarks if matches_read_filter(b, read_filter)]
    return [b for b in by_status if matches_search(b, query)]


def build_entries(
    top_level: list[BookmarkResponse],
    children_by_parent: dict[UUID, list[BookmarkResponse]],
    read_filter: ReadFilter,
    query: str,
) -> list[BookmarkEntry]:
    """
    Build the visible tree.

    Parents and children are filtered independently. A parent that does not match
    is still listed, as context, when at least one of its children does.
    """
    entries = []
    for bookmark in top_level:
        children = filter_bookmarks(children_by_parent.get(bookmark.id, []), read_filter, query)
        matched = bool(filter_bookmarks([bookmark], read_filter, query))
        if matched or children:
            entries.append(BookmarkEntry(bookmark=bookmark, children=children, matched=matched))
    return entries


def results_info(shown: int, total: int, query: str) -> str:
    if query and shown != total:
        return f"Showing {shown} of {total} bookmarks"
    return ""


class BookmarkList:
    """
    The bookmark list, bound to a store, a view and the shared client services.

    Call `mount()` to read the initial state and render; `unmount()` detaches every
    subscription and cancels a pending search.
    """

    def __init__(
        self,
        store: BookmarkStore,
        view: ListView,
        bus: EventBus,
        url_state: UrlState,
        preferences: PreferenceStore,
        toasts: ToastQueue,
        *,
        search_delay: float = SEARCH_DEBOUNCE_SECONDS,
        on_edit: Callable[[UUID], Awaitable[object]] | None = None,
    ) -> None:
        self._store = store
        self._view = view
        self._bus = bus
        self._url = url_state
        self._preferences = preferences
        self._toasts = toasts
        self._search_delay = search_delay
        self._on_edit = on_edit

        self.state = ListState.IDLE
        self.search_query = ""
        self.sort_by = DEFAULT_SORT
        self.filter_by = DEFAULT_FILTER
        self.render_passes = 0

        self._render_lock = asyncio.Lock()
        self._initial_load = True
        self._debounce: asyncio.TimerHandle | None = None
        self._pending: set[asyncio.Task] = set()
        self._subscriptions: list[Callable[[], None]] = []
        self._entries: list[BookmarkEntry] = []
        self._bookmarks: dict[UUID, BookmarkResponse] = {}

    # -- lifecycle ---------------------------------------------------------

    async def mount(self) -> None:
        self._load_state()
        self._subscriptions = [
            self._bus.subscribe(BOOKMARK_CREATED, self._on_bookmarks_changed),
            self._bus.subscribe(BOOKMARK_UPDATED, self._on_bookmarks_changed),
            self._url.add_popstate_listener(self._on_popstate),
        ]
        await self.request_render()

    def unmount(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []
        self._cancel_debounce()

    def _load_state(self) -> None:
        """Read search, sort and filter: URL param, then stored preference, then default."""
        self.search_query = self._url.get(SEARCH_PARAM) or ""
        self.sort_by = (
            parse_sort(self._url.get(SORT_PARAM))
            or parse_sort(self._preferences.get(SORT_KEY))
            or DEFAULT_SORT
        )
        self.filter_by = (
            parse_filter(self._url.get(FILTER_PARAM))
            or parse_filter(self._preferences.get(FILTER_KEY))
            or DEFAULT_FILTER
        )

    def _sync_url(self) -> None:
        self._url.replace_state({
            SEARCH_PARAM: self.search_query or None,
            SORT_PARAM: str(self.sort_by),
            FILTER_PARAM: str(self.filter_by),
        })

    async def _on_bookmarks_changed(self, _payload: object = None) -> None:
        await self.request_render()

    async def _on_popstate(self) -> None:
        self._cancel_debounce()
        self._load_state()
        await self.request_render()

    # -- rendering ---------------------------------------------------------

    async def request_render(self) -> None:
        """Queue a render behind any in-flight one and wait for it to finish."""
        async with self._render_lock:
            await self._render()

    async def _render(self) -> None:
        sort_by, read_filter, query = self.sort_by, self.filter_by, self.search_query
        try:
            if self._initial_load:
                self.state = ListState.LOADING
                self._view.show_skeleton()
            try:
                top_level = await self._store.get_top_level(sort_by)
                children = await asyncio.gather(
                    *(self._store.get_children(b.id, sort_by) for b in top_level),
                )
            except LinkStackError:
                logger.exception("Error rendering bookmarks")
                self.state = ListState.ERROR
                self._entries, self._bookmarks = [], {}
                self._view.show_error(LOAD_ERROR_MESSAGE)
                return

            children_by_parent = {b.id: list(c) for b, c in zip(top_level, children, strict=True)}
            self._entries = build_entries(top_level, children_by_parent, read_filter, query)
            self._bookmarks = {b.id: b for entry in self._entries for b in entry.bookmarks()}

            if self._entries:
                self._view.show_entries(
                    self._entries, results_info(len(self._entries), len(top_level), query),
                )
            elif query and top_level:
                self._view.show_no_results(query)
            else:
                self._view.show_empty()
            self.state = ListState.RENDERED
        finally:
            self._initial_load = False
            self.render_passes += 1

    # -- search / sort / filter -------------------------------------------

    def set_search(self, query: str) -> None:
        """
        Record a search keystroke.

        The render runs once typing pauses for the debounce delay; each call cancels
        and restarts the pending timer.
        """
        self._cancel_debounce()
        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(self._search_delay, self._fire_search, query.strip())

    def _fire_search(self, query: str) -> None:
        self._debounce = None
        task = asyncio.get_running_loop().create_task(self._apply_search(query))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    async def _apply_search(self, query: str) -> None:
        self.search_query = query
        self._sync_url()
        await self.request_render()

    async def clear_search(self) -> None:
        self._cancel_debounce()
        await self._apply_search("")

    async def wait_for_pending(self) -> None:
        """Wait until debounced searches that already fired have rendered."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def set_sort(self, sort_by: BookmarkSort | str) -> None:
        self.sort_by = BookmarkSort(sort_by)
        self._preferences.set(SORT_KEY, str(self.sort_by))
        self._sync_url()
        await self.request_render()

    async def set_filter(self, read_filter: ReadFilter | str) -> None:
        self.filter_by = ReadFilter(read_filter)
        self._preferences.set(FILTER_KEY, str(self.filter_by))
        self._sync_url()
        await self.request_render()

    # -- entry actions -----------------------------------------------------

    @property
    def entries(self) -> list[BookmarkEntry]:
        return self._entries

    def get_rendered(self, bookmark_id: UUID) -> BookmarkResponse | None:
        return self._bookmarks.get(bookmark_id)

    def toggle_stack(self, bookmark_id: UUID) -> bool | None:
        """Expand or collapse a stack; returns the new state, None if there is no stack."""
        entry = next((e for e in self._entries if e.bookmark.id == bookmark_id), None)
        if entry is None or not entry.has_stack:
            return None
        entry.expanded = not entry.expanded
        self._view.set_stack_expanded(bookmark_id, entry.expanded)
        return entry.expanded

    async def toggle_read(self, bookmark_id: UUID) -> BookmarkResponse | None:
        """
        Flip a bookmark's read status.

        The button shows "Updating..." while the request is in flight. On success the
        entry is updated in place; on failure the button is restored and an error
        toast is shown.
        """
        bookmark = self._bookmarks.get(bookmark_id)
        if bookmark is None:
            logger.warning("toggle_read on a bookmark that is not rendered: %s", bookmark_id)
            return None

        restore = ControlState(read_label(bookmark.is_read))
        self._view.set_control(bookmark_id, READ_BUTTON, ControlState(UPDATING_LABEL, busy=True))
        try:
            updated = await self._store.toggle_read_status(bookmark_id, not bookmark.is_read)
            restore = ControlState(read_label(updated.is_read))
        except LinkStackError:
            logger.exception("Error toggling read status")
            self._toasts.error("Failed to update read status. Please try again.")
            return None
        finally:
            self._view.set_control(bookmark_id, READ_BUTTON, restore)

        self._bookmarks[bookmark_id] = updated
        for entry in self._entries:
            if entry.bookmark.id == bookmark_id:
                entry.bookmark = updated
            entry.children = [updated if c.id == bookmark_id else c for c in entry.children]
        self._view.update_bookmark(updated)
        self._toasts.success(f"Marked as {'read' if updated.is_read else 'unread'}")
        return updated

    async def delete(self, bookmark_id: UUID) -> bool:
        """Delete a bookmark and remove it from the view without a full re-render."""
        self._view.set_control(bookmark_id, DELETE_BUTTON, ControlState(DELETING_LABEL, busy=True))
        deleted = False
        try:
            await self._store.delete(bookmark_id)
            deleted = True
        except LinkStackError:
            logger.exception("Error deleting bookmark")
            self._toasts.error("Failed to delete bookmark. Please try again.")
            return False
        finally:
            if not deleted:
                self._view.set_control(bookmark_id, DELETE_BUTTON, ControlState(REMOVE_LABEL))

        self._bookmarks.pop(bookmark_id, None)
        for entry in self._entries:
            entry.children = [c for c in entry.children if c.id != bookmark_id]
        # A parent shown only as context for matching children goes with its last child
        orphaned = [e.bookmark.id for e in self._entries if not e.matched and not e.children]
        self._entries = [
            e for e in self._entries
            if e.bookmark.id != bookmark_id and e.bookmark.id not in orphaned
        ]
        remaining = self._view.remove_bookmark(bookmark_id)
        for parent_id in orphaned:
            self._bookmarks.pop(parent_id, None)
            remaining = self._view.remove_bookmark(parent_id)
        self._toasts.success("Bookmark deleted successfully")
        if remaining == 0:
            self._view.show_empty()
        return True

    async def edit(self, bookmark_id: UUID) -> None:
        """Hand a bookmark over to the edit dialog."""
        if self._on_edit is None:
            raise RuntimeError("No edit dialog is attached to the bookmark list")
        await self._on_edit(bookmark_id)

    def highlight_random_unread(self, rng: random.Random | None = None) -> UUID | None:
        """Highlight and scroll to a random rendered unread bookmark."""
        unread = [b.id for b in self._bookmarks.values() if not b.is_read]
        if not unread:
            return None
        chosen = (rng or random).choice(unread)
        self._view.highlight(chosen)
        return chosen
