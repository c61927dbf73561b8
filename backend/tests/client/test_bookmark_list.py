"""
Tests for the bookmark list component.

Covers render serialization, the search debounce, URL/preference precedence,
popstate handling and the per-entry actions.
"""
import asyncio
import random

import pytest

from client.api_errors import NetworkError
from client.bookmark_list import (
    BookmarkList,
    ListState,
    build_entries,
    filter_bookmarks,
    results_info,
)
from client.events import BOOKMARK_CREATED, BOOKMARK_UPDATED, EventBus
from client.preferences import FILTER_KEY, SORT_KEY, PreferenceStore
from client.rendering import (
    DELETE_BUTTON,
    LOAD_ERROR_MESSAGE,
    READ_BUTTON,
    Screen,
    VirtualListView,
)
from client.toast import ToastKind, ToastQueue
from client.url_state import UrlState
from schemas.bookmark import BookmarkSort, ReadFilter
from tests.client.fakes import FakeStore, make_bookmark

SEARCH_DELAY = 0.01


@pytest.fixture
def view() -> VirtualListView:
    return VirtualListView()


@pytest.fixture
def toasts() -> ToastQueue:
    return ToastQueue(default_duration=0, exit_delay=0)


@pytest.fixture
def preferences() -> PreferenceStore:
    return PreferenceStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore([
        make_bookmark(url="https://a.example/", page_title="Alpha"),
        make_bookmark(url="https://b.example/", page_title="Beta"),
        make_bookmark(url="https://c.example/", page_title="Gamma", is_read=True),
    ])


def make_list(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
    url_state: UrlState | None = None,
    **kwargs: object,
) -> BookmarkList:
    return BookmarkList(
        store,
        view,
        bus,
        url_state or UrlState(),
        preferences,
        toasts,
        search_delay=SEARCH_DELAY,
        **kwargs,
    )


@pytest.fixture
def bookmark_list(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> BookmarkList:
    return make_list(store, view, bus, preferences, toasts)


# =============================================================================
# Pure helpers
# =============================================================================


def test__filter_bookmarks__status_and_search_commute() -> None:
    """Applying the read filter and the search in either order gives the same result."""
    bookmarks = [
        make_bookmark(page_title="Python tips", is_read=True),
        make_bookmark(page_title="Python news"),
        make_bookmark(page_title="Rust news"),
    ]

    status_first = filter_bookmarks(bookmarks, ReadFilter.UNREAD, "python")
    search_first = filter_bookmarks(
        filter_bookmarks(bookmarks, ReadFilter.ALL, "python"), ReadFilter.UNREAD, "",
    )

    assert [b.id for b in status_first] == [b.id for b in search_first]
    assert [b.page_title for b in status_first] == ["Python news"]


def test__filter_bookmarks__search_covers_url_description_and_notes() -> None:
    bookmarks = [
        make_bookmark(url="https://needle.example/"),
        make_bookmark(meta_description="a NEEDLE here"),
        make_bookmark(notes="needle in notes"),
        make_bookmark(page_title="haystack"),
    ]
    assert len(filter_bookmarks(bookmarks, ReadFilter.ALL, "  Needle ")) == 3


def test__build_entries__parent_kept_as_context_for_matching_child() -> None:
    parent = make_bookmark(page_title="Reading list")
    child = make_bookmark(page_title="Deep dive", parent_id=parent.id)

    entries = build_entries([parent], {parent.id: [child]}, ReadFilter.ALL, "deep")

    assert len(entries) == 1
    assert entries[0].matched is False
    assert entries[0].children == [child]


def test__results_info__only_when_search_narrows() -> None:
    assert results_info(2, 5, "query") == "Showing 2 of 5 bookmarks"
    assert results_info(5, 5, "query") == ""
    assert results_info(2, 5, "") == ""


# =============================================================================
# Mount and render
# =============================================================================


async def test__mount__renders_unread_by_default(
    bookmark_list: BookmarkList,
    view: VirtualListView,
) -> None:
    await bookmark_list.mount()

    assert bookmark_list.state == ListState.RENDERED
    assert view.screen == Screen.LIST
    assert [e.bookmark.page_title for e in view.entries] == ["Alpha", "Beta"]
    assert bookmark_list.render_passes == 1


async def test__mount__shows_skeleton_only_on_first_load(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
) -> None:
    gate = asyncio.Event()
    store.gates["get_top_level"] = gate

    mount = asyncio.create_task(bookmark_list.mount())
    await asyncio.sleep(0)
    assert view.screen == Screen.SKELETON
    assert bookmark_list.state == ListState.LOADING
    gate.set()
    await mount

    store.gates["get_top_level"] = asyncio.Event()
    rerender = asyncio.create_task(bookmark_list.request_render())
    await asyncio.sleep(0)
    assert view.screen == Screen.LIST
    store.gates["get_top_level"].set()
    await rerender


async def test__render__empty_collection(
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    bookmark_list = make_list(FakeStore(), view, bus, preferences, toasts)

    await bookmark_list.mount()

    assert view.screen == Screen.EMPTY
    assert view.message == "No bookmarks yet"


async def test__render__no_search_results(
    bookmark_list: BookmarkList,
    view: VirtualListView,
) -> None:
    await bookmark_list.mount()
    bookmark_list.set_search("zzz")
    await asyncio.sleep(SEARCH_DELAY * 5)
    await bookmark_list.wait_for_pending()

    assert view.screen == Screen.NO_RESULTS
    assert view.message == 'No bookmarks match your search query "zzz"'


async def test__render__search_shows_result_count(
    bookmark_list: BookmarkList,
    view: VirtualListView,
) -> None:
    await bookmark_list.set_filter(ReadFilter.ALL)
    bookmark_list.set_search("alpha")
    await asyncio.sleep(SEARCH_DELAY * 5)
    await bookmark_list.wait_for_pending()

    assert [e.bookmark.page_title for e in view.entries] == ["Alpha"]
    assert view.info == "Showing 1 of 3 bookmarks"


async def test__render__load_failure_shows_error(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
) -> None:
    store.failures["get_top_level"] = NetworkError()

    await bookmark_list.mount()

    assert bookmark_list.state == ListState.ERROR
    assert view.screen == Screen.ERROR
    assert view.message == LOAD_ERROR_MESSAGE
    assert bookmark_list.render_passes == 1


async def test__render__stacks_start_collapsed(
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    parent = make_bookmark(page_title="Parent")
    child = make_bookmark(page_title="Child", parent_id=parent.id)
    loner = make_bookmark(page_title="Loner")
    bookmark_list = make_list(FakeStore([parent, child, loner]), view, bus, preferences, toasts)

    await bookmark_list.mount()

    stacked, single = view.entries
    assert stacked.stack_label == "Show stack"
    assert single.stack_label is None
    assert bookmark_list.toggle_stack(parent.id) is True
    assert stacked.stack_label == "Hide stack"
    assert bookmark_list.toggle_stack(loner.id) is None


# =============================================================================
# Render serialization
# =============================================================================


async def test__request_render__overlapping_requests_never_interleave(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
) -> None:
    """N overlapping requests produce N complete, non-overlapping passes."""
    await bookmark_list.mount()
    store.log.clear()
    store.delay = 0.005

    await asyncio.gather(*(bookmark_list.request_render() for _ in range(5)))

    assert store.log == ["start", "end"] * 5
    assert bookmark_list.render_passes == 6
    assert view.render_count == 6


async def test__request_render__queued_pass_uses_latest_state(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
) -> None:
    """A render queued behind an in-flight one reads the state current when it starts."""
    await bookmark_list.mount()
    gate = asyncio.Event()
    store.gates["get_top_level"] = gate

    first = asyncio.create_task(bookmark_list.request_render())
    await asyncio.sleep(0)
    second = asyncio.create_task(bookmark_list.set_filter(ReadFilter.READ))
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(first, second)

    assert [e.bookmark.page_title for e in view.entries] == ["Gamma"]


async def test__set_search__debounces_keystrokes(
    bookmark_list: BookmarkList,
    store: FakeStore,
) -> None:
    """Rapid keystrokes trigger a single render with the final query."""
    await bookmark_list.mount()
    passes = bookmark_list.render_passes

    for query in ("a", "al", "alp"):
        bookmark_list.set_search(query)
        await asyncio.sleep(SEARCH_DELAY / 4)
    await asyncio.sleep(SEARCH_DELAY * 5)
    await bookmark_list.wait_for_pending()

    assert bookmark_list.render_passes == passes + 1
    assert bookmark_list.search_query == "alp"
    assert len(store.called("get_top_level")) == passes + 1


async def test__clear_search__cancels_pending_debounce(bookmark_list: BookmarkList) -> None:
    await bookmark_list.mount()
    bookmark_list.set_search("beta")

    await bookmark_list.clear_search()
    await asyncio.sleep(SEARCH_DELAY * 5)
    await bookmark_list.wait_for_pending()

    assert bookmark_list.search_query == ""
    assert bookmark_list.render_passes == 2


# =============================================================================
# URL and preference state
# =============================================================================


async def test__mount__url_beats_stored_preference(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    preferences.set(SORT_KEY, "oldest")
    url_state = UrlState("/?sort=title-asc&filter=all&search=beta")
    bookmark_list = make_list(store, view, bus, preferences, toasts, url_state)

    await bookmark_list.mount()

    assert bookmark_list.sort_by == BookmarkSort.TITLE_ASC
    assert bookmark_list.filter_by == ReadFilter.ALL
    assert bookmark_list.search_query == "beta"
    assert store.called("get_top_level") == [BookmarkSort.TITLE_ASC]


async def test__mount__preference_used_without_url_param(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    preferences.set(SORT_KEY, "oldest")
    preferences.set(FILTER_KEY, "read")
    bookmark_list = make_list(store, view, bus, preferences, toasts, UrlState("/?sort=bogus"))

    await bookmark_list.mount()

    assert bookmark_list.sort_by == BookmarkSort.OLDEST
    assert bookmark_list.filter_by == ReadFilter.READ


async def test__mount__defaults_without_url_or_preference(bookmark_list: BookmarkList) -> None:
    await bookmark_list.mount()

    assert bookmark_list.sort_by == BookmarkSort.NEWEST
    assert bookmark_list.filter_by == ReadFilter.UNREAD
    assert bookmark_list.search_query == ""


async def test__set_sort__persists_preference_and_url(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    url_state = UrlState("/")
    bookmark_list = make_list(store, view, bus, preferences, toasts, url_state)
    await bookmark_list.mount()

    await bookmark_list.set_sort("title-asc")

    assert preferences.get(SORT_KEY) == "title-asc"
    assert url_state.get("sort") == "title-asc"
    assert url_state.get("filter") == "unread"
    assert url_state.get("search") is None
    assert store.called("get_top_level")[-1] == BookmarkSort.TITLE_ASC


async def test__popstate__rereads_state_from_url(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    url_state = UrlState("/?filter=all")
    bookmark_list = make_list(store, view, bus, preferences, toasts, url_state)
    await bookmark_list.mount()
    url_state.navigate("/?filter=read")

    assert await url_state.back() is True
    assert bookmark_list.filter_by == ReadFilter.ALL
    assert len(view.entries) == 3

    assert await url_state.forward() is True
    assert bookmark_list.filter_by == ReadFilter.READ
    assert [e.bookmark.page_title for e in view.entries] == ["Gamma"]
    assert bookmark_list.render_passes == 3


# =============================================================================
# Events
# =============================================================================


@pytest.mark.parametrize("event", [BOOKMARK_CREATED, BOOKMARK_UPDATED])
async def test__bookmark_events__trigger_rerender(
    bookmark_list: BookmarkList,
    bus: EventBus,
    event: str,
) -> None:
    await bookmark_list.mount()

    await bus.publish(event, None)

    assert bookmark_list.render_passes == 2


async def test__unmount__detaches_subscriptions(
    bookmark_list: BookmarkList,
    bus: EventBus,
) -> None:
    await bookmark_list.mount()
    bookmark_list.unmount()

    assert bus.handler_count(BOOKMARK_CREATED) == 0
    assert bus.handler_count(BOOKMARK_UPDATED) == 0
    await bus.publish(BOOKMARK_CREATED, None)
    assert bookmark_list.render_passes == 1


# =============================================================================
# Entry actions
# =============================================================================


async def test__toggle_read__updates_in_place(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
    toasts: ToastQueue,
) -> None:
    await bookmark_list.mount()
    target = view.entries[0].bookmark
    render_count = view.render_count

    updated = await bookmark_list.toggle_read(target.id)

    assert updated is not None
    assert updated.is_read is True
    assert view.entries[0].bookmark.is_read is True
    assert view.control(target.id, READ_BUTTON).label == "Mark as Unread"
    assert view.render_count == render_count
    assert store.called("toggle_read_status") == [(target.id, True)]
    assert toasts.visible[-1].message == "Marked as read"


async def test__toggle_read__shows_busy_state_while_in_flight(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
) -> None:
    await bookmark_list.mount()
    target = view.entries[0].bookmark
    gate = asyncio.Event()
    store.gates["toggle_read_status"] = gate

    task = asyncio.create_task(bookmark_list.toggle_read(target.id))
    await asyncio.sleep(0)
    control = view.control(target.id, READ_BUTTON)
    assert control.label == "Updating..."
    assert control.disabled is True

    gate.set()
    await task
    assert view.control(target.id, READ_BUTTON).disabled is False


async def test__toggle_read__failure_restores_button(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
    toasts: ToastQueue,
) -> None:
    await bookmark_list.mount()
    target = view.entries[0].bookmark
    store.failures["toggle_read_status"] = NetworkError()

    assert await bookmark_list.toggle_read(target.id) is None

    control = view.control(target.id, READ_BUTTON)
    assert control.label == "Mark as Read"
    assert control.busy is False
    assert view.entries[0].bookmark.is_read is False
    assert toasts.visible[-1].kind == ToastKind.ERROR
    assert toasts.visible[-1].message == "Failed to update read status. Please try again."


async def test__delete__removes_entry(
    bookmark_list: BookmarkList,
    view: VirtualListView,
    toasts: ToastQueue,
) -> None:
    await bookmark_list.mount()
    target = view.entries[0].bookmark

    assert await bookmark_list.delete(target.id) is True

    assert target.id not in view.visible_ids()
    assert bookmark_list.get_rendered(target.id) is None
    assert toasts.visible[-1].message == "Bookmark deleted successfully"


async def test__delete__last_entry_shows_empty_state(
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    only = make_bookmark()
    bookmark_list = make_list(FakeStore([only]), view, bus, preferences, toasts)
    await bookmark_list.mount()

    await bookmark_list.delete(only.id)

    assert view.screen == Screen.EMPTY


async def test__delete__last_matching_child_drops_context_parent(
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    parent = make_bookmark(url="https://list.example/", page_title="Reading list")
    child = make_bookmark(url="https://deep.example/", page_title="Deep dive", parent_id=parent.id)
    bookmark_list = make_list(FakeStore([parent, child]), view, bus, preferences, toasts)
    await bookmark_list.set_filter(ReadFilter.ALL)
    bookmark_list.set_search("deep")
    await asyncio.sleep(SEARCH_DELAY * 5)
    await bookmark_list.wait_for_pending()
    assert view.visible_ids() == [parent.id]

    assert await bookmark_list.delete(child.id) is True

    assert view.visible_ids() == []
    assert bookmark_list.get_rendered(parent.id) is None
    assert view.screen == Screen.EMPTY


async def test__delete__failure_restores_button(
    bookmark_list: BookmarkList,
    store: FakeStore,
    view: VirtualListView,
    toasts: ToastQueue,
) -> None:
    await bookmark_list.mount()
    target = view.entries[0].bookmark
    store.failures["delete"] = NetworkError()

    assert await bookmark_list.delete(target.id) is False

    control = view.control(target.id, DELETE_BUTTON)
    assert control.label == "Remove Bookmark"
    assert control.busy is False
    assert target.id in view.visible_ids()
    assert toasts.visible[-1].message == "Failed to delete bookmark. Please try again."


async def test__edit__hands_off_to_dialog(
    store: FakeStore,
    view: VirtualListView,
    bus: EventBus,
    preferences: PreferenceStore,
    toasts: ToastQueue,
) -> None:
    opened = []

    async def on_edit(bookmark_id: object) -> None:
        opened.append(bookmark_id)

    bookmark_list = make_list(store, view, bus, preferences, toasts, on_edit=on_edit)
    await bookmark_list.mount()
    target = view.entries[0].bookmark

    await bookmark_list.edit(target.id)

    assert opened == [target.id]


async def test__edit__without_dialog_raises(bookmark_list: BookmarkList) -> None:
    await bookmark_list.mount()
    with pytest.raises(RuntimeError):
        await bookmark_list.edit(bookmark_list.entries[0].bookmark.id)


async def test__highlight_random_unread__picks_unread_entry(
    bookmark_list: BookmarkList,
    view: VirtualListView,
) -> None:
    await bookmark_list.set_filter(ReadFilter.ALL)

    chosen = bookmark_list.highlight_random_unread(random.Random(0))

    assert chosen is not None
    assert bookmark_list.get_rendered(chosen).is_read is False
    assert view.highlighted == chosen
    assert view.scrolled_to == chosen
