"""
Rendering boundary for the bookmark list.

Components talk to a `ListView`; `VirtualListView` is an in-memory implementation
that records what is on screen so it can be inspected.
"""
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from schemas.bookmark import BookmarkResponse

READ_BUTTON = "read"
DELETE_BUTTON = "delete"

MARK_READ_LABEL = "Mark as Read"
MARK_UNREAD_LABEL = "Mark as Unread"
UPDATING_LABEL = "Updating..."
REMOVE_LABEL = "Remove Bookmark"
DELETING_LABEL = "Deleting..."
SHOW_STACK_LABEL = "Show stack"
HIDE_STACK_LABEL = "Hide stack"

LOAD_ERROR_MESSAGE = "Failed to load bookmarks. Please try refreshing the page."


class Screen(StrEnum):
    """What the list container currently shows."""

    BLANK = "blank"
    SKELETON = "skeleton"
    LIST = "list"
    EMPTY = "empty"
    NO_RESULTS = "no-results"
    ERROR = "error"


@dataclass
class ControlState:
    """Label and busy state of an entry's button."""

    label: str
    busy: bool = False

    @property
    def disabled(self) -> bool:
        return self.busy


def read_label(is_read: bool) -> str:
    return MARK_UNREAD_LABEL if is_read else MARK_READ_LABEL


@dataclass
class BookmarkEntry:
    """
    A top-level bookmark with the children visible under the current filters.

    `matched` is False when the parent only appears as context for matching children.
    """

    bookmark: BookmarkResponse
    children: list[BookmarkResponse] = field(default_factory=list)
    matched: bool = True
    expanded: bool = False

    @property
    def has_stack(self) -> bool:
        return bool(self.children)

    @property
    def stack_label(self) -> str | None:
        """Label of the stack toggle; None when the toggle is hidden."""
        if not self.has_stack:
            return None
        return HIDE_STACK_LABEL if self.expanded else SHOW_STACK_LABEL

    def bookmarks(self) -> list[BookmarkResponse]:
        return [self.bookmark, *self.children]


class ListView(Protocol):
    """Rendering surface the bookmark list draws into."""

    def show_skeleton(self) -> None: ...

    def show_entries(self, entries: list[BookmarkEntry], info: str) -> None: ...

    def show_empty(self) -> None: ...

    def show_no_results(self, query: str) -> None: ...

    def show_error(self, message: str) -> None: ...

    def set_control(self, bookmark_id: UUID, control: str, state: ControlState) -> None: ...

    def update_bookmark(self, bookmark: BookmarkResponse) -> None: ...

    def remove_bookmark(self, bookmark_id: UUID) -> int: ...

    def set_stack_expanded(self, bookmark_id: UUID, expanded: bool) -> None: ...

    def highlight(self, bookmark_id: UUID) -> None: ...


class VirtualListView:
    """In-memory ListView."""

    def __init__(self) -> None:
        self.screen = Screen.BLANK
        self.entries: list[BookmarkEntry] = []
        self.info = ""
        self.message = ""
        self.controls: dict[tuple[UUID, str], ControlState] = {}
        self.highlighted: UUID | None = None
        self.scrolled_to: UUID | None = None
        self.render_count = 0

    def _reset(self, screen: Screen, message: str = "") -> None:
        self.screen = screen
        self.entries = []
        self.controls = {}
        self.info = ""
        self.message = message

    def show_skeleton(self) -> None:
        self._reset(Screen.SKELETON)

    def show_entries(self, entries: list[BookmarkEntry], info: str) -> None:
        self._reset(Screen.LIST)
        self.entries = entries
        self.info = info
        for entry in entries:
            for bookmark in entry.bookmarks():
                self.controls[(bookmark.id, READ_BUTTON)] = ControlState(read_label(bookmark.is_read))
                self.controls[(bookmark.id, DELETE_BUTTON)] = ControlState(REMOVE_LABEL)
        self.render_count += 1

    def show_empty(self) -> None:
        self._reset(Screen.EMPTY, "No bookmarks yet")
        self.render_count += 1

    def show_no_results(self, query: str) -> None:
        self._reset(Screen.NO_RESULTS, f'No bookmarks match your search query "{query}"')
        self.render_count += 1

    def show_error(self, message: str) -> None:
        self._reset(Screen.ERROR, message)
        self.render_count += 1

    def set_control(self, bookmark_id: UUID, control: str, state: ControlState) -> None:
        self.controls[(bookmark_id, control)] = state

    def control(self, bookmark_id: UUID, control: str) -> ControlState | None:
        return self.controls.get((bookmark_id, control))

    def update_bookmark(self, bookmark: BookmarkResponse) -> None:
        for entry in self.entries:
            if entry.bookmark.id == bookmark.id:
                entry.bookmark = bookmark
                return
            for index, child in enumerate(entry.children):
                if child.id == bookmark.id:
                    entry.children[index] = bookmark
                    return

    def remove_bookmark(self, bookmark_id: UUID) -> int:
        """Remove an entry (or child) and return how many top-level entries remain."""
        remaining = []
        for entry in self.entries:
            if entry.bookmark.id == bookmark_id:
                continue
            entry.children = [c for c in entry.children if c.id != bookmark_id]
            remaining.append(entry)
        self.entries = remaining
        self.controls = {k: v for k, v in self.controls.items() if k[0] != bookmark_id}
        return len(self.entries)

    def set_stack_expanded(self, bookmark_id: UUID, expanded: bool) -> None:
        for entry in self.entries:
            if entry.bookmark.id == bookmark_id:
                entry.expanded = expanded

    def highlight(self, bookmark_id: UUID) -> None:
        self.highlighted = bookmark_id
        self.scrolled_to = bookmark_id

    def visible_ids(self) -> list[UUID]:
        """Ids of top-level entries in display order."""
        return [entry.bookmark.id for entry in self.entries]
