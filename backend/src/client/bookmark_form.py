"""Add-bookmark form and the drawer that hosts it."""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
from pydantic import BaseModel, HttpUrl, ValidationError, field_validator

from client.api_client import BookmarkStore
from client.api_errors import (
    DuplicateBookmarkError,
    LinkStackError,
    MetadataFetchError,
    NetworkError,
)
from client.events import BOOKMARK_CREATED, EventBus
from client.image_probe import probe_image
from client.toast import ToastQueue
from client.unread_limit import UnreadLimitGuard
from schemas.bookmark import BookmarkMetadataResponse, BookmarkResponse

logger = logging.getLogger(__name__)

FALLBACK_PREVIEW_IMG = "/assets/linkstack-fallback.webp"
INVALID_URL_MESSAGE = "Please enter a valid URL starting with http:// or https://"
GENERIC_FAILURE_MESSAGE = "Failed to add bookmark. Please try again."
METADATA_WARNING_MESSAGE = "Couldn't load details for that page. Saved it with a basic title."

ImageProbe = Callable[[httpx.AsyncClient, str], Awaitable[bool]]


class NewBookmarkInput(BaseModel):
    """Validated form input."""

    url: HttpUrl
    parent_id: UUID | None = None
    notes: str | None = None

    @field_validator("parent_id", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


@dataclass
class FormFields:
    url: str = ""
    parent_id: str = ""
    notes: str = ""


def validation_errors(error: ValidationError) -> dict[str, str]:
    """Map pydantic errors onto form field names."""
    errors: dict[str, str] = {}
    for err in error.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        errors.setdefault(field, INVALID_URL_MESSAGE if field == "url" else err["msg"])
    return errors


def fallback_metadata(url: str) -> BookmarkMetadataResponse:
    """Metadata used when the target site cannot be scraped: the hostname as title."""
    return BookmarkMetadataResponse(
        page_title=httpx.URL(url).host or url,
        meta_description="",
        preview_img="",
    )


class FormDrawer:
    """Popover holding the add form. Closes itself when a bookmark is created."""

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self.is_open = False
        self._unsubscribe: Callable[[], None] | None = None

    def mount(self) -> None:
        self._unsubscribe = self._bus.subscribe(BOOKMARK_CREATED, lambda _payload: self.close())

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


class BookmarkForm:
    """
    Add-bookmark form.

    `submit()` runs the whole creation flow: validate the URL, check the unread
    limit, scrape metadata, probe the preview image, save, reset and announce
    `bookmark-created`. Each failure is reported through a field error or a toast
    and leaves the form usable.
    """

    def __init__(
        self,
        store: BookmarkStore,
        bus: EventBus,
        toasts: ToastQueue,
        drawer: FormDrawer,
        guard: UnreadLimitGuard,
        image_client: httpx.AsyncClient,
        probe: ImageProbe = probe_image,
    ) -> None:
        self._store = store
        self._bus = bus
        self._toasts = toasts
        self._drawer = drawer
        self._guard = guard
        self._image_client = image_client
        self._probe = probe

        self.fields = FormFields()
        self.field_errors: dict[str, str] = {}
        self.parent_options: list[tuple[UUID, str]] = []
        self.submitting = False
        self._unsubscribe: Callable[[], None] | None = None

    async def mount(self) -> None:
        self._unsubscribe = self._bus.subscribe(BOOKMARK_CREATED, self._on_bookmark_created)
        await self.refresh_parent_options()

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_bookmark_created(self, _payload: object = None) -> None:
        await self.refresh_parent_options()

    async def refresh_parent_options(self) -> None:
        """Reload the parent select with the current top-level bookmarks."""
        try:
            bookmarks = await self._store.get_top_level()
        except LinkStackError:
            logger.exception("Error loading parent bookmarks")
            return
        self.parent_options = [(b.id, b.page_title or b.url) for b in bookmarks]

    def reset(self) -> None:
        self.fields = FormFields()
        self.field_errors = {}

    async def _fetch_metadata(self, url: str) -> BookmarkMetadataResponse | None:
        """Scraped metadata, or None when the target site could not be scraped."""
        try:
            return await self._store.fetch_metadata(url)
        except MetadataFetchError as e:
            logger.warning("Metadata fetch failed for %s: %s", url, e.message)
            return None

    async def submit(self) -> BookmarkResponse | None:
        """Create a bookmark from the current fields. Returns it, or None on any failure."""
        if self.submitting:
            return None
        self.field_errors = {}

        try:
            data = NewBookmarkInput(
                url=self.fields.url.strip(),
                parent_id=self.fields.parent_id,
                notes=self.fields.notes,
            )
        except ValidationError as e:
            self.field_errors = validation_errors(e)
            return None
        url = self.fields.url.strip()

        self.submitting = True
        try:
            if not await self._guard.allows_new_bookmark():
                self._drawer.close()
                return None

            metadata = await self._fetch_metadata(url)
            if metadata is None:
                metadata = fallback_metadata(url)
                self._toasts.warning(METADATA_WARNING_MESSAGE)
                preview_img = ""
            elif await self._probe(self._image_client, metadata.preview_img):
                preview_img = metadata.preview_img
            else:
                preview_img = FALLBACK_PREVIEW_IMG

            payload: dict[str, Any] = {
                "url": url,
                "page_title": metadata.page_title,
                "meta_description": metadata.meta_description,
                "preview_img": preview_img,
            }
            if data.parent_id is not None:
                payload["parent_id"] = str(data.parent_id)
            if data.notes:
                payload["notes"] = data.notes

            bookmark = await self._store.create(payload)
        except DuplicateBookmarkError as e:
            self.field_errors["url"] = e.message
            self._toasts.error(e.message)
            return None
        except NetworkError as e:
            self._toasts.error(e.message)
            return None
        except LinkStackError as e:
            logger.exception("Error adding bookmark")
            self._toasts.error(e.message or GENERIC_FAILURE_MESSAGE)
            return None
        finally:
            self.submitting = False

        self.reset()
        self._toasts.success("Bookmark added")
        await self._bus.publish(BOOKMARK_CREATED, bookmark)
        return bookmark
