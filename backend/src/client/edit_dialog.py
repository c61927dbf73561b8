"""Dialog for editing a bookmark's title, description and notes."""
import logging
from dataclasses import dataclass
from uuid import UUID

from client.api_client import BookmarkStore
from client.api_errors import LinkStackError
from client.events import BOOKMARK_UPDATED, EventBus
from client.rendering import ControlState
from client.toast import ToastQueue
from schemas.bookmark import BookmarkResponse

logger = logging.getLogger(__name__)

SAVE_LABEL = "Save changes"
SAVING_LABEL = "Saving..."


@dataclass
class EditFields:
    title: str = ""
    description: str = ""
    notes: str = ""


class EditDialog:
    """Modal edit form. A save in flight blocks further submissions."""

    def __init__(self, store: BookmarkStore, bus: EventBus, toasts: ToastQueue) -> None:
        self._store = store
        self._bus = bus
        self._toasts = toasts
        self.is_open = False
        self.bookmark_id: UUID | None = None
        self.fields = EditFields()
        self.save_control = ControlState(SAVE_LABEL)

    @property
    def is_saving(self) -> bool:
        return self.save_control.busy

    async def open(self, bookmark_id: UUID) -> bool:
        """Load a bookmark into the form and show the dialog."""
        try:
            bookmark = await self._store.get_by_id(bookmark_id)
        except LinkStackError:
            logger.exception("Error loading bookmark for edit")
            self._toasts.error("Failed to load bookmark. Please try again.")
            return False
        if bookmark is None:
            self._toasts.error("That bookmark no longer exists.")
            return False

        self.bookmark_id = bookmark.id
        self.fields = EditFields(
            title=bookmark.page_title or "",
            description=bookmark.meta_description or "",
            notes=bookmark.notes or "",
        )
        self.is_open = True
        return True

    def close(self) -> None:
        self.is_open = False

    async def save(self) -> BookmarkResponse | None:
        if self.is_saving or self.bookmark_id is None:
            return None

        self.save_control = ControlState(SAVING_LABEL, busy=True)
        try:
            updated = await self._store.update(
                self.bookmark_id,
                {
                    "page_title": self.fields.title,
                    "meta_description": self.fields.description,
                    "notes": self.fields.notes,
                },
            )
        except LinkStackError:
            logger.exception("Error saving bookmark changes")
            self._toasts.error("Failed to save changes. Please try again.")
            return None
        finally:
            self.save_control = ControlState(SAVE_LABEL)

        self._toasts.success("Bookmark updated successfully!")
        await self._bus.publish(BOOKMARK_UPDATED, updated)
        self.close()
        return updated
