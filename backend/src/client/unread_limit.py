"""Soft, client-only cap on the number of unread bookmarks."""
import logging
import random
from collections.abc import Callable
from uuid import UUID

from client.api_client import BookmarkStore
from client.api_errors import LinkStackError
from client.preferences import SettingsService
from client.toast import ToastQueue

logger = logging.getLogger(__name__)

ENCOURAGEMENT_MESSAGES = [
    "Your reading queue is full! 📖 How about checking out one of these before adding more?",
    "The shelves are packed! 📚 Time to read one and make room for this new addition.",
    "Hold that bookmark! 🔖 Your to-read pile is at capacity. Pick one to dive into first.",
    "Queue's full! 📝 Let's finish one of these gems before collecting more treasures.",
    "Reading list maxed out! 🎯 Time to actually read something from your collection.",
    "The stacks are full! 📕 Return one by reading it, then you can add this new find.",
    "Bookmark overload! 🗂️ How about exploring one of your saved reads first?",
]

ENCOURAGEMENT_DURATION = 8.0


def get_random_encouragement_message(rng: random.Random | None = None) -> str:
    return (rng or random).choice(ENCOURAGEMENT_MESSAGES)


class UnreadLimitGuard:
    """
    Decide whether a new bookmark may be created.

    When the limit is enabled and the unread count has reached it, creation is
    refused: an encouragement message is shown and a random unread bookmark is
    highlighted. The guard is advisory; the API does not enforce it.
    """

    def __init__(
        self,
        settings: SettingsService,
        store: BookmarkStore,
        toasts: ToastQueue,
        highlight_unread: Callable[[random.Random | None], UUID | None] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._toasts = toasts
        self._highlight_unread = highlight_unread
        self._rng = rng

    async def allows_new_bookmark(self) -> bool:
        if not self._settings.is_limit_enabled():
            return True

        limit = self._settings.get_unread_limit()
        try:
            unread_count = await self._store.count_unread()
        except LinkStackError:
            # Soft guard: an unknown count never blocks saving
            logger.warning("Could not count unread bookmarks; skipping limit check", exc_info=True)
            return True

        # Blocks once the new bookmark would bring the count up to the limit
        if unread_count + 1 < limit:
            return True

        logger.info("Unread limit reached (%d unread, limit %d)", unread_count, limit)
        self._toasts.info(
            get_random_encouragement_message(self._rng), duration=ENCOURAGEMENT_DURATION,
        )
        if self._highlight_unread is not None:
            self._highlight_unread(self._rng)
        return False
