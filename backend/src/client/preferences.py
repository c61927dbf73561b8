"""
Client-local preference storage.

Preferences live in a small JSON file, keyed under the `linkstack:` namespace.
Storage is best-effort: read and write failures are logged and never raised.
"""
import json
import logging
from pathlib import Path
from typing import Any

from client.events import SETTINGS_CHANGED, EventBus

logger = logging.getLogger(__name__)

KEY_PREFIX = "linkstack:"

VIEW_PREFERENCE_KEY = "view-preference"
SORT_KEY = "sortBy"
FILTER_KEY = "filterBy"
LIMIT_ENABLED_KEY = "limitEnabled"
UNREAD_LIMIT_KEY = "unreadLimit"

DEFAULT_LIMIT_ENABLED = False
DEFAULT_UNREAD_LIMIT = 10


class PreferenceStore:
    """
    Namespaced key-value store backed by a JSON file.

    With no path the store is memory-only. Values are written through to disk on
    every `set`/`remove`.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Could not read preferences from %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences file %s", self._path)
            return {}
        return data

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        except OSError:
            logger.warning("Could not write preferences to %s", self._path, exc_info=True)

    def get(self, key: str, default: Any = None) -> Any:  # noqa: ANN401
        return self._data.get(KEY_PREFIX + key, default)

    def set(self, key: str, value: Any) -> None:  # noqa: ANN401
        self._data[KEY_PREFIX + key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._data.pop(KEY_PREFIX + key, None) is not None:
            self._save()


class SettingsService:
    """Unread-limit settings; changes are announced as `settings-changed`."""

    def __init__(self, store: PreferenceStore, bus: EventBus) -> None:
        self._store = store
        self._bus = bus

    def is_limit_enabled(self) -> bool:
        return bool(self._store.get(LIMIT_ENABLED_KEY, DEFAULT_LIMIT_ENABLED))

    async def set_limit_enabled(self, enabled: bool) -> None:
        self._store.set(LIMIT_ENABLED_KEY, enabled)
        await self._bus.publish(SETTINGS_CHANGED, {"key": LIMIT_ENABLED_KEY, "value": enabled})

    def get_unread_limit(self) -> int:
        stored = self._store.get(UNREAD_LIMIT_KEY)
        if stored is None:
            return DEFAULT_UNREAD_LIMIT
        try:
            return max(1, int(stored))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid unread limit %r", stored)
            return DEFAULT_UNREAD_LIMIT

    async def set_unread_limit(self, limit: int | str) -> int:
        """Store the limit, clamped to at least 1, and return the stored value."""
        numeric_limit = max(1, int(limit))
        self._store.set(UNREAD_LIMIT_KEY, numeric_limit)
        await self._bus.publish(
            SETTINGS_CHANGED, {"key": UNREAD_LIMIT_KEY, "value": numeric_limit},
        )
        return numeric_limit
