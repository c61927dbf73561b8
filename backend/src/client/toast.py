"""
Notification (toast) queue.

At most three toasts are visible at once; showing a fourth dismisses the oldest.
A dismissed toast leaves `visible` immediately and stays in `leaving` for the exit
animation window before it is removed for good.
"""
import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

logger = logging.getLogger(__name__)

MAX_VISIBLE_TOASTS = 3
DEFAULT_DURATION = 5.0
EXIT_ANIMATION_SECONDS = 0.3


class ToastKind(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Toast:
    """A single notification."""

    id: int
    message: str
    kind: ToastKind
    duration: float
    dismissing: bool = False
    _timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def politeness(self) -> str:
        """Announcement priority for assistive technology."""
        return "assertive" if self.kind == ToastKind.ERROR else "polite"


class ToastQueue:
    """Bounded FIFO of visible notifications with auto-dismiss timers."""

    def __init__(
        self,
        max_visible: int = MAX_VISIBLE_TOASTS,
        default_duration: float = DEFAULT_DURATION,
        exit_delay: float = EXIT_ANIMATION_SECONDS,
    ) -> None:
        self.max_visible = max_visible
        self.default_duration = default_duration
        self.exit_delay = exit_delay
        self.visible: list[Toast] = []
        self.leaving: list[Toast] = []
        self._ids = itertools.count(1)
        self._listeners: list[Callable[[], None]] = []

    def on_change(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    def show(
        self,
        message: str,
        kind: ToastKind = ToastKind.INFO,
        duration: float | None = None,
    ) -> Toast:
        """
        Show a notification.

        Args:
            message: Text to display.
            kind: info, success, warning or error.
            duration: Seconds before auto-dismiss; 0 disables it. Defaults to
                the queue's default duration.
        """
        if len(self.visible) >= self.max_visible:
            self.dismiss(self.visible[0].id)

        duration = self.default_duration if duration is None else duration
        toast = Toast(id=next(self._ids), message=message, kind=kind, duration=duration)
        self.visible.append(toast)

        if duration > 0:
            loop = asyncio.get_running_loop()
            toast._timer = loop.call_later(duration, self.dismiss, toast.id)

        log = logger.warning if kind == ToastKind.ERROR else logger.debug
        log("Toast (%s): %s", kind, message)
        self._notify()
        return toast

    def info(self, message: str, duration: float | None = None) -> Toast:
        return self.show(message, ToastKind.INFO, duration)

    def success(self, message: str, duration: float | None = None) -> Toast:
        return self.show(message, ToastKind.SUCCESS, duration)

    def warning(self, message: str, duration: float | None = None) -> Toast:
        return self.show(message, ToastKind.WARNING, duration)

    def error(self, message: str, duration: float | None = None) -> Toast:
        return self.show(message, ToastKind.ERROR, duration)

    def dismiss(self, toast_id: int) -> None:
        """Start the exit window for a toast. Unknown or already-leaving ids are ignored."""
        toast = next((t for t in self.visible if t.id == toast_id), None)
        if toast is None:
            return
        if toast._timer is not None:
            toast._timer.cancel()
            toast._timer = None

        toast.dismissing = True
        self.visible.remove(toast)
        self.leaving.append(toast)
        asyncio.get_running_loop().call_later(self.exit_delay, self._remove, toast)
        self._notify()

    def _remove(self, toast: Toast) -> None:
        if toast in self.leaving:
            self.leaving.remove(toast)
            self._notify()

    def clear(self) -> None:
        for toast in list(self.visible):
            self.dismiss(toast.id)
