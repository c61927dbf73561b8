"""Tests for the toast queue."""
import asyncio

from client.toast import MAX_VISIBLE_TOASTS, ToastKind, ToastQueue


async def test__show__evicts_oldest_beyond_three() -> None:
    toasts = ToastQueue(default_duration=0, exit_delay=60)

    shown = [toasts.info(f"message {i}") for i in range(4)]

    assert len(toasts.visible) == MAX_VISIBLE_TOASTS
    assert [t.id for t in toasts.visible] == [t.id for t in shown[1:]]
    assert toasts.leaving == [shown[0]]
    assert shown[0].dismissing is True


async def test__show__visible_never_exceeds_limit() -> None:
    toasts = ToastQueue(default_duration=0, exit_delay=0)

    for i in range(10):
        toasts.show(f"message {i}")
        assert len(toasts.visible) <= MAX_VISIBLE_TOASTS


async def test__politeness__errors_are_assertive() -> None:
    toasts = ToastQueue(default_duration=0)

    assert toasts.error("boom").politeness == "assertive"
    assert toasts.success("ok").politeness == "polite"
    assert toasts.warning("hmm").politeness == "polite"
    assert toasts.info("fyi").politeness == "polite"


async def test__show__kind_helpers() -> None:
    toasts = ToastQueue(default_duration=0)
    assert toasts.success("ok").kind == ToastKind.SUCCESS
    assert toasts.warning("hmm").kind == ToastKind.WARNING


async def test__auto_dismiss__after_duration_then_exit_window() -> None:
    toasts = ToastQueue(default_duration=0.01, exit_delay=0.1)
    toast = toasts.info("short lived")

    await asyncio.sleep(0.04)
    assert toast not in toasts.visible
    assert toast in toasts.leaving

    await asyncio.sleep(0.15)
    assert toasts.leaving == []


async def test__zero_duration__is_persistent() -> None:
    toasts = ToastQueue(default_duration=5.0, exit_delay=0)
    toast = toasts.info("sticky", duration=0)

    await asyncio.sleep(0.02)

    assert toasts.visible == [toast]


async def test__dismiss__unknown_id_is_ignored() -> None:
    toasts = ToastQueue(default_duration=0)
    toast = toasts.info("hello")

    toasts.dismiss(9999)

    assert toasts.visible == [toast]


async def test__dismiss__cancels_timer() -> None:
    toasts = ToastQueue(default_duration=0.01, exit_delay=0)
    toast = toasts.info("hello")

    toasts.dismiss(toast.id)
    toasts.dismiss(toast.id)
    await asyncio.sleep(0.03)

    assert toasts.visible == []
    assert toasts.leaving == []


async def test__on_change__notified() -> None:
    toasts = ToastQueue(default_duration=0, exit_delay=0)
    changes = []
    toasts.on_change(lambda: changes.append(len(toasts.visible)))

    toast = toasts.info("hello")
    toasts.dismiss(toast.id)

    assert changes == [1, 0]


async def test__clear__dismisses_everything() -> None:
    toasts = ToastQueue(default_duration=0, exit_delay=60)
    toasts.info("a")
    toasts.info("b")

    toasts.clear()

    assert toasts.visible == []
    assert len(toasts.leaving) == 2
