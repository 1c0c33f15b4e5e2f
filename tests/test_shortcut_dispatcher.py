"""Tests for single vs. double press disambiguation."""

import threading

import pytest

from fixmytex.core.message_bus import MessageBus, ShortcutEventType
from fixmytex.core.shortcut_dispatcher import (
    DispatcherState,
    HotkeyEvent,
    KeyTransition,
    ShortcutDispatcher,
)
from tests.fakes.fake_desktop import ManualScheduler

HOTKEY = "<ctrl>+g"


def press(t: float, hotkey_id: str = HOTKEY) -> HotkeyEvent:
    return HotkeyEvent(hotkey_id=hotkey_id, transition=KeyTransition.PRESSED, timestamp=t)


def release(t: float, hotkey_id: str = HOTKEY) -> HotkeyEvent:
    return HotkeyEvent(hotkey_id=hotkey_id, transition=KeyTransition.RELEASED, timestamp=t)


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def events(bus):
    received: list[str] = []
    bus.subscribe(ShortcutEventType.SILENT_FIX, lambda _: received.append("silent"))
    bus.subscribe(ShortcutEventType.UI_ASSISTED, lambda _: received.append("ui"))
    return received


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def dispatcher(bus, scheduler):
    return ShortcutDispatcher(bus, HOTKEY, threshold_ms=200, scheduler=scheduler)


class TestSinglePress:
    def test_single_press_arms_timer(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))

        assert dispatcher.state == DispatcherState.AWAITING_SECOND_CLICK
        assert len(scheduler.active) == 1
        assert scheduler.active[0].delay_s == pytest.approx(0.2)
        assert events == []

    def test_timeout_emits_silent_fix_once(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        scheduler.fire_active()

        assert events == ["silent"]
        assert dispatcher.state == DispatcherState.IDLE
        assert dispatcher.recent_clicks == []

    def test_timer_firing_twice_emits_once(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        scheduler.fire_all()
        scheduler.fire_all()

        assert events == ["silent"]


class TestDoublePress:
    def test_second_press_within_threshold_emits_ui_assisted(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.150))

        assert events == ["ui"]
        assert dispatcher.state == DispatcherState.IDLE
        assert scheduler.active == []

    def test_cancelled_timer_never_fires(self, dispatcher, scheduler, events):
        """A timer callback that was already dequeued when cancelled stays silent."""
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.150))
        scheduler.fire_all()

        assert events == ["ui"]

    def test_press_exactly_at_threshold_is_not_double(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.200))

        assert "ui" not in events

    def test_third_press_starts_new_gesture(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.1))
        dispatcher.handle_event(press(0.15))

        assert events == ["ui"]
        assert dispatcher.state == DispatcherState.AWAITING_SECOND_CLICK

        scheduler.fire_all()
        assert events == ["ui", "silent"]


class TestLateClick:
    def test_late_click_completes_previous_gesture(self, dispatcher, scheduler, events):
        """Timer not serviced yet when the next click arrives outside the window."""
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.5))

        assert events == ["silent"]
        assert dispatcher.state == DispatcherState.AWAITING_SECOND_CLICK

        scheduler.fire_all()
        assert events == ["silent", "silent"]

    def test_at_most_one_pending_timer(self, dispatcher, scheduler):
        for t in (0.0, 0.5, 1.0, 1.5, 2.0):
            dispatcher.handle_event(press(t))
            assert len(scheduler.active) <= 1


class TestFiltering:
    def test_other_hotkey_ignored(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0, hotkey_id="<ctrl>+h"))

        assert scheduler.timers == []
        assert dispatcher.state == DispatcherState.IDLE

    def test_release_ignored_when_triggering_on_press(self, dispatcher, scheduler):
        dispatcher.handle_event(release(0.0))

        assert scheduler.timers == []

    def test_release_trigger(self, bus, scheduler, events):
        dispatcher = ShortcutDispatcher(
            bus,
            HOTKEY,
            threshold_ms=200,
            trigger_transition=KeyTransition.RELEASED,
            scheduler=scheduler,
        )
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(release(0.05))
        dispatcher.handle_event(press(0.10))
        dispatcher.handle_event(release(0.15))

        assert events == ["ui"]


class TestConfiguration:
    def test_invalid_threshold_rejected(self, bus):
        with pytest.raises(ValueError):
            ShortcutDispatcher(bus, HOTKEY, threshold_ms=0)

    def test_update_threshold_drops_pending_gesture(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        dispatcher.update_threshold(400)
        scheduler.fire_all()

        assert dispatcher.threshold_ms == 400
        assert events == []
        assert dispatcher.state == DispatcherState.IDLE

    def test_longer_threshold_turns_slow_presses_into_double(self, dispatcher, events):
        dispatcher.update_threshold(400)
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.3))

        assert events == ["ui"]

    def test_close_cancels_pending(self, dispatcher, scheduler, events):
        dispatcher.handle_event(press(0.0))
        dispatcher.close()
        scheduler.fire_all()

        assert events == []


class TestReentrancy:
    def test_subscriber_can_call_back_into_dispatcher(self, bus, scheduler):
        dispatcher = ShortcutDispatcher(bus, HOTKEY, threshold_ms=200, scheduler=scheduler)
        seen = []

        def handler(_):
            seen.append(dispatcher.state)
            dispatcher.reset()

        bus.subscribe(ShortcutEventType.UI_ASSISTED, handler)
        dispatcher.handle_event(press(0.0))
        dispatcher.handle_event(press(0.1))

        assert seen == [DispatcherState.IDLE]

    def test_concurrent_presses_keep_one_timer(self, dispatcher, scheduler):
        barrier = threading.Barrier(8)

        def worker(offset: float):
            barrier.wait()
            for i in range(20):
                dispatcher.handle_event(press(offset + i * 1.0))

        threads = [threading.Thread(target=worker, args=(n * 0.001,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(scheduler.active) <= 1


def test_threading_timer_scheduler_fires_silent_fix():
    bus = MessageBus()
    fired = threading.Event()
    bus.subscribe(ShortcutEventType.SILENT_FIX, lambda _: fired.set())
    dispatcher = ShortcutDispatcher(bus, HOTKEY, threshold_ms=20)

    dispatcher.handle_event(press(0.0))

    assert fired.wait(timeout=2.0)
    dispatcher.close()
