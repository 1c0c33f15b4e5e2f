"""Single vs. double press disambiguation for the global hotkey.

State machine:
  IDLE --click--> AWAITING_SECOND_CLICK (single-press timer armed)
  AWAITING_SECOND_CLICK --click within threshold--> IDLE (emit UI-assisted)
  AWAITING_SECOND_CLICK --timer fires--> IDLE (emit silent fix)

Every click cancels and replaces the armed timer under one lock, and each
timer carries the generation it was armed in, so a cancelled timer whose
callback is already running still never fires.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from fixmytex.core.logging import get_logger
from fixmytex.core.message_bus import MessageBus, ShortcutEventType

logger = get_logger(__name__)


class KeyTransition(str, Enum):
    PRESSED = "pressed"
    RELEASED = "released"


class DispatcherState(str, Enum):
    IDLE = "idle"
    AWAITING_SECOND_CLICK = "awaiting_second_click"


@dataclass(frozen=True)
class HotkeyEvent:
    """Raw notification from the OS hook. ``timestamp`` is monotonic seconds."""

    hotkey_id: str
    transition: KeyTransition
    timestamp: float


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs ``callback`` once after ``delay_s`` unless cancelled first."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> Cancellable: ...


class ThreadingTimerScheduler:
    """Default scheduler backed by daemon ``threading.Timer`` threads."""

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer


class ShortcutDispatcher:
    """Turns hotkey clicks into exactly one semantic event per gesture."""

    def __init__(
        self,
        bus: MessageBus,
        hotkey_id: str,
        threshold_ms: int = 200,
        trigger_transition: KeyTransition = KeyTransition.PRESSED,
        scheduler: Scheduler | None = None,
    ):
        if threshold_ms <= 0:
            raise ValueError("threshold_ms must be positive")
        self._bus = bus
        self.hotkey_id = hotkey_id
        self.trigger_transition = KeyTransition(trigger_transition)
        self._threshold_ms = threshold_ms
        self._scheduler = scheduler or ThreadingTimerScheduler()

        self._lock = threading.RLock()
        self._clicks: list[float] = []
        self._pending: Cancellable | None = None
        self._generation = 0

    @property
    def threshold_ms(self) -> int:
        return self._threshold_ms

    @property
    def state(self) -> DispatcherState:
        with self._lock:
            if self._pending is not None:
                return DispatcherState.AWAITING_SECOND_CLICK
            return DispatcherState.IDLE

    @property
    def recent_clicks(self) -> list[float]:
        with self._lock:
            return list(self._clicks)

    def handle_event(self, event: HotkeyEvent) -> None:
        """Entry point for the OS hook thread."""
        if event.hotkey_id != self.hotkey_id or event.transition != self.trigger_transition:
            return

        emits: list[ShortcutEventType] = []
        threshold_s = self._threshold_ms / 1000.0

        with self._lock:
            # A click arriving after the window closed completes the previous
            # gesture even if its timer has not been serviced yet.
            if (
                self._pending is not None
                and len(self._clicks) == 1
                and event.timestamp - self._clicks[0] >= threshold_s
            ):
                emits.append(ShortcutEventType.SILENT_FIX)

            self._cancel_pending_locked()

            self._clicks = [t for t in self._clicks if event.timestamp - t < threshold_s]
            self._clicks.append(event.timestamp)

            if len(self._clicks) >= 2:
                self._clicks = []
                emits.append(ShortcutEventType.UI_ASSISTED)
            else:
                self._generation += 1
                generation = self._generation
                self._pending = self._scheduler.schedule(
                    threshold_s, lambda: self._on_timeout(generation)
                )

        for event_type in emits:
            self._emit(event_type)

    def update_threshold(self, threshold_ms: int) -> None:
        """Change the double-press window; drops any gesture in progress."""
        if threshold_ms <= 0:
            raise ValueError("threshold_ms must be positive")
        with self._lock:
            self._threshold_ms = threshold_ms
            self._reset_locked()
        logger.info(f"Double-press threshold set to {threshold_ms}ms")

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()

    def close(self) -> None:
        self.reset()

    def _on_timeout(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                return
            self._pending = None
            fire = len(self._clicks) == 1
            self._clicks = []

        if fire:
            self._emit(ShortcutEventType.SILENT_FIX)

    def _cancel_pending_locked(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._generation += 1

    def _reset_locked(self) -> None:
        self._cancel_pending_locked()
        self._clicks = []

    def _emit(self, event_type: ShortcutEventType) -> None:
        logger.info(f"Hotkey gesture resolved: {event_type.value}")
        self._bus.publish(event_type)
