"""Global hotkey listener built on pynput.

Translates OS key notifications into ``HotkeyEvent``s for the dispatcher:
one PRESSED event when the full combination goes down, one RELEASED event
when any key of the combination comes back up. Key auto-repeat while the
combination is held produces no extra events.
"""

import threading
import time
from typing import Callable

from pynput import keyboard

from fixmytex.core.logging import get_logger
from fixmytex.core.shortcut_dispatcher import HotkeyEvent, KeyTransition

logger = get_logger(__name__)


class HotkeyListener:
    """Watches one hotkey combination (pynput notation, e.g. ``<ctrl>+g``)."""

    def __init__(
        self,
        hotkey: str,
        on_event: Callable[[HotkeyEvent], None],
        hotkey_id: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        try:
            self.keys = frozenset(keyboard.HotKey.parse(hotkey))
        except ValueError as e:
            raise ValueError(f"Invalid hotkey {hotkey!r}: {e}") from e
        self.hotkey_id = hotkey_id or hotkey
        self.on_event = on_event
        self.clock = clock
        self._held: set = set()
        self._active = False
        self._lock = threading.Lock()
        self._listener: keyboard.Listener | None = None

    def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.daemon = True
        self._listener.start()
        logger.info(f"Hotkey listener started for {self.hotkey_id}")

    def stop(self) -> None:
        if self._listener is None:
            return
        self._listener.stop()
        self._listener = None
        logger.info("Hotkey listener stopped")

    def _canonical(self, key):
        if self._listener is None:
            return key
        return self._listener.canonical(key)

    def _on_press(self, key) -> None:
        key = self._canonical(key)
        with self._lock:
            self._held.add(key)
            fire = not self._active and self.keys <= self._held
            if fire:
                self._active = True
        if fire:
            self._emit(KeyTransition.PRESSED)

    def _on_release(self, key) -> None:
        key = self._canonical(key)
        with self._lock:
            self._held.discard(key)
            fire = self._active and key in self.keys
            if fire:
                self._active = False
        if fire:
            self._emit(KeyTransition.RELEASED)

    def _emit(self, transition: KeyTransition) -> None:
        event = HotkeyEvent(hotkey_id=self.hotkey_id, transition=transition, timestamp=self.clock())
        try:
            self.on_event(event)
        except Exception:
            # Raising inside the pynput hook would stop the listener thread.
            logger.error("Hotkey event handler failed", exc_info=True)
