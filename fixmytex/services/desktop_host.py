"""Process wiring: hotkey listener -> dispatcher -> actions, plus the UI bridge.

Actions run on one asyncio loop owned by a background thread. The dispatcher
submits them from the hook/timer threads, and the shared ActionGate makes
sure only one action touches the clipboard at a time, including paste-backs
requested through the API.
"""

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable

import uvicorn

from fixmytex.api.assistant import set_ui_action
from fixmytex.chains.integrate_refinements import IntegrationPolicy
from fixmytex.core.action_gate import ActionGate
from fixmytex.core.config import Settings, get_settings
from fixmytex.core.errors import ProviderError
from fixmytex.core.llm import ChatModelProvider, get_chat_provider
from fixmytex.core.logging import get_logger
from fixmytex.core.message_bus import MessageBus, ShortcutEventType
from fixmytex.core.rich_clipboard import RichClipboardPolicy
from fixmytex.core.shortcut_dispatcher import KeyTransition, ShortcutDispatcher
from fixmytex.services.silent_fix_action import SilentFixAction
from fixmytex.services.ui_assisted_action import UIAssistedAction

logger = get_logger(__name__)


class DesktopHost:
    """Owns the action loop, the dispatcher and the hotkey listener.

    ``bridge`` must implement both ``DesktopAutomation`` and ``ClipboardBridge``.
    The pynput-backed bridge and listener are only imported when none is given.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        provider: ChatModelProvider | None = None,
        bridge: Any = None,
        bus: MessageBus | None = None,
        listener: Any = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or get_chat_provider(self.settings)
        if bridge is None:
            from fixmytex.services.desktop_bridge import DesktopBridge

            bridge = DesktopBridge()
        self.bridge = bridge
        self.bus = bus or MessageBus()
        self.rich = RichClipboardPolicy.from_settings(self.settings)

        self.loop = asyncio.new_event_loop()
        self.gate = ActionGate(self.loop)
        self._thread = threading.Thread(target=self._run_loop, name="fixmytex-actions", daemon=True)
        self._unsubscribe: list[Callable[[], None]] = []

        self.silent_fix = SilentFixAction(
            self.provider,
            self.bridge,
            self.bridge,
            self.rich,
            settle_delay_ms=self.settings.COPY_SETTLE_DELAY_MS,
        )
        self.ui_assisted = UIAssistedAction(
            self.bus,
            self.bridge,
            self.bridge,
            self.rich,
            provider=self.provider,
            policy=IntegrationPolicy.from_settings(self.settings),
            settle_delay_ms=self.settings.COPY_SETTLE_DELAY_MS,
            gate=self.gate,
        )

        self.dispatcher = ShortcutDispatcher(
            self.bus,
            hotkey_id=self.settings.HOTKEY,
            threshold_ms=self.settings.DOUBLE_PRESS_THRESHOLD_MS,
            trigger_transition=KeyTransition(self.settings.HOTKEY_TRIGGER_TRANSITION),
        )
        if listener is None:
            from fixmytex.services.hotkey_listener import HotkeyListener

            listener = HotkeyListener(self.settings.HOTKEY, self.dispatcher.handle_event)
        self.listener = listener

    def start(self) -> None:
        self._thread.start()
        self._unsubscribe = [
            self.bus.subscribe(ShortcutEventType.SILENT_FIX, lambda _: self.submit(self.silent_fix.execute)),
            self.bus.subscribe(ShortcutEventType.UI_ASSISTED, lambda _: self.submit(self.ui_assisted.execute)),
        ]
        set_ui_action(self.ui_assisted)
        self.listener.start()
        logger.info(
            f"FixMyTex ready: hotkey {self.settings.HOTKEY}, "
            f"double-press window {self.settings.DOUBLE_PRESS_THRESHOLD_MS}ms"
        )

    def stop(self) -> None:
        self.listener.stop()
        self.dispatcher.close()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        set_ui_action(None)
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)

    def submit(self, action: Callable[[], Awaitable[None]]) -> Future:
        """Schedule an action on the action loop. Safe to call from any thread."""
        return self.gate.submit(lambda: self._run_action(action))

    async def _run_action(self, action: Callable[[], Awaitable[None]]) -> None:
        try:
            await action()
        except Exception:
            logger.error("Hotkey action failed", exc_info=True)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()
        self.loop.close()


def main() -> None:
    """Console entry point: start the hotkey host and serve the UI bridge."""
    settings = get_settings()
    try:
        host = DesktopHost(settings)
    except ProviderError as e:
        logger.error(f"Cannot start: {e}")
        raise SystemExit(1) from e

    host.start()
    try:
        uvicorn.run("fixmytex.main:app", host=settings.API_HOST, port=settings.API_PORT)
    finally:
        host.stop()


if __name__ == "__main__":
    main()
