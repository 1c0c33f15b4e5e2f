"""In-process publish/subscribe channel between the hotkey core and its host."""

import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], None]


class ShortcutEventType(str, Enum):
    """Message types published on the bus."""

    SILENT_FIX = "shortcut:silent-fix"
    UI_ASSISTED = "shortcut:ui-assisted"
    TEXT_READY = "ui-assisted:text-ready"


class MessageBus:
    """
    Thread-safe message bus.

    Handlers run synchronously on the publishing thread. A failing handler is
    logged and does not prevent delivery to the remaining handlers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, message_type: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for one message type.

        Returns:
            Callable that removes the subscription
        """
        key = _key(message_type)
        with self._lock:
            self._handlers[key].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[key]:
                    self._handlers[key].remove(handler)

        return unsubscribe

    def publish(self, message_type: str, payload: Any = None) -> None:
        key = _key(message_type)
        with self._lock:
            handlers = list(self._handlers[key])

        logger.debug(f"Publishing {key} to {len(handlers)} handler(s)")
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.error(f"Handler for {key} failed", exc_info=True)


def _key(message_type: str) -> str:
    if isinstance(message_type, ShortcutEventType):
        return message_type.value
    return message_type
