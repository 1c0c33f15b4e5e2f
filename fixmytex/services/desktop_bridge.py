"""OS clipboard, keystroke simulation and focused-window detection.

Clipboard access goes through pyperclip and keystrokes through pynput.
Window detection and refocusing use user32 via ctypes and are Windows-only;
on other platforms the focused app is reported as an empty string and
paste-back goes to whichever window has focus.
"""

import sys
import threading
import time

import pyperclip
from pynput.keyboard import Controller, Key

from fixmytex.core.errors import AutomationError, ClipboardError
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

# Time for the target window to take focus before the paste keystroke.
FOCUS_SETTLE_S = 0.05

_PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


class _Win32Windows:
    """Foreground window lookup and refocusing through user32."""

    def __init__(self) -> None:
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._user32 = ctypes.windll.user32
        self._kernel32 = ctypes.windll.kernel32
        self._enum_proc = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)

    def foreground(self) -> tuple[int, str]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return 0, ""
        title = self._title(hwnd)
        process = self._process_name(hwnd)
        return int(hwnd), " - ".join(part for part in (process, title) if part)

    def focus(self, hwnd: int) -> bool:
        if not hwnd or not self._user32.IsWindow(hwnd):
            return False
        return bool(self._user32.SetForegroundWindow(hwnd))

    def find(self, fragment: str) -> int:
        """First visible top-level window whose title contains ``fragment``."""
        needle = fragment.lower()
        found: list[int] = []

        def callback(hwnd, _lparam):
            if self._user32.IsWindowVisible(hwnd) and needle in self._title(hwnd).lower():
                found.append(int(hwnd))
                return False
            return True

        self._user32.EnumWindows(self._enum_proc(callback), 0)
        return found[0] if found else 0

    def _title(self, hwnd: int) -> str:
        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = self._ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)
        return buffer.value.strip()

    def _process_name(self, hwnd: int) -> str:
        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, self._ctypes.byref(pid))
        handle = self._kernel32.OpenProcess(_PROCESS_QUERY_LIMITED_INFORMATION, False, pid.value)
        if not handle:
            return ""
        try:
            size = self._wintypes.DWORD(260)
            buffer = self._ctypes.create_unicode_buffer(size.value)
            if not self._kernel32.QueryFullProcessImageNameW(
                handle, 0, buffer, self._ctypes.byref(size)
            ):
                return ""
            return buffer.value.replace("\\", "/").rsplit("/", 1)[-1]
        finally:
            self._kernel32.CloseHandle(handle)


class DesktopBridge:
    """Implements ``DesktopAutomation`` and ``ClipboardBridge`` for the local desktop."""

    def __init__(self, keyboard: Controller | None = None):
        self.keyboard = keyboard or Controller()
        self.modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        self._windows = _Win32Windows() if sys.platform.startswith("win") else None
        self._lock = threading.Lock()
        self._known_windows: dict[str, int] = {}

    # === DesktopAutomation ===

    def invoke_copy_command(self) -> None:
        self._chord("c")

    def invoke_paste_command(self, target_hint: str | None = None) -> None:
        if target_hint:
            self._focus(target_hint)
        self._chord("v")

    def get_focused_app_identifier(self) -> str:
        if self._windows is None:
            return ""
        try:
            hwnd, identifier = self._windows.foreground()
        except OSError as e:
            logger.debug(f"Foreground window lookup failed: {e}")
            return ""
        if hwnd and identifier:
            with self._lock:
                self._known_windows[identifier] = hwnd
        return identifier

    # === ClipboardBridge ===

    def read_clipboard_text(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Clipboard read failed: {e}") from e

    def write_clipboard_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Clipboard write failed: {e}") from e

    def write_clipboard_rich(self, html: str, plain_fallback: str) -> None:
        # pyperclip only handles text; the plain form keeps the paste usable.
        logger.debug("HTML clipboard format unavailable, writing plain text")
        self.write_clipboard_text(plain_fallback)

    # === Internals ===

    def _chord(self, key: str) -> None:
        try:
            with self.keyboard.pressed(self.modifier):
                self.keyboard.press(key)
                self.keyboard.release(key)
        except Exception as e:
            raise AutomationError(f"Sending {key!r} shortcut failed: {e}") from e

    def _focus(self, target_hint: str) -> None:
        if self._windows is None:
            return
        with self._lock:
            hwnd = self._known_windows.get(target_hint, 0)
        try:
            if not self._windows.focus(hwnd):
                title = target_hint.split(" - ", 1)[-1]
                if not title or not self._windows.focus(self._windows.find(title)):
                    logger.warning(f"Could not refocus {target_hint!r}, pasting into focused window")
                    return
        except OSError as e:
            logger.warning(f"Refocusing {target_hint!r} failed: {e}")
            return
        time.sleep(FOCUS_SETTLE_S)
