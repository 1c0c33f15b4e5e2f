"""Interfaces of the OS-level collaborators used by the hotkey actions.

Concrete implementations live in ``fixmytex.services.desktop_bridge``; tests
use in-memory fakes.
"""

from typing import Protocol


class DesktopAutomation(Protocol):
    """Simulated keystrokes and focused-window detection."""

    def invoke_copy_command(self) -> None: ...

    def invoke_paste_command(self, target_hint: str | None = None) -> None: ...

    def get_focused_app_identifier(self) -> str: ...


class ClipboardBridge(Protocol):
    """Plain and rich clipboard access."""

    def read_clipboard_text(self) -> str: ...

    def write_clipboard_text(self, text: str) -> None: ...

    def write_clipboard_rich(self, html: str, plain_fallback: str) -> None: ...


class RichClipboardSupport(Protocol):
    """Decides whether an app accepts rich paste and renders markdown to HTML."""

    def supports_rich_clipboard(self, app_identifier: str) -> bool: ...

    def markdown_to_html(self, markdown_text: str) -> str: ...
