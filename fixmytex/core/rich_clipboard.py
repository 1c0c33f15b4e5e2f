"""Rich (HTML) clipboard policy: which apps accept HTML and how to render it."""

import markdown

from fixmytex.core.config import Settings, get_settings

# Compact list/paragraph spacing so pasted HTML looks right in mail clients
COMPACT_STYLE = (
    "<style>"
    "ul, ol { margin: 0 0 12px 0 !important; padding-left: 20px !important; } "
    "li { margin: 0 !important; margin-left: 20px !important; padding: 0 !important; "
    "padding-left: 20px !important; line-height: 1.2 !important; } "
    "p { margin: 0 !important; margin-bottom: 8px !important; }"
    "</style>"
)


class RichClipboardPolicy:
    """Pattern-matched rich paste support plus markdown rendering."""

    def __init__(self, enabled: bool = True, app_patterns: list[str] | None = None):
        self.enabled = enabled
        self.app_patterns = [p.lower() for p in (app_patterns or []) if p.strip()]

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RichClipboardPolicy":
        settings = settings or get_settings()
        return cls(
            enabled=settings.RICH_CLIPBOARD_ENABLED,
            app_patterns=list(settings.RICH_CLIPBOARD_APP_PATTERNS),
        )

    def supports_rich_clipboard(self, app_identifier: str) -> bool:
        """True if the app name contains any configured pattern (case-insensitive)."""
        if not self.enabled or not app_identifier:
            return False
        app = app_identifier.lower()
        return any(pattern in app for pattern in self.app_patterns)

    def markdown_to_html(self, markdown_text: str) -> str:
        """
        Render markdown to styled HTML.

        Raises:
            ValueError: If there is nothing to render
        """
        if not markdown_text.strip():
            raise ValueError("Cannot render empty markdown")
        body = markdown.markdown(markdown_text, extensions=["nl2br", "sane_lists"])
        return f"{COMPACT_STYLE}{body}"
