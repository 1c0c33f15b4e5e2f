"""Write model output to the clipboard, as HTML when the target app accepts it."""

from fixmytex.core.desktop import ClipboardBridge, RichClipboardSupport
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)


def write_result(
    clipboard: ClipboardBridge,
    rich: RichClipboardSupport,
    app_identifier: str,
    text: str,
) -> bool:
    """
    Put ``text`` on the clipboard for ``app_identifier``.

    Returns:
        True if the rich (HTML) form was written, False for plain text

    Raises:
        ClipboardError: If the clipboard write fails
    """
    if app_identifier and rich.supports_rich_clipboard(app_identifier):
        try:
            html = rich.markdown_to_html(text)
        except Exception as e:
            logger.warning(f"Markdown to HTML failed, writing plain text: {e}")
        else:
            clipboard.write_clipboard_rich(html, text)
            logger.debug(f"Wrote rich clipboard content for {app_identifier}")
            return True

    clipboard.write_clipboard_text(text)
    return False
