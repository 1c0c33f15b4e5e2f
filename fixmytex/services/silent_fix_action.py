"""Single-press flow: copy the selection, correct it, paste it back."""

import asyncio

from fixmytex.chains.silent_fix import fix_text_silent
from fixmytex.core.desktop import ClipboardBridge, DesktopAutomation, RichClipboardSupport
from fixmytex.core.errors import ClipboardError, FixMyTexError
from fixmytex.core.llm import ChatModelProvider
from fixmytex.core.logging import get_logger
from fixmytex.services.clipboard_writer import write_result

logger = get_logger(__name__)

DEFAULT_SETTLE_DELAY_MS = 100


class SilentFixAction:
    """Corrects the selected text in place without showing any UI.

    Fails open: if the model call fails or returns nothing, the clipboard
    is never written and nothing is pasted.
    """

    def __init__(
        self,
        provider: ChatModelProvider,
        automation: DesktopAutomation,
        clipboard: ClipboardBridge,
        rich: RichClipboardSupport,
        settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS,
    ):
        self.provider = provider
        self.automation = automation
        self.clipboard = clipboard
        self.rich = rich
        self.settle_delay_ms = settle_delay_ms

    async def execute(self) -> None:
        try:
            await self._run()
        except FixMyTexError as e:
            logger.error(f"Silent fix aborted: {e}", exc_info=True)

    async def _run(self) -> None:
        app = self._focused_app()

        self.automation.invoke_copy_command()
        await asyncio.sleep(self.settle_delay_ms / 1000)

        text = self._read_clipboard()
        if not text.strip():
            logger.info("Silent fix skipped: clipboard is empty")
            return

        try:
            corrected = await fix_text_silent(self.provider, text)
        except FixMyTexError as e:
            logger.warning(f"Silent fix left text unchanged: {e}")
            return

        rich_written = write_result(self.clipboard, self.rich, app, corrected)
        self.automation.invoke_paste_command()
        logger.info(
            f"Silent fix applied ({len(text)} -> {len(corrected)} chars, "
            f"{'rich' if rich_written else 'plain'}, app={app or 'unknown'})"
        )

    def _focused_app(self) -> str:
        try:
            return self.automation.get_focused_app_identifier() or ""
        except FixMyTexError as e:
            logger.debug(f"Focused app unknown: {e}")
            return ""

    def _read_clipboard(self) -> str:
        try:
            return self.clipboard.read_clipboard_text() or ""
        except ClipboardError as e:
            logger.warning(f"Clipboard read failed: {e}")
            return ""
