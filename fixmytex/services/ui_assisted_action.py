"""Double-press flow: capture the selection and hand it to the assistant UI."""

import asyncio
import threading

from fixmytex.agents.pyramidal.pipeline import run_pyramidal_pipeline
from fixmytex.agents.pyramidal.schemas import (
    CapturedText,
    DocumentRequest,
    DocumentType,
    PyramidalAgentResult,
)
from fixmytex.chains.integrate_refinements import IntegrationPolicy
from fixmytex.core.action_gate import ActionGate
from fixmytex.core.desktop import ClipboardBridge, DesktopAutomation, RichClipboardSupport
from fixmytex.core.errors import ClipboardError, FixMyTexError, PipelineError
from fixmytex.core.llm import ChatModelProvider
from fixmytex.core.logging import get_logger
from fixmytex.core.message_bus import MessageBus, ShortcutEventType
from fixmytex.services.clipboard_writer import write_result

logger = get_logger(__name__)


class UIAssistedAction:
    """Captures text for the assistant UI and pastes the approved result back.

    The capture stays pending until it is replaced by the next capture; there
    is no timeout between capture and paste-back.
    """

    def __init__(
        self,
        bus: MessageBus,
        automation: DesktopAutomation,
        clipboard: ClipboardBridge,
        rich: RichClipboardSupport,
        provider: ChatModelProvider | None = None,
        policy: IntegrationPolicy | None = None,
        settle_delay_ms: int = 100,
        gate: ActionGate | None = None,
    ):
        self.bus = bus
        self.automation = automation
        self.clipboard = clipboard
        self.rich = rich
        self.provider = provider
        self.policy = policy
        self.settle_delay_ms = settle_delay_ms
        self.gate = gate or ActionGate()
        self._lock = threading.Lock()
        self._pending: CapturedText | None = None

    @property
    def pending_capture(self) -> CapturedText | None:
        with self._lock:
            return self._pending

    async def execute(self) -> None:
        """Capture the selection and publish it to the UI. Never raises."""
        try:
            capture = await self._capture()
        except FixMyTexError as e:
            logger.error(f"UI-assisted capture failed: {e}", exc_info=True)
            return

        if capture is None:
            logger.info("UI-assisted capture skipped: clipboard is empty")
            return

        with self._lock:
            self._pending = capture
        self.bus.publish(
            ShortcutEventType.TEXT_READY,
            {"text": capture.text, "source_app": capture.source_app},
        )
        logger.info(f"Captured {len(capture.text)} chars from {capture.source_app or 'unknown app'}")

    async def _capture(self) -> CapturedText | None:
        try:
            app = self.automation.get_focused_app_identifier() or ""
        except FixMyTexError as e:
            logger.debug(f"Focused app unknown: {e}")
            app = ""

        self.automation.invoke_copy_command()
        await asyncio.sleep(self.settle_delay_ms / 1000)

        try:
            text = self.clipboard.read_clipboard_text() or ""
        except ClipboardError as e:
            logger.warning(f"Clipboard read failed: {e}")
            return None

        if not text.strip():
            return None
        return CapturedText(text=text, source_app=app)

    async def process_pending(
        self,
        document_type: DocumentType = DocumentType.AUTO,
        instructions: str | None = None,
    ) -> PyramidalAgentResult:
        """
        Run the pyramidal pipeline on the pending capture.

        Raises:
            PipelineError: If nothing has been captured, or the run fails
            ProviderError: If the model is unreachable
        """
        capture = self.pending_capture
        if capture is None:
            raise PipelineError("No captured text to process")

        request = DocumentRequest.from_capture(capture, document_type, instructions)
        return await run_pyramidal_pipeline(request, provider=self.provider, policy=self.policy)

    async def paste_back_to_source_app(self, text: str) -> None:
        """
        Write ``text`` to the clipboard and paste it into the captured app.

        Waits for any hotkey action that is using the clipboard.

        Raises:
            ClipboardError: If the clipboard write fails
            AutomationError: If the paste cannot be sent
        """
        await self.gate.run_from_any_loop(lambda: self._paste_back(text))

    async def _paste_back(self, text: str) -> None:
        capture = self.pending_capture
        source_app = capture.source_app if capture else ""

        write_result(self.clipboard, self.rich, source_app, text)
        self.automation.invoke_paste_command(target_hint=source_app or None)
        logger.info(f"Pasted {len(text)} chars back to {source_app or 'focused app'}")
