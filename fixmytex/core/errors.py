"""Exception hierarchy shared by the hotkey actions and the pyramidal pipeline."""


class FixMyTexError(Exception):
    """Base class for all FixMyTex failures."""


class ProviderError(FixMyTexError):
    """LLM backend unreachable, unauthorized, rate-limited or misconfigured."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class ParseError(FixMyTexError):
    """Model output did not match the expected structured schema.

    The raw model text is kept for diagnostics. Callers convert this into a
    low-confidence fallback value instead of surfacing it.
    """

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ClipboardError(FixMyTexError):
    """Reading or writing the OS clipboard failed."""


class AutomationError(FixMyTexError):
    """Simulated copy/paste or window focusing failed."""


class PipelineError(FixMyTexError):
    """The pyramidal pipeline could not produce a document."""
