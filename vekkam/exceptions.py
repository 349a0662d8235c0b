"""
Exception types for the Vekkam study engine.

Every error carries a stable `kind` so callers can report failures
without inspecting message text:

- ValidationError: required input missing, rejected before any work
- ExtractionError: the text extractor could not produce text
- ProviderError: one generation backend failed (recoverable by fallback)
- AllProvidersUnavailableError: every backend tier failed
- StreamInterruptedError: a stream failed after fragments were delivered
- GenerationCancelled: the consumer cancelled an in-flight generation
- ParseError: generated text did not contain valid structured output
"""


class VekkamError(Exception):
    """Base exception for all study engine errors."""

    kind = "error"

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serializable form for user-visible error reports."""
        payload = {"kind": self.kind, "error": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(VekkamError):
    """Raised when a required input (file, prompt, content) is missing."""

    kind = "validation_error"


class ExtractionError(VekkamError):
    """Raised when uploaded material cannot be turned into plain text."""

    kind = "extraction_error"


class ProviderError(VekkamError):
    """Raised by a backend adapter when a single generation call fails."""

    kind = "provider_error"

    def __init__(self, message: str, provider: str = "", detail: str | None = None):
        self.provider = provider
        super().__init__(message, detail=detail)


class AllProvidersUnavailableError(VekkamError):
    """Raised once the primary and secondary backends have both failed."""

    kind = "service_unavailable"

    def __init__(
        self,
        message: str = "Service unavailable. All AI models are currently down.",
        detail: str | None = None,
    ):
        super().__init__(message, detail=detail)


class StreamInterruptedError(VekkamError):
    """Raised when a stream breaks after fragments reached the caller."""

    kind = "stream_interrupted"

    def __init__(self, message: str, partial_text: str = "", detail: str | None = None):
        self.partial_text = partial_text
        super().__init__(message, detail=detail)


class GenerationCancelled(VekkamError):
    """Raised when the consumer cancels a generation in flight."""

    kind = "cancelled"

    def __init__(self, message: str = "Generation cancelled by caller", partial_text: str = ""):
        self.partial_text = partial_text
        super().__init__(message)


class ParseError(VekkamError):
    """Raised when generated text is not valid structured output."""

    kind = "parse_error"

    def __init__(self, message: str, raw: str = "", detail: str | None = None):
        self.raw = raw
        super().__init__(message, detail=detail)

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["raw"] = self.raw
        return payload
