"""
Generation Orchestrator for Vekkam.

Calls the primary backend and, on any failure, the secondary backend
exactly once. There is no same-backend retry and no third tier.

State flow:
    Idle -> CallingPrimary -> Success
                           -> CallingSecondary -> Success
                                               -> TerminalFailure

Streaming:
    Only the primary streams. Fragments are relayed to a single sink as
    they arrive. If the primary fails before the first fragment, a
    blocking secondary call is made and its full text is delivered to the
    sink as one fragment. If it fails after fragments were delivered, a
    StreamInterruptedError carries the partial text.
"""

import time
from dataclasses import dataclass
from typing import Callable

from vekkam.ai.backends import GenerationBackend, HuggingFaceBackend, LlamaBackend
from vekkam.ai.base import GenerationRequest, GenerationResult, ProviderTier
from vekkam.ai.cancellation import CancelToken
from vekkam.exceptions import (
    AllProvidersUnavailableError,
    GenerationCancelled,
    ProviderError,
    StreamInterruptedError,
)
from vekkam.logging_config import critical, debug_log, error, info, warning


@dataclass
class ProviderOutcome:
    """
    Result of one backend call.

    Attributes:
        tier: Which backend was called
        success: True if non-empty text was produced
        text: Generated text (if success=True)
        error: Exception raised by the backend (if success=False)
        elapsed_seconds: Wall time of the call
    """

    tier: ProviderTier
    success: bool
    text: str = ""
    error: Exception = None
    elapsed_seconds: float = 0.0


class GenerationOrchestrator:
    """
    Tiered text generation with ordered fallback.

    Backends are constructed once and injected, so tests can pass mocks.

    Example:
        orchestrator = GenerationOrchestrator.from_config()
        result = orchestrator.generate(GenerationRequest("What is osmosis?"))
        print(result.text, result.provider_used)
    """

    def __init__(self, primary: GenerationBackend, secondary: GenerationBackend):
        self.primary = primary
        self.secondary = secondary

    @classmethod
    def from_config(cls) -> 'GenerationOrchestrator':
        """Build the orchestrator with backends configured from the environment."""
        return cls(primary=HuggingFaceBackend(), secondary=LlamaBackend())

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    def generate(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> GenerationResult:
        """
        Generate text, falling back to the secondary tier once.

        Args:
            request: The generation request
            cancel_token: Optional cancellation token

        Returns:
            GenerationResult with the tier that produced the text

        Raises:
            AllProvidersUnavailableError: Both tiers failed
            GenerationCancelled: The token was cancelled
        """
        info(f"[ORCHESTRATOR] Generative request (length: {request.content_length})")

        primary = self._call(self.primary, ProviderTier.PRIMARY, request, cancel_token)
        if primary.success:
            return self._to_result(primary)
        warning(f"[ORCHESTRATOR] Primary ({self.primary.name}) failed: {primary.error}")

        secondary = self._call(self.secondary, ProviderTier.SECONDARY, request, cancel_token)
        return self._resolve_fallback(primary, secondary)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream(
        self,
        request: GenerationRequest,
        sink: Callable[[str], None],
        cancel_token: CancelToken | None = None,
    ) -> GenerationResult:
        """
        Stream text fragments to a sink.

        Args:
            request: The generation request
            sink: Called once per fragment, in arrival order
            cancel_token: Cancelling closes the in-flight response

        Returns:
            GenerationResult holding the accumulated text

        Raises:
            StreamInterruptedError: Primary failed after delivering fragments
            AllProvidersUnavailableError: Primary failed before any fragment
                and the secondary failed too
            GenerationCancelled: The token was cancelled (carries partial text)
        """
        info(f"[ORCHESTRATOR] Streaming request (length: {request.content_length})")

        if not self.primary.supports_streaming:
            result = self.generate(request, cancel_token)
            sink(result.text)
            return result

        delivered: list[str] = []
        failure: Exception | None = None
        start_time = time.time()
        fragments = self.primary.stream(request, cancel_token)
        try:
            while True:
                try:
                    fragment = next(fragments)
                except StopIteration:
                    break
                except GenerationCancelled as e:
                    raise GenerationCancelled(partial_text="".join(delivered)) from e
                except Exception as e:
                    failure = e
                    break

                if cancel_token and cancel_token.is_cancelled:
                    raise GenerationCancelled(partial_text="".join(delivered))
                if fragment:
                    delivered.append(fragment)
                    sink(fragment)
        finally:
            fragments.close()

        if cancel_token and cancel_token.is_cancelled:
            raise GenerationCancelled(partial_text="".join(delivered))

        elapsed = time.time() - start_time
        text = "".join(delivered)

        if failure is None and text.strip():
            debug_log(f"[ORCHESTRATOR] Stream complete: {len(delivered)} fragments, "
                      f"{len(text)} chars in {elapsed:.2f}s")
            return GenerationResult(text=text, provider_used=ProviderTier.PRIMARY, elapsed_seconds=elapsed)

        if delivered:
            error(f"[ORCHESTRATOR] Stream interrupted after {len(delivered)} fragments: {failure}")
            raise StreamInterruptedError(
                "Stream interrupted after partial delivery",
                partial_text=text,
                detail=str(failure) if failure else None,
            ) from failure

        failure = failure or ProviderError("Empty stream from primary", provider=self.primary.name)
        warning(f"[ORCHESTRATOR] Primary stream failed before first fragment: {failure}")
        primary = ProviderOutcome(
            tier=ProviderTier.PRIMARY, success=False, error=failure, elapsed_seconds=elapsed
        )
        secondary = self._call(self.secondary, ProviderTier.SECONDARY, request, cancel_token)
        result = self._resolve_fallback(primary, secondary)
        sink(result.text)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call(
        self,
        backend: GenerationBackend,
        tier: ProviderTier,
        request: GenerationRequest,
        cancel_token: CancelToken | None,
    ) -> ProviderOutcome:
        """Call one backend and capture the outcome as a value."""
        debug_log(f"[ORCHESTRATOR] Calling {tier.value} ({backend.name}), "
                  f"prompt length: {len(request.prompt)} chars")
        start_time = time.time()
        try:
            text = backend.generate(request, cancel_token)
        except GenerationCancelled:
            raise
        except Exception as e:
            elapsed = time.time() - start_time
            debug_log(f"[ORCHESTRATOR] {tier.value} ({backend.name}) failed in {elapsed:.2f}s: {e}")
            return ProviderOutcome(tier=tier, success=False, error=e, elapsed_seconds=elapsed)

        elapsed = time.time() - start_time
        if not text or not text.strip():
            return ProviderOutcome(
                tier=tier,
                success=False,
                error=ProviderError(f"Empty response from {backend.name}", provider=backend.name),
                elapsed_seconds=elapsed,
            )

        debug_log(f"[ORCHESTRATOR] {tier.value} ({backend.name}) succeeded: "
                  f"{len(text)} chars in {elapsed:.2f}s")
        return ProviderOutcome(tier=tier, success=True, text=text, elapsed_seconds=elapsed)

    def _resolve_fallback(self, primary: ProviderOutcome, secondary: ProviderOutcome) -> GenerationResult:
        """Single fallback step: secondary text or the terminal error."""
        if secondary.success:
            info(f"[ORCHESTRATOR] Secondary ({self.secondary.name}) answered after primary failure")
            return self._to_result(secondary)

        warning(f"[ORCHESTRATOR] Secondary ({self.secondary.name}) failed: {secondary.error}")
        critical("[ORCHESTRATOR] All generation tiers failed", exc_info=False)
        raise AllProvidersUnavailableError(detail=f"primary: {primary.error}; secondary: {secondary.error}")

    @staticmethod
    def _to_result(outcome: ProviderOutcome) -> GenerationResult:
        return GenerationResult(
            text=outcome.text,
            provider_used=outcome.tier,
            elapsed_seconds=outcome.elapsed_seconds,
        )
