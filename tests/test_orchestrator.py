"""
Tests for tiered generation with fallback.

Tests cover:
- Blocking fallback: primary -> secondary -> terminal error
- Streaming relay, fallback before the first fragment, interruption after
- Cancellation during a stream
"""

from unittest.mock import MagicMock

import pytest

from vekkam.ai import CancelToken, GenerationOrchestrator, GenerationRequest, ProviderTier
from vekkam.exceptions import (
    AllProvidersUnavailableError,
    GenerationCancelled,
    ProviderError,
    StreamInterruptedError,
)


def make_backend(name: str, text: str = None, error: Exception = None, streaming: bool = False) -> MagicMock:
    backend = MagicMock()
    backend.name = name
    backend.supports_streaming = streaming
    if error is not None:
        backend.generate.side_effect = error
    else:
        backend.generate.return_value = text
    return backend


def fragment_stream(fragments, error: Exception = None):
    """Side effect producing a generator like HuggingFaceBackend.stream."""
    def _stream(request, cancel_token=None):
        yield from fragments
        if error is not None:
            raise error
    return _stream


class TestBlockingFallback:
    """Test primary/secondary resolution."""

    def test_secondary_answers_after_primary_network_error(self):
        primary = make_backend("huggingface", error=ProviderError("Connection refused", provider="huggingface"))
        secondary = make_backend("llama", text="Paris")

        result = GenerationOrchestrator(primary, secondary).generate(GenerationRequest("Capital of France?"))

        assert result.text == "Paris"
        assert result.provider_used == ProviderTier.SECONDARY
        assert primary.generate.call_count == 1
        assert secondary.generate.call_count == 1

    def test_primary_success_skips_secondary(self):
        primary = make_backend("huggingface", text="Paris")
        secondary = make_backend("llama", text="unused")

        result = GenerationOrchestrator(primary, secondary).generate(GenerationRequest("Capital of France?"))

        assert result.provider_used == ProviderTier.PRIMARY
        secondary.generate.assert_not_called()

    def test_empty_primary_text_falls_back(self):
        primary = make_backend("huggingface", text="   ")
        secondary = make_backend("llama", text="Paris")

        result = GenerationOrchestrator(primary, secondary).generate(GenerationRequest("q"))

        assert result.provider_used == ProviderTier.SECONDARY

    def test_both_fail(self):
        """One call per tier, then the terminal error."""
        primary = make_backend("huggingface", error=ProviderError("down"))
        secondary = make_backend("llama", error=ProviderError("also down"))

        with pytest.raises(AllProvidersUnavailableError) as exc_info:
            GenerationOrchestrator(primary, secondary).generate(GenerationRequest("q"))

        assert exc_info.value.message == "Service unavailable. All AI models are currently down."
        assert exc_info.value.kind == "service_unavailable"
        assert primary.generate.call_count == 1
        assert secondary.generate.call_count == 1

    def test_unexpected_exception_counts_as_failure(self):
        primary = make_backend("huggingface", error=KeyError("generated_text"))
        secondary = make_backend("llama", text="Paris")

        result = GenerationOrchestrator(primary, secondary).generate(GenerationRequest("q"))

        assert result.text == "Paris"

    def test_cancellation_is_not_a_fallback_trigger(self):
        primary = make_backend("huggingface", error=GenerationCancelled())
        secondary = make_backend("llama", text="Paris")

        with pytest.raises(GenerationCancelled):
            GenerationOrchestrator(primary, secondary).generate(GenerationRequest("q"))
        secondary.generate.assert_not_called()


class TestStreaming:
    """Test fragment relay and streaming fallback."""

    def test_fragments_relayed_in_order(self):
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream(["Par", "is"])
        secondary = make_backend("llama", text="unused")
        received = []

        result = GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), received.append)

        assert received == ["Par", "is"]
        assert result.text == "Paris"
        assert result.provider_used == ProviderTier.PRIMARY
        secondary.generate.assert_not_called()

    def test_failure_before_first_fragment_falls_back(self):
        """The secondary's full text is delivered as one fragment."""
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream([], error=ProviderError("stream refused"))
        secondary = make_backend("llama", text="Paris")
        received = []

        result = GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), received.append)

        assert received == ["Paris"]
        assert result.provider_used == ProviderTier.SECONDARY

    def test_empty_stream_falls_back(self):
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream([])
        secondary = make_backend("llama", text="Paris")
        received = []

        GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), received.append)

        assert received == ["Paris"]

    def test_failure_after_fragments_interrupts(self):
        """No fallback once the consumer has seen part of the answer."""
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream(["Pa", "r"], error=ProviderError("connection reset"))
        secondary = make_backend("llama", text="Paris")
        received = []

        with pytest.raises(StreamInterruptedError) as exc_info:
            GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), received.append)

        assert exc_info.value.partial_text == "Par"
        assert received == ["Pa", "r"]
        secondary.generate.assert_not_called()

    def test_both_fail_before_first_fragment(self):
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream([], error=ProviderError("down"))
        secondary = make_backend("llama", error=ProviderError("down too"))
        sink = MagicMock()

        with pytest.raises(AllProvidersUnavailableError):
            GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), sink)
        sink.assert_not_called()

    def test_non_streaming_primary_delivers_whole_text(self):
        primary = make_backend("huggingface", text="Paris", streaming=False)
        secondary = make_backend("llama", text="unused")
        received = []

        result = GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), received.append)

        assert received == ["Paris"]
        assert result.provider_used == ProviderTier.PRIMARY
        primary.stream.assert_not_called()

    def test_cancel_mid_stream_carries_partial_text(self):
        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = fragment_stream(["Hel", "lo", "!"])
        secondary = make_backend("llama", text="unused")
        token = CancelToken()
        received = []

        def sink(fragment):
            received.append(fragment)
            token.cancel()

        with pytest.raises(GenerationCancelled) as exc_info:
            GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), sink, token)

        assert received == ["Hel"]
        assert exc_info.value.partial_text == "Hel"
        secondary.generate.assert_not_called()

    def test_cancel_when_stream_ends_quietly(self):
        token = CancelToken()

        def quiet_stream(request, cancel_token=None):
            for fragment in ["Hel", "lo", "!"]:
                if cancel_token.is_cancelled:
                    return
                yield fragment

        primary = make_backend("huggingface", streaming=True)
        primary.stream.side_effect = quiet_stream
        secondary = make_backend("llama", text="unused")
        received = []

        def sink(fragment):
            received.append(fragment)
            token.cancel()

        with pytest.raises(GenerationCancelled) as exc_info:
            GenerationOrchestrator(primary, secondary).stream(GenerationRequest("q"), sink, token)

        assert received == ["Hel"]
        assert exc_info.value.partial_text == "Hel"
        secondary.generate.assert_not_called()
