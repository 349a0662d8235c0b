"""
Tests for the generation backends.

These tests verify:
1. The Hugging Face payload and both response shapes
2. Server-sent event streaming and cleanup
3. Llama response field priority
4. Transport failures surface as ProviderError
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from vekkam.ai import CancelToken, GenerationRequest, HuggingFaceBackend, LlamaBackend, first_text_field
from vekkam.exceptions import GenerationCancelled, ProviderError


def make_response(status_code=200, json_data=None, text="", lines=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    response.iter_lines.return_value = iter(lines or [])
    return response


def hf_backend(**kwargs) -> HuggingFaceBackend:
    defaults = dict(token="hf_test", model_id="org/model", api_base="https://hf.example/models")
    defaults.update(kwargs)
    return HuggingFaceBackend(**defaults)


class TestFirstTextField:
    """Test response text extraction."""

    def test_unwraps_list(self):
        assert first_text_field([{"generated_text": "Hi"}], ("generated_text",)) == "Hi"

    def test_empty_list(self):
        assert first_text_field([], ("generated_text",)) == ""

    def test_skips_blank_fields(self):
        assert first_text_field({"text": "  ", "response": "r"}, ("text", "response")) == "r"


class TestHuggingFaceGenerate:
    """Test the primary backend's blocking call."""

    @patch('vekkam.ai.backends.requests.post')
    def test_payload_parameters(self, mock_post):
        """Payload carries the formatted prompt and generation parameters."""
        mock_post.return_value = make_response(json_data=[{"generated_text": "Osmosis is..."}])

        hf_backend().generate(GenerationRequest("What is osmosis?", system_instruction="Be brief."))

        kwargs = mock_post.call_args.kwargs
        assert mock_post.call_args.args[0] == "https://hf.example/models/org/model"
        assert kwargs['json']['inputs'] == "SYSTEM:\nBe brief.\n\nUSER:\nWhat is osmosis?\n\nASSISTANT:\n"
        assert kwargs['json']['parameters'] == {
            "max_new_tokens": 1500,
            "return_full_text": False,
            "temperature": 0.7,
            "do_sample": True,
        }
        assert kwargs['headers']['Authorization'] == "Bearer hf_test"

    @patch('vekkam.ai.backends.requests.post')
    def test_list_response(self, mock_post):
        mock_post.return_value = make_response(json_data=[{"generated_text": "Paris"}])
        assert hf_backend().generate(GenerationRequest("Capital of France?")) == "Paris"

    @patch('vekkam.ai.backends.requests.post')
    def test_dict_response(self, mock_post):
        mock_post.return_value = make_response(json_data={"generated_text": "Paris"})
        assert hf_backend().generate(GenerationRequest("Capital of France?")) == "Paris"

    @patch('vekkam.ai.backends.requests.post')
    def test_missing_token_fails_before_request(self, mock_post):
        with pytest.raises(ProviderError, match="HF_TOKEN"):
            hf_backend(token="").generate(GenerationRequest("hi"))
        mock_post.assert_not_called()

    @patch('vekkam.ai.backends.requests.post')
    def test_error_status(self, mock_post):
        """Non-2xx responses carry the body as detail."""
        mock_post.return_value = make_response(status_code=503, text="Model is loading")

        with pytest.raises(ProviderError) as exc_info:
            hf_backend().generate(GenerationRequest("hi"))

        assert "503" in exc_info.value.message
        assert exc_info.value.detail == "Model is loading"
        assert exc_info.value.provider == "huggingface"

    @patch('vekkam.ai.backends.requests.post')
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(ProviderError, match="timed out"):
            hf_backend().generate(GenerationRequest("hi"))

    @patch('vekkam.ai.backends.requests.post')
    def test_connection_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError()

        with pytest.raises(ProviderError, match="Cannot connect"):
            hf_backend().generate(GenerationRequest("hi"))

    @patch('vekkam.ai.backends.requests.post')
    def test_empty_text(self, mock_post):
        mock_post.return_value = make_response(json_data=[{"generated_text": ""}])

        with pytest.raises(ProviderError, match="Empty response"):
            hf_backend().generate(GenerationRequest("hi"))

    @patch('vekkam.ai.backends.requests.post')
    def test_non_json_body(self, mock_post):
        response = make_response()
        response.json.side_effect = ValueError("No JSON")
        mock_post.return_value = response

        with pytest.raises(ProviderError, match="non-JSON"):
            hf_backend().generate(GenerationRequest("hi"))
        response.close.assert_called()

    @patch('vekkam.ai.backends.requests.post')
    def test_cancelled_before_request(self, mock_post):
        token = CancelToken()
        token.cancel()

        with pytest.raises(GenerationCancelled):
            hf_backend().generate(GenerationRequest("hi"), token)
        mock_post.assert_not_called()


class TestHuggingFaceStream:
    """Test server-sent event streaming."""

    @patch('vekkam.ai.backends.requests.post')
    def test_yields_token_text(self, mock_post):
        """Special tokens, blank lines and [DONE] are skipped."""
        response = make_response(lines=[
            'data: {"token": {"text": "Hel", "special": false}}',
            '',
            'data: {"token": {"text": "lo", "special": false}}',
            'data: {"token": {"text": "</s>", "special": true}}',
            'data: [DONE]',
        ])
        mock_post.return_value = response

        fragments = list(hf_backend().stream(GenerationRequest("hi")))

        assert fragments == ["Hel", "lo"]
        assert mock_post.call_args.kwargs['stream'] is True
        assert mock_post.call_args.kwargs['json']['stream'] is True
        response.close.assert_called()

    @patch('vekkam.ai.backends.requests.post')
    def test_error_event_raises(self, mock_post):
        mock_post.return_value = make_response(lines=[
            'data: {"token": {"text": "Par"}}',
            'data: {"error": "Input validation error"}',
        ])

        stream = hf_backend().stream(GenerationRequest("hi"))
        assert next(stream) == "Par"
        with pytest.raises(ProviderError, match="Input validation error"):
            next(stream)

    @patch('vekkam.ai.backends.requests.post')
    def test_cancel_closes_response(self, mock_post):
        response = make_response(lines=[
            'data: {"token": {"text": "one"}}',
            'data: {"token": {"text": "two"}}',
        ])
        mock_post.return_value = response
        token = CancelToken()

        stream = hf_backend().stream(GenerationRequest("hi"), token)
        assert next(stream) == "one"
        token.cancel()

        response.close.assert_called()
        with pytest.raises(GenerationCancelled):
            next(stream)

    @patch('vekkam.ai.backends.requests.post')
    def test_cancel_when_closed_response_ends_quietly(self, mock_post):
        response = MagicMock()
        response.status_code = 200
        closed = []
        response.close.side_effect = lambda: closed.append(True)

        def iter_lines(decode_unicode=True):
            for line in ['data: {"token": {"text": "Hel"}}', 'data: {"token": {"text": "lo"}}']:
                if closed:
                    return
                yield line

        response.iter_lines.side_effect = iter_lines
        mock_post.return_value = response
        token = CancelToken()

        stream = hf_backend().stream(GenerationRequest("hi"), token)
        assert next(stream) == "Hel"
        token.cancel()

        with pytest.raises(GenerationCancelled):
            next(stream)

    def test_malformed_event_skipped(self):
        assert hf_backend()._parse_event("data: {not json") == ""
        assert hf_backend()._parse_event(": keep-alive") == ""
        assert hf_backend()._parse_event(b'data: {"token": {"text": "x"}}') == "x"


class TestLlamaBackend:
    """Test the secondary backend."""

    @patch('vekkam.ai.backends.requests.post')
    def test_text_field_wins(self, mock_post):
        mock_post.return_value = make_response(json_data={"generated_text": "g", "response": "r", "text": "t"})
        assert LlamaBackend(api_url="https://llama.example/generate").generate(GenerationRequest("hi")) == "t"

    @patch('vekkam.ai.backends.requests.post')
    def test_response_before_generated_text(self, mock_post):
        mock_post.return_value = make_response(json_data={"generated_text": "g", "response": "r"})
        assert LlamaBackend(api_url="https://llama.example/generate").generate(GenerationRequest("hi")) == "r"

    @patch('vekkam.ai.backends.requests.post')
    def test_payload_and_optional_auth(self, mock_post):
        mock_post.return_value = make_response(json_data={"text": "ok"})

        LlamaBackend(api_url="https://llama.example/generate", api_key="", model_name="llama-test").generate(
            GenerationRequest("hi", system_instruction="sys")
        )

        kwargs = mock_post.call_args.kwargs
        assert kwargs['json'] == {"prompt": "SYSTEM:\nsys\n\nUSER:\nhi\n\nASSISTANT:\n", "model": "llama-test"}
        assert "Authorization" not in kwargs['headers']

    @patch('vekkam.ai.backends.requests.post')
    def test_bearer_header_when_key_set(self, mock_post):
        mock_post.return_value = make_response(json_data={"text": "ok"})

        LlamaBackend(api_url="https://llama.example/generate", api_key="secret").generate(GenerationRequest("hi"))

        assert mock_post.call_args.kwargs['headers']['Authorization'] == "Bearer secret"

    @patch('vekkam.ai.backends.requests.post')
    def test_no_text_fields(self, mock_post):
        mock_post.return_value = make_response(json_data={"status": "ok"})

        with pytest.raises(ProviderError, match="Empty response from Llama"):
            LlamaBackend(api_url="https://llama.example/generate").generate(GenerationRequest("hi"))

    def test_does_not_stream(self):
        backend = LlamaBackend(api_url="https://llama.example/generate")

        assert backend.supports_streaming is False
        with pytest.raises(ProviderError):
            backend.stream(GenerationRequest("hi"))
