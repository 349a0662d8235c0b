"""
Generation backends for Vekkam.

Each backend wraps one HTTP inference endpoint and maps its response
shape to plain text. Backends never retry and never fall back; any
failure (network error, non-success status, empty text) is raised as a
ProviderError for the GenerationOrchestrator to handle.

Backends:
- HuggingFaceBackend: primary tier, Hugging Face text-generation task.
  Supports streaming via server-sent events.
- LlamaBackend: secondary tier, a plain JSON inference endpoint.
  Blocking only.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Iterator

import requests

from vekkam.ai.base import GenerationRequest
from vekkam.ai.cancellation import CancelToken
from vekkam.config import (
    HF_API_BASE,
    HF_MAX_NEW_TOKENS,
    HF_MODEL_ID,
    HF_TEMPERATURE,
    HF_TOKEN,
    LLAMA_API_KEY,
    LLAMA_API_URL,
    LLAMA_MODEL_NAME,
    PRIMARY_TIMEOUT_SECONDS,
    SECONDARY_TIMEOUT_SECONDS,
)
from vekkam.exceptions import GenerationCancelled, ProviderError
from vekkam.logging_config import debug_log


def first_text_field(data: Any, fields: tuple[str, ...]) -> str:
    """
    Pull generated text out of a decoded response body.

    Lists are unwrapped to their first element. Fields are tried in
    priority order; the first non-empty string wins.

    Args:
        data: Decoded JSON body
        fields: Candidate field names, highest priority first

    Returns:
        The text, or "" when no field holds a non-empty string
    """
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        return ""
    for field_name in fields:
        value = data.get(field_name)
        if isinstance(value, str) and value.strip():
            return value
    return ""


class GenerationBackend(ABC):
    """
    Abstract base for a text-generation endpoint.

    Subclasses must implement generate(); streaming backends also
    override stream() and set supports_streaming.
    """

    name: str = "backend"
    supports_streaming: bool = False

    def __init__(self, timeout: float):
        self.timeout = timeout

    @abstractmethod
    def generate(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> str:
        """
        Generate text for a request.

        Returns:
            str: Non-empty generated text

        Raises:
            ProviderError: On any failure, including empty output
            GenerationCancelled: If the token was cancelled
        """
        pass

    def stream(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> Iterator[str]:
        """Yield text fragments as they arrive."""
        raise ProviderError(f"{self.name} does not support streaming", provider=self.name)

    def _post(
        self,
        url: str,
        payload: dict,
        headers: dict,
        stream: bool = False,
    ) -> requests.Response:
        """
        POST a JSON payload, mapping transport failures to ProviderError.

        Raises:
            ProviderError: On timeout, connection failure or non-2xx status
        """
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout, stream=stream)
        except requests.exceptions.Timeout as e:
            raise ProviderError(
                f"{self.name} timed out after {self.timeout} seconds", provider=self.name
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise ProviderError(f"Cannot connect to {self.name} at {url}", provider=self.name) from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name) from e

        if not 200 <= response.status_code < 300:
            body = "" if stream else response.text
            response.close()
            raise ProviderError(
                f"{self.name} returned status {response.status_code}",
                provider=self.name,
                detail=body[:500] or None,
            )
        return response

    def _decode(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned a non-JSON body", provider=self.name) from e


class HuggingFaceBackend(GenerationBackend):
    """
    Primary tier: Hugging Face Inference, text-generation task.

    Blocking responses are either [{"generated_text": ...}] or
    {"generated_text": ...} depending on the endpoint version. Streaming
    responses are server-sent events whose data lines carry
    {"token": {"text": ...}}.
    """

    name = "huggingface"
    supports_streaming = True
    TEXT_FIELDS = ("generated_text",)

    def __init__(
        self,
        token: str = HF_TOKEN,
        model_id: str = HF_MODEL_ID,
        api_base: str = HF_API_BASE,
        timeout: float = PRIMARY_TIMEOUT_SECONDS,
        max_new_tokens: int = HF_MAX_NEW_TOKENS,
        temperature: float = HF_TEMPERATURE,
    ):
        super().__init__(timeout)
        self.token = token
        self.model_id = model_id
        self.url = f"{api_base.rstrip('/')}/{model_id}"
        self.max_new_tokens = max_new_tokens
        self.temperature = temperature

    def _headers(self) -> dict:
        if not self.token:
            raise ProviderError("HF_TOKEN environment variable is missing.", provider=self.name)
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: GenerationRequest, stream: bool) -> dict:
        payload = {
            "inputs": request.prompt,
            "parameters": {
                "max_new_tokens": self.max_new_tokens,
                "return_full_text": False,  # Only the generated part
                "temperature": self.temperature,
                "do_sample": True,
            },
        }
        if stream:
            payload["stream"] = True
        return payload

    def generate(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> str:
        headers = self._headers()
        if cancel_token:
            cancel_token.raise_if_cancelled()

        debug_log(f"[HF GENERATE] Model: {self.model_id}, prompt length: {len(request.prompt)} chars")
        start_time = time.time()
        response = self._post(self.url, self._payload(request, stream=False), headers)
        try:
            text = first_text_field(self._decode(response), self.TEXT_FIELDS)
        finally:
            response.close()
        elapsed = time.time() - start_time

        if cancel_token:
            cancel_token.raise_if_cancelled()
        if not text.strip():
            raise ProviderError("Empty response from Hugging Face.", provider=self.name)

        debug_log(f"[HF GENERATE] Complete: {len(text)} chars in {elapsed:.2f}s")
        return text

    def stream(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> Iterator[str]:
        headers = self._headers()
        if cancel_token:
            cancel_token.raise_if_cancelled()

        debug_log(f"[HF STREAM] Model: {self.model_id}, prompt length: {len(request.prompt)} chars")
        start_time = time.time()
        response = self._post(self.url, self._payload(request, stream=True), headers, stream=True)
        unregister = cancel_token.on_cancel(response.close) if cancel_token else None
        fragments = 0
        try:
            for line in response.iter_lines(decode_unicode=True):
                if cancel_token and cancel_token.is_cancelled:
                    raise GenerationCancelled()
                fragment = self._parse_event(line)
                if fragment:
                    fragments += 1
                    yield fragment
            if cancel_token and cancel_token.is_cancelled:
                raise GenerationCancelled()
        except (GenerationCancelled, ProviderError):
            raise
        except Exception as e:
            if cancel_token and cancel_token.is_cancelled:
                raise GenerationCancelled() from e
            raise ProviderError(f"Hugging Face stream broke: {e}", provider=self.name) from e
        finally:
            if unregister:
                unregister()
            response.close()
            debug_log(f"[HF STREAM] Closed after {fragments} fragments in {time.time() - start_time:.2f}s")

    def _parse_event(self, line: str | bytes | None) -> str:
        """Extract the token text from one server-sent event line."""
        if not line:
            return ""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        if not line.startswith("data:"):
            return ""
        data = line[len("data:"):].strip()
        if not data or data == "[DONE]":
            return ""
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            debug_log(f"[HF STREAM] Skipping malformed event: {data[:100]}")
            return ""
        if not isinstance(event, dict):
            return ""
        if event.get("error"):
            raise ProviderError(f"Hugging Face stream error: {event['error']}", provider=self.name)
        token = event.get("token") or {}
        if token.get("special"):
            return ""
        return token.get("text") or ""


class LlamaBackend(GenerationBackend):
    """
    Secondary tier: Llama inference endpoint.

    Response text is read from "text", then "response", then
    "generated_text".
    """

    name = "llama"
    TEXT_FIELDS = ("text", "response", "generated_text")

    def __init__(
        self,
        api_url: str = LLAMA_API_URL,
        api_key: str = LLAMA_API_KEY,
        model_name: str = LLAMA_MODEL_NAME,
        timeout: float = SECONDARY_TIMEOUT_SECONDS,
    ):
        super().__init__(timeout)
        self.api_url = api_url
        self.api_key = api_key
        self.model_name = model_name

    def generate(self, request: GenerationRequest, cancel_token: CancelToken | None = None) -> str:
        if cancel_token:
            cancel_token.raise_if_cancelled()

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {"prompt": request.prompt, "model": self.model_name}

        debug_log(f"[LLAMA GENERATE] Model: {self.model_name}, prompt length: {len(request.prompt)} chars")
        start_time = time.time()
        response = self._post(self.api_url, payload, headers)
        try:
            text = first_text_field(self._decode(response), self.TEXT_FIELDS)
        finally:
            response.close()
        elapsed = time.time() - start_time

        if cancel_token:
            cancel_token.raise_if_cancelled()
        if not text.strip():
            raise ProviderError("Empty response from Llama", provider=self.name)

        debug_log(f"[LLAMA GENERATE] Complete: {len(text)} chars in {elapsed:.2f}s")
        return text
