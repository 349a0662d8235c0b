"""
Collaborator interfaces: text extraction and session storage.

Binary formats (PDF, Word, OCR, audio) are handled outside this package;
PlainTextExtractor covers the text-like types. SessionStore hides the
persistence backend behind save/get/delete over JSON-like records.
"""

import copy
import re
import threading
from abc import ABC, abstractmethod
from typing import Callable

from vekkam.exceptions import ExtractionError
from vekkam.logging_config import debug_log, warning
from vekkam.preprocessing import normalize_text

HTML_TAG_PATTERN = re.compile(r'<[^>]+>')

TEXT_MIME_TYPES = frozenset({
    "application/json",
    "application/xml",
    "application/xhtml+xml",
    "application/x-yaml",
    "application/yaml",
})

# Callback receives the new record, or None after a delete
UpdateCallback = Callable[[dict | None], None]


# =============================================================================
# Text extraction
# =============================================================================


class TextExtractor(ABC):
    """Turns uploaded bytes into normalized plain text."""

    @abstractmethod
    def supports(self, mime_type: str) -> bool:
        """True if this extractor can handle the MIME type."""
        pass

    @abstractmethod
    def extract(self, data: bytes, mime_type: str) -> str:
        """
        Extract text.

        Raises:
            ExtractionError: Unsupported type, undecodable bytes or no text
        """
        pass


class PlainTextExtractor(TextExtractor):
    """
    Extractor for text/*, JSON, XML and YAML payloads.

    HTML tags are replaced by newlines before normalization.

    Example:
        text = PlainTextExtractor().extract(b"<p>Osmosis</p>", "text/html")
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def supports(self, mime_type: str) -> bool:
        base = (mime_type or "").split(";")[0].strip().lower()
        return base.startswith("text/") or base in TEXT_MIME_TYPES

    def extract(self, data: bytes, mime_type: str) -> str:
        debug_log(f"[Extractor] Extracting {len(data or b'')} bytes of {mime_type}")
        if not self.supports(mime_type):
            raise ExtractionError(f"Extraction failed: unsupported file type '{mime_type}'")

        try:
            raw = (data or b"").decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ExtractionError(f"Extraction failed: file is not valid {self.encoding} text", detail=str(e)) from e

        if "html" in mime_type.lower():
            raw = HTML_TAG_PATTERN.sub("\n", raw)

        text = normalize_text(raw)
        if not text:
            raise ExtractionError("No text extracted")
        return text


# =============================================================================
# Session storage
# =============================================================================


class SessionStore(ABC):
    """Key-value persistence for sessions, groups and badges."""

    @abstractmethod
    def save(self, key: str, record: dict) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> dict | None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def stream_updates(self, key: str, callback: UpdateCallback) -> Callable[[], None]:
        """
        Subscribe to changes of one key.

        Returns:
            A function that cancels the subscription
        """
        pass


class InMemorySessionStore(SessionStore):
    """
    Process-local SessionStore.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store. Subscribers are notified after every
    save or delete of their key.
    """

    def __init__(self):
        self._records: dict[str, dict] = {}
        self._subscribers: dict[str, list[UpdateCallback]] = {}
        self._lock = threading.Lock()

    def save(self, key: str, record: dict) -> None:
        with self._lock:
            self._records[key] = copy.deepcopy(record)
            callbacks = list(self._subscribers.get(key, []))
        self._notify(key, callbacks, record)

    def get(self, key: str) -> dict | None:
        with self._lock:
            record = self._records.get(key)
            return copy.deepcopy(record) if record is not None else None

    def delete(self, key: str) -> None:
        with self._lock:
            existed = self._records.pop(key, None) is not None
            callbacks = list(self._subscribers.get(key, [])) if existed else []
        if existed:
            self._notify(key, callbacks, None)

    def stream_updates(self, key: str, callback: UpdateCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(key, None)

        return unsubscribe

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def _notify(self, key: str, callbacks: list[UpdateCallback], record: dict | None):
        for callback in callbacks:
            try:
                callback(copy.deepcopy(record) if record is not None else None)
            except Exception as e:
                warning(f"[SessionStore] Update callback for '{key}' failed: {e}")
