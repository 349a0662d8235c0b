"""
Structured Output Parser.

Recovers a JSON value from free-form model output:

1. Strip Markdown code-fence markers (```json / ```)
2. Take the substring from the first "{" to the last "}"
3. Parse it as JSON

Failures raise ParseError carrying the raw text, never a provider error.
Callers that have a deterministic fallback use parse_or_fallback().
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from vekkam.exceptions import ParseError
from vekkam.logging_config import debug_log, warning

T = TypeVar('T')

CODE_FENCE_PATTERN = re.compile(r'```(?:json|JSON)?')


@dataclass
class ParsedStructured(Generic[T]):
    """
    A validated value, or a fallback value plus the raw text.

    Attributes:
        value: Parsed (and validated) value, or the fallback
        ok: True if parsing and validation succeeded
        raw: The original model output
        error: The ParseError when ok is False
    """

    value: T
    ok: bool
    raw: str = ""
    error: ParseError | None = None


class StructuredOutputParser:
    """
    Parses JSON out of generated text.

    Example:
        parser = StructuredOutputParser()
        data = parser.parse('Sure! ```json\\n{"a": 1}\\n```')   # {"a": 1}

        result = parser.parse_or_fallback(text, Quiz.from_dict, fallback=None)
        if not result.ok:
            show_raw(result.raw)
    """

    def clean(self, text: str) -> str:
        """Remove code fences and cut to the outermost braces."""
        cleaned = CODE_FENCE_PATTERN.sub('', text or '').strip()
        start = cleaned.find('{')
        end = cleaned.rfind('}')
        if start != -1 and end > start:
            return cleaned[start:end + 1]
        return cleaned

    def parse(self, text: str) -> Any:
        """
        Parse JSON from model output.

        Args:
            text: Raw generated text

        Returns:
            The decoded JSON value

        Raises:
            ParseError: If no valid JSON could be recovered
        """
        if not text or not text.strip():
            raise ParseError("Empty response, no JSON to parse", raw=text or "")

        candidate = self.clean(text)
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            debug_log(f"[PARSER] JSON decode failed ({e.msg} at {e.pos}): {text[:100]}...")
            raise ParseError("Invalid JSON format", raw=text, detail=str(e)) from e

        debug_log(f"[PARSER] Parsed {type(value).__name__} from {len(text)} chars")
        return value

    def parse_into(self, text: str, validator: Callable[[Any], T]) -> T:
        """
        Parse and validate in one step.

        The validator converts the decoded value to a typed contract and
        raises ParseError (or ValueError/TypeError/KeyError) on mismatch.

        Raises:
            ParseError: On invalid JSON or a contract mismatch
        """
        value = self.parse(text)
        try:
            return validator(value)
        except ParseError as e:
            if not e.raw:
                e.raw = text
            raise
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise ParseError("Response does not match the expected structure", raw=text, detail=str(e)) from e

    def parse_or_fallback(
        self,
        text: str,
        validator: Callable[[Any], T] | None = None,
        fallback: T = None,
    ) -> ParsedStructured[T]:
        """
        Parse, validate, and fall back deterministically on failure.

        Args:
            text: Raw generated text
            validator: Optional contract conversion (identity if None)
            fallback: Value used when parsing or validation fails

        Returns:
            ParsedStructured with ok=False and the raw text on failure
        """
        try:
            value = self.parse_into(text, validator or (lambda v: v))
        except ParseError as e:
            warning(f"[PARSER] Structured output unusable, using fallback: {e.message}")
            return ParsedStructured(value=fallback, ok=False, raw=text or "", error=e)
        return ParsedStructured(value=value, ok=True, raw=text or "")


_default_parser = StructuredOutputParser()


def parse_structured(text: str) -> Any:
    """Module-level shortcut for StructuredOutputParser().parse()."""
    return _default_parser.parse(text)
