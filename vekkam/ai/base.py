"""
Request and result types for text generation.
"""

from dataclasses import dataclass
from enum import Enum

from vekkam.ai.prompt_formatter import format_prompt
from vekkam.config import DEFAULT_SYSTEM_INSTRUCTION


class ProviderTier(str, Enum):
    """Backend tier that produced a result."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass
class GenerationRequest:
    """
    One generation call.

    Attributes:
        user_prompt: The task for the model
        system_instruction: Persona instruction (defaults to the exam-first persona)
        streaming: Deliver fragments incrementally when the primary supports it
    """

    user_prompt: str
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    streaming: bool = False

    @property
    def prompt(self) -> str:
        """The request in the SYSTEM/USER/ASSISTANT wire format."""
        return format_prompt(self.system_instruction, self.user_prompt)

    @property
    def content_length(self) -> int:
        return len(self.user_prompt or "") + len(self.system_instruction or "")


@dataclass
class GenerationResult:
    """
    Text produced by a backend.

    Attributes:
        text: Generated text (never empty)
        provider_used: Tier that produced the text
        elapsed_seconds: Wall time of the successful call
    """

    text: str
    provider_used: ProviderTier
    elapsed_seconds: float = 0.0
