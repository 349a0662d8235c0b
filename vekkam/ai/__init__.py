"""
AI Package - Text generation backends with tiered fallback.

Contains:
- GenerationRequest / GenerationResult: request and result types
- HuggingFaceBackend: primary tier (blocking and streaming)
- LlamaBackend: secondary tier (blocking)
- GenerationOrchestrator: primary -> secondary fallback, streaming relay
- CancelToken: cancellation that closes the in-flight response
- format_prompt: SYSTEM/USER/ASSISTANT wire format
"""

from vekkam.ai.backends import GenerationBackend, HuggingFaceBackend, LlamaBackend, first_text_field
from vekkam.ai.base import GenerationRequest, GenerationResult, ProviderTier
from vekkam.ai.cancellation import CancelToken
from vekkam.ai.orchestrator import GenerationOrchestrator, ProviderOutcome
from vekkam.ai.prompt_formatter import format_prompt

__all__ = [
    'GenerationBackend',
    'HuggingFaceBackend',
    'LlamaBackend',
    'first_text_field',
    'GenerationRequest',
    'GenerationResult',
    'ProviderTier',
    'CancelToken',
    'GenerationOrchestrator',
    'ProviderOutcome',
    'format_prompt',
]
