"""
Structured output recovery and typed contracts.
"""

from vekkam.structured.contracts import (
    AnswerSections,
    TAXONOMY_LEVELS,
    OutlineEntry,
    Quiz,
    QuizQuestion,
    SynthesisUnit,
    parse_outline,
    parse_units,
)
from vekkam.structured.parser import ParsedStructured, StructuredOutputParser, parse_structured

__all__ = [
    'StructuredOutputParser',
    'ParsedStructured',
    'parse_structured',
    'AnswerSections',
    'Quiz',
    'QuizQuestion',
    'SynthesisUnit',
    'OutlineEntry',
    'parse_units',
    'parse_outline',
    'TAXONOMY_LEVELS',
]
