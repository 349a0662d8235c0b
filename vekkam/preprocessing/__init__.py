"""
Text Normalization Pipeline Module

Cleans raw extracted text before scoring, chunking and generation.
Each step is a standalone class that can be enabled/disabled independently.

Usage:
    from vekkam.preprocessing import normalize_text

    cleaned = normalize_text(raw_text)

    # Or customize which steps to use:
    pipeline = PreprocessingPipeline(preprocessors=[
        LineEndingNormalizer(),
        BlankLineCollapser(),
    ])
    cleaned = pipeline.process(raw_text)
"""

from vekkam.preprocessing.base import BasePreprocessor, PreprocessingPipeline, PreprocessingResult, StepReport
from vekkam.preprocessing.normalizers import (
    BlankLineCollapser,
    EdgeTrimmer,
    HyphenationJoiner,
    LineEndingNormalizer,
    PageNumberRemover,
    WhitespaceCollapser,
)


def create_default_pipeline() -> PreprocessingPipeline:
    """
    Create the standard normalization pipeline.

    Order matters: hyphenated breaks are joined before line endings and
    blank lines are touched, and page markers are stripped only after
    whitespace has been collapsed so the marker patterns stay simple.

    Returns:
        Configured PreprocessingPipeline instance
    """
    return PreprocessingPipeline(preprocessors=[
        HyphenationJoiner(),
        LineEndingNormalizer(),
        BlankLineCollapser(),
        WhitespaceCollapser(),
        PageNumberRemover(),
        EdgeTrimmer(),
    ])


def normalize_text(text: str) -> str:
    """
    Normalize extracted text with the default pipeline.

    Never raises; empty or None input returns "".
    """
    return create_default_pipeline().process(text or "")


__all__ = [
    'BasePreprocessor',
    'PreprocessingPipeline',
    'PreprocessingResult',
    'StepReport',
    'HyphenationJoiner',
    'LineEndingNormalizer',
    'BlankLineCollapser',
    'WhitespaceCollapser',
    'PageNumberRemover',
    'EdgeTrimmer',
    'create_default_pipeline',
    'normalize_text',
]
