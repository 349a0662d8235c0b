"""
Retrieval Package for Vekkam.

Lexical context selection for prompts, bounded by a character budget.

Architecture:
- Source / ScoredSource: candidate passages and their request-scoped scores
- ParagraphScorer: term-frequency (single document) and keyword (multi-source) scoring
- Deduplicator: Jaccard near-duplicate rejection
- ContextSelector: greedy budgeted selection with anchor reservation,
  zero-score pruning and narrative-order restoration

Example:
    from vekkam.retrieval import ContextSelector, ParagraphScorer, extract_keywords

    scorer = ParagraphScorer()
    scored = scorer.score_sources(sources, extract_keywords(question))
    result = ContextSelector().select(scored)
    print(result.context)
"""

from vekkam.retrieval.base import (
    ContextBudget,
    ScoredSource,
    SelectionResult,
    Source,
    SourceKind,
)
from vekkam.retrieval.context_selector import ContextSelector, select_document_context
from vekkam.retrieval.deduplicator import Deduplicator, jaccard_similarity
from vekkam.retrieval.scoring import ParagraphScorer, extract_keywords, split_paragraphs

__all__ = [
    # Data structures
    "Source",
    "SourceKind",
    "ScoredSource",
    "ContextBudget",
    "SelectionResult",
    # Scoring
    "ParagraphScorer",
    "extract_keywords",
    "split_paragraphs",
    # Deduplication
    "Deduplicator",
    "jaccard_similarity",
    # Selection
    "ContextSelector",
    "select_document_context",
]
