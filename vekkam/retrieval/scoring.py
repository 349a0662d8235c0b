"""
Paragraph and source scoring for context selection.

Two lexical scoring modes, neither of which claims semantic relevance:

1. Document term-frequency mode (score_document)
   Used when one long document must be compressed (quiz generation).
   Each paragraph scores the sum of the document-wide frequencies of its
   significant words, divided by ln(word_count + 2) so dense paragraphs
   beat merely long ones.

2. Multi-source keyword mode (score_sources)
   Used for question answering over notes, conversations and achievements.
   score = 3 x primary keyword hits + 1 x secondary keyword hits, boosted
   x1.5 for the note the student currently has open.

In both modes a paragraph with fewer than 5 significant words (lowercase
alphabetic runs of 4+ letters) scores 0, which filters headings, page
debris and one-line fragments.
"""

import math
import re
from collections import Counter
from collections.abc import Iterable

from vekkam.config import (
    ACTIVE_NOTE_BOOST,
    MIN_SIGNIFICANT_WORD_LENGTH,
    MIN_SIGNIFICANT_WORDS,
    PRIMARY_KEYWORD_WEIGHT,
    SECONDARY_KEYWORD_WEIGHT,
    SOURCE_KIND_WEIGHTS,
)
from vekkam.logging_config import debug_log
from vekkam.retrieval.base import ScoredSource, Source, SourceKind

PARAGRAPH_SPLIT_PATTERN = re.compile(r'\n\s*\n')

# Common stopwords filtered out of question keywords
STOPWORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "dare",
    "ought", "used", "to", "of", "in", "for", "on", "with", "at", "by",
    "from", "as", "into", "through", "during", "before", "after",
    "above", "below", "between", "under", "again", "further", "then",
    "once", "here", "there", "when", "where", "why", "how", "all",
    "each", "few", "more", "most", "other", "some", "such", "no", "nor",
    "not", "only", "own", "same", "so", "than", "too", "very", "just",
    "also", "now", "what", "who", "which", "this", "that", "these",
    "those", "i", "you", "he", "she", "it", "we", "they", "them",
    "his", "her", "its", "our", "their", "my", "your", "and", "but",
    "or", "if", "because", "while", "although", "though", "unless",
    "explain", "describe", "tell", "about", "please", "mean",
})


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank-line separators, dropping empty paragraphs."""
    if not text:
        return []
    return [p.strip() for p in PARAGRAPH_SPLIT_PATTERN.split(text) if p.strip()]


def extract_keywords(text: str, min_length: int = 3) -> set[str]:
    """
    Extract lowercase keywords from a question or conversation turn.

    Args:
        text: Input text
        min_length: Shortest word kept

    Returns:
        Set of keywords with stopwords removed
    """
    words = re.findall(r'\b[a-zA-Z]+\b', (text or "").lower())
    return {w for w in words if len(w) >= min_length and w not in STOPWORDS}


class ParagraphScorer:
    """
    Scores paragraphs and sources for context selection.

    Scores are request-scoped: a scorer holds only read-only weights, so
    one instance can be shared across concurrent requests.

    Example:
        scorer = ParagraphScorer()
        scored = scorer.score_sources(
            sources,
            primary_keywords={"osmosis", "membrane"},
            active_source_ids={"active-p0", "active-p1"},
        )
        ranked = scorer.rank(scored)
    """

    def __init__(
        self,
        min_significant_words: int = MIN_SIGNIFICANT_WORDS,
        min_word_length: int = MIN_SIGNIFICANT_WORD_LENGTH,
        primary_weight: float = PRIMARY_KEYWORD_WEIGHT,
        secondary_weight: float = SECONDARY_KEYWORD_WEIGHT,
        active_note_boost: float = ACTIVE_NOTE_BOOST,
        kind_weights: dict[str, float] | None = None,
    ):
        self.min_significant_words = min_significant_words
        self.primary_weight = primary_weight
        self.secondary_weight = secondary_weight
        self.active_note_boost = active_note_boost
        self.kind_weights = dict(SOURCE_KIND_WEIGHTS if kind_weights is None else kind_weights)
        self._significant_pattern = re.compile(rf'[a-z]{{{min_word_length},}}')

    def significant_words(self, text: str) -> list[str]:
        """Lowercase alphabetic runs of at least the minimum length."""
        return self._significant_pattern.findall((text or "").lower())

    def is_fragment(self, text: str) -> bool:
        """True when the text has too few significant words to score."""
        return len(self.significant_words(text)) < self.min_significant_words

    # ------------------------------------------------------------------
    # Document term-frequency mode
    # ------------------------------------------------------------------

    def score_document(self, text: str) -> list[ScoredSource]:
        """
        Score each paragraph of one document by term-frequency density.

        Args:
            text: Normalized document text

        Returns:
            One ScoredSource per paragraph, in document order, ids "p0", "p1", ...
        """
        paragraphs = split_paragraphs(text)
        frequencies = Counter(self.significant_words(text))

        scored = []
        for index, paragraph in enumerate(paragraphs):
            words = self.significant_words(paragraph)
            if len(words) < self.min_significant_words:
                score = 0.0
            else:
                raw_score = sum(frequencies[w] for w in words)
                score = raw_score / math.log(len(words) + 2)
            scored.append(ScoredSource(
                source=Source(id=f"p{index}", kind=SourceKind.PARAGRAPH, text=paragraph),
                score=score,
                original_index=index,
            ))

        debug_log(f"[ParagraphScorer] Document mode: {len(scored)} paragraphs, "
                  f"{len(frequencies)} distinct significant words")
        return scored

    # ------------------------------------------------------------------
    # Multi-source keyword mode
    # ------------------------------------------------------------------

    def score_sources(
        self,
        sources: list[Source],
        primary_keywords: Iterable[str],
        secondary_keywords: Iterable[str] = (),
        active_source_ids: Iterable[str] = (),
    ) -> list[ScoredSource]:
        """
        Score aggregated sources against the question's keywords.

        Args:
            sources: Candidates in aggregation order (defines original_index)
            primary_keywords: Keywords from the current question
            secondary_keywords: Weaker signals (e.g. recent conversation turns)
            active_source_ids: Ids of sources belonging to the open note

        Returns:
            One ScoredSource per input source, in input order
        """
        primary_pattern = self._keyword_pattern(primary_keywords)
        secondary_pattern = self._keyword_pattern(secondary_keywords)
        active_ids = set(active_source_ids)

        scored = []
        for index, source in enumerate(sources):
            score = 0.0
            if not self.is_fragment(source.text):
                primary_hits = len(primary_pattern.findall(source.text)) if primary_pattern else 0
                secondary_hits = len(secondary_pattern.findall(source.text)) if secondary_pattern else 0
                score = self.primary_weight * primary_hits + self.secondary_weight * secondary_hits
                score *= self.kind_weights.get(SourceKind(source.kind).value, 1.0)
                if source.id in active_ids:
                    score *= self.active_note_boost
            scored.append(ScoredSource(source=source, score=score, original_index=index))

        debug_log(f"[ParagraphScorer] Keyword mode: {len(scored)} sources, "
                  f"{sum(1 for s in scored if s.score > 0)} with signal")
        return scored

    def rank(self, scored: list[ScoredSource]) -> list[ScoredSource]:
        """Sort by descending score; ties keep original order."""
        return sorted(scored, key=lambda s: s.score, reverse=True)

    def _keyword_pattern(self, keywords: Iterable[str]) -> re.Pattern | None:
        """Compile a case-insensitive whole-word alternation, or None."""
        cleaned = sorted({k.strip().lower() for k in keywords if k and k.strip()}, key=len, reverse=True)
        if not cleaned:
            return None
        alternation = "|".join(re.escape(k) for k in cleaned)
        return re.compile(rf'\b(?:{alternation})\b', re.IGNORECASE)
