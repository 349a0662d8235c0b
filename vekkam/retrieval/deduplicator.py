"""
Near-duplicate removal for context candidates.

Uses Jaccard similarity over whitespace-token sets. Comparison is
pairwise against everything already accepted, which is O(n^2) in the
accepted set; the accepted set is bounded by the context budget rather
than the corpus, so it stays small.
"""

from vekkam.config import DEDUP_SIMILARITY_THRESHOLD
from vekkam.logging_config import debug_log
from vekkam.retrieval.base import ScoredSource


def _token_set(text: str) -> frozenset[str]:
    return frozenset((text or "").lower().split())


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """
    Jaccard similarity of two texts' whitespace-token sets.

    Tokens are lowercased. Two empty texts are identical (1.0).

    Returns:
        |A & B| / |A | B| in the range 0.0-1.0
    """
    tokens_a = _token_set(text_a)
    tokens_b = _token_set(text_b)
    union = tokens_a | tokens_b
    if not union:
        return 1.0
    return len(tokens_a & tokens_b) / len(union)


class Deduplicator:
    """
    Rejects candidates too similar to an already-accepted item.

    Can be used in batch (deduplicate) or incrementally (is_duplicate +
    add) while another component applies its own acceptance rules.

    Example:
        dedup = Deduplicator(threshold=0.85)
        unique = dedup.deduplicate(ranked_candidates)
    """

    def __init__(self, threshold: float = DEDUP_SIMILARITY_THRESHOLD):
        """
        Args:
            threshold: Similarity above which a candidate is a duplicate
        """
        self.threshold = threshold
        self._accepted_tokens: list[frozenset[str]] = []

    def reset(self) -> None:
        """Forget accepted items so the instance can serve a new request."""
        self._accepted_tokens = []

    def is_duplicate(self, text: str) -> bool:
        """True if text exceeds the threshold against any accepted item."""
        tokens = _token_set(text)
        for accepted in self._accepted_tokens:
            union = tokens | accepted
            similarity = len(tokens & accepted) / len(union) if union else 1.0
            if similarity > self.threshold:
                return True
        return False

    def add(self, text: str) -> None:
        """Record text as accepted."""
        self._accepted_tokens.append(_token_set(text))

    def deduplicate(self, candidates: list[ScoredSource]) -> list[ScoredSource]:
        """
        Filter candidates, iterating in the given (score) order.

        Args:
            candidates: Sources ordered by descending score

        Returns:
            Accepted candidates in the same order
        """
        self.reset()
        accepted = []
        for candidate in candidates:
            if self.is_duplicate(candidate.text):
                continue
            self.add(candidate.text)
            accepted.append(candidate)

        if len(accepted) < len(candidates):
            debug_log(f"[Deduplicator] Removed {len(candidates) - len(accepted)} near-duplicates "
                      f"(threshold={self.threshold})")
        return accepted
