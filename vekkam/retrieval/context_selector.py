"""
Budgeted context selection.

Greedy selection over scored sources:

1. No keywords at all -> cold start, the first few sources verbatim
2. Reserve the anchor (first paragraph of the open document) first
3. Walk the rest in descending score order:
   - skip zero-score candidates once enough context is gathered
   - skip near-duplicates of anything already accepted
   - accept while the assembled context stays within budget
   - stop at the first candidate that would overflow
4. Restore narrative order (ascending original index) and concatenate

The character count includes block tags and separators, so the final
context string never exceeds the budget.
"""

from vekkam.config import (
    COLD_START_SOURCE_COUNT,
    CONTEXT_MAX_CHARS,
    DEDUP_SIMILARITY_THRESHOLD,
    NO_RELEVANT_CONTEXT_SENTINEL,
    ZERO_SCORE_PRUNE_CHARS,
)
from vekkam.logging_config import debug_log
from vekkam.retrieval.base import ContextBudget, ScoredSource, SelectionResult, Source
from vekkam.retrieval.deduplicator import Deduplicator
from vekkam.retrieval.scoring import ParagraphScorer

BLOCK_SEPARATOR = "\n\n"


class ContextSelector:
    """
    Selects, deduplicates and orders sources into a bounded context string.

    Example:
        selector = ContextSelector(ContextBudget(max_chars=6000))
        result = selector.select(scored_sources, keywords_supplied=True, anchor=scored_sources[0])
        prompt_context = result.context
    """

    def __init__(
        self,
        budget: ContextBudget | None = None,
        dedup_threshold: float = DEDUP_SIMILARITY_THRESHOLD,
        zero_score_prune_chars: int = ZERO_SCORE_PRUNE_CHARS,
        cold_start_count: int = COLD_START_SOURCE_COUNT,
        tag_blocks: bool = True,
        sentinel: str = NO_RELEVANT_CONTEXT_SENTINEL,
    ):
        """
        Args:
            budget: Character budget for the assembled context
            dedup_threshold: Jaccard similarity above which candidates are skipped
            zero_score_prune_chars: Accumulated size after which zero-score
                candidates are no longer considered
            cold_start_count: Sources used verbatim when no keywords exist
            tag_blocks: Prefix each block with "[kind:id]"
            sentinel: Context returned when nothing could be selected
        """
        self.budget = budget or ContextBudget(max_chars=CONTEXT_MAX_CHARS)
        self.dedup_threshold = dedup_threshold
        self.zero_score_prune_chars = zero_score_prune_chars
        self.cold_start_count = cold_start_count
        self.tag_blocks = tag_blocks
        self.sentinel = sentinel

    def select(
        self,
        scored: list[ScoredSource],
        keywords_supplied: bool = True,
        anchor: ScoredSource | None = None,
    ) -> SelectionResult:
        """
        Select sources for the prompt context.

        Args:
            scored: Candidates with request-scoped scores, any order
            keywords_supplied: False when the request carried no keywords
            anchor: First paragraph of the anchor document, always included

        Returns:
            SelectionResult with sources in ascending original_index order
        """
        if not keywords_supplied:
            return self._cold_start(scored)

        max_chars = self.budget.max_chars
        dedup = Deduplicator(self.dedup_threshold)
        accepted: list[ScoredSource] = []
        total_chars = 0
        pruned = 0
        duplicates = 0

        if anchor is not None and anchor.text:
            anchor = self._fit_anchor(anchor, max_chars)
            if anchor is not None:
                accepted.append(anchor)
                dedup.add(anchor.text)
                total_chars = len(self._render_block(anchor))

        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        for candidate in ranked:
            if anchor is not None and candidate.original_index == anchor.original_index:
                continue
            if not candidate.text:
                continue
            if candidate.score <= 0 and total_chars > self.zero_score_prune_chars:
                pruned += 1
                continue
            if dedup.is_duplicate(candidate.text):
                duplicates += 1
                continue

            cost = len(self._render_block(candidate)) + (len(BLOCK_SEPARATOR) if accepted else 0)
            if total_chars + cost > max_chars:
                break

            accepted.append(candidate)
            dedup.add(candidate.text)
            total_chars += cost

        metadata = {
            'candidates': len(scored),
            'pruned_zero_score': pruned,
            'skipped_duplicates': duplicates,
            'anchor_included': anchor is not None,
        }
        return self._assemble(accepted, cold_start=False, metadata=metadata)

    def select_document(self, text: str, scorer: ParagraphScorer | None = None) -> SelectionResult:
        """
        Compress a single document to the budget.

        Paragraphs are scored in term-frequency mode and the document's
        first paragraph is the anchor. Text already within budget is
        returned unchanged.

        Args:
            text: Normalized document text
            scorer: Scorer to use (default ParagraphScorer())

        Returns:
            SelectionResult whose context is the compressed document
        """
        scorer = scorer or ParagraphScorer()
        scored = scorer.score_document(text)

        if not text or len(text) <= self.budget.max_chars:
            return SelectionResult(sources=scored, context=text or "", metadata={'compressed': False})

        result = self.select(scored, keywords_supplied=True, anchor=scored[0] if scored else None)
        result.metadata['compressed'] = True
        debug_log(f"[ContextSelector] Document compressed {len(text)} -> {result.total_chars} chars "
                  f"({len(result.sources)}/{len(scored)} paragraphs)")
        return result

    def _cold_start(self, scored: list[ScoredSource]) -> SelectionResult:
        """First sources in their original order, bounded by the budget."""
        ordered = sorted(scored, key=lambda s: s.original_index)
        accepted = []
        total_chars = 0
        for candidate in ordered:
            if len(accepted) >= self.cold_start_count:
                break
            cost = len(self._render_block(candidate)) + (len(BLOCK_SEPARATOR) if accepted else 0)
            if total_chars + cost > self.budget.max_chars:
                break
            accepted.append(candidate)
            total_chars += cost

        debug_log(f"[ContextSelector] Cold start: using first {len(accepted)} sources")
        return self._assemble(accepted, cold_start=True, metadata={'candidates': len(scored)})

    def _assemble(self, accepted: list[ScoredSource], cold_start: bool, metadata: dict) -> SelectionResult:
        if not accepted:
            debug_log("[ContextSelector] Nothing selected, returning sentinel")
            return SelectionResult(sources=[], context=self.sentinel, cold_start=cold_start, metadata=metadata)

        ordered = sorted(accepted, key=lambda s: s.original_index)
        context = BLOCK_SEPARATOR.join(self._render_block(s) for s in ordered)

        debug_log(f"[ContextSelector] Accepted {len(ordered)} sources, {len(context)}/"
                  f"{self.budget.max_chars} chars")
        return SelectionResult(sources=ordered, context=context, cold_start=cold_start, metadata=metadata)

    def _render_block(self, scored: ScoredSource) -> str:
        if not self.tag_blocks:
            return scored.text
        return f"{self._tag(scored)}\n{scored.text}"

    def _tag(self, scored: ScoredSource) -> str:
        return f"[{scored.kind.value}:{scored.id}]"

    def _fit_anchor(self, anchor: ScoredSource, max_chars: int) -> ScoredSource | None:
        """Truncate an anchor that alone would exceed the budget; None if even its tag does not fit."""
        if len(self._render_block(anchor)) <= max_chars:
            return anchor

        overhead = len(self._tag(anchor)) + 1 if self.tag_blocks else 0
        keep = max_chars - overhead
        if keep <= 0:
            debug_log(f"[ContextSelector] Anchor {anchor.id} dropped, tag alone exceeds {max_chars} chars")
            return None
        debug_log(f"[ContextSelector] Anchor {anchor.id} truncated to {keep} chars")
        return ScoredSource(
            source=Source(id=anchor.id, kind=anchor.kind, text=anchor.text[:keep]),
            score=anchor.score,
            original_index=anchor.original_index,
        )


def select_document_context(text: str, max_chars: int = CONTEXT_MAX_CHARS) -> str:
    """
    Compress one document to at most max_chars characters.

    Convenience wrapper used by quiz generation.

    Args:
        text: Normalized document text
        max_chars: Character budget

    Returns:
        The document unchanged if it fits, otherwise its most term-dense
        paragraphs (first paragraph always kept) in document order
    """
    selector = ContextSelector(ContextBudget(max_chars=max_chars), tag_blocks=False)
    return selector.select_document(text).context
