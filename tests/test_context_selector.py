"""
Tests for budgeted context selection.

Tests cover:
- Anchor reservation and narrative reordering
- Budget enforcement and the stop-at-first-overflow rule
- Zero-score pruning and duplicate skipping
- Cold start and the no-relevance sentinel
- Single-document compression for quizzes
"""

from vekkam.config import NO_RELEVANT_CONTEXT_SENTINEL
from vekkam.retrieval import (
    ContextBudget,
    ContextSelector,
    ScoredSource,
    Source,
    SourceKind,
    select_document_context,
)


def scored(source_id: str, text: str, score: float, index: int, kind: SourceKind = SourceKind.PARAGRAPH) -> ScoredSource:
    return ScoredSource(source=Source(id=source_id, kind=kind, text=text), score=score, original_index=index)


def plain_selector(max_chars: int, **kwargs) -> ContextSelector:
    return ContextSelector(ContextBudget(max_chars=max_chars), tag_blocks=False, **kwargs)


class TestAnchorAndOrdering:
    """Test anchor reservation and original-order output."""

    def test_three_paragraphs_emitted_in_document_order(self):
        """P1 and P2 win on score, P0 is the anchor; output is P0, P1, P2."""
        p0 = scored("p0", "Cells are the basic unit of life", 1.0, 0)
        p1 = scored("p1", "Osmosis moves water across membranes", 9.0, 1)
        p2 = scored("p2", "Diffusion follows concentration gradients", 5.0, 2)

        result = plain_selector(1000).select([p0, p1, p2], anchor=p0)

        assert [s.id for s in result.sources] == ["p0", "p1", "p2"]
        assert result.context == "\n\n".join([p0.text, p1.text, p2.text])
        assert result.metadata['anchor_included'] is True

    def test_anchor_included_despite_zero_score(self):
        anchor = scored("p0", "Introduction", 0.0, 0)
        other = scored("p1", "Osmosis moves water across membranes", 9.0, 1)

        result = plain_selector(1000).select([anchor, other], anchor=anchor)

        assert result.sources[0].id == "p0"

    def test_oversized_anchor_is_truncated(self):
        anchor = scored("p0", "x" * 50, 1.0, 0)

        result = plain_selector(20).select([anchor], anchor=anchor)

        assert result.context == "x" * 20

    def test_tagged_anchor_truncated_within_budget(self):
        anchor = scored("active-p0", "First paragraph text", 1.0, 0, kind=SourceKind.NOTE)

        result = ContextSelector(ContextBudget(max_chars=20)).select([anchor], anchor=anchor)

        assert result.context == "[note:active-p0]\nFir"
        assert len(result.context) <= 20

    def test_anchor_dropped_when_tag_exceeds_budget(self):
        anchor = scored("active-p0", "First paragraph text", 1.0, 0, kind=SourceKind.NOTE)

        result = ContextSelector(ContextBudget(max_chars=10)).select([anchor], anchor=anchor)

        assert result.sources == []
        assert result.context == NO_RELEVANT_CONTEXT_SENTINEL
        assert result.metadata['anchor_included'] is False

    def test_blocks_are_tagged_with_kind_and_id(self):
        note = scored("s1-note-0", "Osmosis moves water", 3.0, 0, kind=SourceKind.NOTE)
        message = scored("msg-7", "Ana: osmosis is passive", 2.0, 1, kind=SourceKind.CONVERSATION)
        selector = ContextSelector(ContextBudget(max_chars=1000))

        result = selector.select([message, note])

        assert result.context == (
            "[note:s1-note-0]\nOsmosis moves water\n\n"
            "[conversation:msg-7]\nAna: osmosis is passive"
        )


class TestBudget:
    """Test budget enforcement."""

    def test_stops_at_first_overflow(self):
        """A smaller, lower-scored candidate after an overflow is not considered."""
        anchor = scored("p0", "anchor words here", 1.0, 0)   # 17 chars
        big = scored("p1", "b" * 30, 9.0, 1)                 # +32
        bigger = scored("p2", "c" * 50, 5.0, 2)              # +52, overflows 60
        small = scored("p3", "ddd", 2.0, 3)                  # would fit, never reached

        result = plain_selector(60).select([anchor, big, bigger, small], anchor=anchor)

        assert [s.id for s in result.sources] == ["p0", "p1"]
        assert len(result.context) <= 60

    def test_context_never_exceeds_budget_with_tags(self):
        sources = [scored(f"n{i}", f"note number {i} " * 5, float(10 - i), i, SourceKind.NOTE) for i in range(10)]
        selector = ContextSelector(ContextBudget(max_chars=200))

        result = selector.select(sources)

        assert 0 < len(result.context) <= 200

    def test_budget_from_tokens(self):
        budget = ContextBudget.from_tokens(1500)

        assert budget.max_chars == 6000
        assert budget.approx_tokens == 1500


class TestPruningAndDuplicates:
    """Test zero-score pruning and near-duplicate skipping."""

    def test_zero_score_pruned_after_threshold(self):
        strong = scored("p0", "a" * 20, 5.0, 0)
        noise = scored("p1", "unrelated filler text", 0.0, 1)

        result = plain_selector(10000, zero_score_prune_chars=10).select([strong, noise])

        assert [s.id for s in result.sources] == ["p0"]
        assert result.metadata['pruned_zero_score'] == 1

    def test_zero_score_accepted_before_threshold(self):
        strong = scored("p0", "a" * 20, 5.0, 0)
        noise = scored("p1", "unrelated filler text", 0.0, 1)

        result = plain_selector(10000, zero_score_prune_chars=1000).select([strong, noise])

        assert [s.id for s in result.sources] == ["p0", "p1"]

    def test_near_duplicate_skipped(self):
        first = scored("p0", "osmosis moves water across a membrane", 5.0, 0)
        copy = scored("p1", "Osmosis moves water across a membrane", 4.0, 1)
        other = scored("p2", "enzymes lower activation energy", 3.0, 2)

        result = plain_selector(1000).select([first, copy, other])

        assert [s.id for s in result.sources] == ["p0", "p2"]
        assert result.metadata['skipped_duplicates'] == 1


class TestColdStartAndSentinel:
    """Test the no-keyword and nothing-selected paths."""

    def test_cold_start_uses_first_three_in_order(self):
        sources = [scored(f"n{i}", f"distinct passage {i}", float(i), i) for i in range(5)]

        result = plain_selector(1000).select(list(reversed(sources)), keywords_supplied=False)

        assert result.cold_start is True
        assert [s.id for s in result.sources] == ["n0", "n1", "n2"]

    def test_sentinel_when_nothing_selected(self):
        result = plain_selector(1000).select([])

        assert result.context == NO_RELEVANT_CONTEXT_SENTINEL
        assert result.is_empty

    def test_sentinel_when_nothing_fits(self):
        result = plain_selector(5).select([scored("p0", "far too long for the budget", 3.0, 0)])

        assert result.context == NO_RELEVANT_CONTEXT_SENTINEL


class TestDocumentCompression:
    """Test single-document selection."""

    def test_short_document_returned_unchanged(self):
        text = "Osmosis moves water.\n\nDiffusion follows gradients."
        assert select_document_context(text, max_chars=6000) == text

    def test_long_document_compressed_with_first_paragraph_kept(self):
        first = "Cell biology overview for the midterm exam."
        topics = ["osmosis", "diffusion", "enzymes", "mitosis", "meiosis", "ribosomes", "lysosomes", "vacuoles"]
        body = [f"Paragraph about {t} with several words describing {t} processes in detail." for t in topics]
        text = "\n\n".join([first] + body)

        context = select_document_context(text, max_chars=200)

        assert len(context) <= 200
        assert context.startswith(first)

    def test_selector_reports_compression(self):
        text = "\n\n".join(f"Paragraph {i} about osmosis water membranes diffusion." for i in range(20))
        selector = ContextSelector(ContextBudget(max_chars=300), tag_blocks=False)

        result = selector.select_document(text)

        assert result.metadata['compressed'] is True
        assert result.total_chars <= 300
