"""
Tests for paragraph-respecting chunk segmentation.
"""

import pytest

from vekkam.chunking import ChunkSegmenter, chunk_text


class TestChunkText:
    """Test chunk boundaries."""

    def test_separator_counts_toward_limit(self):
        """4 + 2 + 4 = 10 > 6, so the second paragraph starts a new chunk."""
        assert chunk_text("AAAA\n\nBBBB", max_chars=6) == ["AAAA", "BBBB"]

    def test_paragraphs_merge_when_they_fit_exactly(self):
        assert chunk_text("AA\n\nBB", max_chars=6) == ["AA\n\nBB"]

    def test_oversized_paragraph_is_its_own_chunk(self):
        """A paragraph is never split mid-body."""
        long_paragraph = "x" * 20
        text = f"short\n\n{long_paragraph}\n\nend"

        assert chunk_text(text, max_chars=10) == ["short", long_paragraph, "end"]

    def test_empty_text(self):
        assert chunk_text("") == []
        assert chunk_text("\n\n  \n\n") == []

    def test_multi_paragraph_chunks_within_limit(self):
        paragraphs = [f"Paragraph {i} on cell biology." for i in range(30)]
        chunks = chunk_text("\n\n".join(paragraphs), max_chars=120)

        assert all(len(c) <= 120 for c in chunks)
        assert "\n\n".join(chunks) == "\n\n".join(paragraphs)


class TestChunkSegmenter:
    """Test Chunk records."""

    def test_ids_and_positions(self):
        chunks = ChunkSegmenter(max_chars=6).segment("AAAA\n\nBBBB\n\nCCCC")

        assert [c.id for c in chunks] == ["chunk_0", "chunk_1", "chunk_2"]
        assert [c.position for c in chunks] == [0, 1, 2]
        assert chunks[0].char_count == 4

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            ChunkSegmenter(max_chars=0)
