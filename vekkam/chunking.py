"""
Chunk Segmenter for study material synthesis.

Splits normalized text into bounded-size chunks on paragraph boundaries
for the per-chunk extraction pass. Paragraphs are never split mid-body:
a single paragraph longer than the limit becomes its own oversized chunk.

The size check counts the blank-line separator, so every chunk holding
more than one paragraph is at most max_chars long.
"""

from dataclasses import dataclass

from vekkam.config import CHUNK_MAX_CHARS
from vekkam.logging_config import debug_log
from vekkam.retrieval.scoring import split_paragraphs

PARAGRAPH_JOINER = "\n\n"


@dataclass
class Chunk:
    """
    A bounded segment of the source material.

    Attributes:
        id: Identifier ("chunk_0", "chunk_1", ...) referenced by the outline
        text: Chunk text (paragraphs joined by a blank line)
        position: Zero-based position in the document
    """

    id: str
    text: str
    position: int

    @property
    def char_count(self) -> int:
        return len(self.text)


class ChunkSegmenter:
    """
    Paragraph-respecting segmenter.

    Example:
        segmenter = ChunkSegmenter(max_chars=2000)
        chunks = segmenter.segment(normalized_text)
    """

    def __init__(self, max_chars: int = CHUNK_MAX_CHARS):
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive, got {max_chars}")
        self.max_chars = max_chars

    def segment(self, text: str) -> list[Chunk]:
        """
        Split text into chunks.

        Args:
            text: Normalized text

        Returns:
            Chunks in document order; empty input gives an empty list
        """
        paragraphs = split_paragraphs(text)
        if not paragraphs:
            return []

        texts = []
        current = ""
        for paragraph in paragraphs:
            candidate_len = len(current) + len(PARAGRAPH_JOINER) + len(paragraph) if current else len(paragraph)
            if current and candidate_len > self.max_chars:
                texts.append(current)
                current = paragraph
            else:
                current = f"{current}{PARAGRAPH_JOINER}{paragraph}" if current else paragraph
        if current:
            texts.append(current)

        chunks = [Chunk(id=f"chunk_{i}", text=t, position=i) for i, t in enumerate(texts)]
        oversized = sum(1 for c in chunks if c.char_count > self.max_chars)
        debug_log(f"[ChunkSegmenter] {len(paragraphs)} paragraphs -> {len(chunks)} chunks "
                  f"(max={self.max_chars}, oversized={oversized})")
        return chunks


def chunk_text(text: str, max_chars: int = CHUNK_MAX_CHARS) -> list[str]:
    """Split text into chunk strings of at most max_chars (see ChunkSegmenter)."""
    return [chunk.text for chunk in ChunkSegmenter(max_chars).segment(text)]
