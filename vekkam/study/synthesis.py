"""
Study Material Synthesizer.

Turns raw study material into a study guide:

1. NORMALIZE: clean extracted text
2. CHUNK: paragraph-respecting segments of at most 2,000 chars
3. EXTRACT: per-chunk "high-yield facts" calls on a bounded worker pool;
   a failed chunk contributes nothing
4. MERGE: join surviving facts, cap at 15,000 chars
5. SYNTHESIZE: one call producing five "battle units" as JSON
6. OUTLINE: one call mapping topics to chunk ids

Synthesis and outline passes are sequential. If the synthesis output is
not valid JSON the whole response becomes a single "Study Guide" note;
if the outline is unusable there is one outline entry per note.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Callable

from vekkam.ai.base import GenerationRequest
from vekkam.ai.cancellation import CancelToken
from vekkam.ai.orchestrator import GenerationOrchestrator
from vekkam.chunking import Chunk, ChunkSegmenter
from vekkam.config import (
    CHUNK_PROMPT_MAX_CHARS,
    MERGED_EXTRACTION_MAX_CHARS,
    OUTLINE_CHUNK_LIMIT,
    OUTLINE_SNIPPET_CHARS,
    PARALLEL_MAX_WORKERS,
    SYNTHESIS_UNIT_COUNT,
)
from vekkam.exceptions import AllProvidersUnavailableError
from vekkam.logging_config import debug_log, info, warning
from vekkam.parallel import ExecutorStrategy, ParallelTaskRunner, ThreadPoolStrategy
from vekkam.preprocessing import normalize_text
from vekkam.structured.contracts import OutlineEntry, parse_outline, parse_units
from vekkam.structured.parser import StructuredOutputParser
from vekkam.study.models import NoteBlock

FALLBACK_NOTE_TOPIC = "Study Guide"


@dataclass
class StudyGuide:
    """
    Result of study material synthesis.

    Attributes:
        outline: Topics with the chunk ids that cover them
        notes: Synthesized note blocks
        full_text: Markdown rendering of all notes
        synthesis_parsed: False when the synthesis output was not valid JSON
        outline_method: "llm" or "notes" (one entry per note)
        timing: Milliseconds per phase
        chunk_count: Chunks produced by segmentation
        extraction_count: Chunks whose extraction call succeeded
    """

    outline: list[OutlineEntry] = field(default_factory=list)
    notes: list[NoteBlock] = field(default_factory=list)
    full_text: str = ""
    synthesis_parsed: bool = True
    outline_method: str = "llm"
    timing: dict = field(default_factory=dict)
    chunk_count: int = 0
    extraction_count: int = 0

    @property
    def total_time_ms(self) -> float:
        return sum(v for k, v in self.timing.items() if k != "total")

    def to_dict(self) -> dict:
        return {
            "outline": [entry.to_dict() for entry in self.outline],
            "final_notes": [note.to_dict() for note in self.notes],
            "full_text": self.full_text,
        }


def render_full_text(notes: list[NoteBlock]) -> str:
    """Markdown study guide: "# topic" then content, blocks joined by a blank line."""
    return "\n\n".join(f"# {note.topic}\n\n{note.content}" for note in notes)


class StudyMaterialSynthesizer:
    """
    Coordinates the extraction, synthesis and outline passes.

    Example:
        synthesizer = StudyMaterialSynthesizer(GenerationOrchestrator.from_config())
        guide = synthesizer.synthesize(syllabus_text)
        print(guide.full_text)
    """

    CHUNK_PROMPT = "Identify high-yield exam facts from: {chunk}"

    SYNTHESIS_PROMPT = """Synthesize into exactly {unit_count} "Battle Units" (topic + content).
CRITICAL:
1. Structure: Use JSON/Bullets for facts (Structural Compression).
2. Format: Use Markdown (## Headers, **bold terms**).
3. Density: High information density, no fluff.
{instructions}
Return JSON: {{ "units": [{{ "topic": "", "content": "" }}] }}.
Source: {source}"""

    OUTLINE_PROMPT = """Analyze the content chunks and create a structured, logical topic outline.
Output ONLY a valid JSON object with a root key "outline", which is a list of objects. Each object must have keys "topic" (string) and "relevant_chunks" (a list of string chunk_ids).
Use these topics, in this order: {topics}

Content: {chunks}"""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        strategy_factory: Callable[[], ExecutorStrategy] | None = None,
        segmenter: ChunkSegmenter | None = None,
        parser: StructuredOutputParser | None = None,
    ):
        """
        Args:
            orchestrator: Shared generation orchestrator
            strategy_factory: Builds the executor for the extraction pass
                (default: ThreadPoolStrategy with PARALLEL_MAX_WORKERS)
            segmenter: Chunk segmenter (default 2,000 chars)
            parser: Structured output parser
        """
        self.orchestrator = orchestrator
        self.strategy_factory = strategy_factory or (lambda: ThreadPoolStrategy(max_workers=PARALLEL_MAX_WORKERS))
        self.segmenter = segmenter or ChunkSegmenter()
        self.parser = parser or StructuredOutputParser()

    def synthesize(
        self,
        text: str,
        instructions: str = "",
        cancel_token: CancelToken | None = None,
    ) -> StudyGuide:
        """
        Build a study guide from raw material.

        Args:
            text: Extracted study material
            instructions: Optional student instructions for the synthesis pass
            cancel_token: Optional cancellation token

        Returns:
            StudyGuide (never empty: parse failures fall back deterministically)

        Raises:
            AllProvidersUnavailableError: The synthesis call failed on every tier
            GenerationCancelled: The token was cancelled
        """
        guide = StudyGuide()
        start_time = time.time()

        normalized = self._phase_normalize(text, guide)
        chunks = self._phase_chunk(normalized, guide)
        facts = self._phase_extract(chunks, guide, cancel_token)
        merged = self._phase_merge(facts, normalized, guide)
        self._phase_synthesize(merged, instructions, guide, cancel_token)
        self._phase_outline(chunks, guide, cancel_token)

        guide.timing["total"] = (time.time() - start_time) * 1000
        info(f"[Synthesizer] Study guide ready: {len(guide.notes)} notes, "
             f"{guide.extraction_count}/{guide.chunk_count} chunks in {guide.timing['total'] / 1000:.1f}s")
        debug_log(f"[Synthesizer] Timing breakdown: {guide.timing}")
        return guide

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _phase_normalize(self, text: str, guide: StudyGuide) -> str:
        start = time.time()
        normalized = normalize_text(text)
        guide.timing["normalize"] = (time.time() - start) * 1000
        return normalized

    def _phase_chunk(self, text: str, guide: StudyGuide) -> list[Chunk]:
        start = time.time()
        chunks = self.segmenter.segment(text)
        guide.timing["chunking"] = (time.time() - start) * 1000
        guide.chunk_count = len(chunks)
        debug_log(f"[Synthesizer] Processing {len(chunks)} chunks...")
        return chunks

    def _phase_extract(
        self,
        chunks: list[Chunk],
        guide: StudyGuide,
        cancel_token: CancelToken | None,
    ) -> list[str]:
        """Per-chunk fact extraction; failures contribute an empty string."""
        start = time.time()

        def extract_chunk(chunk: Chunk) -> str:
            prompt = self.CHUNK_PROMPT.format(chunk=chunk.text[:CHUNK_PROMPT_MAX_CHARS])
            return self.orchestrator.generate(GenerationRequest(user_prompt=prompt), cancel_token).text

        facts = []
        with self.strategy_factory() as strategy:
            runner = ParallelTaskRunner(strategy=strategy)
            unregister = cancel_token.on_cancel(runner.cancel) if cancel_token else None
            try:
                results = runner.run(extract_chunk, [(chunk.id, chunk) for chunk in chunks])
            finally:
                if unregister:
                    unregister()

        if cancel_token:
            cancel_token.raise_if_cancelled()

        for result in results:
            if result.success:
                facts.append(result.result)
            else:
                warning(f"[Synthesizer] Dropping {result.task_id}: {result.error}")
                facts.append("")

        guide.extraction_count = sum(1 for f in facts if f)
        guide.timing["extraction"] = (time.time() - start) * 1000
        debug_log(f"[Synthesizer] Extraction: {guide.extraction_count}/{len(chunks)} successful "
                  f"in {guide.timing['extraction']:.0f}ms")
        return facts

    def _phase_merge(self, facts: list[str], normalized: str, guide: StudyGuide) -> str:
        merged = "\n\n".join(f for f in facts if f)[:MERGED_EXTRACTION_MAX_CHARS]
        if not merged:
            warning("[Synthesizer] No chunk facts extracted, synthesizing from the material itself")
            merged = normalized[:MERGED_EXTRACTION_MAX_CHARS]
        debug_log(f"[Synthesizer] Merged source: {len(merged)} chars")
        return merged

    def _phase_synthesize(
        self,
        merged: str,
        instructions: str,
        guide: StudyGuide,
        cancel_token: CancelToken | None,
    ) -> None:
        start = time.time()
        prompt = self.SYNTHESIS_PROMPT.format(
            unit_count=SYNTHESIS_UNIT_COUNT,
            instructions=f"4. Student instructions: {instructions.strip()}\n" if instructions and instructions.strip() else "",
            source=merged,
        )
        raw = self.orchestrator.generate(GenerationRequest(user_prompt=prompt), cancel_token).text

        parsed = self.parser.parse_or_fallback(raw, parse_units)
        if parsed.ok:
            guide.notes = [NoteBlock(topic=u.topic, content=u.content) for u in parsed.value]
            guide.full_text = render_full_text(guide.notes)
            if len(guide.notes) != SYNTHESIS_UNIT_COUNT:
                warning(f"[Synthesizer] Expected {SYNTHESIS_UNIT_COUNT} units, got {len(guide.notes)}")
        else:
            guide.synthesis_parsed = False
            guide.notes = [NoteBlock(topic=FALLBACK_NOTE_TOPIC, content=raw)]
            guide.full_text = raw

        guide.timing["synthesis"] = (time.time() - start) * 1000
        debug_log(f"[Synthesizer] Synthesis: {len(guide.notes)} notes "
                  f"({'json' if parsed.ok else 'raw fallback'}) in {guide.timing['synthesis']:.0f}ms")

    def _phase_outline(
        self,
        chunks: list[Chunk],
        guide: StudyGuide,
        cancel_token: CancelToken | None,
    ) -> None:
        start = time.time()
        guide.outline = self._build_outline(chunks, guide, cancel_token)
        self._attach_source_chunks(guide)
        guide.timing["outline"] = (time.time() - start) * 1000

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_outline(
        self,
        chunks: list[Chunk],
        guide: StudyGuide,
        cancel_token: CancelToken | None,
    ) -> list[OutlineEntry]:
        if not chunks:
            guide.outline_method = "notes"
            return self._outline_from_notes(guide.notes)

        snippets = [
            {"chunk_id": c.id, "text_snippet": c.text[:OUTLINE_SNIPPET_CHARS] + "..."}
            for c in chunks[:OUTLINE_CHUNK_LIMIT]
        ]
        prompt = self.OUTLINE_PROMPT.format(
            topics=json.dumps([n.topic for n in guide.notes]),
            chunks=json.dumps(snippets),
        )

        try:
            raw = self.orchestrator.generate(GenerationRequest(user_prompt=prompt), cancel_token).text
        except AllProvidersUnavailableError as e:
            warning(f"[Synthesizer] Outline pass unavailable, outlining from notes: {e.message}")
            guide.outline_method = "notes"
            return self._outline_from_notes(guide.notes)

        parsed = self.parser.parse_or_fallback(raw, parse_outline)
        if not parsed.ok:
            guide.outline_method = "notes"
            return self._outline_from_notes(guide.notes)

        known_ids = {c.id for c in chunks}
        entries = [
            OutlineEntry(topic=e.topic, relevant_chunks=[cid for cid in e.relevant_chunks if cid in known_ids])
            for e in parsed.value
        ]
        guide.outline_method = "llm"
        return entries

    def _outline_from_notes(self, notes: list[NoteBlock]) -> list[OutlineEntry]:
        return [OutlineEntry(topic=n.topic, relevant_chunks=[]) for n in notes]

    def _attach_source_chunks(self, guide: StudyGuide) -> None:
        """Copy outline chunk ids onto notes with the same topic."""
        by_topic = {e.topic.strip().lower(): e.relevant_chunks for e in guide.outline}
        for note in guide.notes:
            note.source_chunks = list(by_topic.get(note.topic.strip().lower(), []))

