"""
Source aggregation for question answering.

Builds the candidate list for one question, in a fixed order that
defines each source's original_index:

1. The active note, split into paragraphs ("active-p0", "active-p1", ...);
   its first paragraph is the anchor
2. Notes from saved sessions (the active note itself is skipped)
3. Study group messages
4. Achievement badges
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from vekkam.logging_config import debug_log
from vekkam.retrieval.base import Source, SourceKind
from vekkam.retrieval.scoring import split_paragraphs
from vekkam.study.models import Badge, NoteBlock, StudyGroup, StudySession

ACTIVE_NOTE_PREFIX = "active"


@dataclass
class SourceBundle:
    """
    Aggregated candidates for one request.

    Attributes:
        sources: Candidates in aggregation order
        anchor_index: Index of the active note's first paragraph, if any
        active_ids: Ids of the active note's paragraph sources
    """

    sources: list[Source] = field(default_factory=list)
    anchor_index: int | None = None
    active_ids: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.sources)


def active_note_sources(note: NoteBlock) -> list[Source]:
    """Split the open note into paragraph sources."""
    return [
        Source(id=f"{ACTIVE_NOTE_PREFIX}-p{i}", kind=SourceKind.NOTE, text=paragraph)
        for i, paragraph in enumerate(split_paragraphs(note.content))
    ]


def aggregate_sources(
    active_note: NoteBlock | None = None,
    sessions: Iterable[StudySession] = (),
    groups: Iterable[StudyGroup] = (),
    badges: Iterable[Badge] = (),
) -> SourceBundle:
    """
    Collect every candidate passage for a question.

    Args:
        active_note: The note the student has open (anchor document)
        sessions: Saved study sessions
        groups: Study groups the student belongs to
        badges: Earned achievements

    Returns:
        SourceBundle with sources in aggregation order
    """
    bundle = SourceBundle()

    if active_note is not None:
        active = active_note_sources(active_note)
        if active:
            bundle.anchor_index = 0
            bundle.active_ids = {s.id for s in active}
            bundle.sources.extend(active)

    exclude = active_note.content if active_note is not None else None
    for session in sessions:
        bundle.sources.extend(session.to_sources(exclude_content=exclude))

    for group in groups:
        bundle.sources.extend(group.to_sources())

    for badge in badges:
        bundle.sources.append(badge.to_source())

    debug_log(f"[Sources] Aggregated {len(bundle.sources)} candidates "
              f"({len(bundle.active_ids)} from the active note)")
    return bundle
