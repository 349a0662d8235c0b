"""
Data structures for context retrieval.

Sources are aggregated per request from notes, group conversations and
achievement records, scored against the current question, and selected
into a bounded context string. Nothing here is cached across requests:
keyword sets change with every question, so scores are recomputed.
"""

from dataclasses import dataclass, field
from enum import Enum

from vekkam.config import CHARS_PER_TOKEN


class SourceKind(str, Enum):
    """Where a candidate passage came from."""

    NOTE = "note"
    CONVERSATION = "conversation"
    ACHIEVEMENT = "achievement"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Source:
    """
    A candidate passage for the prompt context.

    Attributes:
        id: Stable identifier (e.g. "note-3", "msg-17", "active-p0")
        kind: Origin of the passage
        text: Passage text
    """

    id: str
    kind: SourceKind
    text: str


@dataclass
class ScoredSource:
    """
    A Source with its request-scoped relevance score.

    Attributes:
        source: The underlying passage
        score: Relevance for the current request (0 = no signal)
        original_index: Position in the aggregated candidate list, used to
            restore narrative order after score-ordered selection
    """

    source: Source
    score: float
    original_index: int

    @property
    def id(self) -> str:
        return self.source.id

    @property
    def kind(self) -> SourceKind:
        return self.source.kind

    @property
    def text(self) -> str:
        return self.source.text


@dataclass(frozen=True)
class ContextBudget:
    """Character budget for assembled context (tokens ~ chars / 4)."""

    max_chars: int

    @classmethod
    def from_tokens(cls, max_tokens: int) -> 'ContextBudget':
        return cls(max_chars=max_tokens * CHARS_PER_TOKEN)

    @property
    def approx_tokens(self) -> int:
        return self.max_chars // CHARS_PER_TOKEN


@dataclass
class SelectionResult:
    """
    Outcome of context selection.

    Attributes:
        sources: Accepted sources in ascending original_index order
        context: Concatenated context string, or the no-relevance sentinel
        cold_start: True when no keywords were supplied and the first
            sources were used verbatim
        metadata: Selection statistics (skipped duplicates, pruned zeros)
    """

    sources: list[ScoredSource]
    context: str
    cold_start: bool = False
    metadata: dict = field(default_factory=dict)

    @property
    def total_chars(self) -> int:
        return len(self.context)

    @property
    def is_empty(self) -> bool:
        """True when nothing was accepted and the context is the sentinel."""
        return not self.sources

    def __len__(self) -> int:
        return len(self.sources)
