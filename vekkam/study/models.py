"""
Domain records for study sessions, groups and achievements.

Records round-trip through plain dicts (to_dict / from_dict) so a
SessionStore can persist them as opaque JSON-like records, and each can
be turned into retrieval Sources for question answering.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from vekkam.retrieval.base import Source, SourceKind


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class NoteBlock:
    """
    One topic of synthesized notes.

    Attributes:
        topic: Topic heading
        content: Markdown notes
        source_chunks: Ids of the chunks the notes were built from
    """

    topic: str
    content: str
    source_chunks: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Markdown rendering used as retrieval text."""
        return f"# {self.topic}\n\n{self.content}" if self.topic else self.content

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'NoteBlock':
        return cls(
            topic=str(data.get("topic", "")),
            content=str(data.get("content", "")),
            source_chunks=[str(c) for c in data.get("source_chunks") or []],
        )


@dataclass
class StudySession:
    """A saved study session: a title and its note blocks."""

    id: str
    title: str
    notes: list[NoteBlock] = field(default_factory=list)
    timestamp: str = field(default_factory=_now_iso)

    def to_sources(self, exclude_content: str | None = None) -> list[Source]:
        """
        One NOTE source per non-empty note block, ids "<session>-note-<n>".

        Args:
            exclude_content: Skip the note whose content equals this (the open note)
        """
        return [
            Source(id=f"{self.id}-note-{i}", kind=SourceKind.NOTE, text=note.text)
            for i, note in enumerate(self.notes)
            if note.content.strip() and note.content != exclude_content
        ]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "timestamp": self.timestamp,
            "notes": [n.to_dict() for n in self.notes],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StudySession':
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            notes=[NoteBlock.from_dict(n) for n in data.get("notes") or []],
            timestamp=str(data.get("timestamp") or _now_iso()),
        )


@dataclass
class Badge:
    """An achievement record, e.g. surviving a full syllabus."""

    id: str
    title: str
    description: str = ""
    type: str = "syllabus_survivor"
    achieved_at: str = field(default_factory=_now_iso)
    metadata: dict = field(default_factory=dict)

    def to_source(self) -> Source:
        parts = [self.title, self.description]
        topic = self.metadata.get("topic")
        if topic:
            parts.append(f"Topic: {topic}")
        return Source(
            id=f"badge-{self.id}",
            kind=SourceKind.ACHIEVEMENT,
            text=". ".join(p for p in parts if p),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Badge':
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            type=str(data.get("type", "syllabus_survivor")),
            achieved_at=str(data.get("achieved_at") or data.get("achievedAt") or _now_iso()),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class GroupMessage:
    """A message posted in a study group."""

    id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: str = field(default_factory=_now_iso)

    def to_source(self) -> Source:
        return Source(
            id=f"msg-{self.id}",
            kind=SourceKind.CONVERSATION,
            text=f"{self.sender_name}: {self.content}" if self.sender_name else self.content,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'GroupMessage':
        return cls(
            id=str(data["id"]),
            sender_id=str(data.get("sender_id", "")),
            sender_name=str(data.get("sender_name", "")),
            content=str(data.get("content", "")),
            timestamp=str(data.get("timestamp") or _now_iso()),
        )


@dataclass
class StudyGroup:
    """A study group with its members and message log."""

    id: str
    name: str
    access_code: str = ""
    creator_id: str = ""
    members: list[dict] = field(default_factory=list)
    messages: list[GroupMessage] = field(default_factory=list)

    def to_sources(self) -> list[Source]:
        return [m.to_source() for m in self.messages if m.content.strip()]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "access_code": self.access_code,
            "creator_id": self.creator_id,
            "members": [dict(m) for m in self.members],
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'StudyGroup':
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            access_code=str(data.get("access_code", "")),
            creator_id=str(data.get("creator_id", "")),
            members=[dict(m) for m in data.get("members") or []],
            messages=[GroupMessage.from_dict(m) for m in data.get("messages") or []],
        )


@dataclass
class ConversationTurn:
    """One question/answer exchange with the tutor."""

    question: str
    answer: str = ""
