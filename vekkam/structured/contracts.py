"""
Typed contracts for structured generation output.

Model output is loosely shaped, so conversion is lenient where the data
is still usable (missing explanation, non-string options) and strict
only where nothing useful remains (no question list, no units).

Contracts:
    Quiz:       {"questions": [{"question", "options", "answer", "taxonomy", "explanation"}]}
    Synthesis:  {"units": [{"topic", "content"}]}
    Outline:    {"outline": [{"topic", "relevant_chunks": [chunk ids]}]}
    Answer:     {"answer", "key_points": [...], "follow_up_question"}
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from vekkam.exceptions import ParseError

TAXONOMY_LEVELS = ("Remembering", "Understanding", "Applying", "Analyzing", "Evaluating")


def _ensure_list(value: Any) -> list:
    """Ensure value is a list."""
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _ensure_string_list(value: Any) -> list[str]:
    """Ensure value is a list of strings."""
    return [str(item) for item in _ensure_list(value) if item is not None and str(item).strip()]


def _require_dict(data: Any, root_key: str) -> dict:
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object with key '{root_key}', got {type(data).__name__}")
    if root_key not in data:
        raise ParseError(f"Missing root key '{root_key}'")
    return data


# =============================================================================
# Quiz
# =============================================================================


@dataclass
class QuizQuestion:
    """One multiple-choice question tagged with a Bloom's taxonomy level."""

    question: str
    options: list[str]
    answer: str
    taxonomy: str = ""
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> 'QuizQuestion':
        return cls(
            question=str(data.get("question", "")).strip(),
            options=_ensure_string_list(data.get("options")),
            answer=str(data.get("answer", "")).strip(),
            taxonomy=str(data.get("taxonomy", "")).strip(),
            explanation=str(data.get("explanation", "")).strip(),
        )

    @property
    def has_known_taxonomy(self) -> bool:
        return self.taxonomy in TAXONOMY_LEVELS


@dataclass
class Quiz:
    """
    A generated quiz.

    The expected shape is one question per taxonomy level, in order. A
    different count is tolerated; use is_complete to check.
    """

    questions: list[QuizQuestion] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'Quiz':
        """
        Raises:
            ParseError: If there is no usable question list
        """
        data = _require_dict(data, "questions")
        entries = data.get("questions")
        if not isinstance(entries, list):
            raise ParseError("'questions' must be a list")
        questions = [QuizQuestion.from_dict(e) for e in entries if isinstance(e, dict)]
        return cls(questions=[q for q in questions if q.question])

    @property
    def is_complete(self) -> bool:
        """Exactly one question per taxonomy level, in order."""
        return [q.taxonomy for q in self.questions] == list(TAXONOMY_LEVELS)

    def to_dict(self) -> dict:
        return {"questions": [asdict(q) for q in self.questions]}


# =============================================================================
# Synthesis
# =============================================================================


@dataclass
class SynthesisUnit:
    """One synthesized study topic ("battle unit") with Markdown content."""

    topic: str
    content: str

    @classmethod
    def from_dict(cls, data: dict) -> 'SynthesisUnit':
        return cls(
            topic=str(data.get("topic", "")).strip(),
            content=str(data.get("content", "")).strip(),
        )


def parse_units(data: Any) -> list[SynthesisUnit]:
    """
    Convert a decoded {"units": [...]} object.

    Units with neither topic nor content are dropped; a unit missing
    only its topic is kept under "Untitled".

    Raises:
        ParseError: If no usable unit remains
    """
    data = _require_dict(data, "units")
    units = []
    for entry in _ensure_list(data.get("units")):
        if not isinstance(entry, dict):
            continue
        unit = SynthesisUnit.from_dict(entry)
        if not unit.topic and not unit.content:
            continue
        units.append(SynthesisUnit(topic=unit.topic or "Untitled", content=unit.content))
    if not units:
        raise ParseError("No synthesis units in response")
    return units


# =============================================================================
# Outline
# =============================================================================


@dataclass
class OutlineEntry:
    """A topic and the ids of the chunks that cover it."""

    topic: str
    relevant_chunks: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'OutlineEntry':
        return cls(
            topic=str(data.get("topic", "")).strip(),
            relevant_chunks=_ensure_string_list(data.get("relevant_chunks")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def parse_outline(data: Any) -> list[OutlineEntry]:
    """
    Convert a decoded {"outline": [...]} object.

    Raises:
        ParseError: If no entry has a topic
    """
    data = _require_dict(data, "outline")
    entries = [
        OutlineEntry.from_dict(e)
        for e in _ensure_list(data.get("outline"))
        if isinstance(e, dict)
    ]
    entries = [e for e in entries if e.topic]
    if not entries:
        raise ParseError("Outline has no topics")
    return entries


# =============================================================================
# Tutor answer
# =============================================================================


@dataclass
class AnswerSections:
    """A tutor answer split into its expected sections."""

    answer: str
    key_points: list[str] = field(default_factory=list)
    follow_up_question: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> 'AnswerSections':
        """
        Raises:
            ParseError: If the answer section is missing or empty
        """
        data = _require_dict(data, "answer")
        answer = str(data.get("answer") or "").strip()
        if not answer:
            raise ParseError("Answer section is empty")
        return cls(
            answer=answer,
            key_points=_ensure_string_list(data.get("key_points")),
            follow_up_question=str(data.get("follow_up_question") or "").strip(),
        )

    def to_dict(self) -> dict:
        return asdict(self)
