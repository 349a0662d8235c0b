"""
Study Service - the operations behind the Vekkam study app.

One object wires the shared orchestrator into every feature:

- generate(prompt): free-form generation with the exam-first persona
- generate_quiz(content): Bloom's taxonomy quiz
- generate_gauntlet(prompt): free JSON challenge, raw text on parse failure
- extract(data, mime_type): uploaded bytes -> normalized text
- process_syllabus(data, mime_type, instructions): full study guide
- answer_question(...): tutor answer, blocking or streamed

Every operation rejects empty required input with ValidationError before
any backend call.
"""

import uuid
from collections.abc import Iterable
from typing import Any, Callable

from vekkam.ai.base import GenerationRequest, GenerationResult
from vekkam.ai.cancellation import CancelToken
from vekkam.ai.orchestrator import GenerationOrchestrator
from vekkam.config import DEFAULT_SYSTEM_INSTRUCTION
from vekkam.exceptions import ValidationError
from vekkam.logging_config import Timer, info
from vekkam.structured.contracts import Quiz
from vekkam.structured.parser import StructuredOutputParser
from vekkam.study.collaborators import InMemorySessionStore, PlainTextExtractor, SessionStore, TextExtractor
from vekkam.study.models import Badge, ConversationTurn, NoteBlock, StudyGroup, StudySession
from vekkam.study.quiz import QuizGenerator
from vekkam.study.sources import aggregate_sources
from vekkam.study.synthesis import StudyGuide, StudyMaterialSynthesizer
from vekkam.study.tutor import StudyTutor, TutorAnswer

SESSION_KEY_PREFIX = "session:"


def _require(value: Any, message: str):
    if value is None or (isinstance(value, (str, bytes)) and not value.strip()):
        raise ValidationError(message)


class StudyService:
    """
    Facade over synthesis, quizzes and tutoring.

    Example:
        service = StudyService()
        guide = service.process_syllabus(pdf_text_bytes, "text/plain")
        session = service.save_study_guide("Biology midterm", guide)
        reply = service.answer_question("What is osmosis?", sessions=[session])
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator | None = None,
        extractor: TextExtractor | None = None,
        store: SessionStore | None = None,
        synthesizer: StudyMaterialSynthesizer | None = None,
        quiz_generator: QuizGenerator | None = None,
        tutor: StudyTutor | None = None,
        parser: StructuredOutputParser | None = None,
    ):
        self.orchestrator = orchestrator or GenerationOrchestrator.from_config()
        self.extractor = extractor or PlainTextExtractor()
        self.store = store or InMemorySessionStore()
        self.parser = parser or StructuredOutputParser()
        self.synthesizer = synthesizer or StudyMaterialSynthesizer(self.orchestrator, parser=self.parser)
        self.quiz_generator = quiz_generator or QuizGenerator(self.orchestrator, parser=self.parser)
        self.tutor = tutor or StudyTutor(self.orchestrator, parser=self.parser)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        prompt: str,
        system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION,
        cancel_token: CancelToken | None = None,
    ) -> GenerationResult:
        """Free-form generation."""
        _require(prompt, "No prompt provided")
        request = GenerationRequest(user_prompt=prompt, system_instruction=system_instruction)
        return self.orchestrator.generate(request, cancel_token)

    def generate_quiz(self, content: str, cancel_token: CancelToken | None = None) -> Quiz:
        """
        Five-question Bloom's taxonomy quiz for the content.

        Raises:
            ValidationError: Empty content
            ParseError: No usable question list (carries the raw text)
        """
        _require(content, "No content provided")
        return self.quiz_generator.generate(content, cancel_token)

    def generate_gauntlet(self, prompt: str, cancel_token: CancelToken | None = None) -> Any:
        """
        Free-form JSON challenge.

        Returns:
            The decoded JSON value

        Raises:
            ValidationError: Empty prompt
            ParseError: Response was not JSON (carries the raw text)
        """
        _require(prompt, "No prompt provided")
        result = self.orchestrator.generate(GenerationRequest(user_prompt=prompt), cancel_token)
        return self.parser.parse(result.text)

    # ------------------------------------------------------------------
    # Material processing
    # ------------------------------------------------------------------

    def extract(self, data: bytes, mime_type: str) -> str:
        """
        Uploaded bytes to normalized text.

        Raises:
            ValidationError: No file data
            ExtractionError: Unsupported, undecodable or empty
        """
        _require(data, "No file")
        return self.extractor.extract(data, mime_type or "application/octet-stream")

    def process_syllabus(
        self,
        data: bytes,
        mime_type: str,
        instructions: str = "",
        cancel_token: CancelToken | None = None,
    ) -> StudyGuide:
        """
        Extract, chunk, and synthesize a study guide.

        Raises:
            ValidationError: No file data
            ExtractionError: The file yielded no text
            AllProvidersUnavailableError: The synthesis call failed on every tier
        """
        text = self.extract(data, mime_type)
        info(f"[StudyService] Processing syllabus: {len(text)} chars of {mime_type}")
        with Timer("ProcessSyllabus"):
            return self.synthesizer.synthesize(text, instructions=instructions, cancel_token=cancel_token)

    # ------------------------------------------------------------------
    # Tutoring
    # ------------------------------------------------------------------

    def answer_question(
        self,
        question: str,
        active_note: NoteBlock | None = None,
        sessions: Iterable[StudySession] = (),
        groups: Iterable[StudyGroup] = (),
        badges: Iterable[Badge] = (),
        history: Iterable[ConversationTurn] = (),
        sink: Callable[[str], None] | None = None,
        structured: bool = False,
        cancel_token: CancelToken | None = None,
    ) -> TutorAnswer:
        """
        Answer a question from the student's material.

        Passing a sink streams the answer; otherwise the call blocks.

        Raises:
            ValidationError: Empty question
            StreamInterruptedError: Stream broke after partial delivery
            AllProvidersUnavailableError: Every backend tier failed
        """
        _require(question, "No question provided")
        bundle = aggregate_sources(active_note=active_note, sessions=sessions, groups=groups, badges=badges)
        if sink is not None:
            return self.tutor.stream_answer(
                question, bundle, sink, history=history, structured=structured, cancel_token=cancel_token
            )
        return self.tutor.answer(question, bundle, history=history, structured=structured, cancel_token=cancel_token)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def save_study_guide(self, title: str, guide: StudyGuide, session_id: str | None = None) -> StudySession:
        """Persist a study guide's notes as a session."""
        _require(title, "No title provided")
        session = StudySession(id=session_id or uuid.uuid4().hex, title=title, notes=list(guide.notes))
        self.store.save(f"{SESSION_KEY_PREFIX}{session.id}", session.to_dict())
        info(f"[StudyService] Saved session {session.id} ({len(session.notes)} notes)")
        return session

    def load_session(self, session_id: str) -> StudySession | None:
        record = self.store.get(f"{SESSION_KEY_PREFIX}{session_id}")
        return StudySession.from_dict(record) if record is not None else None

    def delete_session(self, session_id: str) -> None:
        self.store.delete(f"{SESSION_KEY_PREFIX}{session_id}")
