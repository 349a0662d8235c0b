"""
Study Package - synthesis, quizzes and tutoring for Vekkam.

    from vekkam.study import StudyService

    service = StudyService()
    guide = service.process_syllabus(data, "text/plain")
    quiz = service.generate_quiz(guide.full_text)
    reply = service.answer_question("Why does osmosis stop?", active_note=guide.notes[0])

Components:
- StudyService: facade over every operation
- StudyMaterialSynthesizer: chunk -> extract -> synthesize -> outline
- QuizGenerator: Bloom's taxonomy quizzes
- StudyTutor: retrieval-grounded question answering
- TextExtractor / SessionStore: collaborator interfaces
- NoteBlock, StudySession, Badge, GroupMessage, StudyGroup: domain records
"""

from vekkam.study.collaborators import (
    InMemorySessionStore,
    PlainTextExtractor,
    SessionStore,
    TextExtractor,
)
from vekkam.study.models import (
    Badge,
    ConversationTurn,
    GroupMessage,
    NoteBlock,
    StudyGroup,
    StudySession,
)
from vekkam.study.quiz import QuizGenerator
from vekkam.study.service import StudyService
from vekkam.study.sources import SourceBundle, aggregate_sources
from vekkam.study.synthesis import StudyGuide, StudyMaterialSynthesizer
from vekkam.study.tutor import StudyTutor, TutorAnswer

__all__ = [
    # Facade
    "StudyService",
    # Pipelines
    "StudyMaterialSynthesizer",
    "StudyGuide",
    "QuizGenerator",
    "StudyTutor",
    "TutorAnswer",
    # Sources
    "SourceBundle",
    "aggregate_sources",
    # Collaborators
    "TextExtractor",
    "PlainTextExtractor",
    "SessionStore",
    "InMemorySessionStore",
    # Records
    "NoteBlock",
    "StudySession",
    "Badge",
    "GroupMessage",
    "StudyGroup",
    "ConversationTurn",
]
