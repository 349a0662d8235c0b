"""
Quiz Generator - Bloom's taxonomy multiple-choice quizzes.

The source material is compressed to the quiz context budget with
document-mode context selection (densest paragraphs, first paragraph
always kept), then one generation call asks for exactly one question per
taxonomy level. A different question count is logged and tolerated; an
unparseable response raises ParseError with the raw text.
"""

import time

from vekkam.ai.base import GenerationRequest
from vekkam.ai.cancellation import CancelToken
from vekkam.ai.orchestrator import GenerationOrchestrator
from vekkam.config import QUIZ_CONTEXT_MAX_CHARS, QUIZ_QUESTION_COUNT
from vekkam.logging_config import debug_log, debug_timing, warning
from vekkam.retrieval.context_selector import select_document_context
from vekkam.structured.contracts import TAXONOMY_LEVELS, Quiz
from vekkam.structured.parser import StructuredOutputParser


class QuizGenerator:
    """
    Generates gatekeeper quizzes from study material.

    Example:
        generator = QuizGenerator(orchestrator)
        quiz = generator.generate(notes_text)
        for q in quiz.questions:
            print(q.taxonomy, q.question)
    """

    QUIZ_PROMPT = """You are a ruthless exam gatekeeper.
Generate exactly {count} Multiple Choice Questions based on the text below.

STRICT REQUIREMENT:
You must generate exactly one question for EACH of these Bloom's Taxonomy levels, in this specific order:
1. Remembering (Recall specific facts/definitions)
2. Understanding (Explain main ideas/concepts)
3. Applying (Use the information in a new scenario)
4. Analyzing (Draw connections between parts)
5. Evaluating (Justify a decision or stand)

Output ONLY valid JSON.
Format:
{{
  "questions": [
    {{
      "question": "Question text...",
      "options": ["A", "B", "C", "D"],
      "answer": "The text of the correct option",
      "taxonomy": "Remembering",
      "explanation": "Why this is correct."
    }}
  ]
}}

Context:
{context}"""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        parser: StructuredOutputParser | None = None,
        context_max_chars: int = QUIZ_CONTEXT_MAX_CHARS,
    ):
        self.orchestrator = orchestrator
        self.parser = parser or StructuredOutputParser()
        self.context_max_chars = context_max_chars

    def build_prompt(self, content: str) -> str:
        """Compress content to the budget and fill the quiz prompt."""
        context = select_document_context(content, self.context_max_chars)
        debug_log(f"[QuizGenerator] Context: {len(content)} -> {len(context)} chars")
        return self.QUIZ_PROMPT.format(count=QUIZ_QUESTION_COUNT, context=context)

    def generate(self, content: str, cancel_token: CancelToken | None = None) -> Quiz:
        """
        Generate a quiz for the content.

        Raises:
            ParseError: Response had no usable question list
            AllProvidersUnavailableError: Every backend tier failed
        """
        start_time = time.time()
        result = self.orchestrator.generate(GenerationRequest(user_prompt=self.build_prompt(content)), cancel_token)
        debug_timing("[QuizGenerator] Quiz generation", time.time() - start_time)
        quiz = self.parser.parse_into(result.text, Quiz.from_dict)

        if len(quiz.questions) != QUIZ_QUESTION_COUNT:
            warning(f"[QuizGenerator] Expected {QUIZ_QUESTION_COUNT} questions, got "
                    f"{len(quiz.questions)}; using what was returned")
        elif not quiz.is_complete:
            warning(f"[QuizGenerator] Taxonomy levels out of order: "
                    f"{[q.taxonomy for q in quiz.questions]} (expected {list(TAXONOMY_LEVELS)})")

        debug_log(f"[QuizGenerator] {len(quiz.questions)} questions from {result.provider_used.value}")
        return quiz
