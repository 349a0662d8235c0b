"""
Study Tutor - question answering over the student's material.

Pipeline per question:
1. Keywords: primary from the question, secondary from the last few
   conversation turns
2. Score every aggregated source (keyword mode, active note boosted)
3. Select a bounded, deduplicated context anchored on the open note
4. Generate the answer, blocking or streamed to a sink
5. Optionally parse the answer into sections (answer / key points /
   follow-up question), falling back to the raw text
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable

from vekkam.ai.base import GenerationRequest, ProviderTier
from vekkam.ai.cancellation import CancelToken
from vekkam.ai.orchestrator import GenerationOrchestrator
from vekkam.config import QA_CONVERSATION_CONTEXT_PAIRS
from vekkam.logging_config import debug_log
from vekkam.retrieval.base import SelectionResult
from vekkam.retrieval.context_selector import ContextSelector
from vekkam.retrieval.scoring import ParagraphScorer, extract_keywords
from vekkam.structured.contracts import AnswerSections
from vekkam.structured.parser import StructuredOutputParser
from vekkam.study.models import ConversationTurn
from vekkam.study.sources import SourceBundle


@dataclass
class TutorAnswer:
    """
    Answer to one question.

    Attributes:
        answer: Answer text (the "answer" section when structured)
        provider_used: Backend tier that produced it
        selection: The context that was sent
        sections: Parsed sections, when a structured answer was requested and parsed
        raw: Full generated text
    """

    answer: str
    provider_used: ProviderTier
    selection: SelectionResult
    sections: AnswerSections | None = None
    raw: str = ""


class StudyTutor:
    """
    Answers questions from notes, group conversations and achievements.

    Example:
        tutor = StudyTutor(orchestrator)
        bundle = aggregate_sources(active_note=note, sessions=sessions)
        reply = tutor.answer("What drives osmosis?", bundle)
        print(reply.answer)
    """

    QA_PROMPT = """Answer the following based ONLY on the study material. If it is not covered there, say so.

STUDY MATERIAL:
{context}
{history}
QUESTION: {question}
{format_instructions}"""

    STRUCTURED_INSTRUCTIONS = (
        'Return JSON: { "answer": "", "key_points": [""], "follow_up_question": "" }'
    )

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        scorer: ParagraphScorer | None = None,
        selector: ContextSelector | None = None,
        parser: StructuredOutputParser | None = None,
        history_pairs: int = QA_CONVERSATION_CONTEXT_PAIRS,
    ):
        self.orchestrator = orchestrator
        self.scorer = scorer or ParagraphScorer()
        self.selector = selector or ContextSelector()
        self.parser = parser or StructuredOutputParser()
        self.history_pairs = history_pairs

    def build_context(
        self,
        question: str,
        bundle: SourceBundle,
        history: Iterable[ConversationTurn] = (),
    ) -> SelectionResult:
        """Score the bundle against the question and select the prompt context."""
        recent = list(history)[-self.history_pairs:] if self.history_pairs > 0 else []
        primary = extract_keywords(question)
        secondary = set()
        for turn in recent:
            secondary |= extract_keywords(f"{turn.question} {turn.answer}")
        secondary -= primary

        scored = self.scorer.score_sources(
            bundle.sources,
            primary_keywords=primary,
            secondary_keywords=secondary,
            active_source_ids=bundle.active_ids,
        )
        anchor = scored[bundle.anchor_index] if bundle.anchor_index is not None and scored else None

        debug_log(f"[Tutor] Keywords: primary={sorted(primary)}, secondary={sorted(secondary)}")
        return self.selector.select(scored, keywords_supplied=bool(primary or secondary), anchor=anchor)

    def build_prompt(
        self,
        question: str,
        selection: SelectionResult,
        history: Iterable[ConversationTurn] = (),
        structured: bool = False,
    ) -> str:
        recent = list(history)[-self.history_pairs:] if self.history_pairs > 0 else []
        history_text = ""
        if recent:
            lines = [f"Q: {t.question}\nA: {t.answer}" for t in recent]
            history_text = "\nRECENT CONVERSATION:\n" + "\n".join(lines) + "\n"
        return self.QA_PROMPT.format(
            context=selection.context,
            history=history_text,
            question=question.strip(),
            format_instructions=self.STRUCTURED_INSTRUCTIONS if structured else "ANSWER:",
        )

    def answer(
        self,
        question: str,
        bundle: SourceBundle,
        history: Iterable[ConversationTurn] = (),
        structured: bool = False,
        cancel_token: CancelToken | None = None,
    ) -> TutorAnswer:
        """
        Blocking answer.

        Args:
            question: The student's question
            bundle: Aggregated candidate sources
            history: Previous turns, oldest first
            structured: Ask for JSON sections and parse them
            cancel_token: Optional cancellation token
        """
        history = list(history)
        selection = self.build_context(question, bundle, history)
        prompt = self.build_prompt(question, selection, history, structured)
        result = self.orchestrator.generate(GenerationRequest(user_prompt=prompt), cancel_token)
        return self._finish(result.text, result.provider_used, selection, structured)

    def stream_answer(
        self,
        question: str,
        bundle: SourceBundle,
        sink: Callable[[str], None],
        history: Iterable[ConversationTurn] = (),
        structured: bool = False,
        cancel_token: CancelToken | None = None,
    ) -> TutorAnswer:
        """Streamed answer: fragments go to sink as they arrive."""
        history = list(history)
        selection = self.build_context(question, bundle, history)
        prompt = self.build_prompt(question, selection, history, structured)
        result = self.orchestrator.stream(GenerationRequest(user_prompt=prompt, streaming=True), sink, cancel_token)
        return self._finish(result.text, result.provider_used, selection, structured)

    def _finish(
        self,
        text: str,
        provider: ProviderTier,
        selection: SelectionResult,
        structured: bool,
    ) -> TutorAnswer:
        if not structured:
            return TutorAnswer(answer=text.strip(), provider_used=provider, selection=selection, raw=text)

        parsed = self.parser.parse_or_fallback(text, AnswerSections.from_dict)
        if parsed.ok:
            return TutorAnswer(
                answer=parsed.value.answer,
                provider_used=provider,
                selection=selection,
                sections=parsed.value,
                raw=text,
            )
        return TutorAnswer(answer=text.strip(), provider_used=provider, selection=selection, raw=text)
