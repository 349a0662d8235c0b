"""
Normalization step contract and the pipeline that chains steps.

Steps must be idempotent so already-clean text passes through unchanged.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from vekkam.logging_config import debug_log


@dataclass
class PreprocessingResult:
    """Output of one step: the new text plus how many substitutions it made."""
    text: str
    changes_made: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class StepReport:
    """What happened to one step during the last pipeline run."""
    name: str
    changes: int = 0
    elapsed_ms: float = 0.0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BasePreprocessor(ABC):
    """
    One normalization step.

    Subclasses set ``name`` and implement ``process``:

        class TabExpander(BasePreprocessor):
            name = "Tab Expander"

            def process(self, text):
                return PreprocessingResult(text.replace("\\t", " "), text.count("\\t"))
    """

    name: str = "Unnamed Step"
    enabled: bool = True

    @abstractmethod
    def process(self, text: str) -> PreprocessingResult:
        ...

    def __repr__(self) -> str:
        state = "on" if self.enabled else "off"
        return f"<{self.name} [{state}]>"


class PreprocessingPipeline:
    """
    Feeds text through each enabled step in order.

    A step that raises is recorded in ``reports`` and skipped, keeping the
    text it was given; normalization itself never fails.
    """

    def __init__(self, preprocessors: list[BasePreprocessor] | None = None):
        self.preprocessors: list[BasePreprocessor] = list(preprocessors or [])
        self.reports: list[StepReport] = []

    def add_preprocessor(self, preprocessor: BasePreprocessor) -> 'PreprocessingPipeline':
        self.preprocessors.append(preprocessor)
        return self

    def _run_step(self, step: BasePreprocessor, text: str) -> tuple[str, StepReport]:
        began = time.perf_counter()
        try:
            outcome = step.process(text)
        except Exception as exc:
            debug_log(f"[NORMALIZER] {step.name} failed, keeping input: {exc}")
            return text, StepReport(step.name, elapsed_ms=(time.perf_counter() - began) * 1000, error=str(exc))
        report = StepReport(
            step.name,
            changes=outcome.changes_made,
            elapsed_ms=(time.perf_counter() - began) * 1000,
            metadata=outcome.metadata,
        )
        return outcome.text, report

    def process(self, text: str) -> str:
        """Return the normalized text ("" for empty input)."""
        self.reports = []
        if not text:
            return ""

        cleaned = text
        for step in filter(lambda s: s.enabled, self.preprocessors):
            cleaned, report = self._run_step(step, cleaned)
            self.reports.append(report)

        debug_log(f"[NORMALIZER] {self.total_changes} changes, {len(text)} -> {len(cleaned)} chars")
        return cleaned

    @property
    def total_changes(self) -> int:
        return sum(r.changes for r in self.reports)

    def get_stats(self) -> dict[str, StepReport]:
        """Reports from the last run keyed by step name."""
        return {r.name: r for r in self.reports}

    def __repr__(self) -> str:
        return f"PreprocessingPipeline({[p.name for p in self.preprocessors]})"
