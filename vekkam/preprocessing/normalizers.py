"""
Text Normalization Steps

Cleans text produced by the extraction collaborator before it is scored,
chunked or sent to a generation backend.

Steps (in pipeline order):
1. HyphenationJoiner      - "exam-\\nination" -> "examination"
2. LineEndingNormalizer   - "\\r\\n" and "\\r" -> "\\n"
3. BlankLineCollapser     - 2+ blank lines -> exactly one blank line
4. WhitespaceCollapser    - runs of spaces/tabs -> one space
5. PageNumberRemover      - standalone page-number lines, "Page N" markers
6. EdgeTrimmer            - strip leading/trailing whitespace

Paragraph boundaries (one blank line) survive every step, since the
scorer and the chunk segmenter split on them.
"""

import re

from vekkam.preprocessing.base import BasePreprocessor, PreprocessingResult


class HyphenationJoiner(BasePreprocessor):
    """
    Rejoins words split across a line break by a hyphen.

    Example input:
        The mitochon-
        dria produce ATP.

    Example output:
        The mitochondria produce ATP.
    """

    name = "Hyphenation Joiner"

    # Letter, hyphen, line break, letter (digits excluded: "2019-\n2020" is a range)
    HYPHEN_BREAK_PATTERN = re.compile(r'([^\W\d_])-[ \t]*\r?\n[ \t]*([^\W\d_])')

    def process(self, text: str) -> PreprocessingResult:
        result, count = self.HYPHEN_BREAK_PATTERN.subn(r'\1\2', text)
        return PreprocessingResult(text=result, changes_made=count)


class LineEndingNormalizer(BasePreprocessor):
    """Converts Windows and old Mac line endings to "\\n"."""

    name = "Line Ending Normalizer"

    def process(self, text: str) -> PreprocessingResult:
        changes = text.count('\r')
        result = text.replace('\r\n', '\n').replace('\r', '\n')
        return PreprocessingResult(text=result, changes_made=changes)


class BlankLineCollapser(BasePreprocessor):
    """
    Collapses any run of blank (or whitespace-only) lines into one blank line.

    A single blank line is the paragraph separator for the rest of the
    engine, so "A\\n\\n\\n\\nB" and "A\\n  \\n\\nB" both become "A\\n\\nB".
    """

    name = "Blank Line Collapser"

    BLANK_RUN_PATTERN = re.compile(r'\n[ \t]*\n(?:[ \t]*\n)*')

    def process(self, text: str) -> PreprocessingResult:
        changes = 0

        def collapse(match):
            nonlocal changes
            if match.group(0) != '\n\n':
                changes += 1
            return '\n\n'

        result = self.BLANK_RUN_PATTERN.sub(collapse, text)
        return PreprocessingResult(text=result, changes_made=changes)


class WhitespaceCollapser(BasePreprocessor):
    """Collapses runs of horizontal whitespace (spaces, tabs, NBSP) to one space."""

    name = "Whitespace Collapser"

    HORIZONTAL_RUN_PATTERN = re.compile(r'[ \t\f\v\u00a0]+')

    def process(self, text: str) -> PreprocessingResult:
        changes = 0

        def collapse(match):
            nonlocal changes
            if match.group(0) != ' ':
                changes += 1
            return ' '

        result = self.HORIZONTAL_RUN_PATTERN.sub(collapse, text)
        return PreprocessingResult(text=result, changes_made=changes)


class PageNumberRemover(BasePreprocessor):
    """
    Removes page-number artifacts left behind by PDF and OCR extraction.

    Removes:
    - Lines holding only a page number: "12", "Page 12", "page 3 of 40", "- 7 -"
    - Inline "Page N" / "Page N of M" markers (capitalized "Page" only)

    Does NOT remove:
    - Lowercase references inside prose ("see page 5")
    - Numbers that are part of a longer line (dates, figures)
    """

    name = "Page Number Remover"

    STANDALONE_PATTERN = re.compile(
        r'^[ \t]*(?:-[ \t]*)?(?:page[ \t]+)?\d{1,4}(?:[ \t]+of[ \t]+\d{1,4})?(?:[ \t]*-)?[ \t]*(?:\n|$)',
        re.IGNORECASE | re.MULTILINE,
    )
    INLINE_PATTERN = re.compile(r'\bPage[ \t]+\d{1,4}(?:[ \t]+of[ \t]+\d{1,4})?\b')

    # Removing lines can leave stacked blank lines or double spaces behind
    EXTRA_BLANK_PATTERN = re.compile(r'\n{3,}')
    DOUBLE_SPACE_PATTERN = re.compile(r'[ \t]{2,}')

    def process(self, text: str) -> PreprocessingResult:
        result, standalone_count = self.STANDALONE_PATTERN.subn('', text)
        result, inline_count = self.INLINE_PATTERN.subn('', result)

        if standalone_count or inline_count:
            result = self.EXTRA_BLANK_PATTERN.sub('\n\n', result)
            result = self.DOUBLE_SPACE_PATTERN.sub(' ', result)

        return PreprocessingResult(
            text=result,
            changes_made=standalone_count + inline_count,
            metadata={
                'standalone_page_lines': standalone_count,
                'inline_page_markers': inline_count,
            }
        )


class EdgeTrimmer(BasePreprocessor):
    """Strips leading and trailing whitespace from the whole text."""

    name = "Edge Trimmer"

    def process(self, text: str) -> PreprocessingResult:
        result = text.strip()
        return PreprocessingResult(text=result, changes_made=int(result != text))
