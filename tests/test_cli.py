"""
Tests for the command-line interface.
"""

import json
from unittest.mock import MagicMock

from vekkam.ai import GenerationResult, ProviderTier
from vekkam.cli import build_parser, main
from vekkam.exceptions import AllProvidersUnavailableError
from vekkam.study.synthesis import StudyGuide


class TestParser:
    """Test argument parsing."""

    def test_ask_flags(self):
        args = build_parser().parse_args(["ask", "What is osmosis?", "--notes", "notes.md", "--stream"])

        assert args.question == "What is osmosis?"
        assert args.notes == "notes.md"
        assert args.stream is True
        assert args.structured is False


class TestMain:
    """Test command execution against a mocked service."""

    def test_generate_prints_json(self, capsys):
        service = MagicMock()
        service.generate.return_value = GenerationResult(text="Battle plan", provider_used=ProviderTier.PRIMARY)

        status = main(["generate", "Plan my week"], service=service)

        assert status == 0
        assert json.loads(capsys.readouterr().out) == {"text": "Battle plan", "provider": "primary"}

    def test_synthesize_reads_file(self, tmp_path, capsys):
        syllabus = tmp_path / "syllabus.txt"
        syllabus.write_text("Osmosis moves water.")
        service = MagicMock()
        service.process_syllabus.return_value = StudyGuide(full_text="# Osmosis")

        status = main(["synthesize", str(syllabus), "--instructions", "Definitions first"], service=service)

        assert status == 0
        service.process_syllabus.assert_called_once_with(
            b"Osmosis moves water.", "text/plain", instructions="Definitions first"
        )
        assert json.loads(capsys.readouterr().out)["full_text"] == "# Osmosis"

    def test_service_error_reported_on_stderr(self, capsys):
        service = MagicMock()
        service.generate.side_effect = AllProvidersUnavailableError()

        status = main(["generate", "Plan my week"], service=service)

        assert status == 1
        report = json.loads(capsys.readouterr().err)
        assert report["kind"] == "service_unavailable"
        assert report["error"] == "Service unavailable. All AI models are currently down."

    def test_missing_file(self, tmp_path, capsys):
        status = main(["synthesize", str(tmp_path / "missing.txt")], service=MagicMock())

        assert status == 1
        assert json.loads(capsys.readouterr().err)["kind"] == "io_error"

    def test_ask_streams_to_stdout(self, capsys):
        service = MagicMock()

        def answer_question(question, active_note=None, sink=None, **kwargs):
            sink("Water ")
            sink("follows solutes.")

        service.answer_question.side_effect = answer_question

        status = main(["ask", "What is osmosis?", "--stream"], service=service)

        assert status == 0
        assert capsys.readouterr().out == "Water follows solutes.\n"
