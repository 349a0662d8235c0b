"""
Vekkam command-line interface.

Runs the study engine over local text files:

    python -m vekkam synthesize syllabus.txt --instructions "Focus on definitions"
    python -m vekkam quiz notes.md
    python -m vekkam ask "What is osmosis?" --notes notes.md --stream
    python -m vekkam generate "Give me a 6-hour battle plan for thermodynamics"

Results are printed as JSON (streamed answers print as plain text).
Failures print the error report as JSON on stderr and exit with status 1.
"""

import argparse
import json
import mimetypes
import sys
from pathlib import Path

from vekkam.exceptions import VekkamError
from vekkam.logging_config import close_debug_log, error, info
from vekkam.study.models import NoteBlock
from vekkam.study.service import StudyService


def _read_bytes(path: str) -> tuple[bytes, str]:
    file_path = Path(path)
    mime_type = mimetypes.guess_type(file_path.name)[0] or "text/plain"
    return file_path.read_bytes(), mime_type


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _cmd_generate(service: StudyService, args) -> None:
    result = service.generate(args.prompt)
    _print_json({"text": result.text, "provider": result.provider_used.value})


def _cmd_extract(service: StudyService, args) -> None:
    data, mime_type = _read_bytes(args.file)
    _print_json({"text": service.extract(data, args.mime_type or mime_type)})


def _cmd_synthesize(service: StudyService, args) -> None:
    data, mime_type = _read_bytes(args.file)
    guide = service.process_syllabus(data, args.mime_type or mime_type, instructions=args.instructions)
    _print_json(guide.to_dict())


def _cmd_quiz(service: StudyService, args) -> None:
    data, mime_type = _read_bytes(args.file)
    content = service.extract(data, args.mime_type or mime_type)
    _print_json(service.generate_quiz(content).to_dict())


def _cmd_ask(service: StudyService, args) -> None:
    active_note = None
    if args.notes:
        data, mime_type = _read_bytes(args.notes)
        active_note = NoteBlock(topic=Path(args.notes).stem, content=service.extract(data, mime_type))

    if args.stream:
        def sink(fragment: str) -> None:
            sys.stdout.write(fragment)
            sys.stdout.flush()

        service.answer_question(args.question, active_note=active_note, sink=sink)
        sys.stdout.write("\n")
        return

    reply = service.answer_question(args.question, active_note=active_note, structured=args.structured)
    payload = {"answer": reply.answer, "provider": reply.provider_used.value}
    if reply.sections is not None:
        payload["sections"] = reply.sections.to_dict()
    _print_json(payload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vekkam",
        description="Vekkam - exam-first study engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build a study guide from a syllabus
  python -m vekkam synthesize syllabus.txt

  # Quiz yourself on your notes
  python -m vekkam quiz notes.md

  # Ask a question, streaming the answer
  python -m vekkam ask "Why does osmosis stop?" --notes notes.md --stream

  # Debug mode (verbose logging)
  DEBUG=true python -m vekkam quiz notes.md
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Free-form generation")
    generate.add_argument("prompt", help="Prompt text")
    generate.set_defaults(handler=_cmd_generate)

    extract = subparsers.add_parser("extract", help="Extract and normalize text from a file")
    extract.add_argument("file", help="Input file (text, Markdown, HTML, JSON)")
    extract.add_argument("--mime-type", help="Override the detected MIME type")
    extract.set_defaults(handler=_cmd_extract)

    synthesize = subparsers.add_parser("synthesize", help="Build a study guide from a file")
    synthesize.add_argument("file", help="Input file (text, Markdown, HTML, JSON)")
    synthesize.add_argument("--instructions", default="", help="Extra instructions for the synthesis pass")
    synthesize.add_argument("--mime-type", help="Override the detected MIME type")
    synthesize.set_defaults(handler=_cmd_synthesize)

    quiz = subparsers.add_parser("quiz", help="Generate a Bloom's taxonomy quiz from a file")
    quiz.add_argument("file", help="Input file")
    quiz.add_argument("--mime-type", help="Override the detected MIME type")
    quiz.set_defaults(handler=_cmd_quiz)

    ask = subparsers.add_parser("ask", help="Ask the tutor a question")
    ask.add_argument("question", help="The question")
    ask.add_argument("--notes", help="File holding the note you are studying")
    ask.add_argument("--stream", action="store_true", help="Stream the answer as it is generated")
    ask.add_argument("--structured", action="store_true", help="Ask for answer / key points / follow-up sections")
    ask.set_defaults(handler=_cmd_ask)

    return parser


def main(argv: list[str] | None = None, service: StudyService | None = None) -> int:
    """Command-line entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    info(f"[CLI] Running '{args.command}'")

    try:
        args.handler(service or StudyService(), args)
    except VekkamError as e:
        error(f"[CLI] {args.command} failed: {e.message}")
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1
    except OSError as e:
        error(f"[CLI] Cannot read input: {e}")
        print(json.dumps({"kind": "io_error", "error": str(e)}), file=sys.stderr)
        return 1
    finally:
        close_debug_log()
    return 0
