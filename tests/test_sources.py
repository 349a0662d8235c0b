"""
Tests for study records and source aggregation.
"""

from vekkam.retrieval import SourceKind
from vekkam.study import (
    Badge,
    GroupMessage,
    NoteBlock,
    StudyGroup,
    StudySession,
    aggregate_sources,
)

ACTIVE = NoteBlock(
    topic="Osmosis",
    content="Osmosis moves water across membranes.\n\nTonicity decides the direction of flow.",
)


class TestRecords:
    """Test record rendering and conversion."""

    def test_note_text_has_heading(self):
        assert NoteBlock(topic="Osmosis", content="Water moves.").text == "# Osmosis\n\nWater moves."

    def test_session_sources_skip_empty_notes(self):
        session = StudySession(id="s1", title="Bio", notes=[
            NoteBlock(topic="A", content="Alpha"),
            NoteBlock(topic="B", content="  "),
            NoteBlock(topic="C", content="Gamma"),
        ])

        assert [s.id for s in session.to_sources()] == ["s1-note-0", "s1-note-2"]

    def test_session_dict_round_trip(self):
        session = StudySession(id="s1", title="Bio", notes=[NoteBlock(topic="A", content="Alpha", source_chunks=["chunk_0"])])

        restored = StudySession.from_dict(session.to_dict())

        assert restored == session

    def test_message_source(self):
        source = GroupMessage(id="7", sender_id="u1", sender_name="Ana", content="Osmosis is passive").to_source()

        assert source.id == "msg-7"
        assert source.kind == SourceKind.CONVERSATION
        assert source.text == "Ana: Osmosis is passive"

    def test_badge_source(self):
        badge = Badge(id="b1", title="Syllabus Survivor", description="Finished Biology", metadata={"topic": "Cells"})
        source = badge.to_source()

        assert source.id == "badge-b1"
        assert source.kind == SourceKind.ACHIEVEMENT
        assert source.text == "Syllabus Survivor. Finished Biology. Topic: Cells"


class TestAggregateSources:
    """Test candidate ordering for question answering."""

    def test_aggregation_order(self):
        """Active note paragraphs, then session notes, messages, badges."""
        session = StudySession(id="s1", title="Bio", notes=[NoteBlock(topic="Cells", content="Cells are units.")])
        group = StudyGroup(id="g1", name="Bio crew", messages=[
            GroupMessage(id="1", sender_id="u1", sender_name="Ana", content="Remember tonicity"),
        ])
        badge = Badge(id="b1", title="Syllabus Survivor")

        bundle = aggregate_sources(active_note=ACTIVE, sessions=[session], groups=[group], badges=[badge])

        assert [s.id for s in bundle.sources] == ["active-p0", "active-p1", "s1-note-0", "msg-1", "badge-b1"]
        assert bundle.anchor_index == 0
        assert bundle.active_ids == {"active-p0", "active-p1"}

    def test_active_note_not_duplicated_from_session(self):
        session = StudySession(id="s1", title="Bio", notes=[ACTIVE, NoteBlock(topic="Cells", content="Cells are units.")])

        bundle = aggregate_sources(active_note=ACTIVE, sessions=[session])

        assert [s.id for s in bundle.sources] == ["active-p0", "active-p1", "s1-note-1"]

    def test_no_active_note(self):
        session = StudySession(id="s1", title="Bio", notes=[NoteBlock(topic="Cells", content="Cells are units.")])

        bundle = aggregate_sources(sessions=[session])

        assert bundle.anchor_index is None
        assert bundle.active_ids == set()
        assert len(bundle) == 1
