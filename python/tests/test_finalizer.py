"""
Tests for SubmissionFinalizer and score parsing.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import pytest

from mock_interview.errors import FinalizationError
from mock_interview.finalizer import (
    SCORE_UNAVAILABLE,
    SubmissionFinalizer,
    parse_scores,
)
from mock_interview.models import Blob, MediaKind
from mock_interview.poller import TranscriptPoller
from mock_interview.pubsub import SessionUpdatePublisher, UpdateType
from tests.mock_data import (
    CANNED_FEEDBACK,
    SCRIPTED_ANSWERS,
    CannedContentGenerator,
    InMemoryRecordStore,
    InMemoryStorage,
    ScriptedTranscription,
    make_answered_session,
    make_candidate,
)


async def seeded_storage(**kwargs) -> InMemoryStorage:
    storage = InMemoryStorage(**kwargs)
    await storage.upload(
        Blob(data=b"\x89PNGresume", mime_type="image/png", filename="resume.png"),
        MediaKind.IMAGE,
    )
    return storage


async def requested_transcription(**kwargs) -> ScriptedTranscription:
    """Transcription with jobs t1..t5 already requested for blob://1..5."""
    transcription = ScriptedTranscription(**kwargs)
    for n in range(1, 6):
        await transcription.request_transcription(f"blob://{n}")
    return transcription


def build_finalizer(storage, transcription, generator=None, records=None, publisher=None):
    return SubmissionFinalizer(
        poller=TranscriptPoller(transcription, interval_seconds=0, max_attempts=10),
        storage=storage,
        generator=generator or CannedContentGenerator(),
        records=records or InMemoryRecordStore(),
        publisher=publisher,
    )


# =============================================================================
# Score Parsing
# =============================================================================

class TestParseScores:
    """Tests for best-effort score extraction."""

    def test_all_scores_present(self):
        """Labeled scores are returned as n/100."""
        scores = parse_scores(CANNED_FEEDBACK)

        assert scores.resume == "80/100"
        assert scores.qna == "70/100"
        assert scores.overall == "74/100"

    def test_missing_labels_are_unavailable(self):
        """Each missing label yields the unavailable sentinel on its own."""
        scores = parse_scores("Great answers.\nq&a score: 65/100")

        assert scores.resume == SCORE_UNAVAILABLE
        assert scores.qna == "65/100"
        assert scores.overall == SCORE_UNAVAILABLE

    def test_case_insensitive_with_spacing(self):
        """Labels match regardless of case and spacing before the number."""
        scores = parse_scores("OVERALL SCORE:   9/100\nresume score:100/100")

        assert scores.overall == "9/100"
        assert scores.resume == "100/100"

    def test_empty_feedback(self):
        """Empty feedback parses to all unavailable without raising."""
        scores = parse_scores("")

        assert (scores.resume, scores.qna, scores.overall) == ("N/A", "N/A", "N/A")


# =============================================================================
# Finalization
# =============================================================================

class TestSubmissionFinalizer:
    """Tests for transcripts -> feedback -> record."""

    @pytest.mark.asyncio
    async def test_happy_path_persists_one_record(self):
        """All transcripts resolve and one scored record is created."""
        storage = await seeded_storage()
        transcription = await requested_transcription()
        generator = CannedContentGenerator()
        records = InMemoryRecordStore()
        publisher = SessionUpdatePublisher()
        queue = await publisher.subscribe()
        finalizer = build_finalizer(storage, transcription, generator, records, publisher)

        submission = await finalizer.finalize(
            session=make_answered_session(),
            candidate=make_candidate(),
            tab_switch_count=1,
        )

        record = submission.record
        assert records.records == {submission.record_id: record}
        assert record.submitted_at is not None
        assert record.transcript_texts == SCRIPTED_ANSWERS
        assert (record.resume_score, record.qna_score, record.score) == ("80/100", "70/100", "74/100")
        assert record.status == "Pending"
        assert record.meta.tab_switch_count == 1
        assert record.answers == ["Answered"] * 5
        assert record.current_question_index == 4

        call = generator.feedback_calls[0]
        assert call["experience"] == "2 years"
        assert call["transcripts"] == SCRIPTED_ANSWERS
        assert call["resume_image"].mime_type == "image/png"

        statuses = []
        while not queue.empty():
            update = queue.get_nowait()
            if update.update_type is UpdateType.STATUS:
                statuses.append(update.content)
        assert statuses == ["Fetching transcripts...", "AI Analyzing performance...", "Saving Report..."]

    @pytest.mark.asyncio
    async def test_missing_and_failed_transcripts_use_placeholders(self):
        """Null job ids, errors and timeouts never block finalization."""
        storage = await seeded_storage()
        transcription = await requested_transcription(error_jobs={"t2"}, stuck_jobs={"t4"})
        finalizer = build_finalizer(storage, transcription)
        session = make_answered_session(transcript_ids=["t1", "t2", None, "t4", "t5"])

        submission = await finalizer.finalize(session, make_candidate(), tab_switch_count=0)

        texts = submission.record.transcript_texts
        assert texts[0] == SCRIPTED_ANSWERS[0]
        assert texts[1] == "Error"
        assert texts[2] == ""
        assert texts[3] == ""
        assert texts[4] == SCRIPTED_ANSWERS[4]
        assert transcription.poll_counts["t4"] == 10
        assert submission.record.transcript_ids[2] is None

    @pytest.mark.asyncio
    async def test_unparseable_feedback_still_saves(self):
        """Feedback without score labels is saved with N/A scores."""
        storage = await seeded_storage()
        transcription = await requested_transcription()
        generator = CannedContentGenerator(feedback="Candidate was articulate.")
        records = InMemoryRecordStore()
        finalizer = build_finalizer(storage, transcription, generator, records)

        submission = await finalizer.finalize(make_answered_session(), make_candidate(), 0)

        assert submission.record.score == "N/A"
        assert len(records.records) == 1

    @pytest.mark.asyncio
    async def test_resume_fetch_failure_is_terminal(self):
        """If the resume cannot be fetched, nothing is generated or saved."""
        storage = await seeded_storage(fail_fetch=True)
        transcription = await requested_transcription()
        generator = CannedContentGenerator()
        records = InMemoryRecordStore()
        finalizer = build_finalizer(storage, transcription, generator, records)

        with pytest.raises(FinalizationError) as exc_info:
            await finalizer.finalize(make_answered_session(), make_candidate(), 0)

        assert exc_info.value.stage == "fetching the resume"
        assert generator.feedback_calls == []
        assert records.records == {}

    @pytest.mark.asyncio
    async def test_feedback_failure_is_terminal(self):
        """A generation failure aborts before persistence."""
        storage = await seeded_storage()
        transcription = await requested_transcription()
        records = InMemoryRecordStore()
        finalizer = build_finalizer(
            storage, transcription, CannedContentGenerator(fail_feedback=True), records
        )

        with pytest.raises(FinalizationError) as exc_info:
            await finalizer.finalize(make_answered_session(), make_candidate(), 0)

        assert exc_info.value.stage == "generating feedback"
        assert records.records == {}

    @pytest.mark.asyncio
    async def test_persistence_failure_is_terminal(self):
        """A write failure is raised as a FinalizationError."""
        storage = await seeded_storage()
        transcription = await requested_transcription()
        finalizer = build_finalizer(
            storage, transcription, records=InMemoryRecordStore(fail_create=True)
        )

        with pytest.raises(FinalizationError) as exc_info:
            await finalizer.finalize(make_answered_session(), make_candidate(), 0)

        assert exc_info.value.stage == "saving the interview record"
        assert FinalizationError.USER_MESSAGE == "Error saving. Please contact support."
