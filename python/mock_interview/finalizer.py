"""
Submission Finalizer.

Runs once after the last answer: resolves every transcript, asks for the
AI evaluation, parses the three scores and persists one interview record.
Nothing is persisted unless every step succeeds.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .collaborators import BlobStorage, ContentGenerator, RecordStore
from .errors import FinalizationError
from .models import (
    CandidateProfile,
    InlineImage,
    InterviewRecord,
    InterviewSession,
    ScoreCard,
)
from .poller import TranscriptPoller
from .pubsub import SessionUpdatePublisher


__all__ = [
    "FinalizedSubmission",
    "SubmissionFinalizer",
    "SCORE_UNAVAILABLE",
    "parse_score",
    "parse_scores",
]


logger = logging.getLogger(__name__)


SCORE_UNAVAILABLE = "N/A"

_SCORE_PATTERNS = {
    "resume": re.compile(r"Resume Score:\s*(\d{1,3})", re.IGNORECASE),
    "qna": re.compile(r"Q&A Score:\s*(\d{1,3})", re.IGNORECASE),
    "overall": re.compile(r"Overall Score:\s*(\d{1,3})", re.IGNORECASE),
}


def parse_score(feedback: str, pattern: re.Pattern[str]) -> str:
    """Return ``"<n>/100"`` for the first match, or ``"N/A"``."""
    match = pattern.search(feedback or "")
    if not match:
        return SCORE_UNAVAILABLE
    return f"{match.group(1)}/100"


def parse_scores(feedback: str) -> ScoreCard:
    """
    Extract the labeled scores from free-form feedback text.

    Best effort: a missing label yields "N/A" for that score only.

    Example:
        >>> parse_scores("Resume Score: 80/100\\nQ&A Score: 70/100")
        ScoreCard(resume='80/100', qna='70/100', overall='N/A')
    """
    return ScoreCard(
        resume=parse_score(feedback, _SCORE_PATTERNS["resume"]),
        qna=parse_score(feedback, _SCORE_PATTERNS["qna"]),
        overall=parse_score(feedback, _SCORE_PATTERNS["overall"]),
    )


@dataclass(frozen=True)
class FinalizedSubmission:
    """Persisted record plus the id the store assigned."""

    record_id: str
    record: InterviewRecord


class SubmissionFinalizer:
    """
    Turns a completed session into a persisted, scored interview record.

    The session is read, never modified.
    """

    def __init__(
        self,
        poller: TranscriptPoller,
        storage: BlobStorage,
        generator: ContentGenerator,
        records: RecordStore,
        publisher: Optional[SessionUpdatePublisher] = None,
    ) -> None:
        self._poller = poller
        self._storage = storage
        self._generator = generator
        self._records = records
        self._publisher = publisher

    async def _status(self, message: str) -> None:
        logger.info(message)
        if self._publisher:
            await self._publisher.publish_status(message)

    async def finalize(
        self,
        session: InterviewSession,
        candidate: CandidateProfile,
        tab_switch_count: int,
    ) -> FinalizedSubmission:
        """
        Resolve transcripts, generate feedback and persist the record.

        Raises:
            FinalizationError: If the resume, feedback or persistence step fails.
        """
        await self._status("Fetching transcripts...")
        outcomes = await self._poller.poll_all(session.transcript_job_ids)
        transcript_texts = [outcome.text for outcome in outcomes]

        await self._status("AI Analyzing performance...")
        try:
            resume_blob = await self._storage.fetch(session.resume.url)
        except Exception as exc:
            raise FinalizationError("fetching the resume", exc) from exc
        resume_image = InlineImage(
            mime_type=session.resume.mime_type,
            data_b64=InlineImage.from_blob(resume_blob).data_b64,
        )

        try:
            feedback = await self._generator.generate_feedback(
                job_title=session.job_title,
                job_description=session.job_description,
                experience=candidate.experience_label,
                resume_image=resume_image,
                questions=session.questions,
                transcripts=transcript_texts,
            )
        except Exception as exc:
            raise FinalizationError("generating feedback", exc) from exc

        scores = parse_scores(feedback)
        logger.info(
            "Scores parsed - resume: %s, q&a: %s, overall: %s",
            scores.resume,
            scores.qna,
            scores.overall,
        )

        record = InterviewRecord.from_session(
            session=session,
            candidate=candidate,
            transcript_texts=transcript_texts,
            feedback=feedback,
            scores=scores,
            tab_switch_count=tab_switch_count,
        )

        await self._status("Saving Report...")
        try:
            record_id, record = await self._records.create_record(record)
        except Exception as exc:
            raise FinalizationError("saving the interview record", exc) from exc

        logger.info("Interview record %s saved for candidate %s", record_id, candidate.candidate_id)
        return FinalizedSubmission(record_id=record_id, record=record)
