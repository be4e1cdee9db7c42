"""
Data model for the interview session orchestrator.

Per-question data lives in one ``QuestionSlot`` record per question so the
answer status, clip URL and transcript job id can never drift apart. The
parallel-sequence layout the stored document uses only appears in
``InterviewRecord``, at the persistence boundary.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Media
# =============================================================================

class MediaKind(str, Enum):
    """Kind of blob handed to durable storage."""

    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class Blob:
    """Raw bytes with their mime type, e.g. a resume file or a recorded clip."""

    data: bytes
    mime_type: str
    filename: str = "blob"

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class InlineImage:
    """Base64-encoded image in the form the generation collaborator accepts."""

    mime_type: str
    data_b64: str

    @classmethod
    def from_blob(cls, blob: Blob) -> "InlineImage":
        return cls(
            mime_type=blob.mime_type,
            data_b64=base64.b64encode(blob.data).decode("ascii"),
        )

    def as_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_b64}"


# =============================================================================
# Job and Candidate
# =============================================================================

class Job(BaseModel):
    """A job posting a candidate is interviewed for."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(default="")


class CandidateProfile(BaseModel):
    """
    Identity of the candidate taking the interview.

    Example:
        >>> candidate = CandidateProfile(
        ...     candidate_id="uid_123",
        ...     full_name="Sarah Chen",
        ...     email="sarah@example.com",
        ...     experience_years=2,
        ... )
        >>> candidate.experience_label
        '2 years'
    """

    candidate_id: str = Field(..., min_length=1)
    full_name: str = Field(default="")
    email: str = Field(default="")
    experience_years: float = Field(default=0, ge=0)

    @property
    def experience_label(self) -> str:
        years = self.experience_years
        if float(years).is_integer():
            years = int(years)
        return f"{years} years"


class ResumeReference(BaseModel):
    """Durable location of the uploaded resume image."""

    url: str
    mime_type: str


# =============================================================================
# Session
# =============================================================================

class AnswerStatus(str, Enum):
    """Answer state of one question slot."""

    ANSWERED = "Answered"


class QuestionSlot(BaseModel):
    """
    Everything known about one question.

    ``clip_url`` and ``transcript_job_id`` stay ``None`` when the upload or
    transcription request failed; the interview continues regardless.
    """

    question: str
    answer_status: Optional[AnswerStatus] = None
    clip_url: Optional[str] = None
    transcript_job_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_transcript_requires_clip(self) -> "QuestionSlot":
        if self.transcript_job_id is not None and self.clip_url is None:
            raise ValueError("transcript_job_id requires a clip_url")
        return self


class InterviewSession(BaseModel):
    """
    Session state owned by the interview wizard.

    Created once question generation succeeds; after that slots only fill
    in, the question list never changes length.
    """

    job_id: str
    job_title: str
    job_description: str
    resume: ResumeReference
    slots: list[QuestionSlot] = Field(..., min_length=1)

    @classmethod
    def create(
        cls,
        job: Job,
        resume: ResumeReference,
        questions: list[str],
    ) -> "InterviewSession":
        return cls(
            job_id=job.id,
            job_title=job.title,
            job_description=job.description,
            resume=resume,
            slots=[QuestionSlot(question=q) for q in questions],
        )

    @property
    def question_count(self) -> int:
        return len(self.slots)

    @property
    def questions(self) -> list[str]:
        return [slot.question for slot in self.slots]

    @property
    def answer_status(self) -> list[Optional[AnswerStatus]]:
        return [slot.answer_status for slot in self.slots]

    @property
    def clip_urls(self) -> list[Optional[str]]:
        return [slot.clip_url for slot in self.slots]

    @property
    def transcript_job_ids(self) -> list[Optional[str]]:
        return [slot.transcript_job_id for slot in self.slots]

    def record_answer(
        self,
        index: int,
        clip_url: Optional[str],
        transcript_job_id: Optional[str],
    ) -> QuestionSlot:
        """
        Fill the slot for one answered question.

        Raises:
            IndexError: If the index is outside the question list.
            ValueError: If the slot was already answered.
        """
        if not 0 <= index < len(self.slots):
            raise IndexError(f"Question index {index} out of range")

        slot = self.slots[index]
        if slot.answer_status is not None:
            raise ValueError(f"Question {index} was already answered")
        if transcript_job_id is not None and clip_url is None:
            raise ValueError("transcript_job_id requires a clip_url")

        slot.answer_status = AnswerStatus.ANSWERED
        slot.clip_url = clip_url
        slot.transcript_job_id = transcript_job_id
        return slot


# =============================================================================
# Transcription
# =============================================================================

class TranscriptStatus(str, Enum):
    """Status reported by the transcription collaborator."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class TranscriptStatusReport(BaseModel):
    """One poll result for a transcript job."""

    status: TranscriptStatus
    text: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Persisted Record
# =============================================================================

class InterviewMeta(BaseModel):
    """Integrity metadata stored with the record."""

    model_config = ConfigDict(populate_by_name=True)

    tab_switch_count: int = Field(default=0, ge=0, alias="tabSwitchCount")


class InterviewRecord(BaseModel):
    """
    Immutable interview document handed to the record store.

    Field aliases follow the stored document's camelCase keys; dump with
    ``by_alias=True`` when writing.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    job_id: str = Field(..., alias="jobId")
    job_title: str = Field(..., alias="jobTitle")
    job_description: str = Field(..., alias="jobDescription")
    candidate_resume_url: str = Field(..., alias="candidateResumeURL")
    candidate_resume_mime_type: str = Field(..., alias="candidateResumeMimeType")
    questions: list[str]
    answers: list[Optional[str]]
    video_urls: list[Optional[str]] = Field(..., alias="videoURLs")
    transcript_ids: list[Optional[str]] = Field(..., alias="transcriptIds")
    transcript_texts: list[str] = Field(..., alias="transcriptTexts")
    current_question_index: int = Field(..., alias="currentQuestionIndex")
    feedback: str
    score: str
    resume_score: str = Field(..., alias="resumeScore")
    qna_score: str = Field(..., alias="qnaScore")
    candidate_uid: str = Field(..., alias="candidateUID")
    candidate_name: str = Field(..., alias="candidateName")
    candidate_email: str = Field(..., alias="candidateEmail")
    status: str = "Pending"
    submitted_at: Optional[str] = Field(default=None, alias="submittedAt")
    meta: InterviewMeta = Field(default_factory=InterviewMeta)

    @model_validator(mode="after")
    def validate_parallel_sequences(self) -> "InterviewRecord":
        expected = len(self.questions)
        lengths = {
            "answers": len(self.answers),
            "videoURLs": len(self.video_urls),
            "transcriptIds": len(self.transcript_ids),
            "transcriptTexts": len(self.transcript_texts),
        }
        mismatched = {k: v for k, v in lengths.items() if v != expected}
        if mismatched:
            raise ValueError(
                f"Parallel sequences must match {expected} questions: {mismatched}"
            )
        return self

    @classmethod
    def from_session(
        cls,
        session: InterviewSession,
        candidate: CandidateProfile,
        transcript_texts: list[str],
        feedback: str,
        scores: "ScoreCard",
        tab_switch_count: int,
    ) -> "InterviewRecord":
        return cls(
            job_id=session.job_id,
            job_title=session.job_title,
            job_description=session.job_description,
            candidate_resume_url=session.resume.url,
            candidate_resume_mime_type=session.resume.mime_type,
            questions=session.questions,
            answers=[s.value if s else None for s in session.answer_status],
            video_urls=session.clip_urls,
            transcript_ids=session.transcript_job_ids,
            transcript_texts=list(transcript_texts),
            current_question_index=session.question_count - 1,
            feedback=feedback,
            score=scores.overall,
            resume_score=scores.resume,
            qna_score=scores.qna,
            candidate_uid=candidate.candidate_id,
            candidate_name=candidate.full_name,
            candidate_email=candidate.email,
            meta=InterviewMeta(tab_switch_count=tab_switch_count),
        )

    def to_document(self) -> dict:
        """Serialize with the stored document's key names."""
        return self.model_dump(mode="json", by_alias=True)


class ScoreCard(BaseModel):
    """Scores parsed from the feedback text; ``"N/A"`` when a label is missing."""

    resume: str
    qna: str
    overall: str
