"""Interfaces for the external services the orchestrator drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .models import (
    Blob,
    InlineImage,
    InterviewRecord,
    Job,
    MediaKind,
    TranscriptStatusReport,
)


VisibilityListener = Callable[[bool], None]


class ContentGenerator(Protocol):
    """Generates interview questions and the final evaluation."""

    async def generate_questions(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
    ) -> list[str]:
        """Return interview questions tailored to the job and resume."""

    async def generate_feedback(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
        questions: list[str],
        transcripts: list[str],
    ) -> str:
        """Return a free-form evaluation containing three labeled score lines."""


class BlobStorage(Protocol):
    """Durable storage for resume images and answer clips."""

    async def upload(self, blob: Blob, kind: MediaKind) -> str:
        """Upload a blob and return its durable URL."""

    async def fetch(self, url: str) -> Blob:
        """Retrieve a previously uploaded blob."""


class TranscriptionService(Protocol):
    """Asynchronous speech-to-text jobs."""

    async def request_transcription(self, media_url: str) -> str:
        """Start a transcript job for a media URL and return the job id."""

    async def poll_status(self, job_id: str) -> TranscriptStatusReport:
        """Return the current status of a transcript job."""


class RecordStore(Protocol):
    """Document persistence for jobs and completed interviews."""

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Return a job posting, or None if it does not exist."""

    async def query_existing(self, candidate_id: str, job_id: str) -> bool:
        """Whether the candidate already has an interview for this job."""

    async def create_record(self, record: InterviewRecord) -> tuple[str, InterviewRecord]:
        """Persist an interview record; return its id and the record as stored."""


class DocumentRasterizer(Protocol):
    """Converts non-image resume documents to a single image."""

    async def rasterize(self, document: Blob) -> Blob:
        """Render the document's first page as an image blob."""


class SpeechNarrator(Protocol):
    """Reads question text aloud."""

    async def speak(self, text: str) -> None:
        """Speak the text; returns when narration finishes."""

    def cancel(self) -> None:
        """Stop any narration in progress."""


class CaptureDevice(Protocol):
    """Camera and microphone handle producing recorded clips."""

    async def open(self) -> None:
        """Acquire the device; raises CaptureDeviceError if access is denied."""

    async def start_recording(self) -> None:
        """Begin recording a clip."""

    async def stop_recording(self) -> Blob:
        """Finish recording and return the clip."""

    async def close(self) -> None:
        """Release the device."""


class VisibilitySource(Protocol):
    """Delivers page-visibility changes (True means hidden)."""

    def add_listener(self, listener: VisibilityListener) -> None:
        """Register for visibility changes."""

    def remove_listener(self, listener: VisibilityListener) -> None:
        """Stop receiving visibility changes."""


@dataclass
class InterviewServices:
    """Bundle of collaborators one interview wizard runs against."""

    generator: ContentGenerator
    storage: BlobStorage
    transcription: TranscriptionService
    records: RecordStore
    rasterizer: DocumentRasterizer
    narrator: SpeechNarrator
    capture_device: CaptureDevice
    visibility: VisibilitySource
