"""
Interview Simulation Engine

Runs the full interview wizard against scripted, in-memory collaborators:
canned question generation, a synthetic camera, in-memory blob storage,
scripted transcription and an in-memory record store. A driver task plays
the candidate: it stops each answer after a scripted number of ticks and
switches tabs during the questions it is told to.

Usage:
    from simulation_engine import SimulationEngine

    engine = SimulationEngine()
    state = await engine.run()
    print(state.record.score)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from mock_interview import (
    Blob,
    CandidateProfile,
    Done,
    InlineImage,
    InterviewRecord,
    InterviewServices,
    InterviewSettings,
    InterviewWizard,
    Job,
    MediaKind,
    SessionUpdate,
    SessionUpdatePublisher,
    TranscriptStatus,
    TranscriptStatusReport,
    UpdateType,
    VisibilityHub,
    WizardState,
    WizardStep,
)
from mock_interview.errors import (
    CaptureDeviceError,
    GenerationError,
    RasterizationError,
    RecordStoreError,
    StorageError,
    TranscriptionError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

CANDIDATE = CandidateProfile(
    candidate_id="cand_sarah_chen",
    full_name="Sarah Chen",
    email="sarah.chen@example.com",
    experience_years=6,
)

SIMULATED_JOB = Job(
    id="job_backend_engineer",
    title="Backend Engineer",
    description=(
        "Design, build and operate Python APIs and data pipelines. "
        "Experience with asyncio, PostgreSQL and message queues."
    ),
)

# Placeholder bytes standing in for an uploaded resume image
RESUME_IMAGE = Blob(data=b"\x89PNG\r\n\x1a\nsimulated-resume", mime_type="image/png", filename="resume.png")

# Accelerated timing for the simulation
SIMULATION_SETTINGS = InterviewSettings(
    countdown_seconds=3,
    answer_seconds=20,
    tick_seconds=0.01,
    poll_interval_seconds=0.01,
)


# =============================================================================
# Interview Script
# =============================================================================

SCRIPTED_QUESTIONS = [
    "Walk me through the real-time pipeline on your resume and how you handled consumer failures.",
    "How would you design an idempotent payments API that is safe to retry from mobile clients?",
    "Tell me about a production incident you were paged for and how you found the root cause.",
    "How do you decide between asyncio, threads and processes for an I/O heavy Python service?",
    "Describe a time you disagreed with a teammate on a technical decision and how it ended.",
]

SCRIPTED_ANSWERS = [
    "We ingested clickstream events through Kafka and processed them with asyncio consumers. "
    "Failures went to a dead letter queue after three retries, and deduplication on event ids in Redis "
    "made reprocessing safe.",
    "Every request carries an idempotency key stored with the result in PostgreSQL under a unique "
    "constraint. A retry with the same key returns the stored response instead of charging twice.",
    "Latency jumped to ten seconds at three in the morning. Queue depth was flat but database latency "
    "spiked, and a deploy an hour earlier had dropped an index. We rolled back and added a migration check.",
    "For many concurrent network calls asyncio is the natural fit. CPU heavy work goes to a process pool, "
    "and threads are for blocking libraries I cannot replace.",
    "A colleague wanted to split our monolith into services at once. We built a decision matrix together, "
    "scored both options, and agreed to extract only the highest-traffic component first.",
]

CANNED_FEEDBACK = """**Resume Analysis:**
Six years of backend Python with streaming and payments work aligns closely with the role.

**Answer Quality:**
Answers were concrete and well structured, with specific tooling and measurable outcomes.

**Overall Evaluation:**
Strong backend candidate; dig deeper into data modelling in a follow-up round.

**Scores:**
Resume Score: 80/100
Q&A Score: 70/100
Overall Score: 74/100"""


# =============================================================================
# Scripted Collaborators
# =============================================================================

class CannedContentGenerator:
    """Returns fixed questions and feedback; records every call."""

    def __init__(
        self,
        questions: Optional[list[str]] = None,
        feedback: str = CANNED_FEEDBACK,
        fail_questions: bool = False,
        fail_feedback: bool = False,
    ) -> None:
        self.questions = list(questions if questions is not None else SCRIPTED_QUESTIONS)
        self.feedback = feedback
        self.fail_questions = fail_questions
        self.fail_feedback = fail_feedback
        self.question_calls: list[dict] = []
        self.feedback_calls: list[dict] = []

    async def generate_questions(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
    ) -> list[str]:
        self.question_calls.append(
            {
                "job_title": job_title,
                "job_description": job_description,
                "experience": experience,
                "resume_image": resume_image,
            }
        )
        if self.fail_questions:
            raise GenerationError("Question generation unavailable")
        return list(self.questions)

    async def generate_feedback(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
        questions: list[str],
        transcripts: list[str],
    ) -> str:
        self.feedback_calls.append(
            {
                "job_title": job_title,
                "experience": experience,
                "resume_image": resume_image,
                "questions": list(questions),
                "transcripts": list(transcripts),
            }
        )
        if self.fail_feedback:
            raise GenerationError("Feedback generation unavailable")
        return self.feedback


class InMemoryStorage:
    """
    Blob storage keyed by synthetic URLs.

    Clips are numbered ``blob://1``, ``blob://2``... in upload order; images
    get ``blob://resume-<n>``.
    """

    def __init__(
        self,
        fail_clip_numbers: Iterable[int] = (),
        fail_images: bool = False,
        fail_fetch: bool = False,
    ) -> None:
        self.blobs: dict[str, Blob] = {}
        self.uploads: list[tuple[MediaKind, str]] = []
        self.fail_clip_numbers = set(fail_clip_numbers)
        self.fail_images = fail_images
        self.fail_fetch = fail_fetch
        self._clip_count = 0
        self._image_count = 0

    async def upload(self, blob: Blob, kind: MediaKind) -> str:
        if kind is MediaKind.VIDEO:
            self._clip_count += 1
            if self._clip_count in self.fail_clip_numbers:
                raise StorageError(f"Simulated upload failure for clip {self._clip_count}")
            url = f"blob://{self._clip_count}"
        else:
            self._image_count += 1
            if self.fail_images:
                raise StorageError("Simulated image upload failure")
            url = f"blob://resume-{self._image_count}"

        self.blobs[url] = blob
        self.uploads.append((kind, url))
        return url

    async def fetch(self, url: str) -> Blob:
        if self.fail_fetch or url not in self.blobs:
            raise StorageError(f"Blob not found: {url}")
        return self.blobs[url]


class ScriptedTranscription:
    """
    Transcription jobs ``t1``, ``t2``... resolving to scripted text.

    A job reports ``processing`` for ``processing_polls`` polls, then
    ``completed`` with the answer text for its clip.
    """

    def __init__(
        self,
        answers: Optional[dict[str, str]] = None,
        processing_polls: int = 2,
        fail_request_for: Iterable[str] = (),
        stuck_jobs: Iterable[str] = (),
        error_jobs: Iterable[str] = (),
    ) -> None:
        self.answers = dict(answers) if answers is not None else {
            f"blob://{i}": text for i, text in enumerate(SCRIPTED_ANSWERS, start=1)
        }
        self.processing_polls = processing_polls
        self.fail_request_for = set(fail_request_for)
        self.stuck_jobs = set(stuck_jobs)
        self.error_jobs = set(error_jobs)

        self.requests: list[str] = []
        self.poll_counts: dict[str, int] = {}
        self._jobs: dict[str, str] = {}

    async def request_transcription(self, media_url: str) -> str:
        if media_url in self.fail_request_for:
            raise TranscriptionError(f"Simulated transcription failure for {media_url}")
        self.requests.append(media_url)
        job_id = f"t{len(self.requests)}"
        self._jobs[job_id] = media_url
        return job_id

    async def poll_status(self, job_id: str) -> TranscriptStatusReport:
        count = self.poll_counts.get(job_id, 0) + 1
        self.poll_counts[job_id] = count

        if job_id in self.error_jobs:
            return TranscriptStatusReport(status=TranscriptStatus.ERROR, error="Simulated failure")
        if job_id in self.stuck_jobs or count <= self.processing_polls:
            return TranscriptStatusReport(status=TranscriptStatus.PROCESSING)

        media_url = self._jobs.get(job_id, "")
        return TranscriptStatusReport(
            status=TranscriptStatus.COMPLETED,
            text=self.answers.get(media_url, ""),
        )


class InMemoryRecordStore:
    """Jobs and records held in dictionaries."""

    def __init__(
        self,
        jobs: Iterable[Job] = (SIMULATED_JOB,),
        existing: Iterable[tuple[str, str]] = (),
        fail_create: bool = False,
    ) -> None:
        self.jobs = {job.id: job for job in jobs}
        self.existing = set(existing)
        self.fail_create = fail_create
        self.records: dict[str, InterviewRecord] = {}

    async def get_job(self, job_id: str) -> Optional[Job]:
        return self.jobs.get(job_id)

    async def query_existing(self, candidate_id: str, job_id: str) -> bool:
        if (candidate_id, job_id) in self.existing:
            return True
        return any(
            r.candidate_uid == candidate_id and r.job_id == job_id for r in self.records.values()
        )

    async def create_record(self, record: InterviewRecord) -> tuple[str, InterviewRecord]:
        if self.fail_create:
            raise RecordStoreError("Simulated write failure")
        record_id = f"rec_{len(self.records) + 1}"
        submitted_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        stored = record.model_copy(update={"submitted_at": submitted_at})
        self.records[record_id] = stored
        return record_id, stored


class PassthroughRasterizer:
    """Pretends to rasterize: returns a PNG blob named after the document."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def rasterize(self, document: Blob) -> Blob:
        self.calls += 1
        if self.fail:
            raise RasterizationError("Simulated PDF conversion failure")
        name = document.filename.rsplit(".", 1)[0] + ".png"
        return Blob(data=b"\x89PNG" + document.data[:32], mime_type="image/png", filename=name)


class SilentNarrator:
    """Narrator that only records what it was asked to say."""

    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.cancel_count = 0

    async def speak(self, text: str) -> None:
        self.spoken.append(text)

    def cancel(self) -> None:
        self.cancel_count += 1


class SyntheticCaptureDevice:
    """Capture device producing small fake WebM clips."""

    def __init__(self, deny_access: bool = False) -> None:
        self.deny_access = deny_access
        self.is_open = False
        self.is_recording = False
        self.recordings_started = 0
        self.open_count = 0
        self.close_count = 0

    async def open(self) -> None:
        if self.deny_access:
            raise CaptureDeviceError("Permission denied")
        self.is_open = True
        self.open_count += 1

    async def start_recording(self) -> None:
        if not self.is_open:
            raise CaptureDeviceError("Device is not open")
        self.is_recording = True
        self.recordings_started += 1

    async def stop_recording(self) -> Blob:
        if not self.is_recording:
            raise CaptureDeviceError("Not recording")
        self.is_recording = False
        return Blob(
            data=f"webm-clip-{self.recordings_started}".encode(),
            mime_type="video/webm",
            filename=f"answer_{self.recordings_started}.webm",
        )

    async def close(self) -> None:
        self.is_open = False
        self.is_recording = False
        self.close_count += 1


@dataclass
class SimulatedCollaborators:
    """All scripted collaborators, kept together so callers can inspect them."""

    generator: CannedContentGenerator = field(default_factory=CannedContentGenerator)
    storage: InMemoryStorage = field(default_factory=InMemoryStorage)
    transcription: ScriptedTranscription = field(default_factory=ScriptedTranscription)
    records: InMemoryRecordStore = field(default_factory=InMemoryRecordStore)
    rasterizer: PassthroughRasterizer = field(default_factory=PassthroughRasterizer)
    narrator: SilentNarrator = field(default_factory=SilentNarrator)
    capture_device: SyntheticCaptureDevice = field(default_factory=SyntheticCaptureDevice)
    visibility: VisibilityHub = field(default_factory=VisibilityHub)

    def services(self) -> InterviewServices:
        return InterviewServices(
            generator=self.generator,
            storage=self.storage,
            transcription=self.transcription,
            records=self.records,
            rasterizer=self.rasterizer,
            narrator=self.narrator,
            capture_device=self.capture_device,
            visibility=self.visibility,
        )


# =============================================================================
# Simulation Engine
# =============================================================================

class SimulationEngine:
    """
    Plays one candidate through a complete interview.

    Args:
        collaborators: Scripted collaborators (defaults to a happy path).
        settings: Timing settings (defaults to accelerated timing).
        answer_ticks: Recording ticks before the candidate presses stop;
            None lets every answer run until the clock expires.
        tab_switch_questions: Question indexes during which the candidate
            hides and re-shows the page once.
    """

    def __init__(
        self,
        collaborators: Optional[SimulatedCollaborators] = None,
        settings: InterviewSettings = SIMULATION_SETTINGS,
        candidate: CandidateProfile = CANDIDATE,
        job_id: str = SIMULATED_JOB.id,
        resume: Blob = RESUME_IMAGE,
        answer_ticks: Optional[int] = 3,
        tab_switch_questions: Iterable[int] = (),
    ) -> None:
        self.collaborators = collaborators or SimulatedCollaborators()
        self.settings = settings
        self.resume = resume
        self.answer_ticks = answer_ticks
        self.tab_switch_questions = set(tab_switch_questions)

        self.publisher = SessionUpdatePublisher()
        self.wizard = InterviewWizard(
            candidate=candidate,
            job_id=job_id,
            services=self.collaborators.services(),
            settings=settings,
            publisher=self.publisher,
        )
        self.updates: list[SessionUpdate] = []
        self.stops_requested = 0

    async def run(self) -> WizardState:
        """Run every wizard step and return the final state."""
        queue = await self.publisher.subscribe()
        driver = asyncio.create_task(self._drive(queue))
        try:
            await self.wizard.start()
            await self.wizard.acknowledge_instructions()
            await self.wizard.submit_resume(self.resume)
            if self.wizard.step is not WizardStep.RUNNING_INTERVIEW:
                return self.wizard.state
            return await self.wizard.run_interview()
        finally:
            driver.cancel()
            try:
                await driver
            except asyncio.CancelledError:
                pass
            while not queue.empty():
                self.updates.append(queue.get_nowait())
            await self.publisher.unsubscribe(queue)

    async def _drive(self, queue: asyncio.Queue[SessionUpdate]) -> None:
        while True:
            update = await queue.get()
            self.updates.append(update)
            self._react(update)

    def _react(self, update: SessionUpdate) -> None:
        if update.update_type is UpdateType.QUESTION:
            if update.question_index in self.tab_switch_questions:
                self.collaborators.visibility.notify(True)
                self.collaborators.visibility.notify(False)

        elif update.update_type is UpdateType.RECORDING and self.answer_ticks is not None:
            elapsed = self.settings.answer_seconds - (update.seconds_remaining or 0)
            if elapsed >= self.answer_ticks and self.wizard.request_stop():
                self.stops_requested += 1
                logger.debug("Candidate stopped answer %s", update.question_index)


def completed_record(state: WizardState) -> Optional[InterviewRecord]:
    """The persisted record if the run reached Done."""
    return state.record if isinstance(state, Done) else None
