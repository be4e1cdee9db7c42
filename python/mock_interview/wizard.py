"""
Interview Wizard.

Top-level state machine for one candidate interviewing for one job:

    CheckingPriorSubmission -> ShowingInstructions -> AwaitingResumeUpload
        -> GeneratingQuestions -> RunningInterview (x N questions)
        -> Finalizing -> Done

Exactly one state object is active at a time. Each state is its own frozen
dataclass carrying only the data valid in that step, and every operation
checks the active state before doing anything; calling an operation from
the wrong step raises ``IllegalTransitionError``.

The only backwards move is GeneratingQuestions -> AwaitingResumeUpload when
resume intake or question generation fails.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from .capture import MediaCaptureSession
from .collaborators import InterviewServices
from .config import InterviewSettings
from .errors import (
    CaptureDeviceError,
    FinalizationError,
    IllegalTransitionError,
    JobNotFoundError,
    PriorSubmissionError,
    SetupError,
)
from .finalizer import SubmissionFinalizer
from .models import (
    Blob,
    CandidateProfile,
    InlineImage,
    InterviewRecord,
    InterviewSession,
    Job,
    MediaKind,
    ResumeReference,
)
from .poller import TranscriptPoller
from .proctoring import ProctoringMonitor
from .pubsub import SessionUpdatePublisher
from .recording import RecordingPhase, RecordingPipeline
from .timer import QuestionTimer


__all__ = [
    "InterviewWizard",
    "WizardStep",
    "WizardState",
    "CheckingPriorSubmission",
    "ShowingInstructions",
    "AwaitingResumeUpload",
    "GeneratingQuestions",
    "RunningInterview",
    "Finalizing",
    "Done",
]


logger = logging.getLogger(__name__)


# =============================================================================
# States
# =============================================================================

class WizardStep(str, Enum):
    """Discriminator for the active wizard state."""

    CHECKING_PRIOR_SUBMISSION = "checking_prior_submission"
    SHOWING_INSTRUCTIONS = "showing_instructions"
    AWAITING_RESUME_UPLOAD = "awaiting_resume_upload"
    GENERATING_QUESTIONS = "generating_questions"
    RUNNING_INTERVIEW = "running_interview"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass(frozen=True)
class CheckingPriorSubmission:
    step: ClassVar[WizardStep] = WizardStep.CHECKING_PRIOR_SUBMISSION


@dataclass(frozen=True)
class ShowingInstructions:
    job: Job
    step: ClassVar[WizardStep] = WizardStep.SHOWING_INSTRUCTIONS


@dataclass(frozen=True)
class AwaitingResumeUpload:
    job: Job
    error_message: Optional[str] = None
    step: ClassVar[WizardStep] = WizardStep.AWAITING_RESUME_UPLOAD


@dataclass(frozen=True)
class GeneratingQuestions:
    job: Job
    step: ClassVar[WizardStep] = WizardStep.GENERATING_QUESTIONS


@dataclass(frozen=True)
class RunningInterview:
    job: Job
    session: InterviewSession
    cursor: int
    step: ClassVar[WizardStep] = WizardStep.RUNNING_INTERVIEW


@dataclass(frozen=True)
class Finalizing:
    job: Job
    session: InterviewSession
    tab_switch_count: int
    error_message: Optional[str] = None
    step: ClassVar[WizardStep] = WizardStep.FINALIZING


@dataclass(frozen=True)
class Done:
    job: Job
    record_id: str
    record: InterviewRecord
    step: ClassVar[WizardStep] = WizardStep.DONE


WizardState = Union[
    CheckingPriorSubmission,
    ShowingInstructions,
    AwaitingResumeUpload,
    GeneratingQuestions,
    RunningInterview,
    Finalizing,
    Done,
]


ALLOWED_TRANSITIONS: dict[WizardStep, frozenset[WizardStep]] = {
    WizardStep.CHECKING_PRIOR_SUBMISSION: frozenset({WizardStep.SHOWING_INSTRUCTIONS}),
    WizardStep.SHOWING_INSTRUCTIONS: frozenset({WizardStep.AWAITING_RESUME_UPLOAD}),
    WizardStep.AWAITING_RESUME_UPLOAD: frozenset({WizardStep.GENERATING_QUESTIONS}),
    WizardStep.GENERATING_QUESTIONS: frozenset(
        {WizardStep.RUNNING_INTERVIEW, WizardStep.AWAITING_RESUME_UPLOAD}
    ),
    WizardStep.RUNNING_INTERVIEW: frozenset(
        {WizardStep.RUNNING_INTERVIEW, WizardStep.FINALIZING}
    ),
    WizardStep.FINALIZING: frozenset({WizardStep.FINALIZING, WizardStep.DONE}),
    WizardStep.DONE: frozenset(),
}


# =============================================================================
# Wizard
# =============================================================================

class InterviewWizard:
    """
    Drives one interview from the prior-submission check to the saved record.

    User-triggered operations (``acknowledge_instructions``,
    ``submit_resume``, ``request_stop``) and the long-running
    ``run_interview`` are plain coroutines/methods; the caller owns the event
    loop and decides when to call them.

    Example:
        >>> wizard = InterviewWizard(candidate, "job_42", services)
        >>> await wizard.start()
        >>> await wizard.acknowledge_instructions()
        >>> await wizard.submit_resume(resume_blob)
        >>> state = await wizard.run_interview()
        >>> state.step
        <WizardStep.DONE: 'done'>
    """

    def __init__(
        self,
        candidate: CandidateProfile,
        job_id: str,
        services: InterviewServices,
        settings: Optional[InterviewSettings] = None,
        publisher: Optional[SessionUpdatePublisher] = None,
    ) -> None:
        self.candidate = candidate
        self.job_id = job_id
        self.settings = settings or InterviewSettings()
        self.publisher = publisher or SessionUpdatePublisher()
        self._services = services

        self._capture = MediaCaptureSession(services.capture_device)
        self._pipeline = RecordingPipeline(services.storage, services.transcription)
        self._finalizer = SubmissionFinalizer(
            poller=TranscriptPoller(
                services.transcription,
                interval_seconds=self.settings.poll_interval_seconds,
                max_attempts=self.settings.poll_max_attempts,
            ),
            storage=services.storage,
            generator=services.generator,
            records=services.records,
            publisher=self.publisher,
        )

        self._state: WizardState = CheckingPriorSubmission()
        self._phase: Optional[RecordingPhase] = None
        self._monitor: Optional[ProctoringMonitor] = None
        self._loop_started = False
        self._torn_down = False

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def step(self) -> WizardStep:
        return self._state.step

    @property
    def current_phase(self) -> Optional[RecordingPhase]:
        """The live recording phase, only while a question is in progress."""
        return self._phase

    @property
    def tab_switch_count(self) -> int:
        return self._monitor.count if self._monitor else 0

    @property
    def is_torn_down(self) -> bool:
        """True once the interview loop was cancelled; the wizard is then dead."""
        return self._torn_down

    @property
    def capture(self) -> MediaCaptureSession:
        return self._capture

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _require(self, state_type: type, action: str):
        if self._torn_down:
            raise IllegalTransitionError(f"{self._state.step.value} (torn down)", action)
        if not isinstance(self._state, state_type):
            raise IllegalTransitionError(self._state.step.value, action)
        return self._state

    async def _enter(self, new_state: WizardState) -> None:
        current = self._state
        if new_state.step not in ALLOWED_TRANSITIONS[current.step]:
            raise IllegalTransitionError(current.step.value, f"enter {new_state.step.value}")

        if isinstance(current, RunningInterview) and isinstance(new_state, RunningInterview):
            if new_state.session is not current.session or new_state.cursor != current.cursor + 1:
                raise IllegalTransitionError(
                    current.step.value,
                    f"move question cursor from {current.cursor} to {new_state.cursor}",
                )

        self._state = new_state
        if new_state.step is not current.step:
            logger.info("Wizard step: %s -> %s", current.step.value, new_state.step.value)
            await self.publisher.publish_step(new_state.step.value)

    # -------------------------------------------------------------------------
    # CheckingPriorSubmission / ShowingInstructions
    # -------------------------------------------------------------------------

    async def start(self) -> WizardState:
        """
        Check for an earlier submission and load the job.

        Raises:
            PriorSubmissionError: The candidate already interviewed for this job.
            JobNotFoundError: The job does not exist.
        """
        self._require(CheckingPriorSubmission, "check for a prior submission")
        records = self._services.records

        if await records.query_existing(self.candidate.candidate_id, self.job_id):
            logger.info(
                "Candidate %s already interviewed for job %s",
                self.candidate.candidate_id,
                self.job_id,
            )
            raise PriorSubmissionError(self.candidate.candidate_id, self.job_id)

        job = await records.get_job(self.job_id)
        if job is None:
            raise JobNotFoundError(self.job_id)

        await self._enter(ShowingInstructions(job=job))
        return self._state

    async def acknowledge_instructions(self) -> WizardState:
        state = self._require(ShowingInstructions, "acknowledge instructions")
        await self._enter(AwaitingResumeUpload(job=state.job))
        return self._state

    # -------------------------------------------------------------------------
    # AwaitingResumeUpload -> GeneratingQuestions
    # -------------------------------------------------------------------------

    async def submit_resume(self, resume: Blob) -> WizardState:
        """
        Turn the resume into questions and start the interview.

        On any setup failure the wizard returns to AwaitingResumeUpload with
        ``error_message`` set and no session.
        """
        state = self._require(AwaitingResumeUpload, "submit a resume")
        job = state.job
        await self._enter(GeneratingQuestions(job=job))

        try:
            session = await self._prepare_session(job, resume)
        except SetupError as exc:
            logger.warning("Interview setup failed: %s", exc, exc_info=exc.cause)
            await self._capture.release()
            await self.publisher.publish_error(str(exc))
            await self._enter(AwaitingResumeUpload(job=job, error_message=str(exc)))
            return self._state

        # Counts from RunningInterview entry until Finalizing or teardown.
        monitor = ProctoringMonitor(self._services.visibility)
        monitor.start()
        self._monitor = monitor
        await self._enter(RunningInterview(job=job, session=session, cursor=0))
        return self._state

    async def _prepare_session(self, job: Job, resume: Blob) -> InterviewSession:
        services = self._services
        await self.publisher.publish_status("Uploading resume and analyzing profile...")

        image = resume
        if not resume.is_image:
            await self.publisher.publish_status("Converting PDF to Image...")
            try:
                image = await services.rasterizer.rasterize(resume)
            except Exception as exc:
                raise SetupError(
                    "PDF conversion failed. Please upload a valid PDF or an image.", exc
                ) from exc

        try:
            resume_url = await services.storage.upload(image, MediaKind.IMAGE)
        except Exception as exc:
            raise SetupError(f"Failed: {exc}", exc) from exc

        await self.publisher.publish_status("AI is generating tailored questions... (approx 30s)")
        try:
            questions = await services.generator.generate_questions(
                job_title=job.title,
                job_description=job.description,
                experience=self.candidate.experience_label,
                resume_image=InlineImage.from_blob(image),
            )
        except Exception as exc:
            raise SetupError(f"Failed: {exc}", exc) from exc

        expected = self.settings.question_count
        if len(questions) != expected:
            raise SetupError(
                f"Failed: expected {expected} questions, received {len(questions)}"
            )

        try:
            await self._capture.acquire()
        except CaptureDeviceError as exc:
            raise SetupError("Camera permission denied. Please allow access.", exc) from exc

        return InterviewSession.create(
            job=job,
            resume=ResumeReference(url=resume_url, mime_type=image.mime_type),
            questions=list(questions),
        )

    # -------------------------------------------------------------------------
    # RunningInterview
    # -------------------------------------------------------------------------

    def request_stop(self) -> bool:
        """
        Stop the current answer early.

        Returns:
            True if a recording was stopped; False otherwise (no-op).
        """
        if self._torn_down or not isinstance(self._state, RunningInterview) or self._phase is None:
            return False
        return self._phase.request_stop()

    def _new_phase(self, state: RunningInterview) -> RecordingPhase:
        return RecordingPhase(
            question_index=state.cursor,
            question=state.session.slots[state.cursor].question,
            capture=self._capture,
            pipeline=self._pipeline,
            narrator=self._services.narrator,
            timer=QuestionTimer(
                countdown_seconds=self.settings.countdown_seconds,
                answer_seconds=self.settings.answer_seconds,
                tick_seconds=self.settings.tick_seconds,
            ),
            publisher=self.publisher,
        )

    async def run_interview(self) -> WizardState:
        """
        Record every question, then finalize the submission.

        Cancelling this coroutine tears the interview down: the live timer
        stops, narration is cancelled, proctoring stops and the capture
        device is released. An upload already in flight finishes in the
        background and is discarded. A torn-down wizard rejects every
        further operation.

        Returns:
            Done on success, or Finalizing with ``error_message`` set.

        Raises:
            IllegalTransitionError: Outside RunningInterview, after teardown,
                or if the loop was already started.
        """
        state = self._require(RunningInterview, "run the interview")
        if self._loop_started:
            raise IllegalTransitionError(state.step.value, "run the interview twice")
        self._loop_started = True

        completed = False
        try:
            while True:
                phase = self._new_phase(state)
                self._phase = phase
                try:
                    outcome = await phase.run()
                finally:
                    self._phase = None

                state.session.record_answer(
                    state.cursor, outcome.clip_url, outcome.transcript_job_id
                )
                if state.cursor >= state.session.question_count - 1:
                    break
                await self._enter(
                    RunningInterview(job=state.job, session=state.session, cursor=state.cursor + 1)
                )
                state = self._state
            completed = True
        finally:
            if not completed:
                self._torn_down = True
                logger.info("Interview torn down at question %d", state.cursor)
            await self._leave_running_interview()

        await self._enter(
            Finalizing(job=state.job, session=state.session, tab_switch_count=self.tab_switch_count)
        )
        return await self._finalize()

    async def _leave_running_interview(self) -> None:
        if self._monitor is not None:
            self._monitor.stop()
        self._services.narrator.cancel()
        await self._capture.release()

    # -------------------------------------------------------------------------
    # Finalizing
    # -------------------------------------------------------------------------

    async def _finalize(self) -> WizardState:
        state = self._require(Finalizing, "finalize")
        try:
            submission = await self._finalizer.finalize(
                session=state.session,
                candidate=self.candidate,
                tab_switch_count=state.tab_switch_count,
            )
        except FinalizationError as exc:
            logger.error("Submission failed: %s", exc, exc_info=exc.cause)
            await self.publisher.publish_error(FinalizationError.USER_MESSAGE)
            await self._enter(
                Finalizing(
                    job=state.job,
                    session=state.session,
                    tab_switch_count=state.tab_switch_count,
                    error_message=FinalizationError.USER_MESSAGE,
                )
            )
            return self._state

        await self._enter(
            Done(job=state.job, record_id=submission.record_id, record=submission.record)
        )
        return self._state

    async def retry_finalization(self) -> WizardState:
        """Manually retry a failed submission. Never called automatically."""
        state = self._require(Finalizing, "retry finalization")
        if state.error_message is None:
            raise IllegalTransitionError(state.step.value, "retry a submission that has not failed")
        logger.info("Retrying submission for candidate %s", self.candidate.candidate_id)
        return await self._finalize()
