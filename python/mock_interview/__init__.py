"""
Mock Interview Orchestrator Package.

Drives a candidate through an asynchronous, AI-generated video interview:
prior-submission check, instructions, resume intake, question generation,
timed per-question recording, transcript collection, AI evaluation and a
single persisted interview record.

Components:
    - InterviewWizard: Top-level state machine for one interview
    - RecordingPhase: Per-question countdown/recording/upload sub-machine
    - QuestionTimer: Countdown and answer clock
    - TranscriptPoller: Bounded polling of transcript jobs
    - SubmissionFinalizer: Feedback, score parsing and persistence
    - ProctoringMonitor: Tab-switch counter while the interview runs
    - SessionUpdatePublisher: Real-time pub/sub for front ends
    - Models: Pydantic models for jobs, sessions and interview records

Vendor adapters live in ``mock_interview.clients``.

Example:
    >>> from mock_interview import InterviewWizard, load_settings
    >>> from mock_interview.clients import build_services
    >>>
    >>> settings = load_settings()
    >>> wizard = InterviewWizard(candidate, "job_42", build_services(settings), settings)
    >>> await wizard.start()
    >>> await wizard.acknowledge_instructions()
    >>> await wizard.submit_resume(resume)
    >>> state = await wizard.run_interview()

Last Grunted: 10/19/2026
"""

from .models import (
    AnswerStatus,
    Blob,
    CandidateProfile,
    InlineImage,
    InterviewMeta,
    InterviewRecord,
    InterviewSession,
    Job,
    MediaKind,
    QuestionSlot,
    ResumeReference,
    ScoreCard,
    TranscriptStatus,
    TranscriptStatusReport,
)

from .errors import (
    CaptureBusyError,
    CaptureDeviceError,
    CollaboratorError,
    FinalizationError,
    GenerationError,
    GuardError,
    IllegalTransitionError,
    InterviewError,
    JobNotFoundError,
    PriorSubmissionError,
    RasterizationError,
    RecordStoreError,
    SetupError,
    StorageError,
    TranscriptionError,
)

from .config import InterviewSettings, load_settings

from .collaborators import InterviewServices

from .pubsub import SessionUpdate, SessionUpdatePublisher, UpdateType

from .capture import MediaCaptureSession

from .timer import QuestionTimer, StopReason, TimerPhase

from .recording import PhaseKind, RecordingOutcome, RecordingPhase, RecordingPipeline

from .poller import TranscriptOutcome, TranscriptOutcomeKind, TranscriptPoller

from .proctoring import ProctoringMonitor, VisibilityHub

from .finalizer import FinalizedSubmission, SubmissionFinalizer, parse_scores

from .wizard import (
    AwaitingResumeUpload,
    CheckingPriorSubmission,
    Done,
    Finalizing,
    GeneratingQuestions,
    InterviewWizard,
    RunningInterview,
    ShowingInstructions,
    WizardState,
    WizardStep,
)


__all__ = [
    # Models
    "AnswerStatus",
    "Blob",
    "CandidateProfile",
    "InlineImage",
    "InterviewMeta",
    "InterviewRecord",
    "InterviewSession",
    "Job",
    "MediaKind",
    "QuestionSlot",
    "ResumeReference",
    "ScoreCard",
    "TranscriptStatus",
    "TranscriptStatusReport",
    # Errors
    "CaptureBusyError",
    "CaptureDeviceError",
    "CollaboratorError",
    "FinalizationError",
    "GenerationError",
    "GuardError",
    "IllegalTransitionError",
    "InterviewError",
    "JobNotFoundError",
    "PriorSubmissionError",
    "RasterizationError",
    "RecordStoreError",
    "SetupError",
    "StorageError",
    "TranscriptionError",
    # Config
    "InterviewSettings",
    "load_settings",
    "InterviewServices",
    # Pub/Sub
    "SessionUpdate",
    "SessionUpdatePublisher",
    "UpdateType",
    # Recording
    "MediaCaptureSession",
    "QuestionTimer",
    "StopReason",
    "TimerPhase",
    "PhaseKind",
    "RecordingOutcome",
    "RecordingPhase",
    "RecordingPipeline",
    # Finalization
    "TranscriptOutcome",
    "TranscriptOutcomeKind",
    "TranscriptPoller",
    "ProctoringMonitor",
    "VisibilityHub",
    "FinalizedSubmission",
    "SubmissionFinalizer",
    "parse_scores",
    # Wizard
    "AwaitingResumeUpload",
    "CheckingPriorSubmission",
    "Done",
    "Finalizing",
    "GeneratingQuestions",
    "InterviewWizard",
    "RunningInterview",
    "ShowingInstructions",
    "WizardState",
    "WizardStep",
]

__version__ = "0.1.0"
