"""
Exception hierarchy for the interview session orchestrator.

Errors fall into four families:
    - Guard failures (prior submission, unknown job): abort before any state exists.
    - Setup failures (rasterization, upload, generation, capture device):
      the wizard returns to resume upload with a message.
    - Collaborator failures: raised by vendor adapters, interpreted by callers.
    - Finalization failures: terminal for the session, never retried.

Last Grunted: 10/19/2026
"""

from __future__ import annotations


__all__ = [
    "InterviewError",
    "GuardError",
    "PriorSubmissionError",
    "JobNotFoundError",
    "IllegalTransitionError",
    "SetupError",
    "CollaboratorError",
    "StorageError",
    "TranscriptionError",
    "GenerationError",
    "RecordStoreError",
    "RasterizationError",
    "CaptureDeviceError",
    "CaptureBusyError",
    "FinalizationError",
]


class InterviewError(Exception):
    """Base class for all interview orchestration errors."""


# =============================================================================
# Guard Failures
# =============================================================================

class GuardError(InterviewError):
    """Raised when an interview must not start at all."""


class PriorSubmissionError(GuardError):
    """Raised when the candidate already completed an interview for this job."""

    def __init__(self, candidate_id: str, job_id: str) -> None:
        self.candidate_id = candidate_id
        self.job_id = job_id
        super().__init__("Interview already completed.")


class JobNotFoundError(GuardError):
    """Raised when the job being interviewed for does not exist."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class IllegalTransitionError(InterviewError):
    """Raised when a wizard operation is invoked from the wrong step."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot {requested} while in step '{current}'")


# =============================================================================
# Collaborator Failures
# =============================================================================

class CollaboratorError(InterviewError):
    """Base class for failures reported by external collaborators."""


class StorageError(CollaboratorError):
    """Upload to or retrieval from durable storage failed."""


class TranscriptionError(CollaboratorError):
    """Transcription request or status poll failed."""


class GenerationError(CollaboratorError):
    """Question or feedback generation failed."""


class RecordStoreError(CollaboratorError):
    """Reading or writing interview records failed."""


class RasterizationError(CollaboratorError):
    """Converting a resume document to an image failed."""


class CaptureDeviceError(CollaboratorError):
    """Camera/microphone could not be acquired or recorded from."""


class CaptureBusyError(CaptureDeviceError):
    """A second recorder tried to bind to a device that is already recording."""


# =============================================================================
# Setup and Finalization
# =============================================================================

class SetupError(InterviewError):
    """
    Raised when resume intake or question generation cannot complete.

    The message is user facing; the underlying collaborator error is kept
    in ``cause``.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class FinalizationError(InterviewError):
    """Raised when transcripts, feedback or persistence fail after recording."""

    USER_MESSAGE = "Error saving. Please contact support."

    def __init__(self, stage: str, cause: Exception) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Finalization failed while {stage}: {cause}")
