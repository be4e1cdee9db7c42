"""
Per-question recording flow.

``RecordingPhase`` walks one question through
countdown -> recording -> uploading -> transcribing -> done, and
``RecordingPipeline`` turns a finished clip into a durable clip URL and a
transcript job id.

Upload and transcription failures are soft: the corresponding reference
stays ``None`` and the interview moves on, because asking a candidate to
redo a timed answer is worse than an incomplete transcript.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .capture import MediaCaptureSession
from .collaborators import BlobStorage, SpeechNarrator, TranscriptionService
from .errors import CaptureDeviceError
from .models import Blob, MediaKind
from .pubsub import SessionUpdatePublisher, UpdateType
from .timer import QuestionTimer, StopReason


__all__ = [
    "ClipReference",
    "PhaseKind",
    "RecordingOutcome",
    "RecordingPhase",
    "RecordingPipeline",
]


logger = logging.getLogger(__name__)


# =============================================================================
# Pipeline
# =============================================================================

@dataclass(frozen=True)
class ClipReference:
    """Durable references for one answer; either may be None on failure."""

    clip_url: Optional[str]
    transcript_job_id: Optional[str]


class RecordingPipeline:
    """
    Uploads a finished clip and requests its transcription, in that order.

    Example:
        >>> pipeline = RecordingPipeline(storage, transcription)
        >>> ref = await pipeline.process(clip)
        >>> ref.clip_url, ref.transcript_job_id
        ('https://res.cloudinary.com/...', 't_abc123')
    """

    def __init__(
        self,
        storage: BlobStorage,
        transcription: TranscriptionService,
    ) -> None:
        self._storage = storage
        self._transcription = transcription

    async def upload_clip(self, clip: Blob) -> Optional[str]:
        try:
            url = await self._storage.upload(clip, MediaKind.VIDEO)
        except Exception as exc:  # noqa: BLE001 - a failed upload must not block the interview
            logger.warning("Clip upload failed: %s", exc, exc_info=True)
            return None
        logger.info("Clip uploaded: %s", url)
        return url

    async def request_transcript(self, clip_url: str) -> Optional[str]:
        try:
            job_id = await self._transcription.request_transcription(clip_url)
        except Exception as exc:  # noqa: BLE001 - a missing transcript only degrades feedback
            logger.warning("Transcription request failed for %s: %s", clip_url, exc, exc_info=True)
            return None
        logger.info("Transcript job requested: %s", job_id)
        return job_id

    async def process(
        self,
        clip: Blob,
        on_transcribing: Optional[Callable[[], None]] = None,
    ) -> ClipReference:
        """
        Upload the clip, then request a transcript for the uploaded URL.

        Never raises for collaborator failures.
        """
        clip_url = await self.upload_clip(clip)
        if clip_url is None:
            return ClipReference(clip_url=None, transcript_job_id=None)

        if on_transcribing:
            on_transcribing()
        job_id = await self.request_transcript(clip_url)
        return ClipReference(clip_url=clip_url, transcript_job_id=job_id)


# =============================================================================
# Phase
# =============================================================================

class PhaseKind(str, Enum):
    """Where one question currently is."""

    PENDING = "pending"
    COUNTDOWN = "countdown"
    RECORDING = "recording"
    STOPPING = "stopping"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    DONE = "done"


@dataclass(frozen=True)
class RecordingOutcome:
    """Result of running one question to completion."""

    question_index: int
    clip_url: Optional[str]
    transcript_job_id: Optional[str]
    stop_reason: Optional[StopReason]


class RecordingPhase:
    """
    Recording sub-machine for one question.

    One instance per question; it is discarded once ``run()`` returns.
    ``request_stop()`` is safe to call at any time and only has an effect
    while recording.
    """

    def __init__(
        self,
        question_index: int,
        question: str,
        capture: MediaCaptureSession,
        pipeline: RecordingPipeline,
        narrator: SpeechNarrator,
        timer: QuestionTimer,
        publisher: Optional[SessionUpdatePublisher] = None,
    ) -> None:
        self.question_index = question_index
        self.question = question
        self._capture = capture
        self._pipeline = pipeline
        self._narrator = narrator
        self._timer = timer
        self._publisher = publisher

        self._kind = PhaseKind.PENDING
        self._narration_task: Optional[asyncio.Task[None]] = None

    @property
    def kind(self) -> PhaseKind:
        return self._kind

    @property
    def seconds_remaining(self) -> int:
        return self._timer.seconds_remaining

    def request_stop(self) -> bool:
        """
        Stop the answer early.

        Marks the phase as stopping before the timer is told, so nothing can
        start a second recording while the clip is being finalized.

        Returns:
            True if the stop took effect, False if the phase was not recording.
        """
        if self._kind is not PhaseKind.RECORDING:
            logger.debug("Stop ignored for question %d in %s", self.question_index, self._kind.value)
            return False
        self._kind = PhaseKind.STOPPING
        self._timer.stop()
        logger.info("Stop requested for question %d", self.question_index)
        return True

    async def run(self) -> RecordingOutcome:
        """Run the question through all phases and return its references."""
        if self._kind is not PhaseKind.PENDING:
            raise RuntimeError("RecordingPhase can only run once")

        self._kind = PhaseKind.COUNTDOWN
        try:
            if self._publisher:
                await self._publisher.publish_question(self.question_index, self.question)
            self._start_narration()
            await self._timer.run_countdown(on_tick=self._on_countdown_tick)

            if not await self._begin_recording():
                self._kind = PhaseKind.DONE
                return RecordingOutcome(self.question_index, None, None, None)

            reason = await self._timer.run_answer_clock(on_tick=self._on_recording_tick)
            self._kind = PhaseKind.STOPPING

            try:
                clip = await self._capture.stop_recording()
            except CaptureDeviceError as exc:
                logger.warning("Could not finish clip for question %d: %s", self.question_index, exc)
                self._kind = PhaseKind.DONE
                return RecordingOutcome(self.question_index, None, None, reason)

            self._kind = PhaseKind.UPLOADING
            # Shielded: tearing the session down must not abort an upload in flight.
            reference = await asyncio.shield(
                self._pipeline.process(clip, on_transcribing=self._enter_transcribing)
            )
            self._kind = PhaseKind.DONE
            return RecordingOutcome(
                question_index=self.question_index,
                clip_url=reference.clip_url,
                transcript_job_id=reference.transcript_job_id,
                stop_reason=reason,
            )
        finally:
            self._cancel_narration()

    async def _begin_recording(self) -> bool:
        if self._kind is not PhaseKind.COUNTDOWN:
            return False
        self._cancel_narration()
        try:
            await self._capture.start_recording()
        except CaptureDeviceError as exc:
            logger.warning("Could not start recording for question %d: %s", self.question_index, exc)
            return False
        self._kind = PhaseKind.RECORDING
        logger.info("Recording question %d", self.question_index)
        return True

    def _enter_transcribing(self) -> None:
        if self._kind is PhaseKind.UPLOADING:
            self._kind = PhaseKind.TRANSCRIBING

    async def _on_countdown_tick(self, seconds_remaining: int) -> None:
        if self._publisher:
            await self._publisher.publish_clock(
                UpdateType.COUNTDOWN, self.question_index, seconds_remaining
            )

    async def _on_recording_tick(self, seconds_remaining: int) -> None:
        if self._publisher:
            await self._publisher.publish_clock(
                UpdateType.RECORDING, self.question_index, seconds_remaining
            )

    # -------------------------------------------------------------------------
    # Narration
    # -------------------------------------------------------------------------

    def _start_narration(self) -> None:
        self._narrator.cancel()
        self._narration_task = asyncio.create_task(self._narrate())

    async def _narrate(self) -> None:
        try:
            await self._narrator.speak(self.question)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - narration is best effort
            logger.warning("Narration failed: %s", exc)

    def _cancel_narration(self) -> None:
        if self._narration_task and not self._narration_task.done():
            self._narration_task.cancel()
        self._narration_task = None
        self._narrator.cancel()
