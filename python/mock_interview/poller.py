"""
Transcript Poller.

Polls one transcript job at a fixed interval until it completes, errors,
or the attempt budget runs out. Every path ends in text; nothing here
raises, since a slow or failed transcript must never block submission.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .collaborators import TranscriptionService
from .models import TranscriptStatus


__all__ = [
    "TranscriptOutcome",
    "TranscriptOutcomeKind",
    "TranscriptPoller",
    "EMPTY_TRANSCRIPT",
    "ERROR_TRANSCRIPT",
    "NO_SPEECH_TRANSCRIPT",
]


logger = logging.getLogger(__name__)


EMPTY_TRANSCRIPT = ""
ERROR_TRANSCRIPT = "Error"
NO_SPEECH_TRANSCRIPT = "(No speech detected)"


class TranscriptOutcomeKind(str, Enum):
    """Terminal result of polling one transcript job."""

    COMPLETED = "completed"
    ERROR = "error"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TranscriptOutcome:
    """Text for one question plus how it was obtained."""

    kind: TranscriptOutcomeKind
    text: str
    attempts: int = 0


class TranscriptPoller:
    """
    Resolves transcript job ids to text.

    Args:
        transcription: Transcription collaborator to poll.
        interval_seconds: Wait before each poll.
        max_attempts: Poll budget per job.

    Example:
        >>> poller = TranscriptPoller(transcription, interval_seconds=2.0, max_attempts=10)
        >>> outcome = await poller.poll("t_123")
        >>> outcome.kind, outcome.text
        (<TranscriptOutcomeKind.COMPLETED: 'completed'>, 'I built a payments API...')
    """

    def __init__(
        self,
        transcription: TranscriptionService,
        interval_seconds: float = 2.0,
        max_attempts: int = 10,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._transcription = transcription
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts

    async def poll(self, job_id: Optional[str]) -> TranscriptOutcome:
        """
        Poll one job to a terminal outcome.

        A missing job id resolves immediately to the empty placeholder.
        """
        if not job_id:
            return TranscriptOutcome(TranscriptOutcomeKind.SKIPPED, EMPTY_TRANSCRIPT)

        for attempt in range(1, self.max_attempts + 1):
            await asyncio.sleep(self.interval_seconds)
            try:
                report = await self._transcription.poll_status(job_id)
            except Exception as exc:  # noqa: BLE001 - a failed poll is an error outcome
                logger.warning("Transcript poll failed for %s: %s", job_id, exc)
                return TranscriptOutcome(TranscriptOutcomeKind.ERROR, ERROR_TRANSCRIPT, attempt)

            if report.status is TranscriptStatus.COMPLETED:
                text = (report.text or "").strip() or NO_SPEECH_TRANSCRIPT
                logger.info("Transcript %s completed after %d attempt(s)", job_id, attempt)
                return TranscriptOutcome(TranscriptOutcomeKind.COMPLETED, text, attempt)

            if report.status is TranscriptStatus.ERROR:
                logger.warning("Transcript %s failed: %s", job_id, report.error or "unknown error")
                return TranscriptOutcome(TranscriptOutcomeKind.ERROR, ERROR_TRANSCRIPT, attempt)

            logger.debug(
                "Transcript %s still %s (attempt %d/%d)",
                job_id,
                report.status.value,
                attempt,
                self.max_attempts,
            )

        logger.warning("Transcript %s not ready after %d attempts", job_id, self.max_attempts)
        return TranscriptOutcome(TranscriptOutcomeKind.TIMED_OUT, EMPTY_TRANSCRIPT, self.max_attempts)

    async def poll_all(self, job_ids: list[Optional[str]]) -> list[TranscriptOutcome]:
        """Poll every slot concurrently; results keep the input order."""
        return list(await asyncio.gather(*(self.poll(job_id) for job_id in job_ids)))
