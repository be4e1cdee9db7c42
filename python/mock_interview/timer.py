"""
Per-question countdown and answer clock.

``QuestionTimer`` ticks a lead-time countdown down to zero, then ticks the
answer budget down until it expires or ``stop()`` is called. Ticks wait on
an event so a stop request interrupts the current tick immediately.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional


__all__ = ["QuestionTimer", "TimerPhase", "StopReason"]


logger = logging.getLogger(__name__)


TickCallback = Callable[[int], Awaitable[None]]


class TimerPhase(str, Enum):
    """Timer lifecycle."""

    IDLE = "idle"
    COUNTDOWN = "countdown"
    RECORDING = "recording"
    FINISHED = "finished"


class StopReason(str, Enum):
    """Why the answer clock ended."""

    STOPPED = "stopped"
    EXPIRED = "expired"


class QuestionTimer:
    """
    Countdown/answer-budget state machine for one question.

    A timer is single use: IDLE -> COUNTDOWN -> RECORDING -> FINISHED.

    Args:
        countdown_seconds: Lead time before recording begins.
        answer_seconds: Recording budget.
        tick_seconds: Real seconds per tick (0 runs the clock without waiting).
    """

    def __init__(
        self,
        countdown_seconds: int,
        answer_seconds: int,
        tick_seconds: float = 1.0,
    ) -> None:
        if countdown_seconds < 0 or answer_seconds < 1:
            raise ValueError("countdown must be >= 0 and answer budget >= 1")
        self.countdown_seconds = countdown_seconds
        self.answer_seconds = answer_seconds
        self.tick_seconds = tick_seconds

        self._phase = TimerPhase.IDLE
        self._seconds_remaining = countdown_seconds
        self._stop_event = asyncio.Event()
        self._stop_reason: Optional[StopReason] = None

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    @property
    def seconds_remaining(self) -> int:
        return self._seconds_remaining

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    async def _wait_tick(self) -> bool:
        """Sleep one tick. Returns True if a stop arrived meanwhile."""
        if self._stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def run_countdown(self, on_tick: Optional[TickCallback] = None) -> None:
        """Tick the lead time down to zero. Stop requests are ignored here."""
        if self._phase is not TimerPhase.IDLE:
            raise RuntimeError(f"Countdown cannot start from {self._phase.value}")

        self._phase = TimerPhase.COUNTDOWN
        self._seconds_remaining = self.countdown_seconds
        while self._seconds_remaining > 0:
            if on_tick:
                await on_tick(self._seconds_remaining)
            await asyncio.sleep(self.tick_seconds)
            self._seconds_remaining -= 1

    async def run_answer_clock(self, on_tick: Optional[TickCallback] = None) -> StopReason:
        """
        Tick the answer budget until it reaches zero or stop() is called.

        Returns:
            StopReason.EXPIRED when the budget ran out, STOPPED otherwise.
        """
        if self._phase is not TimerPhase.COUNTDOWN:
            raise RuntimeError(f"Answer clock cannot start from {self._phase.value}")

        self._phase = TimerPhase.RECORDING
        self._seconds_remaining = self.answer_seconds
        reason = StopReason.EXPIRED
        while self._seconds_remaining > 0:
            if on_tick:
                await on_tick(self._seconds_remaining)
            if await self._wait_tick():
                reason = StopReason.STOPPED
                break
            self._seconds_remaining -= 1

        self._phase = TimerPhase.FINISHED
        self._stop_reason = reason
        logger.debug("Answer clock finished: %s (%ds left)", reason.value, self._seconds_remaining)
        return reason

    def stop(self) -> bool:
        """
        Request the answer clock to end.

        Returns:
            True if this call stopped a running answer clock; False when the
            timer is not recording or a stop was already requested.
        """
        if self._phase is not TimerPhase.RECORDING or self._stop_event.is_set():
            return False
        self._stop_event.set()
        return True
