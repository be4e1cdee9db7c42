"""
Real-time Pub/Sub for interview progress.

Streams wizard step changes, status messages, countdown and recording
clocks, and error banners to whatever front end is attached (console,
web bridge, tests).

Example usage:
    publisher = SessionUpdatePublisher()
    queue = await publisher.subscribe()
    await publisher.publish_status("AI is generating tailored questions...")
    update = await queue.get()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class UpdateType(str, Enum):
    """
    Types of session updates published to the stream.

    Attributes:
        STEP: The wizard entered a new step.
        STATUS: Loading/progress message for long-running work.
        QUESTION: A new question became active.
        COUNTDOWN: Seconds left before recording starts.
        RECORDING: Seconds left in the answer budget.
        ERROR: User-facing error message.
    """

    STEP = "step"
    STATUS = "status"
    QUESTION = "question"
    COUNTDOWN = "countdown"
    RECORDING = "recording"
    ERROR = "error"


def _get_utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class SessionUpdate:
    """
    A single progress update from the wizard.

    Attributes:
        update_type: Category of the update.
        content: Human-readable text (step name, message, question text).
        timestamp: UTC timestamp when the update was created.
        question_index: Active question position, when relevant.
        seconds_remaining: Clock value for countdown/recording updates.
    """

    update_type: UpdateType
    content: str
    timestamp: str = field(default_factory=_get_utc_timestamp)
    question_index: int | None = None
    seconds_remaining: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "update_type": self.update_type.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "question_index": self.question_index,
            "seconds_remaining": self.seconds_remaining,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class SessionUpdatePublisher:
    """
    Publisher for session updates.

    Manages multiple subscriber queues and broadcasts updates to all.
    New subscribers first receive the retained history.

    Example:
        publisher = SessionUpdatePublisher()
        queue = await publisher.subscribe()
        await publisher.publish_step("running_interview")
        update = await queue.get()
    """

    def __init__(self, max_history: int = 200) -> None:
        """
        Initialize the publisher.

        Args:
            max_history: Maximum number of updates to retain in history.
        """
        self._subscribers: list[asyncio.Queue[SessionUpdate]] = []
        self._history: list[SessionUpdate] = []
        self._max_history = max_history
        self._lock = asyncio.Lock()

    async def subscribe(self) -> asyncio.Queue[SessionUpdate]:
        """
        Subscribe to session updates.

        Caller is responsible for calling unsubscribe when done.

        Returns:
            Queue that will receive published updates.
        """
        queue: asyncio.Queue[SessionUpdate] = asyncio.Queue()
        async with self._lock:
            self._subscribers.append(queue)
            for update in self._history:
                queue.put_nowait(update)
        logger.debug("New subscriber added. Total: %d", len(self._subscribers))
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[SessionUpdate]) -> None:
        async with self._lock:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
        logger.debug("Subscriber removed. Total: %d", len(self._subscribers))

    async def publish(self, update: SessionUpdate) -> None:
        """
        Publish an update to all subscribers and store it in history.

        Args:
            update: The update to publish.
        """
        async with self._lock:
            self._history.append(update)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history :]

            for queue in self._subscribers:
                queue.put_nowait(update)

        logger.debug("Published update: %s %s", update.update_type.value, update.content)

    async def publish_step(self, step: str) -> None:
        await self.publish(SessionUpdate(update_type=UpdateType.STEP, content=step))

    async def publish_status(self, message: str) -> None:
        await self.publish(SessionUpdate(update_type=UpdateType.STATUS, content=message))

    async def publish_error(self, message: str) -> None:
        await self.publish(SessionUpdate(update_type=UpdateType.ERROR, content=message))

    async def publish_question(self, index: int, question: str) -> None:
        await self.publish(
            SessionUpdate(
                update_type=UpdateType.QUESTION,
                content=question,
                question_index=index,
            )
        )

    async def publish_clock(
        self,
        update_type: UpdateType,
        index: int,
        seconds_remaining: int,
    ) -> None:
        """
        Publish a countdown or recording clock tick.

        Args:
            update_type: UpdateType.COUNTDOWN or UpdateType.RECORDING.
            index: Active question position.
            seconds_remaining: Seconds left on the clock.
        """
        minutes, seconds = divmod(seconds_remaining, 60)
        await self.publish(
            SessionUpdate(
                update_type=update_type,
                content=f"{minutes}:{seconds:02d}",
                question_index=index,
                seconds_remaining=seconds_remaining,
            )
        )

    async def get_history(self) -> list[SessionUpdate]:
        """Return a copy of the retained history."""
        async with self._lock:
            return list(self._history)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
