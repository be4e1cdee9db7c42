"""
Proctoring monitor.

Counts how often the interview page went hidden (tab switches, minimized
window) while the interview loop is running.
"""

from __future__ import annotations

import logging

from .collaborators import VisibilityListener, VisibilitySource


__all__ = ["ProctoringMonitor", "VisibilityHub"]


logger = logging.getLogger(__name__)


class VisibilityHub:
    """
    In-process visibility source.

    Front ends call ``notify(hidden)`` when the page visibility changes;
    listeners registered at that moment are told.
    """

    def __init__(self) -> None:
        self._listeners: list[VisibilityListener] = []

    def add_listener(self, listener: VisibilityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: VisibilityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def notify(self, hidden: bool) -> None:
        for listener in list(self._listeners):
            listener(hidden)


class ProctoringMonitor:
    """
    Violation counter bound to the running interview.

    ``start()`` and ``stop()`` bracket the interview loop; hidden transitions
    outside that window are not counted. The counter only goes up.
    """

    def __init__(self, source: VisibilitySource) -> None:
        self._source = source
        self._count = 0
        self._active = False

    @property
    def count(self) -> int:
        return self._count

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            return
        self._source.add_listener(self._on_visibility_change)
        self._active = True
        logger.debug("Proctoring started")

    def stop(self) -> None:
        if not self._active:
            return
        self._source.remove_listener(self._on_visibility_change)
        self._active = False
        logger.info("Proctoring stopped with %d violation(s)", self._count)

    def _on_visibility_change(self, hidden: bool) -> None:
        if not hidden:
            return
        self._count += 1
        logger.info("Tab switch detected (total: %d)", self._count)
