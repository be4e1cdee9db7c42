"""
Tests for the visibility hub and proctoring monitor.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

from mock_interview import ProctoringMonitor, VisibilityHub


class TestVisibilityHub:
    """Tests for listener registration."""

    def test_notify_reaches_listeners(self):
        """Every registered listener hears each change."""
        hub = VisibilityHub()
        heard: list[bool] = []
        hub.add_listener(heard.append)

        hub.notify(True)
        hub.notify(False)

        assert heard == [True, False]

    def test_listener_registered_once(self):
        """Adding the same listener twice keeps one registration."""
        hub = VisibilityHub()
        heard: list[bool] = []
        hub.add_listener(heard.append)
        hub.add_listener(heard.append)

        hub.notify(True)

        assert hub.listener_count == 1
        assert heard == [True]

    def test_remove_unknown_listener_is_noop(self):
        hub = VisibilityHub()
        hub.remove_listener(print)
        assert hub.listener_count == 0


class TestProctoringMonitor:
    """Tests for counting hidden transitions."""

    def test_counts_only_hidden_transitions(self):
        """Becoming visible again is not a violation."""
        hub = VisibilityHub()
        monitor = ProctoringMonitor(hub)
        monitor.start()

        hub.notify(True)
        hub.notify(False)
        hub.notify(True)
        hub.notify(False)

        assert monitor.count == 2

    def test_counts_only_while_active(self):
        """Changes before start and after stop are ignored."""
        hub = VisibilityHub()
        monitor = ProctoringMonitor(hub)

        hub.notify(True)
        monitor.start()
        hub.notify(True)
        monitor.stop()
        hub.notify(True)

        assert monitor.count == 1
        assert monitor.is_active is False
        assert hub.listener_count == 0

    def test_start_and_stop_are_idempotent(self):
        hub = VisibilityHub()
        monitor = ProctoringMonitor(hub)

        monitor.start()
        monitor.start()
        assert hub.listener_count == 1

        hub.notify(True)
        monitor.stop()
        monitor.stop()
        assert monitor.count == 1
        assert hub.listener_count == 0

    def test_count_survives_restart(self):
        """The counter never goes down."""
        hub = VisibilityHub()
        monitor = ProctoringMonitor(hub)

        monitor.start()
        hub.notify(True)
        monitor.stop()
        monitor.start()
        hub.notify(True)

        assert monitor.count == 2
