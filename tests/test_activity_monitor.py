"""Tests for ActivityMonitor signal handling and decay."""

import logging

import pytest

from conftest import FakeSource
from humanclicker.activity import ActivityMonitor, InputSignal
from humanclicker.activity.config import acfg

PAUSE = 2.0


@pytest.fixture
def started(monitor):
    monitor.start_monitoring(PAUSE)
    yield monitor
    monitor.stop_monitoring()


class TestActivityDecay:
    def test_idle_initially(self, started):
        assert not started.is_active

    def test_key_flags_activity(self, started):
        started.feed(InputSignal("key"))
        assert started.is_active

    def test_scroll_flags_activity(self, started):
        started.feed(InputSignal("scroll", 100.0, 200.0))
        assert started.is_active

    def test_clears_after_pause(self, started, clock):
        started.feed(InputSignal("key"))
        clock.advance(PAUSE - 0.01)
        assert started.is_active
        clock.advance(0.02)
        assert not started.is_active

    def test_continuous_events_extend_window(self, started, clock):
        started.feed(InputSignal("key"))
        clock.advance(0.5 * PAUSE)
        started.feed(InputSignal("key"))
        clock.advance(0.7 * PAUSE)  # t = 1.2 * pause
        assert started.is_active
        clock.advance(0.31 * PAUSE)  # t > 0.5 * pause + pause
        assert not started.is_active

    def test_signals_ignored_when_not_monitoring(self, monitor):
        monitor.feed(InputSignal("key"))
        assert not monitor.is_active

    def test_injected_signals_ignored(self, started):
        started.feed(InputSignal("key", injected=True))
        started.feed(InputSignal("move", 5.0, 5.0, injected=True))
        assert not started.is_active


class TestPointerSignals:
    def test_move_to_sampled_position_is_ignored(self, started, pointer):
        started.feed(InputSignal("move", *pointer.position))
        assert not started.is_active

    def test_move_to_new_position_flags(self, started):
        started.feed(InputSignal("move", 300.0, 400.0))
        assert started.is_active

    def test_move_updates_sample(self, started, clock):
        started.feed(InputSignal("move", 300.0, 400.0))
        clock.advance(PAUSE + 1)
        started.feed(InputSignal("move", 300.0, 400.0))
        assert not started.is_active

    def test_genuine_button_press_flags(self, started):
        started.feed(InputSignal("button", 100.0, 200.0))
        assert started.is_active

    def test_own_synthetic_click_is_ignored(self, started):
        started.note_synthetic_click(100.0, 200.0)
        started.feed(InputSignal("button", 100.0, 200.0))
        assert not started.is_active

    def test_button_elsewhere_during_synthetic_window_flags(self, started):
        started.note_synthetic_click(100.0, 200.0)
        started.feed(InputSignal("button", 500.0, 20.0))
        assert started.is_active

    def test_synthetic_window_expires(self, started, clock):
        started.note_synthetic_click(100.0, 200.0)
        clock.advance(acfg.SYNTHETIC_CLICK_WINDOW_S + 0.01)
        started.feed(InputSignal("button", 100.0, 200.0))
        assert started.is_active

    def test_unknown_kind_ignored(self, started):
        started.feed(InputSignal("gesture"))
        assert not started.is_active


class TestCursorHasMoved:
    def test_false_while_stationary(self, monitor):
        assert monitor.cursor_has_moved() is False
        assert monitor.cursor_has_moved() is False

    def test_edge_triggered(self, monitor, pointer):
        pointer.position = (101.0, 200.0)
        assert monitor.cursor_has_moved() is True
        assert monitor.cursor_has_moved() is False
        assert monitor.cursor_has_moved() is False
        pointer.position = (102.0, 200.0)
        assert monitor.cursor_has_moved() is True
        assert monitor.cursor_has_moved() is False

    def test_unreadable_position_is_not_movement(self, clock):
        monitor = ActivityMonitor(
            position_provider=lambda: None, source_factory=FakeSource, clock=clock
        )
        assert monitor.cursor_has_moved() is False
        assert monitor.cursor_position() is None


class TestLifecycle:
    def test_start_starts_source(self, monitor):
        monitor.start_monitoring(PAUSE)
        assert FakeSource.instances[-1].started
        assert monitor.monitoring
        assert monitor.pause_duration == PAUSE
        assert not monitor.degraded

    def test_restart_stops_previous_source(self, monitor):
        monitor.start_monitoring(PAUSE)
        first = FakeSource.instances[-1]
        monitor.start_monitoring(PAUSE * 2)
        assert first.stopped
        assert FakeSource.instances[-1] is not first
        assert monitor.pause_duration == PAUSE * 2

    def test_stop_resets_active_and_pending_expiry(self, started, clock):
        started.feed(InputSignal("key"))
        started.stop_monitoring()
        assert not started.is_active
        assert FakeSource.instances[-1].stopped
        started.start_monitoring(PAUSE)
        assert not started.is_active

    def test_stop_is_idempotent(self, monitor):
        monitor.stop_monitoring()
        monitor.stop_monitoring()
        assert not monitor.monitoring


class TestDegradedMode:
    def _failing_monitor(self, pointer, clock):
        return ActivityMonitor(
            position_provider=pointer,
            source_factory=lambda sink: FakeSource(sink, fail=True),
            clock=clock,
        )

    def test_permission_denied_degrades(self, pointer, clock):
        monitor = self._failing_monitor(pointer, clock)
        monitor.start_monitoring(PAUSE)
        assert monitor.degraded
        assert monitor.monitoring
        assert not monitor.is_active

    def test_in_process_signals_still_count(self, pointer, clock):
        monitor = self._failing_monitor(pointer, clock)
        monitor.start_monitoring(PAUSE)
        monitor.feed(InputSignal("key"))
        assert monitor.is_active

    def test_warning_reported_once(self, pointer, clock, caplog):
        monitor = self._failing_monitor(pointer, clock)
        with caplog.at_level(logging.DEBUG, logger="humanclicker.activity.monitor"):
            monitor.start_monitoring(PAUSE)
            monitor.start_monitoring(PAUSE)
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1


class TestListeners:
    def test_listener_hears_both_edges(self, started, clock):
        calls = []
        started.add_listener(calls.append)
        started.feed(InputSignal("key"))
        started.feed(InputSignal("key"))
        assert calls == [True]
        clock.advance(PAUSE + 0.1)
        assert not started.is_active
        assert not started.is_active
        assert calls == [True, False]

    def test_unread_expiry_reports_falling_edge_before_new_activity(self, started, clock):
        calls = []
        started.add_listener(calls.append)
        started.feed(InputSignal("key"))
        clock.advance(PAUSE + 0.1)
        started.feed(InputSignal("key"))
        assert calls == [True, False, True]

    def test_pause_end_is_logged(self, started, clock, caplog):
        started.feed(InputSignal("key"))
        clock.advance(PAUSE + 0.1)
        with caplog.at_level(logging.INFO, logger="humanclicker.activity.monitor"):
            assert not started.is_active
        assert "pause ended" in caplog.text

    def test_stop_while_active_reports_inactive(self, started):
        calls = []
        started.add_listener(calls.append)
        started.feed(InputSignal("key"))
        started.stop_monitoring()
        assert calls == [True, False]

    def test_failing_listener_does_not_break_feed(self, started):
        def boom(active):
            raise ValueError("ui gone")

        started.add_listener(boom)
        started.feed(InputSignal("key"))
        assert started.is_active

    def test_remove_listener(self, started):
        calls = []
        started.add_listener(calls.append)
        started.remove_listener(calls.append)
        started.feed(InputSignal("key"))
        assert calls == []
