# tests/unit/pipeline/test_unit_progress.py — v1
"""Tests for pipeline/progress.py — progress reporting and the stop flag."""

from __future__ import annotations

from visionrecall.pipeline.progress import ProgressReporter
from visionrecall.queue.state import QueueObservableState


def _reporter() -> tuple[ProgressReporter, QueueObservableState]:
    state = QueueObservableState()
    return ProgressReporter(state), state


class TestProgressReporter:
    def test_start_resets(self):
        reporter, state = _reporter()
        state.update(progress_percent=40)
        reporter.start("Processing")
        assert reporter.running
        assert state.get("progress_percent") == 0
        assert state.get("message") == "Processing"

    def test_advance_is_cumulative_and_clamped(self):
        reporter, state = _reporter()
        reporter.start("go")
        reporter.advance("a", 30)
        reporter.advance("b", 50)
        assert state.get("progress_percent") == 80
        reporter.advance("c", 50)
        assert state.get("progress_percent") == 100
        assert state.get("message") == "c"

    def test_end_success_returns_to_idle(self):
        reporter, state = _reporter()
        reporter.start("go")
        reporter.advance("a", 30)
        reporter.end(True)
        assert not reporter.running
        assert state.get("progress_percent") == 0
        assert state.get("message") == ""

    def test_stopped_freezes_progress(self):
        reporter, state = _reporter()
        reporter.start("go")
        reporter.advance("a", 30)
        reporter.set_stopped(True)
        reporter.advance("b", 30)
        reporter.end(False)
        assert reporter.is_stopped()
        assert state.get("progress_percent") == 30
        assert state.get("message") == "a"
