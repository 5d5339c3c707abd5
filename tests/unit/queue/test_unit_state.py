# tests/unit/queue/test_unit_state.py — v1
"""Tests for queue/state.py — observable processing status."""

from __future__ import annotations

import pytest

from visionrecall.queue.models import ItemStatus, ProcessingStatus
from visionrecall.queue.state import QueueObservableState
from visionrecall.storage.models import FileRef


def _ref(name: str) -> FileRef:
    return FileRef(path=f"Intake/{name}", size=1, mtime_ms=1)


class TestFlags:
    def test_update_and_get(self):
        state = QueueObservableState()
        state.update(message="hi", progress_percent=10)
        assert state.get("message") == "hi"
        assert state.get("progress_percent") == 10

    def test_unknown_field_rejected(self):
        with pytest.raises(AttributeError):
            QueueObservableState().update(bogus=1)

    def test_queue_not_directly_writable_or_readable(self):
        state = QueueObservableState()
        with pytest.raises(AttributeError):
            state.update(queue=[])
        with pytest.raises(AttributeError):
            state.get("queue")

    def test_processing_and_paused_exclusive(self):
        state = QueueObservableState()
        state.update(is_processing=True)
        with pytest.raises(RuntimeError):
            state.update(is_paused=True)
        state.update(is_paused=True, is_processing=False)
        assert state.get("is_paused")

    def test_reset(self):
        state = QueueObservableState()
        state.add_items([_ref("a.png")])
        state.update(is_stopped=True)
        state.reset()
        assert state.snapshot() == ProcessingStatus()


class TestListeners:
    def test_listener_gets_isolated_copies(self):
        state = QueueObservableState()
        seen = []
        state.subscribe(seen.append)
        state.add_items([_ref("a.png")])
        seen[-1].queue.clear()
        assert len(state.snapshot().queue) == 1

    def test_unsubscribe(self):
        state = QueueObservableState()
        seen = []
        unsubscribe = state.subscribe(seen.append)
        state.update(message="one")
        unsubscribe()
        state.update(message="two")
        assert [s.message for s in seen] == ["one"]

    def test_failing_listener_does_not_break_updates(self):
        state = QueueObservableState()

        def broken(_status):
            raise RuntimeError("listener bug")

        seen = []
        state.subscribe(broken)
        state.subscribe(seen.append)
        state.update(message="ok")
        assert seen[-1].message == "ok"


class TestItems:
    def test_add_items_keeps_order_and_total(self):
        state = QueueObservableState()
        items = state.add_items([_ref("a.png"), _ref("b.png")])
        assert [i.path for i in items] == ["Intake/a.png", "Intake/b.png"]
        assert state.get("total") == 2
        assert state.next_pending().path == "Intake/a.png"

    def test_add_nothing(self):
        state = QueueObservableState()
        assert state.add_items([]) == []
        assert state.get("total") == 0

    def test_next_pending_skips_finished(self):
        state = QueueObservableState()
        a, b = state.add_items([_ref("a.png"), _ref("b.png")])
        state.update_item_status(a.id, ItemStatus.FAILED, "boom")
        assert state.next_pending().id == b.id
        snap = state.snapshot()
        assert snap.queue[0].error == "boom"
        assert snap.pending_count == 1

    def test_update_unknown_item(self):
        assert not QueueObservableState().update_item_status("x", ItemStatus.COMPLETED)

    def test_remove_item_prefers_live_entry(self):
        state = QueueObservableState()
        done, live = state.add_items([_ref("a.png"), _ref("a.png")])
        state.update_item_status(done.id, ItemStatus.COMPLETED)
        assert state.remove_item("Intake/a.png")
        snap = state.snapshot()
        assert [i.id for i in snap.queue] == [done.id]
        assert snap.total == 1

    def test_remove_missing_path(self):
        assert not QueueObservableState().remove_item("Intake/none.png")

    def test_remove_by_id_and_skipped(self):
        state = QueueObservableState()
        (item,) = state.add_items([_ref("a.png")])
        assert state.remove_item_by_id(item.id)
        assert not state.remove_item_by_id(item.id)
        state.increment_skipped()
        assert state.get("skipped") == 1
        assert not state.has_pending()
