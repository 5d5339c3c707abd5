# tests/unit/logging/test_unit_handlers.py — v1
"""Tests for logging/handlers.py — application log and failure log handlers."""

from __future__ import annotations

import json
import logging

import pytest

from visionrecall.logging.context import clear_context, set_item_context, set_stage_context
from visionrecall.logging.handlers import (
    ItemProblemFilter,
    create_failure_handler,
    create_rotating_handler,
    parse_size,
)


class TestParseSize:
    def test_mb(self):
        assert parse_size("10MB") == 10 * 1024 * 1024

    def test_kb(self):
        assert parse_size("512KB") == 512 * 1024

    def test_gb(self):
        assert parse_size("1GB") == 1024 * 1024 * 1024

    def test_bytes(self):
        assert parse_size("100B") == 100

    def test_case_insensitive(self):
        assert parse_size("10mb") == 10 * 1024 * 1024

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("10bytes")

    def test_empty_string(self):
        with pytest.raises(ValueError):
            parse_size("")


class TestCreateRotatingHandler:
    def test_creates_handler(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "test.log"), rotation="1MB", retention=5)
        try:
            assert handler.maxBytes == 1024 * 1024
            assert handler.backupCount == 5
        finally:
            handler.close()

    def test_creates_parent_dirs(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "subdir" / "deep" / "test.log"))
        handler.close()
        assert (tmp_path / "subdir" / "deep").exists()


def _record(level: int, msg: str = "boom") -> logging.LogRecord:
    return logging.LogRecord("visionrecall.test", level, __file__, 1, msg, None, None)


class TestItemProblemFilter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_needs_item_context(self):
        assert ItemProblemFilter().filter(_record(logging.ERROR)) is False
        set_item_context("VisionRecall/Intake/a.png")
        assert ItemProblemFilter().filter(_record(logging.ERROR)) is True

    def test_level_threshold(self):
        set_item_context("VisionRecall/Intake/a.png")
        assert ItemProblemFilter().filter(_record(logging.INFO)) is False
        assert ItemProblemFilter().filter(_record(logging.WARNING)) is True


class TestCreateFailureHandler:
    def teardown_method(self):
        clear_context()

    def test_writes_item_failures_as_json_lines(self, tmp_path):
        path = tmp_path / "logs" / "failures.log"
        handler = create_failure_handler(str(path))
        logger = logging.getLogger("visionrecall.test_failures")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)
        try:
            logger.error("outside any item")
            set_item_context("VisionRecall/Intake/a.png")
            set_stage_context("vision")
            logger.info("progress")
            logger.error("Vision analysis failed")
        finally:
            logger.removeHandler(handler)
            handler.close()

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["message"] == "Vision analysis failed"
        assert entry["context"]["item_path"] == "VisionRecall/Intake/a.png"
        assert entry["context"]["stage"] == "vision"
