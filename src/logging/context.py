# src/logging/context.py — v1
"""Contextual logging support: attach run_id, item_path and stage to log records.

The queue worker sets the run context once per processing loop and the item
context per screenshot; stages set their own name while they run.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per processing run.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_item_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "item_path", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    item_path: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        item_path=_item_path.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per processing loop)."""
    _run_id.set(run_id)


def set_item_context(item_path: str | None) -> None:
    """Set the item currently being processed."""
    _item_path.set(item_path)
    _stage.set(None)


def set_stage_context(stage: str | None) -> None:
    """Set stage-level context (called per stage execution)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _item_path.set(None)
    _stage.set(None)
