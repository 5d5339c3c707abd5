# src/pipeline/processor.py — v1
"""Per-item pipeline: OCR -> vision -> notes -> tags/title -> persist.

ScreenshotProcessor.process() returns COMPLETED or STOPPED and raises for
everything else, so the queue can tell user cancellation from failure:

  - ItemProcessingError: a stage failed (engine or LLM error, timeout)
  - PersistenceError: the note, image copy, metadata file or result entry
    could not be written; files already written for the item are removed

The dedup gate and the removal of the source file are the queue's job.
"""

from __future__ import annotations

import json
import logging
import posixpath
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from visionrecall.cache.fingerprint import compute_content_hash
from visionrecall.pipeline.json_repair import TagsAndTitle
from visionrecall.pipeline.stages.base_stage import (
    ItemContext,
    StageResult,
    StageStatus,
    media_type_for,
)
from visionrecall.pipeline.tags import (
    formatted_tag_string,
    sanitize_filename,
    sanitize_link_tag,
)
from visionrecall.storage.models import ResultEntry

if TYPE_CHECKING:
    from visionrecall.config.settings import Settings
    from visionrecall.notify.notifier import BaseNotifier
    from visionrecall.pipeline.progress import ProgressReporter
    from visionrecall.pipeline.stages.base_stage import BaseStage
    from visionrecall.storage.base_file_store import BaseFileStore
    from visionrecall.storage.models import FileRef
    from visionrecall.storage.result_store import ResultStore

logger = logging.getLogger(__name__)

MAX_NOTE_NAME_ATTEMPTS = 100
MAX_UNIQUE_NAME_ATTEMPTS = 1000

# (progress increment, message) announced before each stage runs
STAGE_PROGRESS: dict[str, tuple[int, str]] = {
    "ocr": (10, "Performing OCR..."),
    "vision": (30, "Analyzing image..."),
    "notes": (20, "Generating notes..."),
    "tags": (20, "Generating tags and title..."),
}
SAVE_PROGRESS = (20, "Saving results...")


def _utc_timestamp() -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ItemProcessingError(Exception):
    """A stage failed for the current item."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(message)


class PersistenceError(Exception):
    """Results of the current item could not be written."""


class ProcessStatus(str, Enum):
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class ProcessOutcome:
    status: ProcessStatus
    entry: ResultEntry | None = None


@dataclass
class NoteTarget:
    path: str
    title: str


class ScreenshotProcessor:
    """Run the stage chain for one screenshot and write its results.

    Args:
        settings: Application settings (folders, tag prefix, note layout).
        files: Vault file store.
        stages: Stage executors in run order (ocr, vision, notes, tags).
        progress: Reporter for the in-flight item; also the stop flag.
        results: Result entry store.
        notifier: Optional sink for user-visible messages.
    """

    def __init__(
        self,
        settings: Settings,
        files: BaseFileStore,
        stages: list[BaseStage],
        progress: ProgressReporter,
        results: ResultStore,
        notifier: BaseNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._files = files
        self._stages = stages
        self._progress = progress
        self._results = results
        self._notifier = notifier

    async def process(self, file: FileRef, file_hash: str | None = None) -> ProcessOutcome:
        """Process one screenshot.

        Args:
            file: Source image in the vault.
            file_hash: Content hash from the dedup gate, computed here
                when absent.

        Returns:
            ProcessOutcome with status COMPLETED (and the stored entry) or
            STOPPED when the stop flag was raised at a checkpoint.

        Raises:
            ItemProcessingError: A stage failed.
            PersistenceError: Results could not be written.
        """
        self._progress.start("Processing screenshot...")
        success = False
        try:
            try:
                image = await self._files.read_bytes(file.path)
            except OSError as e:
                raise ItemProcessingError("read", f"Cannot read {file.path}: {e}") from e
            if self._progress.is_stopped():
                return ProcessOutcome(ProcessStatus.STOPPED)

            ctx = ItemContext(file=file, image=image, media_type=media_type_for(file.extension))
            tags_and_title: TagsAndTitle | None = None

            for stage in self._stages:
                increment, message = STAGE_PROGRESS.get(stage.name, (0, stage.name))
                self._progress.advance(message, increment)
                result = await stage.execute(ctx)
                if result.status == StageStatus.STOPPED:
                    logger.info("Stopped during stage '%s'", stage.name)
                    return ProcessOutcome(ProcessStatus.STOPPED)
                if result.status == StageStatus.FAILED:
                    raise ItemProcessingError(stage.name, result.error or f"{stage.name} failed")
                tags_and_title = self._apply(stage.name, ctx, result) or tags_and_title

            increment, message = SAVE_PROGRESS
            self._progress.advance(message, increment)
            if self._progress.is_stopped():
                return ProcessOutcome(ProcessStatus.STOPPED)

            entry = await self._persist(
                ctx,
                tags_and_title or TagsAndTitle(title=file.stem, tags=[]),
                file_hash or compute_content_hash(image),
            )
            success = True
            return ProcessOutcome(ProcessStatus.COMPLETED, entry)
        finally:
            self._progress.end(success)

    @staticmethod
    def _apply(name: str, ctx: ItemContext, result: StageResult) -> TagsAndTitle | None:
        if name == "ocr":
            ctx.ocr_text = result.value or ""
        elif name == "vision":
            ctx.vision_response = result.value
        elif name == "notes":
            ctx.notes = result.value
        elif name == "tags":
            return result.value
        return None

    # --- Persistence ---

    async def _persist(
        self, ctx: ItemContext, tags_and_title: TagsAndTitle, file_hash: str
    ) -> ResultEntry:
        s = self._settings
        file = ctx.file
        title = tags_and_title.title or file.stem
        base_name = sanitize_filename(title)
        extension = file.extension or "png"

        unique_name = await self._unique_name(base_name.replace(" ", "_"), extension)
        screenshot_filename = f"{unique_name}.{extension}"
        screenshot_path = posixpath.join(s.screenshots_folder, screenshot_filename)
        metadata_filename = f"{unique_name}.json"
        metadata_path = posixpath.join(s.screenshots_folder, metadata_filename)
        note = await self._note_target(base_name)

        link_tag = sanitize_link_tag(unique_name)
        unique_tag = f"#{s.tag_prefix}/{link_tag}" if link_tag else ""
        formatted_tags = formatted_tag_string(tags_and_title.tags)

        entry = ResultEntry(
            id=str(uuid.uuid4()),
            original_filename=file.name,
            screenshot_filename=screenshot_filename,
            screenshot_storage_path=screenshot_path,
            note_path=note.path,
            note_title=note.title,
            ocr_text=ctx.ocr_text,
            vision_llm_response=ctx.vision_response,
            generated_notes=ctx.notes,
            title=title,
            extracted_tags=list(tags_and_title.tags),
            formatted_tags=formatted_tags,
            timestamp=_utc_timestamp(),
            metadata_filename=metadata_filename,
            metadata_path=metadata_path,
            unique_name=unique_name,
            unique_tag=unique_tag,
            hash=file_hash,
            size=file.size,
            mtime=file.mtime_ms,
        )

        written: list[str] = []
        try:
            await self._files.write_text(note.path, self.render_note(entry, base_name))
            written.append(note.path)
            await self._files.copy(file.path, screenshot_path)
            written.append(screenshot_path)
            await self._files.write_text(
                metadata_path, json.dumps(entry.to_json_dict(), indent=2, ensure_ascii=False)
            )
            written.append(metadata_path)
            await self._results.add(entry)
        except Exception as e:
            self._results.discard(entry.id)
            await self._rollback(written)
            if self._notifier:
                self._notifier.notify(f"Error saving results for {file.name}", "error")
            raise PersistenceError(f"Cannot save results for {file.path}: {e}") from e

        logger.info("Saved note %s and screenshot %s", note.path, screenshot_path)
        if self._notifier:
            self._notifier.notify(f"Note created: {note.title}")
        return entry

    async def _unique_name(self, base: str, extension: str) -> str:
        folder = self._settings.screenshots_folder
        candidate = base
        for n in range(1, MAX_UNIQUE_NAME_ATTEMPTS + 1):
            image_taken = await self._files.exists(posixpath.join(folder, f"{candidate}.{extension}"))
            meta_taken = await self._files.exists(posixpath.join(folder, f"{candidate}.json"))
            if not (image_taken or meta_taken):
                return candidate
            candidate = f"{base}_{n}"
        raise PersistenceError(f"No free screenshot name for '{base}'")

    async def _note_target(self, base_name: str) -> NoteTarget:
        folder = self._settings.notes_folder
        note_title = f"{base_name} Notes.md"
        for counter in range(1, MAX_NOTE_NAME_ATTEMPTS + 1):
            path = posixpath.join(folder, note_title)
            if not await self._files.exists(path):
                return NoteTarget(path=path, title=note_title)
            note_title = f"{base_name} Notes ({counter}).md"
        if self._notifier:
            self._notifier.notify("Failed to create note. Too many notes with the same name.", "error")
        raise PersistenceError(f"Too many notes named '{base_name} Notes'")

    def render_note(self, entry: ResultEntry, heading: str) -> str:
        """Markdown note body, with the metadata block when enabled."""
        s = self._settings
        content = f"# Notes from screenshot: {heading}\n\n{entry.generated_notes or ''}"
        if not s.include_metadata_in_note:
            return content

        ocr_text = entry.ocr_text
        ocr_label = "OCR text"
        if s.truncate_ocr_text > 0:
            ocr_text = ocr_text[: s.truncate_ocr_text]
            ocr_label = f"OCR text (truncated to {s.truncate_ocr_text} characters)"
        vision_text = entry.vision_llm_response
        vision_label = "Vision LLM context"
        if s.truncate_vision_response > 0:
            vision_text = vision_text[: s.truncate_vision_response]
            vision_label = (
                f"Vision LLM context (truncated to {s.truncate_vision_response} characters)"
            )

        return (
            f"{content}\n\n---\n"
            f"*Screenshot filename:* [[{entry.screenshot_storage_path}]]\n"
            f"*{ocr_label}*:\n```\n{ocr_text}...\n```\n"
            f"*{vision_label}*:\n```\n{vision_text}...\n```\n\n"
            f"*Tags:* {entry.formatted_tags}\n\n"
            f"{entry.unique_tag}\n"
        )

    async def _rollback(self, paths: list[str]) -> None:
        for path in reversed(paths):
            try:
                await self._files.delete(path)
            except OSError as e:
                logger.warning("Could not remove partial result %s: %s", path, e)
