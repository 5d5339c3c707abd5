# src/api/facade.py — v1
"""Application facade: wires every component from Settings.

Usage:
    from visionrecall.api.facade import create_app
    app = create_app(settings)
    await app.startup()
    await app.submit_files(["/path/to/shot.png"])
    await app.queue.wait_idle()
    await app.shutdown()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from visionrecall.cache.dedup_store import DedupStore
from visionrecall.cache.fingerprint import ContentFingerprinter
from visionrecall.cache.kv_store import JsonFileKV
from visionrecall.config.runtime_config import (
    RuntimeConfig,
    load_runtime_config,
    save_runtime_config,
)
from visionrecall.config.settings import Settings
from visionrecall.notify.notifier import LoggingNotifier
from visionrecall.ocr.languages import prompt_language_modifier
from visionrecall.pipeline.processor import ScreenshotProcessor
from visionrecall.pipeline.progress import ProgressReporter
from visionrecall.pipeline.stages.notes_stage import NotesStage
from visionrecall.pipeline.stages.ocr_stage import OCRStage
from visionrecall.pipeline.stages.tags_stage import TagsStage
from visionrecall.pipeline.stages.vision_stage import VisionStage
from visionrecall.queue.intake import IntakeScanner
from visionrecall.queue.job_queue import JobQueue
from visionrecall.queue.state import QueueObservableState
from visionrecall.storage.entries import EntryService
from visionrecall.storage.local_store import LocalFileStore
from visionrecall.storage.result_store import ResultStore

if TYPE_CHECKING:
    from visionrecall.cache.kv_store import BasePersistentKV
    from visionrecall.llm.base_client import BaseLLMClient
    from visionrecall.notify.notifier import BaseNotifier
    from visionrecall.ocr.base_engine import BaseOCREngine
    from visionrecall.queue.models import QueueItem
    from visionrecall.storage.base_file_store import BaseFileStore

logger = logging.getLogger(__name__)


@dataclass
class VisionRecallApp:
    """Every long-lived component of one running instance."""

    settings: Settings
    kv: BasePersistentKV
    files: BaseFileStore
    dedup: DedupStore
    results: ResultStore
    fingerprinter: ContentFingerprinter
    state: QueueObservableState
    progress: ProgressReporter
    ocr_engine: BaseOCREngine
    processor: ScreenshotProcessor
    queue: JobQueue
    intake: IntakeScanner
    entries: EntryService
    notifier: BaseNotifier
    runtime_config: RuntimeConfig

    def config(self) -> RuntimeConfig:
        return self.runtime_config

    async def startup(self) -> None:
        """Load persisted state and reconcile it.

        Dedup claims that no result entry references belong to items that
        never finished (crash, kill) and are dropped so the images can be
        processed again.
        """
        await self.dedup.load()
        await self.results.load()
        self.runtime_config = await load_runtime_config(self.kv)

        orphans = self.dedup.reconcile(self.results.referenced_hashes())
        if self.settings.fingerprint_retention_days > 0:
            self.dedup.evict_older_than(
                self.settings.fingerprint_retention_days,
                self.results.referenced_hashes(),
            )
        await self.dedup.persist()

        logger.info(
            "Started: %d entries, %d known hashes, %d orphan claims dropped",
            len(self.results),
            len(self.dedup.hashes),
            orphans,
        )

        if self.runtime_config.enable_auto_intake_folder_processing:
            await self.intake.scan()
        self.intake.start_polling()

    async def shutdown(self) -> None:
        """Stop polling and the queue, then release the OCR engine."""
        await self.intake.stop_polling()
        if self.queue.is_running:
            await self.queue.stop()
            await self.queue.wait_idle()
        await self.ocr_engine.terminate()
        logger.info("Shut down")

    async def update_config(self, **changes: Any) -> RuntimeConfig:
        """Apply and persist runtime config changes (snake_case or camelCase keys)."""
        data = self.runtime_config.to_blob()
        fields = RuntimeConfig.model_fields
        for key, value in changes.items():
            if key in fields and fields[key].alias:
                key = fields[key].alias
            data[key] = value
        self.runtime_config = RuntimeConfig.model_validate(data)
        await save_runtime_config(self.kv, self.runtime_config)
        return self.runtime_config

    async def import_data(self, data: Any) -> int:
        """Replace all stored data with an export and reload every store.

        Raises:
            RuntimeError: The queue is processing.
            InvalidImportError: data is not an exported-data object.
        """
        if self.queue.is_running:
            raise RuntimeError("Cannot import while the queue is processing")
        count = await self.entries.import_data(data)
        self.runtime_config = await load_runtime_config(self.kv)
        return count

    async def submit_files(self, paths: list[str | Path]) -> list[QueueItem]:
        """Copy local image files into the vault and enqueue them."""
        items: list[QueueItem] = []
        for path in paths:
            p = Path(path).expanduser()
            data = await asyncio.to_thread(p.read_bytes)
            item = await self.intake.ingest_bytes(data, filename=p.name)
            if item is not None:
                items.append(item)
        return items


def create_app(
    settings: Settings | None = None,
    *,
    kv: BasePersistentKV | None = None,
    files: BaseFileStore | None = None,
    vision_client: BaseLLMClient | None = None,
    text_client: BaseLLMClient | None = None,
    ocr_engine: BaseOCREngine | None = None,
    notifier: BaseNotifier | None = None,
) -> VisionRecallApp:
    """Build the application graph.

    Every collaborator can be injected; defaults come from settings
    (JSON data file, local vault, configured LLM provider, tesseract).

    Args:
        settings: Global settings. Loaded from .env if None.
        kv: Persistent blob store.
        files: Vault file store.
        vision_client: Client for the vision stage.
        text_client: Client for the notes and tags stages.
        ocr_engine: OCR engine.
        notifier: User notification sink.

    Returns:
        VisionRecallApp, not started yet.
    """
    settings = settings or Settings()

    if vision_client is None or text_client is None:
        from visionrecall.llm.client_factory import create_clients

        default_vision, default_text = create_clients(settings)
        vision_client = vision_client or default_vision
        text_client = text_client or default_text
    if ocr_engine is None:
        from visionrecall.ocr.tesseract_engine import TesseractEngine

        ocr_engine = TesseractEngine(language=settings.ocr_language)

    kv = kv or JsonFileKV(settings.data_file)
    files = files or LocalFileStore(settings.vault_path, settings.trash_folder)
    notifier = notifier or LoggingNotifier()

    dedup = DedupStore(kv)
    results = ResultStore(kv)
    fingerprinter = ContentFingerprinter(dedup, files)
    state = QueueObservableState()
    progress = ProgressReporter(state)

    app_ref: dict[str, VisionRecallApp] = {}

    def current_config() -> RuntimeConfig:
        return app_ref["app"].runtime_config

    modifier = (
        prompt_language_modifier(settings.ocr_language)
        if settings.respond_in_ocr_language
        else ""
    )
    timeout = settings.stage_timeout
    stages = [
        OCRStage(
            ocr_engine,
            progress.is_stopped,
            language=settings.ocr_language,
            min_length=settings.ocr_min_length,
            max_length=settings.ocr_max_length,
            min_valid_ratio=settings.ocr_min_valid_ratio,
            detect_language=settings.ocr_detect_language,
            timeout=timeout,
        ),
        VisionStage(
            vision_client,
            current_config,
            progress.is_stopped,
            max_tokens=settings.vision_max_tokens,
            language_modifier=modifier,
            detail=settings.vision_detail,
            timeout=timeout,
        ),
        NotesStage(
            text_client,
            current_config,
            progress.is_stopped,
            max_tokens=settings.max_tokens,
            temperature=settings.llm_temperature,
            language_modifier=modifier,
            timeout=timeout,
        ),
        TagsStage(
            text_client,
            progress.is_stopped,
            max_tokens=settings.tag_max_tokens,
            max_attempts=settings.tag_max_attempts,
            temperature=settings.llm_temperature,
            language_modifier=modifier,
            timeout=timeout,
        ),
    ]

    processor = ScreenshotProcessor(settings, files, stages, progress, results, notifier)
    queue = JobQueue(
        state,
        processor,
        fingerprinter,
        files,
        notifier=notifier,
        inter_item_delay_s=settings.inter_item_delay_s,
        check_duplicates=not settings.disable_duplicate_file_check,
    )
    intake = IntakeScanner(settings, files, fingerprinter, queue, current_config, notifier)
    entries = EntryService(results, dedup, files, kv)

    app = VisionRecallApp(
        settings=settings,
        kv=kv,
        files=files,
        dedup=dedup,
        results=results,
        fingerprinter=fingerprinter,
        state=state,
        progress=progress,
        ocr_engine=ocr_engine,
        processor=processor,
        queue=queue,
        intake=intake,
        entries=entries,
        notifier=notifier,
        runtime_config=RuntimeConfig(),
    )
    app_ref["app"] = app
    return app
