# src/main.py — v1
"""CLI entry point — process, intake, list, delete, tag, cleanup, export, import.

Usage:
    visionrecall process <image>... [options]
    visionrecall intake [--watch]
    visionrecall list
    visionrecall delete <entry_id>
    visionrecall tag <entry_id> "tag one, tag two"
    visionrecall cleanup --days N
    visionrecall export <out.json>
    visionrecall import <in.json>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from visionrecall.version import __version__

if TYPE_CHECKING:
    from visionrecall.api.facade import VisionRecallApp

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="visionrecall",
        description=f"VisionRecall v{__version__} — screenshot notes with OCR and LLMs",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--vault", type=Path, default=None,
        help="Vault root directory (overrides VAULT_ROOT)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- process ---
    p_process = subparsers.add_parser(
        "process", help="Process one or more screenshots",
    )
    p_process.add_argument("files", type=Path, nargs="+", help="Image files")
    p_process.set_defaults(func=_cmd_process)

    # --- intake ---
    p_intake = subparsers.add_parser(
        "intake", help="Process new images from the intake folder",
    )
    p_intake.add_argument(
        "--watch", action="store_true",
        help="Keep polling the intake folder",
    )
    p_intake.add_argument(
        "--interval", type=int, default=None,
        help="Polling interval in seconds (default: runtime config)",
    )
    p_intake.set_defaults(func=_cmd_intake)

    # --- list ---
    p_list = subparsers.add_parser("list", help="List processed screenshots")
    p_list.add_argument(
        "--json", dest="as_json", action="store_true",
        help="Print entries as JSON",
    )
    p_list.set_defaults(func=_cmd_list)

    # --- delete ---
    p_delete = subparsers.add_parser("delete", help="Delete a processed screenshot")
    p_delete.add_argument("entry_id", help="Entry ID")
    p_delete.set_defaults(func=_cmd_delete)

    # --- tag ---
    p_tag = subparsers.add_parser("tag", help="Replace the tags of an entry")
    p_tag.add_argument("entry_id", help="Entry ID")
    p_tag.add_argument("tags", help="Comma-separated tags")
    p_tag.set_defaults(func=_cmd_tag)

    # --- cleanup ---
    p_cleanup = subparsers.add_parser(
        "cleanup", help="Evict old fingerprint records",
    )
    p_cleanup.add_argument(
        "--days", type=int, required=True,
        help="Remove records older than this many days",
    )
    p_cleanup.set_defaults(func=_cmd_cleanup)

    # --- export ---
    p_export = subparsers.add_parser("export", help="Export all stored data as JSON")
    p_export.add_argument("output", type=Path, help="Output file")
    p_export.set_defaults(func=_cmd_export)

    # --- import ---
    p_import = subparsers.add_parser(
        "import", help="Replace all stored data with an exported JSON file",
    )
    p_import.add_argument("input", type=Path, help="Exported JSON file")
    p_import.set_defaults(func=_cmd_import)

    return parser


async def _run(args: argparse.Namespace) -> int:
    from visionrecall.api.facade import create_app
    from visionrecall.config.settings import load_settings
    from visionrecall.logging.logger import setup_logging

    overrides: dict[str, object] = {}
    if args.vault is not None:
        overrides["vault_root"] = args.vault
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    settings = load_settings(**overrides)

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        failure_log_file=str(settings.failure_log_file) if settings.failure_log_file else None,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    app = create_app(settings)
    await app.startup()
    try:
        return await args.func(app, args)
    finally:
        await app.shutdown()


async def _cmd_process(app: VisionRecallApp, args: argparse.Namespace) -> int:
    """Copy the given images into the vault and process them."""
    missing = [f for f in args.files if not f.is_file()]
    if missing:
        for f in missing:
            logger.error("File not found: %s", f)
        return 1

    items = await app.submit_files(args.files)
    await app.queue.wait_idle()
    return _print_queue_summary(app, len(args.files) - len(items))


async def _cmd_intake(app: VisionRecallApp, args: argparse.Namespace) -> int:
    """Scan the intake folder once, or keep polling with --watch."""
    interval = args.interval or app.config().intake_folder_polling_interval
    while True:
        result = await app.intake.scan()
        print(
            f"Intake: {result.found} found, {result.enqueued} queued, "
            f"{result.already_processed} already processed"
        )
        await app.queue.wait_idle()
        if not args.watch:
            break
        await asyncio.sleep(interval)
    return _print_queue_summary(app, 0)


async def _cmd_list(app: VisionRecallApp, args: argparse.Namespace) -> int:
    """Print processed screenshots."""
    entries = app.results.entries()
    if args.as_json:
        print(json.dumps([e.to_json_dict() for e in entries], indent=2, ensure_ascii=False))
        return 0
    if not entries:
        print("No processed screenshots.")
        return 0
    for entry in entries:
        print(f"{entry.id}  {entry.timestamp}  {entry.title}")
        if entry.formatted_tags:
            print(f"    {entry.formatted_tags}")
    return 0


async def _cmd_delete(app: VisionRecallApp, args: argparse.Namespace) -> int:
    from visionrecall.storage.entries import EntryNotFoundError

    try:
        entry = await app.entries.delete_entry(args.entry_id)
    except EntryNotFoundError:
        logger.error("Entry not found: %s", args.entry_id)
        return 1
    print(f"Deleted {entry.id} ({entry.title})")
    return 0


async def _cmd_tag(app: VisionRecallApp, args: argparse.Namespace) -> int:
    from visionrecall.pipeline.tags import tags_from_comma_string
    from visionrecall.storage.entries import EntryNotFoundError

    try:
        entry = await app.entries.update_tags(
            args.entry_id, tags_from_comma_string(args.tags)
        )
    except EntryNotFoundError:
        logger.error("Entry not found: %s", args.entry_id)
        return 1
    print(f"Tags of {entry.id}: {entry.formatted_tags or '(none)'}")
    return 0


async def _cmd_cleanup(app: VisionRecallApp, args: argparse.Namespace) -> int:
    if args.days < 0:
        logger.error("--days must be >= 0")
        return 1
    evicted = await app.entries.cleanup_fingerprints(args.days)
    print(f"Evicted {evicted} fingerprint records older than {args.days} days")
    return 0


async def _cmd_export(app: VisionRecallApp, args: argparse.Namespace) -> int:
    data = await app.entries.export_data()
    output: Path = args.output
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"Exported data to {output}")
    return 0


async def _cmd_import(app: VisionRecallApp, args: argparse.Namespace) -> int:
    from visionrecall.storage.entries import InvalidImportError

    source: Path = args.input
    if not source.is_file():
        logger.error("File not found: %s", source)
        return 1
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
        count = await app.import_data(data)
    except (ValueError, InvalidImportError) as e:
        logger.error("Invalid import file %s: %s", source, e)
        return 1
    print(f"Imported {count} entries from {source}")
    return 0


def _print_queue_summary(app: VisionRecallApp, skipped_upfront: int) -> int:
    """Print a human-readable summary of the queue; 1 when any item failed."""
    from visionrecall.queue.models import ItemStatus

    status = app.state.snapshot()
    completed = status.count(ItemStatus.COMPLETED)
    failed = [i for i in status.queue if i.status == ItemStatus.FAILED]

    print("\nProcessing complete:")
    print(f"  Completed:  {completed}")
    print(f"  Failed:     {len(failed)}")
    print(f"  Skipped:    {status.skipped + skipped_upfront}")
    for item in failed:
        print(f"    {item.source_file.name}: {item.error}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
