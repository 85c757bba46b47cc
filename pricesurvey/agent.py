"""Command-line field agent: submit surveys, resync the queue, inspect status."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Sequence

from prometheus_client import generate_latest
from pydantic import ValidationError

from pricesurvey.core.errors import (
    OfflineError,
    PayloadValidationError,
    QueueStorageError,
    SyncInProgressError,
)
from pricesurvey.core.logging_config import setup_logging
from pricesurvey.models import SubmissionDraft
from pricesurvey.services.connectivity import ConnectivityMonitor, check_reachability
from pricesurvey.services.geolocation import capture_location, provider_from_settings
from pricesurvey.services.local_queue import LocalQueue
from pricesurvey.services.survey_client import SurveyApiClient
from pricesurvey.services.sync import SubmissionSync

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Price survey field agent.")
    parser.add_argument("--api-url", help="Collaborator API base URL (defaults to settings)")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Treat the device as offline instead of probing the API.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    submit = commands.add_parser("submit", help="Deliver a survey from a JSON file, or queue it.")
    submit.add_argument("file", type=Path, help="JSON document in the create-endpoint wire format")

    commands.add_parser("sync", help="Retry every queued submission now.")

    status = commands.add_parser("status", help="Show connectivity and pending count.")
    status.add_argument("--metrics", action="store_true", help="Also print Prometheus metrics.")
    return parser.parse_args(argv)


def _load_draft(path: Path) -> SubmissionDraft:
    return SubmissionDraft.model_validate(json.loads(path.read_text(encoding="utf-8")))


async def _submit(sync: SubmissionSync, path: Path) -> int:
    try:
        draft = _load_draft(path)
    except (OSError, ValueError) as exc:
        # pydantic's ValidationError is a ValueError
        detail = exc.errors(include_url=False) if isinstance(exc, ValidationError) else str(exc)
        print(json.dumps({"ok": False, "error": "invalid survey", "detail": detail}, default=str, indent=2))
        return 2

    if draft.geo is None:
        geo = await capture_location(provider_from_settings())
        if geo is not None:
            draft = draft.model_copy(update={"geo": geo})

    try:
        result = await sync.submit(draft)
    except PayloadValidationError as exc:
        print(json.dumps({"ok": False, "error": str(exc), "errors": exc.errors}, default=str, indent=2))
        return 2
    except QueueStorageError as exc:
        print(json.dumps({"ok": False, "error": f"Failed to save survey. Please try again. ({exc})"}))
        return 1

    print(
        json.dumps(
            {
                "ok": True,
                "status": result.status.value,
                "pendingId": result.pending_id,
                "submissionId": result.submission_id,
                "detail": result.detail,
            },
            indent=2,
        )
    )
    return 0


async def _sync(sync: SubmissionSync) -> int:
    if await sync.queue.count() == 0:
        print("No pending submissions to sync.")
        return 0
    try:
        result = await sync.drain_all()
    except (OfflineError, SyncInProgressError) as exc:
        print(f"{exc}. Please check your connection.")
        return 1

    print(f"Synced: {result.success_count}  Failed: {result.failed_count}")
    _print_notifications(sync)
    return 0 if result.failed_count == 0 else 1


def _print_notifications(sync: SubmissionSync) -> None:
    for note in sync.notifications.take():
        reason = note.context.get("reason")
        print(f"{note} ({reason})" if reason else str(note))


async def _submit_and_resync(sync: SubmissionSync, path: Path) -> int:
    """Submit one survey while flushing any backlog left by earlier runs."""
    sync.start()
    try:
        return await _submit(sync, path)
    finally:
        await sync.join()
        await sync.stop()
        _print_notifications(sync)


async def _status(sync: SubmissionSync, metrics: bool) -> int:
    pending = await sync.queue.count()
    print(json.dumps({"online": sync.monitor.is_online, "pending": pending}))
    if metrics:
        await sync.refresh_metrics()
        print(generate_latest().decode("utf-8"))
    return 0


async def _run(args: argparse.Namespace) -> int:
    online = False if args.offline else await check_reachability(args.api_url)
    monitor = ConnectivityMonitor(online=online)
    queue = LocalQueue()

    async with SurveyApiClient(base_url=args.api_url) as client:
        sync = SubmissionSync.from_client(client, queue, monitor)
        if args.command == "submit":
            return await _submit_and_resync(sync, args.file)
        if args.command == "sync":
            return await _sync(sync)
        return await _status(sync, args.metrics)


def main(argv: Sequence[str] | None = None) -> int:
    setup_logging("price-survey-agent")
    args = parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except QueueStorageError as exc:
        logger.error("Local queue unavailable: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
