"""Direct submission and queue draining with bounded retries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from prometheus_client import Counter, Gauge

from pricesurvey.core.config import settings
from pricesurvey.core.errors import (
    OfflineError,
    PayloadValidationError,
    PermanentFailure,
    SurveyError,
    SyncInProgressError,
)
from pricesurvey.models import PendingSubmission, SubmissionDraft
from pricesurvey.services.connectivity import ConnectivityChange, ConnectivityMonitor
from pricesurvey.services.dispatcher import DeliveryOutcome, Outcome, SubmissionDispatcher
from pricesurvey.services.local_queue import LocalQueue
from pricesurvey.services.notifications import NOTIFICATIONS, NotificationLog
from pricesurvey.services.reconciler import AmbiguityReconciler
from pricesurvey.services.survey_client import SurveyApiClient

logger = logging.getLogger(__name__)

DELIVERY_OUTCOMES = Counter(
    "price_survey_delivery_outcomes_total",
    "Delivery attempts by final classification (after reconciliation).",
    ["outcome"],
)
PERMANENT_FAILURES = Counter(
    "price_survey_permanent_failures_total",
    "Queued submissions dropped without delivery.",
)
DRAIN_RUNS = Counter(
    "price_survey_drain_runs_total",
    "Completed queue drains.",
)
PENDING_SUBMISSIONS = Gauge(
    "price_survey_pending_submissions",
    "Submissions waiting in the local queue.",
)


class SyncState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"


class SubmitStatus(str, Enum):
    DELIVERED = "delivered"
    DUPLICATE = "duplicate"
    QUEUED = "queued"


@dataclass
class SubmitResult:
    status: SubmitStatus
    pending_id: str
    submission_id: str | None = None
    detail: str | None = None


@dataclass
class DrainResult:
    success_count: int = 0
    failed_count: int = 0
    permanent_failures: list[PermanentFailure] = field(default_factory=list)


class SubmissionSync:
    """Owns delivery of new surveys and resync of the local queue."""

    def __init__(
        self,
        queue: LocalQueue,
        monitor: ConnectivityMonitor,
        dispatcher: SubmissionDispatcher,
        reconciler: AmbiguityReconciler,
        max_attempts: int | None = None,
        settle_seconds: float | None = None,
        notifications: NotificationLog | None = None,
    ) -> None:
        self.queue = queue
        self.monitor = monitor
        self.dispatcher = dispatcher
        self.reconciler = reconciler
        self.max_attempts = max(1, max_attempts or settings.max_delivery_attempts)
        self.settle_seconds = settings.resync_settle_seconds if settle_seconds is None else settle_seconds
        self.notifications = NOTIFICATIONS if notifications is None else notifications
        self.state = SyncState.IDLE
        self._metrics_enabled = settings.metrics_enabled
        self._auto_task: asyncio.Task | None = None
        self._unsubscribe = None

    @classmethod
    def from_client(
        cls,
        client: SurveyApiClient,
        queue: LocalQueue,
        monitor: ConnectivityMonitor,
        **kwargs,
    ) -> "SubmissionSync":
        return cls(
            queue,
            monitor,
            SubmissionDispatcher(client),
            AmbiguityReconciler(client),
            **kwargs,
        )

    # --- Lifecycle ---

    def start(self, resync: bool | None = None) -> None:
        """Listen for reconnects; optionally resync what is already queued."""
        if self._unsubscribe is None:
            self._unsubscribe = self.monitor.subscribe(self._on_connectivity_change)
        resync = settings.resync_on_start if resync is None else resync
        if resync and self.monitor.is_online:
            self._schedule_auto_drain()

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task = self._auto_task
        if task and not task.done() and self.state is SyncState.IDLE:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            self._auto_task = None
        await self.join()

    async def join(self) -> None:
        """Wait for a scheduled or running automatic drain to finish."""
        task = self._auto_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    # --- Single attempt ---

    async def attempt(self, record: PendingSubmission) -> DeliveryOutcome:
        """Dispatch once, reconciling ambiguous failures before returning."""
        outcome = await self.dispatcher.dispatch(record)
        if outcome.kind is Outcome.AMBIGUOUS_FAILURE:
            outcome = await self.reconciler.resolve(record)
        if self._metrics_enabled:
            DELIVERY_OUTCOMES.labels(outcome=outcome.kind.value).inc()
        return outcome

    # --- Direct submission ---

    async def submit(self, draft: SubmissionDraft) -> SubmitResult:
        """Deliver now when online, otherwise queue.

        Raises PayloadValidationError when the collaborator rejects the payload
        and QueueStorageError when the draft cannot be saved locally.
        """
        record = PendingSubmission.from_draft(draft)

        if not self.monitor.is_online:
            await self.queue.enqueue(draft, pending_id=record.id)
            await self.refresh_metrics()
            return SubmitResult(SubmitStatus.QUEUED, record.id, detail="offline")

        outcome = await self.attempt(record)
        if outcome.kind is Outcome.CREATED:
            return SubmitResult(SubmitStatus.DELIVERED, record.id, submission_id=outcome.submission_id)
        if outcome.kind is Outcome.DUPLICATE:
            return SubmitResult(SubmitStatus.DUPLICATE, record.id, detail=outcome.detail)
        if outcome.kind is Outcome.VALIDATION_REJECTED:
            raise PayloadValidationError(outcome.detail or "Submission rejected", errors=outcome.errors)

        # Same pending id keeps the idempotency key stable across retries
        await self.queue.enqueue(draft, pending_id=record.id)
        await self.refresh_metrics()
        return SubmitResult(SubmitStatus.QUEUED, record.id, detail=outcome.detail)

    # --- Draining ---

    async def drain_all(self) -> DrainResult:
        """Deliver every queued submission in order.

        Raises OfflineError while offline and SyncInProgressError if a drain is
        already running; neither touches the queue.
        """
        if not self.monitor.is_online:
            raise OfflineError("Device is offline")
        if self.state is SyncState.DRAINING:
            raise SyncInProgressError("A sync is already running")
        self.state = SyncState.DRAINING

        result = DrainResult()
        try:
            pending = await self.queue.list_all()
            if pending:
                logger.info("Draining %s queued submission(s)", len(pending))
            for record in pending:
                if not self.monitor.is_online:
                    logger.info("Connectivity lost mid-drain; leaving remaining items queued")
                    break
                await self._process(record, result)
        finally:
            self.state = SyncState.IDLE

        await self.refresh_metrics()
        if self._metrics_enabled:
            DRAIN_RUNS.inc()
        self._notify_drain(result)
        return result

    async def _process(self, record: PendingSubmission, result: DrainResult) -> None:
        outcome = await self.attempt(record)

        if outcome.delivered:
            await self.queue.remove(record.id)
            result.success_count += 1
            return

        result.failed_count += 1
        if outcome.kind is Outcome.VALIDATION_REJECTED:
            await self.queue.remove(record.id)
            self._permanent(record, f"rejected as invalid ({outcome.detail})", result)
            return

        retried = record.with_retry()
        if retried.retry_count >= self.max_attempts:
            await self.queue.remove(record.id)
            self._permanent(record, f"gave up after {retried.retry_count} attempts ({outcome.detail})", result)
            return
        await self.queue.update(record.id, retried)
        logger.info(
            "Submission %s stays queued (attempt %s/%s)",
            record.id,
            retried.retry_count,
            self.max_attempts,
        )

    def _permanent(self, record: PendingSubmission, reason: str, result: DrainResult) -> None:
        failure = PermanentFailure(record.id, record.outlet_name, reason)
        result.permanent_failures.append(failure)
        logger.error("Dropped submission %s: %s", record.id, reason, extra={"pending_id": record.id})
        if self._metrics_enabled:
            PERMANENT_FAILURES.inc()
        self.notifications.add(
            "error",
            f"Survey for {record.outlet_name} could not be synced. Please retry manually or contact support.",
            {"pending_id": record.id, "reason": reason},
        )

    def _notify_drain(self, result: DrainResult) -> None:
        if result.success_count:
            plural = "s" if result.success_count > 1 else ""
            self.notifications.add("info", f"Successfully synced {result.success_count} submission{plural}")
        if result.failed_count:
            plural = "s" if result.failed_count > 1 else ""
            self.notifications.add("warn", f"Failed to sync {result.failed_count} submission{plural}")

    async def refresh_metrics(self) -> None:
        if self._metrics_enabled:
            PENDING_SUBMISSIONS.set(await self.queue.count())

    # --- Automatic resync ---

    def _on_connectivity_change(self, change: ConnectivityChange) -> None:
        if change.online:
            self._schedule_auto_drain()
            return
        task = self._auto_task
        # Only a drain that has not started yet is cancelled
        if task and not task.done() and self.state is SyncState.IDLE:
            task.cancel()
            # A cancelled task stays pending until its next step runs
            self._auto_task = None

    def _schedule_auto_drain(self) -> None:
        if self._auto_task and not self._auto_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; automatic resync skipped")
            return
        self._auto_task = loop.create_task(self._auto_drain())

    async def _auto_drain(self) -> None:
        await asyncio.sleep(self.settle_seconds)
        if not self.monitor.is_online or self.state is SyncState.DRAINING:
            return
        if await self.queue.count() == 0:
            return
        try:
            result = await self.drain_all()
        except (OfflineError, SyncInProgressError) as exc:
            logger.info("Automatic resync skipped: %s", exc)
            return
        except SurveyError:
            logger.exception("Automatic resync failed")
            return
        logger.info(
            "Automatic resync finished (success=%s, failed=%s)",
            result.success_count,
            result.failed_count,
        )


__all__ = ["DrainResult", "SubmissionSync", "SubmitResult", "SubmitStatus", "SyncState"]
