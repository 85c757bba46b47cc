"""Service-layer utilities."""

from .connectivity import ConnectivityChange, ConnectivityMonitor, check_reachability
from .dispatcher import DeliveryOutcome, Outcome, SubmissionDispatcher
from .local_queue import LocalQueue, QueueBackend, SqlQueueBackend
from .reconciler import AmbiguityReconciler
from .survey_client import SurveyApiClient, VerifyResult
from .sync import DrainResult, SubmissionSync, SubmitResult, SubmitStatus, SyncState

__all__ = [
    "AmbiguityReconciler",
    "ConnectivityChange",
    "ConnectivityMonitor",
    "DeliveryOutcome",
    "DrainResult",
    "LocalQueue",
    "Outcome",
    "QueueBackend",
    "SqlQueueBackend",
    "SubmissionDispatcher",
    "SubmissionSync",
    "SubmitResult",
    "SubmitStatus",
    "SurveyApiClient",
    "SyncState",
    "VerifyResult",
    "check_reachability",
]
