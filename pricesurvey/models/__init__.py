"""Database models and wire schemas."""

from .draft import GeoFix, PRODUCTS, Product, ProductLine, SubmissionDraft, submission_day
from .pending import PendingSubmission, QueuedSubmission, new_pending_id
from .submission import Submission

__all__ = [
    "GeoFix",
    "PRODUCTS",
    "PendingSubmission",
    "Product",
    "ProductLine",
    "QueuedSubmission",
    "Submission",
    "SubmissionDraft",
    "new_pending_id",
    "submission_day",
]
