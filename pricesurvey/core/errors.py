"""Error taxonomy for submission delivery."""

from __future__ import annotations

from enum import Enum
from typing import Any


class SurveyError(Exception):
    """Base class for every error raised by the submission layer."""


class PayloadValidationError(SurveyError):
    """The collaborator rejected the payload. Never retried."""

    def __init__(self, message: str, errors: list[Any] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ConflictError(SurveyError):
    """The outlet already has a submission for that day."""


class AmbiguousTransportError(SurveyError):
    """Transport failed in a way that may have happened after the server persisted the record."""


class TransientTransportError(SurveyError):
    """Network or server failure that is safe to retry."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class VerificationError(SurveyError):
    """The verify call could not establish whether the record exists."""


class PermanentFailure(SurveyError):
    """A queued submission was dropped without being delivered."""

    def __init__(self, pending_id: str, outlet_name: str, reason: str) -> None:
        super().__init__(f"Submission {pending_id} for {outlet_name} was not delivered: {reason}")
        self.pending_id = pending_id
        self.outlet_name = outlet_name
        self.reason = reason


class QueueStorageError(SurveyError):
    """The local queue could not persist or read a submission."""


class OfflineError(SurveyError):
    """A drain was requested while the device is offline."""


class SyncInProgressError(SurveyError):
    """A drain was requested while another drain is still running."""


class GeoFailureReason(str, Enum):
    PERMISSION_DENIED = "permission-denied"
    POSITION_UNAVAILABLE = "position-unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


class GeolocationError(SurveyError):
    """No location fix could be obtained."""

    def __init__(self, reason: GeoFailureReason, message: str | None = None) -> None:
        super().__init__(message or reason.value)
        self.reason = reason


__all__ = [
    "SurveyError",
    "PayloadValidationError",
    "ConflictError",
    "AmbiguousTransportError",
    "TransientTransportError",
    "VerificationError",
    "PermanentFailure",
    "QueueStorageError",
    "OfflineError",
    "SyncInProgressError",
    "GeoFailureReason",
    "GeolocationError",
]
