"""Single delivery attempt and outcome classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pricesurvey.core.errors import (
    AmbiguousTransportError,
    ConflictError,
    PayloadValidationError,
    TransientTransportError,
)
from pricesurvey.models import PendingSubmission
from pricesurvey.services.survey_client import SurveyApiClient

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    VALIDATION_REJECTED = "validation_rejected"
    AMBIGUOUS_FAILURE = "ambiguous_failure"
    RETRYABLE_FAILURE = "retryable_failure"


@dataclass
class DeliveryOutcome:
    kind: Outcome
    submission_id: str | None = None
    detail: str | None = None
    errors: list[Any] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.kind in (Outcome.CREATED, Outcome.DUPLICATE)


class SubmissionDispatcher:
    """Sends one submission and reports what happened. Never touches the queue."""

    def __init__(self, client: SurveyApiClient) -> None:
        self.client = client

    async def dispatch(self, record: PendingSubmission) -> DeliveryOutcome:
        try:
            submission_id = await self.client.create_submission(
                record.to_payload(), idempotency_key=record.id
            )
        except ConflictError as exc:
            outcome = DeliveryOutcome(Outcome.DUPLICATE, detail=str(exc))
        except PayloadValidationError as exc:
            outcome = DeliveryOutcome(Outcome.VALIDATION_REJECTED, detail=str(exc), errors=exc.errors)
        except AmbiguousTransportError as exc:
            outcome = DeliveryOutcome(Outcome.AMBIGUOUS_FAILURE, detail=str(exc))
        except TransientTransportError as exc:
            outcome = DeliveryOutcome(Outcome.RETRYABLE_FAILURE, detail=str(exc))
        else:
            outcome = DeliveryOutcome(Outcome.CREATED, submission_id=submission_id)

        logger.info(
            "Dispatch %s (%s, attempt %s): %s",
            record.id,
            record.outlet_name,
            record.retry_count + 1,
            outcome.kind.value,
            extra={"pending_id": record.id},
        )
        return outcome


__all__ = ["DeliveryOutcome", "Outcome", "SubmissionDispatcher"]
