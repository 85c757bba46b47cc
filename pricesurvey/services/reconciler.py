"""Resolve ambiguous delivery attempts against the verify endpoint."""

from __future__ import annotations

import logging

from pricesurvey.core.errors import VerificationError
from pricesurvey.models import SubmissionDraft
from pricesurvey.services.dispatcher import DeliveryOutcome, Outcome
from pricesurvey.services.survey_client import SurveyApiClient

logger = logging.getLogger(__name__)


class AmbiguityReconciler:
    """Only a confirmed record counts as delivered."""

    def __init__(self, client: SurveyApiClient) -> None:
        self.client = client

    async def reconcile(self, outlet_name: str, day: str) -> bool:
        """Return whether the outlet has a record for the day. Raises VerificationError."""
        result = await self.client.verify(outlet_name, day)
        return result.exists

    async def resolve(self, draft: SubmissionDraft) -> DeliveryOutcome:
        """Turn an ambiguous attempt into Duplicate or RetryableFailure."""
        day = draft.day
        try:
            exists = await self.reconcile(draft.outlet_name, day)
        except VerificationError as exc:
            logger.warning("Could not verify %s on %s: %s", draft.outlet_name, day, exc)
            return DeliveryOutcome(Outcome.RETRYABLE_FAILURE, detail=f"verification failed: {exc}")

        if exists:
            logger.info("Verified %s on %s already recorded", draft.outlet_name, day)
            return DeliveryOutcome(Outcome.DUPLICATE, detail="confirmed by verify")
        logger.info("No record for %s on %s; will retry", draft.outlet_name, day)
        return DeliveryOutcome(Outcome.RETRYABLE_FAILURE, detail="not found after ambiguous failure")


__all__ = ["AmbiguityReconciler"]
