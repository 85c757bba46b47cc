"""Async HTTP client for the survey collaborator API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

import httpx

from pricesurvey.core.config import settings
from pricesurvey.core.errors import (
    AmbiguousTransportError,
    ConflictError,
    PayloadValidationError,
    TransientTransportError,
    VerificationError,
)

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


def looks_ambiguous(exc: BaseException, markers: Iterable[str]) -> bool:
    """True when the error text points at the secure channel dying mid-request."""
    lowered = [m.lower() for m in markers if m]
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = f"{type(current).__name__}: {current}".lower()
        if any(marker in text for marker in lowered):
            return True
        current = current.__cause__ or current.__context__
    return False


@dataclass
class VerifyResult:
    exists: bool
    submission_id: str | None = None


class SurveyApiClient:
    """Thin wrapper around the create and verify endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        ambiguous_markers: Iterable[str] | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.ambiguous_markers = tuple(ambiguous_markers or settings.ambiguous_error_markers)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.http_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SurveyApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: dict[str, Any], headers: dict[str, str] | None = None) -> httpx.Response:
        logger.debug("Survey API request: POST %s%s json=%s", self.base_url, path, body)
        try:
            response = await self._client.post(path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            if looks_ambiguous(exc, self.ambiguous_markers):
                logger.warning("Ambiguous transport failure on %s: %s", path, exc)
                raise AmbiguousTransportError(str(exc)) from exc
            logger.warning("Transport failure on %s: %s", path, exc)
            raise TransientTransportError(str(exc)) from exc
        logger.debug("Survey API response: %s %s", response.status_code, response.text)
        return response

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def create_submission(self, payload: dict[str, Any], idempotency_key: str | None = None) -> str | None:
        """Create a record and return the server id.

        Raises ConflictError, PayloadValidationError, AmbiguousTransportError or
        TransientTransportError depending on how the attempt ended.
        """
        headers = {IDEMPOTENCY_HEADER: idempotency_key} if idempotency_key else None
        response = await self._post("/submissions", payload, headers=headers)
        body = self._body(response)

        if response.is_success:
            submission_id = body.get("id")
            return str(submission_id) if submission_id is not None else None
        if response.status_code == 409:
            raise ConflictError(body.get("message") or "Already captured for this outlet today")
        if response.status_code == 422 or (
            response.status_code == 400 and body.get("code") == "VALIDATION_ERROR"
        ):
            raise PayloadValidationError("Submission rejected as invalid", errors=body.get("errors"))
        raise TransientTransportError(
            f"Create failed with HTTP {response.status_code}: {body.get('error') or response.text[:200]}",
            status_code=response.status_code,
        )

    async def verify(self, outlet_name: str, day: str) -> VerifyResult:
        """Ask whether the outlet already has a record for the day."""
        try:
            response = await self._post("/submissions/verify", {"outletName": outlet_name, "day": day})
        except (AmbiguousTransportError, TransientTransportError) as exc:
            raise VerificationError(f"Verify request failed: {exc}") from exc

        body = self._body(response)
        if not response.is_success or "exists" not in body:
            raise VerificationError(
                f"Verify returned HTTP {response.status_code}: {body.get('error') or response.text[:200]}"
            )
        submission_id = body.get("id")
        return VerifyResult(
            exists=bool(body["exists"]),
            submission_id=str(submission_id) if submission_id is not None else None,
        )


__all__ = ["IDEMPOTENCY_HEADER", "SurveyApiClient", "VerifyResult", "looks_ambiguous"]
