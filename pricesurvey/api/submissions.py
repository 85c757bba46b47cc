"""Create, list, export and verify survey submissions."""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select
from sqlmodel.sql.expression import SelectOfScalar

from pricesurvey.api.deps import get_db
from pricesurvey.core.config import settings
from pricesurvey.models import Submission, SubmissionDraft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])
export_router = APIRouter(tags=["submissions"])

CSV_HEADERS = [
    "ID",
    "Customer Name",
    "Customer Phone",
    "Outlet Name",
    "Area",
    "Latitude",
    "Longitude",
    "Accuracy",
    "Product Name",
    "Buy Price (NGN)",
    "Sell Price (NGN)",
    "Collected At",
    "Day",
    "User Agent",
    "Platform",
    "Created At",
    "Updated At",
]


def _utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; bounds without an offset are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _stored(value: datetime) -> datetime:
    return _utc(value).replace(tzinfo=None)


def _iso(value: datetime) -> str:
    return _utc(value).isoformat().replace("+00:00", "Z")


@dataclass
class SubmissionFilters:
    """Query filters shared by the list and export endpoints."""

    from_: Optional[datetime] = None
    to: Optional[datetime] = None
    area: Optional[str] = None
    outlet_name: Optional[str] = None
    has_geo: Optional[bool] = None

    def apply(self, statement: SelectOfScalar[Submission]) -> SelectOfScalar[Submission]:
        if self.from_ is not None:
            statement = statement.where(Submission.collected_at >= _stored(self.from_))
        if self.to is not None:
            statement = statement.where(Submission.collected_at <= _stored(self.to))
        if self.area:
            statement = statement.where(col(Submission.area).ilike(f"%{self.area}%"))
        if self.outlet_name:
            statement = statement.where(col(Submission.outlet_name).ilike(f"%{self.outlet_name}%"))
        if self.has_geo is True:
            statement = statement.where(col(Submission.geo_lat).is_not(None))
        elif self.has_geo is False:
            statement = statement.where(col(Submission.geo_lat).is_(None))
        return statement.order_by(col(Submission.collected_at).desc())


def submission_filters(
    from_: Optional[datetime] = Query(default=None, alias="from"),
    to: Optional[datetime] = Query(default=None),
    area: Optional[str] = Query(default=None),
    outlet_name: Optional[str] = Query(default=None, alias="outletName"),
    has_geo: Optional[bool] = Query(default=None, alias="hasGeo"),
) -> SubmissionFilters:
    return SubmissionFilters(from_, to, area, outlet_name, has_geo)


def _to_wire(record: Submission) -> dict[str, Any]:
    geo = None
    if record.geo_lat is not None and record.geo_lng is not None:
        geo = {"lat": record.geo_lat, "lng": record.geo_lng, "accuracy": record.geo_accuracy}
    return {
        "id": str(record.id),
        "customerName": record.customer_name,
        "customerPhone": record.customer_phone,
        "outletName": record.outlet_name,
        "area": record.area,
        "geo": geo,
        "items": json.loads(record.items_json),
        "collectedAt": _iso(record.collected_at),
        "day": record.day,
        "clientMeta": {"userAgent": record.user_agent or "", "platform": record.platform or ""},
        "createdAt": _iso(record.created_at),
        "updatedAt": _iso(record.updated_at),
    }


def _csv_rows(record: Submission) -> list[list[Any]]:
    prefix = [
        record.id,
        record.customer_name,
        record.customer_phone or "",
        record.outlet_name,
        record.area,
        "" if record.geo_lat is None else record.geo_lat,
        "" if record.geo_lng is None else record.geo_lng,
        "" if record.geo_accuracy is None else record.geo_accuracy,
    ]
    suffix = [
        _iso(record.collected_at),
        record.day,
        record.user_agent or "",
        record.platform or "",
        _iso(record.created_at),
        _iso(record.updated_at),
    ]
    return [
        prefix + [line["productName"], line["buyPrice"], line["sellPrice"]] + suffix
        for line in json.loads(record.items_json)
    ]


@router.post("", status_code=201)
def create_submission(
    draft: SubmissionDraft,
    request: Request,
    session: Session = Depends(get_db),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
) -> JSONResponse:
    if idempotency_key:
        existing = session.exec(
            select(Submission).where(Submission.idempotency_key == idempotency_key)
        ).first()
        if existing:
            logger.info("Replayed submission %s for key %s", existing.id, idempotency_key)
            return JSONResponse({"ok": True, "id": str(existing.id), "replayed": True}, status_code=200)

    payload = draft.to_payload()
    record = Submission(
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        outlet_name=draft.outlet_name,
        area=draft.area,
        geo_lat=draft.geo.lat if draft.geo else None,
        geo_lng=draft.geo.lng if draft.geo else None,
        geo_accuracy=draft.geo.accuracy if draft.geo else None,
        items_json=json.dumps(payload["items"]),
        collected_at=_stored(draft.collected_at),
        day=draft.day,
        idempotency_key=idempotency_key,
        user_agent=request.headers.get("user-agent", ""),
        platform=request.headers.get("sec-ch-ua-platform", ""),
    )
    session.add(record)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info("Duplicate submission for %s on %s", draft.outlet_name, draft.day)
        return JSONResponse(
            {"ok": False, "code": "DUPLICATE", "message": "Already captured for this outlet today"},
            status_code=409,
        )
    session.refresh(record)
    logger.info("Stored submission %s for %s on %s", record.id, record.outlet_name, record.day)
    return JSONResponse({"ok": True, "id": str(record.id)}, status_code=201)


@router.get("")
def list_submissions(
    filters: SubmissionFilters = Depends(submission_filters),
    session: Session = Depends(get_db),
) -> dict[str, Any]:
    statement = filters.apply(select(Submission)).limit(settings.list_limit)
    items = [_to_wire(record) for record in session.exec(statement).all()]
    return {"ok": True, "items": items, "total": len(items)}


@export_router.get("/submissions.csv")
def export_submissions(
    filters: SubmissionFilters = Depends(submission_filters),
    session: Session = Depends(get_db),
) -> Response:
    statement = filters.apply(select(Submission)).limit(settings.export_limit)
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    exported = 0
    for record in session.exec(statement).all():
        writer.writerows(_csv_rows(record))
        exported += 1
    logger.info("Exported %s submission(s) as CSV", exported)

    filename = f"price-survey-{date.today().isoformat()}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/verify")
def verify_submission(
    payload: Optional[dict[str, Any]] = Body(default=None),
    session: Session = Depends(get_db),
) -> JSONResponse:
    payload = payload or {}
    outlet_name = payload.get("outletName")
    day = payload.get("day")
    if not outlet_name or not day:
        return JSONResponse({"ok": False, "error": "Missing outletName or day"}, status_code=400)

    record = session.exec(
        select(Submission).where(Submission.outlet_name == outlet_name, Submission.day == day)
    ).first()
    return JSONResponse(
        {"ok": True, "exists": record is not None, "id": str(record.id) if record else None}
    )


__all__ = ["export_router", "router"]
