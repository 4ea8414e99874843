import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from jobtracker.database import get_db
from jobtracker.dependencies import get_current_user_full_access
from jobtracker.core.clock import as_utc, utcnow
from jobtracker.core.errors import ValidationError
from jobtracker.models.user import User
from jobtracker.schemas.analytics import DashboardResponse, RefreshResponse, SuccessMetricsResponse, TrendsResponse
from jobtracker.schemas.common import ApiResponse, ok
from jobtracker.services import analytics_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/analytics", tags=["analytics"])

EXPORT_FORMATS = ("json", "csv")


def _window(start: datetime | None, end: datetime | None) -> tuple[datetime | None, datetime | None]:
    start, end = as_utc(start), as_utc(end)
    if start is not None and end is not None and start > end:
        raise ValidationError(
            "start must not be after end",
            errors=[{"field": "start", "message": "must be <= end"}],
        )
    return start, end


@router.get("/dashboard", response_model=ApiResponse[DashboardResponse])
def dashboard(
    refresh: bool = False,
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    """Cached summary; recomputed when stale or when ``refresh=true``.

    Passing ``start`` and/or ``end`` computes a summary over that application
    date window instead, without touching the cached snapshot.
    """
    start, end = _window(start, end)
    if start is None and end is None:
        return ok(analytics_service.get_dashboard(db, user.id, force=refresh))
    return ok(analytics_service.get_dashboard(db, user.id, start=start, end=end))


@router.get("/trends", response_model=ApiResponse[TrendsResponse])
def trends(
    period: str = Query("month"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(analytics_service.trends(db, user.id, period))


@router.get("/success-metrics", response_model=ApiResponse[SuccessMetricsResponse])
def success_metrics(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    return ok(analytics_service.success_metrics(db, user.id))


@router.get("/export")
def export(
    format: str = Query("json"),
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    if format not in EXPORT_FORMATS:
        raise ValidationError(
            f"Unsupported export format '{format}'",
            errors=[{"field": "format", "message": "must be one of: json, csv"}],
        )
    start, end = _window(start, end)
    if format == "csv":
        filename = f"job_applications_{utcnow():%Y%m%d}.csv"
        return Response(
            content=analytics_service.export_csv(db, user.id, start=start, end=end),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    rows = analytics_service.export_records(db, user.id, start=start, end=end)
    return ok({"count": len(rows), "applications": rows})


@router.post("/refresh", response_model=ApiResponse[RefreshResponse])
def refresh(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user_full_access),
):
    snapshot = analytics_service.refresh(db, user.id)
    return ok(
        RefreshResponse(
            last_calculated=snapshot.last_calculated,
            total_applications=(snapshot.data or {}).get("total_applications", 0),
        ),
        "Analytics refreshed",
    )
