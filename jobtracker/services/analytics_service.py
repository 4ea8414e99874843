"""
Analytics snapshot orchestration: cache lookup, staleness, wholesale recompute.
"""
import logging
from datetime import datetime, timedelta

import pandas as pd
from sqlalchemy.orm import Session

from jobtracker.config import settings
from jobtracker.core.clock import as_utc, utcnow
from jobtracker.models.analytics_snapshot import AnalyticsSnapshot
from jobtracker.repos import analytics_repo, job_application_repo, reminder_repo, resume_repo
from jobtracker.services import analytics_aggregator

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "id",
    "job_title",
    "company",
    "status",
    "job_type",
    "priority",
    "application_date",
    "application_deadline",
    "salary_min",
    "salary_max",
    "salary_currency",
    "source",
    "interviews",
    "follow_up_count",
    "is_archived",
]


def needs_refresh(snapshot: AnalyticsSnapshot | None, now: datetime | None = None, stale_hours: int | None = None) -> bool:
    if snapshot is None or snapshot.is_stale or snapshot.data is None or snapshot.last_calculated is None:
        return True
    now = now or utcnow()
    stale_hours = settings.analytics_stale_hours if stale_hours is None else stale_hours
    return now - as_utc(snapshot.last_calculated) > timedelta(hours=stale_hours)


def compute_summary(db: Session, user_id: str, period: str = "month", now: datetime | None = None, **window) -> dict:
    """Scan all of the user's records and aggregate from scratch."""
    jobs = job_application_repo.list_all(db, user_id)
    resumes = resume_repo.list_all(db, user_id)
    reminders = reminder_repo.list_all(db, user_id)
    return analytics_aggregator.aggregate(
        jobs,
        resumes,
        reminders,
        period=period,
        now=now,
        top_n=settings.top_companies_limit,
        **window,
    )


def refresh(db: Session, user_id: str, now: datetime | None = None) -> AnalyticsSnapshot:
    now = now or utcnow()
    snapshot = analytics_repo.get_or_create_snapshot(db, user_id)
    data = compute_summary(db, user_id, now=now)
    snapshot = analytics_repo.save_snapshot(db, snapshot, data, now=now)
    logger.info("Analytics snapshot refreshed for user=%s (%d applications)", user_id, data["total_applications"])
    return snapshot


def get_summary(db: Session, user_id: str, force: bool = False, now: datetime | None = None) -> AnalyticsSnapshot:
    """Cached summary, recomputed first when stale or when ``force`` is set."""
    now = now or utcnow()
    snapshot = analytics_repo.get_snapshot(db, user_id)
    if force or needs_refresh(snapshot, now):
        snapshot = refresh(db, user_id, now=now)
    return snapshot


def get_dashboard(
    db: Session,
    user_id: str,
    force: bool = False,
    now: datetime | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Cached summary, or a one-off recompute over [start, end] that leaves the snapshot alone."""
    if start is not None or end is not None:
        now = now or utcnow()
        data = compute_summary(db, user_id, now=now, start=start, end=end)
        last_calculated = now
    else:
        snapshot = get_summary(db, user_id, force=force, now=now)
        data = dict(snapshot.data or {})
        last_calculated = snapshot.last_calculated
    stats = data.get("application_stats") or {}
    responded = stats.get("interviewing", 0) + stats.get("offers", 0) + stats.get("rejected", 0)
    return {
        "summary": data,
        "recent_applications": job_application_repo.recent(db, user_id, limit=5),
        "resume_count": resume_repo.count_for_user(db, user_id),
        "response_rate": round(responded / stats["applied"] * 100, 2) if stats.get("applied") else 0.0,
        "last_calculated": last_calculated,
    }


def trends(db: Session, user_id: str, period: str = "month", now: datetime | None = None) -> dict:
    now = now or utcnow()
    analytics_aggregator.period_window(period, now)
    jobs = job_application_repo.list_all(db, user_id)
    return {
        "period": period,
        "series": analytics_aggregator.time_series(jobs, period, now),
        "monthly": analytics_aggregator.monthly_breakdown(jobs),
    }


def success_metrics(db: Session, user_id: str, now: datetime | None = None) -> dict:
    data = get_summary(db, user_id, now=now).data or {}
    return {
        "total_applications": data.get("total_applications", 0),
        "conversion_rates": data.get("conversion_rates", {}),
        "response_time": data.get("response_time", {}),
        "status_counts": data.get("status_counts", {}),
        "top_companies": data.get("top_companies", []),
    }


def export_frame(
    db: Session, user_id: str, start: datetime | None = None, end: datetime | None = None
) -> pd.DataFrame:
    """One row per application, flattened for CSV/JSON export, optionally limited by application date."""
    jobs = job_application_repo.list_all(db, user_id)
    if start is not None or end is not None:
        jobs = analytics_aggregator.filter_window(jobs, start, end)
    rows = []
    for job in jobs:
        rows.append(
            {
                "id": job.id,
                "job_title": job.job_title,
                "company": job.company,
                "status": job.status,
                "job_type": job.job_type,
                "priority": job.priority,
                "application_date": as_utc(job.application_date).isoformat() if job.application_date else None,
                "application_deadline": as_utc(job.application_deadline).isoformat() if job.application_deadline else None,
                "salary_min": job.salary_min,
                "salary_max": job.salary_max,
                "salary_currency": job.salary_currency,
                "source": (job.source or {}).get("platform"),
                "interviews": len(job.interviews or []),
                "follow_up_count": job.follow_up_count or 0,
                "is_archived": bool(job.is_archived),
            }
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_csv(db: Session, user_id: str, start: datetime | None = None, end: datetime | None = None) -> str:
    return export_frame(db, user_id, start, end).to_csv(index=False)


def export_records(
    db: Session, user_id: str, start: datetime | None = None, end: datetime | None = None
) -> list[dict]:
    frame = export_frame(db, user_id, start, end)
    return frame.astype(object).where(frame.notna(), None).to_dict(orient="records")
