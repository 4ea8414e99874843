"""
In-memory analytics over one user's records.

Everything here is a pure function of the rows passed in: no queries, no
writes, no mutation of the inputs. An empty input produces a zeroed summary.
"""
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from jobtracker.core.clock import add_months, as_utc, utcnow
from jobtracker.core.constants import (
    ANALYTICS_PERIODS,
    INTERVIEWING_OR_FURTHER,
    JOB_STATUSES,
    OFFER_STATUSES,
    REMINDER_COMPLETED,
    REMINDER_PENDING,
    RESPONSE_STATUSES,
    RESUME_STATUSES,
    TERMINAL_STATUSES,
)
from jobtracker.core.errors import ValidationError
from jobtracker.services import resume_versioning

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
INTERVIEW_STAGES = INTERVIEWING_OR_FURTHER - OFFER_STATUSES


def _pct(numerator: int, denominator: int) -> float:
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


def _applied(job) -> datetime | None:
    return as_utc(job.application_date)


def period_window(period: str, now: datetime) -> tuple[datetime | None, str]:
    """(window start, bucket granularity) for a reporting period."""
    if period not in ANALYTICS_PERIODS:
        raise ValidationError(
            f"Invalid period '{period}'",
            errors=[{"field": "period", "message": f"must be one of: {', '.join(ANALYTICS_PERIODS)}"}],
        )
    if period == "week":
        return now - timedelta(days=7), "day"
    if period == "month":
        return add_months(now, -1), "day"
    if period == "quarter":
        return add_months(now, -3), "month"
    if period == "year":
        return add_months(now, -12), "month"
    return None, "month"


def filter_window(jobs: Iterable, start: datetime | None = None, end: datetime | None = None) -> list:
    start, end = as_utc(start), as_utc(end)
    selected = []
    for job in jobs:
        applied = _applied(job)
        if start is not None and (applied is None or applied < start):
            continue
        if end is not None and (applied is None or applied > end):
            continue
        selected.append(job)
    return selected


def status_counts(jobs: Sequence) -> dict[str, int]:
    counts = {status: 0 for status in JOB_STATUSES}
    for job in jobs:
        counts[job.status] = counts.get(job.status, 0) + 1
    return counts


def application_stats(jobs: Sequence) -> dict[str, int]:
    counts = status_counts(jobs)
    return {
        "total": len(jobs),
        "wishlist": counts["Wishlist"],
        "applied": len(jobs) - counts["Wishlist"],
        "interviewing": sum(counts[s] for s in INTERVIEW_STAGES),
        "offers": sum(counts[s] for s in OFFER_STATUSES),
        "rejected": counts["Rejected"],
        "withdrawn": counts["Withdrawn"],
        "active": sum(1 for job in jobs if job.status not in TERMINAL_STATUSES),
    }


def conversion_rates(jobs: Sequence) -> dict[str, float]:
    total = len(jobs)
    interviewing = sum(1 for job in jobs if job.status in INTERVIEWING_OR_FURTHER)
    offers = sum(1 for job in jobs if job.status in OFFER_STATUSES)
    return {
        "application_to_interview": _pct(interviewing, total),
        "interview_to_offer": _pct(offers, interviewing),
        "overall_success_rate": _pct(offers, total),
    }


def _first_response_days(job) -> float | None:
    applied = _applied(job)
    if applied is None:
        return None
    for entry in job.status_history or []:
        if entry.status in RESPONSE_STATUSES:
            return (as_utc(entry.date) - applied).total_seconds() / 86400
    return None


def response_time_stats(jobs: Sequence) -> dict:
    samples = [d for d in (_first_response_days(job) for job in jobs) if d is not None]
    if not samples:
        return {"average_days": 0.0, "fastest_days": 0.0, "slowest_days": 0.0, "sample_size": 0}
    return {
        "average_days": round(sum(samples) / len(samples), 1),
        "fastest_days": round(min(samples), 1),
        "slowest_days": round(max(samples), 1),
        "sample_size": len(samples),
    }


def _bucket_key(value: datetime, granularity: str) -> str:
    return value.strftime("%Y-%m-%d") if granularity == "day" else value.strftime("%Y-%m")


def _bucket_keys(start: datetime, end: datetime, granularity: str) -> list[str]:
    keys = []
    if granularity == "day":
        cursor = start.replace(hour=0, minute=0, second=0, microsecond=0)
        while cursor <= end:
            keys.append(_bucket_key(cursor, "day"))
            cursor += timedelta(days=1)
    else:
        cursor = start.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        while cursor <= end:
            keys.append(_bucket_key(cursor, "month"))
            cursor = add_months(cursor, 1)
    return keys


def time_series(jobs: Sequence, period: str = "month", now: datetime | None = None) -> list[dict]:
    """Applications per day or month across the period, zero-filled."""
    now = now or utcnow()
    start, granularity = period_window(period, now)
    selected = filter_window(jobs, start, now)
    if start is None:
        dates = [_applied(job) for job in selected if _applied(job) is not None]
        if not dates:
            return []
        start = min(dates)
    buckets = {key: {"period": key, "total": 0, "statuses": {}} for key in _bucket_keys(start, now, granularity)}
    for job in selected:
        applied = _applied(job)
        if applied is None:
            continue
        bucket = buckets.setdefault(
            _bucket_key(applied, granularity), {"period": _bucket_key(applied, granularity), "total": 0, "statuses": {}}
        )
        bucket["total"] += 1
        bucket["statuses"][job.status] = bucket["statuses"].get(job.status, 0) + 1
    return [buckets[key] for key in sorted(buckets)]


def monthly_breakdown(jobs: Sequence) -> list[dict]:
    months: dict[str, dict] = {}
    for job in jobs:
        applied = _applied(job)
        if applied is None:
            continue
        key = applied.strftime("%Y-%m")
        row = months.setdefault(key, {"month": key, "count": 0, "interviews": 0, "offers": 0, "rejections": 0})
        row["count"] += 1
        if job.status in INTERVIEWING_OR_FURTHER:
            row["interviews"] += 1
        if job.status in OFFER_STATUSES:
            row["offers"] += 1
        if job.status == "Rejected":
            row["rejections"] += 1
    return [months[key] for key in sorted(months)]


def top_companies(jobs: Sequence, limit: int = 10) -> list[dict]:
    """Most-applied companies; ties broken alphabetically."""
    by_company: dict[str, list] = defaultdict(list)
    for job in jobs:
        by_company[job.company].append(job)
    ranked = sorted(by_company.items(), key=lambda item: (-len(item[1]), item[0].lower()))
    return [
        {
            "company": company,
            "count": len(company_jobs),
            "status_breakdown": dict(Counter(job.status for job in company_jobs)),
        }
        for company, company_jobs in ranked[:limit]
    ]


def _breakdown(values: Iterable[str | None]) -> list[dict]:
    counts = Counter(v or "Unknown" for v in values)
    return [{"name": name, "count": count} for name, count in sorted(counts.items(), key=lambda i: (-i[1], i[0]))]


def job_type_breakdown(jobs: Sequence) -> list[dict]:
    return _breakdown(job.job_type for job in jobs)


def source_breakdown(jobs: Sequence) -> list[dict]:
    return _breakdown((job.source or {}).get("platform") for job in jobs)


def salary_stats(jobs: Sequence) -> dict:
    """Per-currency salary ranges; offer-stage applications tracked separately."""
    by_currency: dict[str, dict] = {}
    for job in jobs:
        if job.salary_min is None and job.salary_max is None:
            continue
        currency = job.salary_currency or "INR"
        row = by_currency.setdefault(currency, {"mins": [], "maxes": [], "offers": []})
        if job.salary_min is not None:
            row["mins"].append(job.salary_min)
        if job.salary_max is not None:
            row["maxes"].append(job.salary_max)
        if job.status in OFFER_STATUSES:
            row["offers"].append(job.salary_max if job.salary_max is not None else job.salary_min)
    result = {}
    for currency, row in sorted(by_currency.items()):
        mins, maxes, offers = row["mins"], row["maxes"], row["offers"]
        result[currency] = {
            "average_min": round(sum(mins) / len(mins), 2) if mins else 0.0,
            "average_max": round(sum(maxes) / len(maxes), 2) if maxes else 0.0,
            "lowest": min(mins) if mins else None,
            "highest": max(maxes) if maxes else None,
            "average_offer": round(sum(offers) / len(offers), 2) if offers else None,
        }
    return result


def _longest_run(days: list) -> int:
    longest = run = 0
    previous = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


def activity_stats(jobs: Sequence, now: datetime | None = None) -> dict:
    now = now or utcnow()
    dates = sorted(d for d in (_applied(job) for job in jobs) if d is not None)
    if not dates:
        return {
            "average_applications_per_week": 0.0,
            "most_active_day": None,
            "most_active_month": None,
            "longest_streak": 0,
            "current_streak": 0,
        }
    weeks = max(1.0, (now - dates[0]).days / 7)
    weekday_counts = Counter(d.weekday() for d in dates)
    month_counts = Counter(d.month for d in dates)
    days = sorted({d.date() for d in dates})

    current = 0
    cursor = now.date()
    if cursor not in days:
        cursor -= timedelta(days=1)
    day_set = set(days)
    while cursor in day_set:
        current += 1
        cursor -= timedelta(days=1)

    return {
        "average_applications_per_week": round(len(dates) / weeks, 2),
        "most_active_day": WEEKDAYS[max(weekday_counts, key=lambda k: (weekday_counts[k], -k))],
        "most_active_month": MONTHS[max(month_counts, key=lambda k: (month_counts[k], -k)) - 1],
        "longest_streak": _longest_run(days),
        "current_streak": current,
    }


def interview_stats(jobs: Sequence, now: datetime | None = None) -> dict:
    now = now or utcnow()
    interviews = [i for job in jobs for i in (job.interviews or [])]
    ratings = [i["rating"] for i in interviews if i.get("status") == "Completed" and i.get("rating")]
    upcoming = 0
    for interview in interviews:
        scheduled = interview.get("scheduled_date")
        if interview.get("status", "Scheduled") == "Scheduled" and scheduled:
            if as_utc(datetime.fromisoformat(scheduled)) > now:
                upcoming += 1
    with_interviews = sum(1 for job in jobs if job.interviews)
    return {
        "total": len(interviews),
        "completed": sum(1 for i in interviews if i.get("status") == "Completed"),
        "upcoming": upcoming,
        "by_type": dict(Counter(i.get("type") or "Unknown" for i in interviews)),
        "average_per_application": round(len(interviews) / with_interviews, 2) if with_interviews else 0.0,
        "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
    }


def reminder_stats(reminders: Sequence, now: datetime | None = None) -> dict:
    now = now or utcnow()
    counts = Counter(r.status for r in reminders)
    overdue = sum(1 for r in reminders if r.status == REMINDER_PENDING and as_utc(r.reminder_date) < now)
    return {
        "total": len(reminders),
        "pending": counts.get(REMINDER_PENDING, 0),
        "completed": counts.get(REMINDER_COMPLETED, 0),
        "snoozed": counts.get("snoozed", 0),
        "cancelled": counts.get("cancelled", 0),
        "overdue": overdue,
    }


def resume_stats(resumes: Sequence, jobs: Sequence = ()) -> dict:
    usage = Counter(job.resume_id for job in jobs if job.resume_id)
    by_status = {status: 0 for status in RESUME_STATUSES}
    for resume in resumes:
        by_status[resume.status] = by_status.get(resume.status, 0) + 1
    known = {resume.id for resume in resumes}
    most_used = None
    ranked = [(rid, n) for rid, n in usage.most_common() if rid in known]
    if ranked:
        most_used = {"resume_id": ranked[0][0], "applications": ranked[0][1]}
    scores = [resume_versioning.completeness_score(resume) for resume in resumes]
    return {
        "total": len(resumes),
        "by_status": by_status,
        "public": sum(1 for resume in resumes if resume.is_public),
        "ai_generated": sum(1 for resume in resumes if resume.type == "AI Generated"),
        "most_used": most_used,
        "average_completeness": round(sum(scores) / len(scores), 1) if scores else 0.0,
    }


def aggregate(
    jobs: Iterable,
    resumes: Iterable = (),
    reminders: Iterable = (),
    period: str = "month",
    now: datetime | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    top_n: int = 10,
) -> dict:
    """Full summary for one user, optionally restricted to applications inside [start, end]."""
    now = now or utcnow()
    jobs = filter_window(list(jobs), start, end)
    resumes = list(resumes)
    reminders = list(reminders)
    return {
        "total_applications": len(jobs),
        "status_counts": status_counts(jobs),
        "application_stats": application_stats(jobs),
        "conversion_rates": conversion_rates(jobs),
        "response_time": response_time_stats(jobs),
        "time_series": time_series(jobs, period, now),
        "monthly_applications": monthly_breakdown(jobs),
        "top_companies": top_companies(jobs, top_n),
        "job_type_breakdown": job_type_breakdown(jobs),
        "source_breakdown": source_breakdown(jobs),
        "salary": salary_stats(jobs),
        "activity": activity_stats(jobs, now),
        "interviews": interview_stats(jobs, now),
        "reminders": reminder_stats(reminders, now),
        "resumes": resume_stats(resumes, jobs),
        "period": period,
        "generated_at": now.isoformat(),
    }
