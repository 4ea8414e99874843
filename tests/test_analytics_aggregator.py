from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from jobtracker.core.errors import ValidationError
from jobtracker.services import analytics_aggregator

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _job(company="Acme", status="Applied", days_ago=5, history=(), **extra):
    applied = NOW - timedelta(days=days_ago)
    fields = {
        "company": company,
        "status": status,
        "application_date": applied,
        "status_history": [SimpleNamespace(status=s, date=applied + timedelta(days=d)) for s, d in history],
        "job_type": "Full-time",
        "source": {"platform": "LinkedIn"},
        "salary_min": None,
        "salary_max": None,
        "salary_currency": "USD",
        "interviews": [],
        "resume_id": None,
    }
    fields.update(extra)
    return SimpleNamespace(**fields)


def test_empty_input_gives_zeroed_summary():
    summary = analytics_aggregator.aggregate([], now=NOW)
    assert summary["total_applications"] == 0
    assert set(summary["status_counts"].values()) == {0}
    assert summary["conversion_rates"] == {
        "application_to_interview": 0.0,
        "interview_to_offer": 0.0,
        "overall_success_rate": 0.0,
    }
    assert summary["response_time"]["sample_size"] == 0
    assert summary["top_companies"] == []
    assert summary["activity"]["longest_streak"] == 0
    assert summary["reminders"]["total"] == 0
    assert summary["resumes"]["average_completeness"] == 0.0
    assert all(bucket["total"] == 0 for bucket in summary["time_series"])


def test_ten_applications_with_three_offers():
    jobs = [_job(company=f"Company {i}") for i in range(7)]
    jobs += [_job(company=f"Offer {i}", status="Offer Extended") for i in range(3)]
    rates = analytics_aggregator.conversion_rates(jobs)
    assert rates["overall_success_rate"] == 30.0
    assert rates["application_to_interview"] == 30.0
    assert rates["interview_to_offer"] == 100.0


def test_application_stats_split_wishlist_and_active():
    jobs = [_job(status="Wishlist"), _job(status="Phone Screen"), _job(status="Rejected"), _job(status="Offer Accepted")]
    stats = analytics_aggregator.application_stats(jobs)
    assert stats["total"] == 4
    assert stats["wishlist"] == 1
    assert stats["applied"] == 3
    assert stats["interviewing"] == 1
    assert stats["offers"] == 1
    assert stats["rejected"] == 1
    assert stats["active"] == 2


def test_top_companies_break_ties_by_name():
    jobs = [_job(company="Zeta"), _job(company="Alpha"), _job(company="Zeta"), _job(company="Alpha"), _job(company="Beta")]
    ranked = analytics_aggregator.top_companies(jobs, limit=2)
    assert [row["company"] for row in ranked] == ["Alpha", "Zeta"]
    assert ranked[0]["status_breakdown"] == {"Applied": 2}


def test_response_time_uses_first_response_entry():
    jobs = [
        _job(history=[("Applied", 0), ("Phone Screen", 4), ("First Interview", 9)]),
        _job(history=[("Applied", 0), ("Rejected", 2)]),
        _job(history=[("Applied", 0)]),
    ]
    stats = analytics_aggregator.response_time_stats(jobs)
    assert stats == {"average_days": 3.0, "fastest_days": 2.0, "slowest_days": 4.0, "sample_size": 2}


def test_time_series_buckets_by_day_for_week():
    jobs = [_job(days_ago=1), _job(days_ago=1, status="Rejected"), _job(days_ago=3), _job(days_ago=40)]
    series = analytics_aggregator.time_series(jobs, "week", NOW)
    by_day = {row["period"]: row for row in series}
    assert by_day["2024-06-14"]["total"] == 2
    assert by_day["2024-06-14"]["statuses"] == {"Applied": 1, "Rejected": 1}
    assert by_day["2024-06-12"]["total"] == 1
    assert by_day["2024-06-13"]["total"] == 0
    assert sum(row["total"] for row in series) == 3


def test_all_time_series_starts_at_first_application():
    jobs = [_job(days_ago=70), _job(days_ago=2)]
    series = analytics_aggregator.time_series(jobs, "all_time", NOW)
    assert series[0]["period"] == "2024-04"
    assert series[-1]["period"] == "2024-06"
    assert [row["total"] for row in series] == [1, 0, 1]


def test_invalid_period_raises():
    with pytest.raises(ValidationError):
        analytics_aggregator.period_window("decade", NOW)


def test_filter_window_is_inclusive_and_skips_undated():
    inside = _job(days_ago=3)
    undated = _job()
    undated.application_date = None
    selected = analytics_aggregator.filter_window(
        [inside, _job(days_ago=30), undated], start=NOW - timedelta(days=3), end=NOW
    )
    assert selected == [inside]


def test_salary_stats_per_currency():
    jobs = [
        _job(salary_min=100, salary_max=150, salary_currency="USD"),
        _job(salary_min=120, salary_max=170, salary_currency="USD", status="Offer Extended"),
        _job(salary_min=50, salary_max=None, salary_currency="EUR"),
        _job(),
    ]
    stats = analytics_aggregator.salary_stats(jobs)
    assert stats["USD"] == {
        "average_min": 110.0,
        "average_max": 160.0,
        "lowest": 100,
        "highest": 170,
        "average_offer": 170.0,
    }
    assert stats["EUR"]["average_max"] == 0.0
    assert stats["EUR"]["average_offer"] is None


def test_activity_streaks():
    jobs = [_job(days_ago=0), _job(days_ago=1), _job(days_ago=2), _job(days_ago=10), _job(days_ago=11)]
    activity = analytics_aggregator.activity_stats(jobs, NOW)
    assert activity["longest_streak"] == 3
    assert activity["current_streak"] == 3


def test_interview_stats_counts_upcoming_and_ratings():
    interviews = [
        {"type": "Phone", "status": "Completed", "rating": 4, "scheduled_date": (NOW - timedelta(days=2)).isoformat()},
        {"type": "Technical", "status": "Completed", "rating": 2, "scheduled_date": (NOW - timedelta(days=1)).isoformat()},
        {"type": "Technical", "status": "Scheduled", "scheduled_date": (NOW + timedelta(days=3)).isoformat()},
    ]
    stats = analytics_aggregator.interview_stats([_job(interviews=interviews), _job()], NOW)
    assert stats["total"] == 3
    assert stats["completed"] == 2
    assert stats["upcoming"] == 1
    assert stats["by_type"] == {"Phone": 1, "Technical": 2}
    assert stats["average_per_application"] == 3.0
    assert stats["average_rating"] == 3.0


def test_reminder_stats_counts_overdue_pending_only():
    reminders = [
        SimpleNamespace(status="pending", reminder_date=NOW - timedelta(hours=1)),
        SimpleNamespace(status="pending", reminder_date=NOW + timedelta(days=1)),
        SimpleNamespace(status="completed", reminder_date=NOW - timedelta(days=3)),
    ]
    stats = analytics_aggregator.reminder_stats(reminders, NOW)
    assert stats["pending"] == 2
    assert stats["completed"] == 1
    assert stats["overdue"] == 1


def test_aggregate_does_not_mutate_inputs():
    jobs = [_job(status="Phone Screen"), _job()]
    before = [(job.status, job.company) for job in jobs]
    analytics_aggregator.aggregate(jobs, now=NOW)
    assert [(job.status, job.company) for job in jobs] == before
